from datetime import datetime, timezone
from decimal import Decimal
from io import BytesIO
from typing import Any, Dict, List, Optional
import logging
import math
from botocore.exceptions import BotoCoreError, ClientError
from PIL import Image, UnidentifiedImageError

from app.storage.dynamodb import DynamoDBService
from app.storage.s3 import S3Service, ObjectExistsError
from app.storage.upload_buffer import UploadedFile
from app.image_service.models import (
    CleanupOutcome,
    ImageItem,
    ImageMeta,
    PublicUrl,
    StorageKey,
    UploadResponse,
    parse_reference,
)
from app.exceptions import StorageException, MetadataStoreException, ImageNotFoundException

log = logging.getLogger(__name__)

DEFAULT_FILENAME = "image.jpg"
DEFAULT_CONTENT_TYPE = "image/jpeg"

PIL_FORMAT_MIME = {
    "JPEG": "image/jpeg",
    "PNG": "image/png",
    "GIF": "image/gif",
    "WEBP": "image/webp",
}

def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()

def build_image_key(filename: Optional[str], now: Optional[datetime] = None) -> str:
    """Storage key for a gallery image: ``images/{epoch-millis}_{filename}``."""
    now = now or datetime.now(timezone.utc)
    millis = int(now.timestamp() * 1000)
    return f"images/{millis}_{filename or DEFAULT_FILENAME}"

def parse_coordinate(value: Optional[str]) -> Optional[float]:
    """Parses a latitude/longitude form value. Absent or unparseable input gives None."""
    if value is None or not str(value).strip():
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None

def resolve_content_type(file_bytes: bytes, declared: Optional[str]) -> str:
    """Uses the declared MIME type, sniffing the bytes when the client sent none."""
    if declared and declared != "application/octet-stream":
        return declared
    try:
        with Image.open(BytesIO(file_bytes)) as img:
            return PIL_FORMAT_MIME.get((img.format or "").upper(), DEFAULT_CONTENT_TYPE)
    except (UnidentifiedImageError, OSError):
        return DEFAULT_CONTENT_TYPE

def _to_decimal(value: Optional[float]) -> Optional[Decimal]:
    # DynamoDB rejects python floats
    return Decimal(str(value)) if value is not None else None

def _to_float(value: Any) -> Optional[float]:
    return float(value) if value is not None else None

def to_item_record(image: ImageMeta) -> Dict[str, Any]:
    item = image.model_dump()
    item["latitude"] = _to_decimal(image.latitude)
    item["longitude"] = _to_decimal(image.longitude)
    return item

def resolve_image_url(s3: S3Service, bucket: str, reference: str) -> str:
    """Turns a stored reference into a URL a client can fetch.

    Keys get a signed URL, falling back to the public URL when signing fails.
    """
    ref = parse_reference(reference)
    if isinstance(ref, PublicUrl):
        log.debug("Reference is already a public URL: %s", ref.value)
        return ref.value
    if isinstance(ref, StorageKey):
        try:
            return s3.generate_presigned_url(bucket, ref.value, expires_in=s3.config.signed_url_expire_seconds)
        except (BotoCoreError, ClientError) as e:
            log.error(f"Failed to sign URL for {ref.value}: {e}")
            return s3.get_public_url(bucket, ref.value)
    raise TypeError(f"Unknown reference type: {type(ref).__name__}")

def fetch_images(db: DynamoDBService, s3: S3Service) -> List[ImageItem]:
    """Lists every image record, newest first, with a resolved URL."""
    log.info("Fetching images from the database")
    try:
        records = db.select(db.config.images_table)
    except (BotoCoreError, ClientError) as e:
        log.error(f"DynamoDB fetch_images failed: {e}")
        raise MetadataStoreException("Failed to fetch images", str(e))
    log.info("Found %d images", len(records))

    records.sort(key=lambda r: r.get("created_at", ""), reverse=True)
    bucket = s3.config.images_bucket
    return [
        ImageItem(
            id=r["id"],
            url=resolve_image_url(s3, bucket, r["url"]),
            user_id=r["user_id"],
            created_at=r["created_at"],
            latitude=_to_float(r.get("latitude")),
            longitude=_to_float(r.get("longitude")),
            analysis=r.get("analysis"),
        )
        for r in records
    ]

def save_image_and_meta(
    db: DynamoDBService,
    s3: S3Service,
    uploaded: UploadedFile,
    user_id: str,
    latitude: Optional[str] = None,
    longitude: Optional[str] = None,
    analysis: Optional[str] = None,
) -> UploadResponse:
    """Saves image to S3 and its record to DynamoDB."""
    contents = uploaded.read_bytes()
    key = build_image_key(uploaded.filename)
    bucket = s3.config.images_bucket

    try:
        s3.upload(
            bucket,
            key,
            contents,
            content_type=resolve_content_type(contents, uploaded.content_type),
            overwrite=False,
        )
    except (BotoCoreError, ClientError, ObjectExistsError) as e:
        log.error(f"S3 upload failed: {e}")
        raise StorageException("Failed to upload image", str(e))

    public_url = s3.get_public_url(bucket, key)
    log.info("Public URL generated: %s", public_url)

    image = ImageMeta(
        user_id=user_id,
        url=key,
        latitude=parse_coordinate(latitude),
        longitude=parse_coordinate(longitude),
        analysis=analysis or None,
        created_at=utc_now_iso(),
    )
    try:
        db.insert(db.config.images_table, to_item_record(image))
    except (BotoCoreError, ClientError) as e:
        log.error(f"DynamoDB insert failed: {e}")
        raise MetadataStoreException("Failed to upload image", str(e))

    log.info("Saved image record %s", image.id)
    return UploadResponse(
        image_id=image.id,
        image_url=public_url,
        latitude=image.latitude,
        longitude=image.longitude,
        analysis=image.analysis,
    )

def get_image_meta(db: DynamoDBService, image_id: str) -> Dict[str, Any]:
    """Gets image record from DynamoDB."""
    try:
        item = db.get(db.config.images_table, {"id": image_id})
    except (BotoCoreError, ClientError) as e:
        log.error(f"DynamoDB get_image_meta failed: {e}")
        raise MetadataStoreException("Failed to delete image", str(e))
    if not item:
        raise ImageNotFoundException(image_id)
    return item

# -------------------------
# Best-effort steps
# -------------------------
def delete_stored_object(s3: S3Service, reference: str) -> CleanupOutcome:
    ref = parse_reference(reference)
    if isinstance(ref, PublicUrl):
        return CleanupOutcome(
            operation="delete_object",
            target=reference,
            ok=False,
            error="reference is an external URL, no stored object to delete",
        )
    bucket = s3.config.images_bucket
    try:
        s3.delete(bucket, ref.value)
        return CleanupOutcome(operation="delete_object", target=reference, ok=True)
    except (BotoCoreError, ClientError) as e:
        return CleanupOutcome(operation="delete_object", target=reference, ok=False, error=str(e))

def delete_metadata_rows(db: DynamoDBService, reference: str) -> CleanupOutcome:
    try:
        db.delete_where(db.config.images_metadata_table, "file_path", reference)
        return CleanupOutcome(operation="delete_metadata", target=reference, ok=True)
    except (BotoCoreError, ClientError) as e:
        return CleanupOutcome(operation="delete_metadata", target=reference, ok=False, error=str(e))

def _log_outcome(outcome: CleanupOutcome):
    if outcome.ok:
        log.debug("%s succeeded for %s", outcome.operation, outcome.target)
    else:
        log.warning("%s failed for %s: %s", outcome.operation, outcome.target, outcome.error)

def remove_image(db: DynamoDBService, s3: S3Service, image_id: str) -> bool:
    """Removes the image record, plus its object and metadata rows when possible."""
    log.info("Deleting image %s", image_id)
    item = get_image_meta(db, image_id)
    reference = item.get("url", "")

    _log_outcome(delete_stored_object(s3, reference))

    try:
        db.delete(db.config.images_table, {"id": image_id})
    except (BotoCoreError, ClientError) as e:
        log.error(f"DynamoDB delete failed: {e}")
        raise MetadataStoreException("Failed to delete image", str(e))

    _log_outcome(delete_metadata_rows(db, reference))
    log.info("Image %s deleted", image_id)
    return True
