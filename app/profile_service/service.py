import logging
from botocore.exceptions import BotoCoreError, ClientError

from app.storage.dynamodb import DynamoDBService
from app.storage.s3 import S3Service
from app.storage.upload_buffer import UploadedFile
from app.image_service.models import PublicUrl, StorageKey, new_id, parse_reference
from app.image_service.service import resolve_content_type, utc_now_iso
from app.profile_service.models import ProfileUploadResponse, UserProfile
from app.exceptions import (
    MetadataStoreException,
    ProfileImageNotFoundException,
    StorageException,
    UserNotFoundException,
)

log = logging.getLogger(__name__)

def profile_image_key(user_id: str) -> str:
    return f"profile_{user_id}.jpg"

def save_profile_image(
    db: DynamoDBService,
    s3: S3Service,
    uploaded: UploadedFile,
    user_id: str,
) -> ProfileUploadResponse:
    """Stores the user's profile picture and upserts their user record."""
    contents = uploaded.read_bytes()
    key = profile_image_key(user_id)
    bucket = s3.config.profiles_bucket

    try:
        s3.upload(
            bucket,
            key,
            contents,
            content_type=resolve_content_type(contents, uploaded.content_type),
            overwrite=True,
        )
    except (BotoCoreError, ClientError) as e:
        log.error(f"S3 profile upload failed: {e}")
        raise StorageException("Failed to upload profile image", str(e))

    public_url = s3.get_public_url(bucket, key)
    log.info("Profile image public URL: %s", public_url)

    table = db.config.users_table
    try:
        existing = db.get(table, {"firebase_id": user_id})
        if existing:
            db.update(table, {"firebase_id": user_id}, {"profile_image_url": public_url})
            log.info("Updated profile image for user %s", user_id)
        else:
            user = UserProfile(
                id=new_id(),
                firebase_id=user_id,
                profile_image_url=public_url,
                created_at=utc_now_iso(),
            )
            db.insert(table, user.model_dump())
            log.info("Created user %s with profile image", user_id)
    except (BotoCoreError, ClientError) as e:
        log.error(f"DynamoDB user upsert failed: {e}")
        raise MetadataStoreException("Failed to upload profile image", str(e))

    return ProfileUploadResponse(profile_image_url=public_url)

def get_profile_image_url(db: DynamoDBService, s3: S3Service, user_id: str) -> str:
    try:
        user = db.get(db.config.users_table, {"firebase_id": user_id})
    except (BotoCoreError, ClientError) as e:
        log.error(f"DynamoDB user lookup failed: {e}")
        raise MetadataStoreException("Failed to fetch profile image", str(e))

    if not user:
        raise UserNotFoundException(user_id)
    reference = user.get("profile_image_url")
    if not reference:
        raise ProfileImageNotFoundException(user_id)

    ref = parse_reference(reference)
    if isinstance(ref, PublicUrl):
        return ref.value
    if isinstance(ref, StorageKey):
        return s3.get_public_url(s3.config.profiles_bucket, ref.value)
    raise TypeError(f"Unknown reference type: {type(ref).__name__}")
