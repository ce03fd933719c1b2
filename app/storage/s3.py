import boto3
from typing import Optional
from urllib.parse import quote
from botocore.exceptions import ClientError
from app.settings import Settings, settings
import logging

log = logging.getLogger(__name__)

class ObjectExistsError(Exception):
    """Raised when a no-overwrite upload targets a key that is already taken."""
    def __init__(self, bucket: str, key: str):
        self.bucket = bucket
        self.key = key
        super().__init__(f"Object s3://{bucket}/{key} already exists")

# -------------------------
# S3 Service
# -------------------------
class S3Service:
    def __init__(self, config: Optional[Settings] = None):
        self.config = config or settings
        session = boto3.session.Session(region_name=self.config.aws_region)
        kwargs = {
            "aws_access_key_id": self.config.aws_access_key_id,
            "aws_secret_access_key": self.config.aws_secret_access_key,
        }
        if self.config.aws_endpoint_url:
            kwargs["endpoint_url"] = self.config.aws_endpoint_url

        self.client = session.client("s3", **kwargs)
        log.info("Initialized S3 client")

        # Ensure buckets exist at initialization
        for bucket in (self.config.images_bucket, self.config.profiles_bucket):
            self.ensure_bucket(bucket)

    def ensure_bucket(self, bucket: str):
        try:
            self.client.head_bucket(Bucket=bucket)
            log.debug("Bucket %s already exists", bucket)
        except ClientError as e:
            error_code = int(e.response["Error"]["Code"])
            if error_code == 404:
                self.client.create_bucket(Bucket=bucket)
                log.info("Created bucket %s", bucket)
            else:
                log.error("Failed to check/create bucket: %s", e)
                raise

    def object_exists(self, bucket: str, key: str) -> bool:
        try:
            self.client.head_object(Bucket=bucket, Key=key)
            return True
        except ClientError as e:
            if e.response["Error"]["Code"] in ("404", "NoSuchKey", "NotFound"):
                return False
            raise

    def upload(self, bucket: str, key: str, body: bytes, content_type: str, overwrite: bool = False):
        kwargs = {
            "Bucket": bucket,
            "Key": key,
            "Body": body,
            "ContentType": content_type,
            "CacheControl": f"max-age={self.config.cache_control_seconds}",
        }
        if not overwrite:
            # S3 rejects the write itself if the key is already taken
            kwargs["IfNoneMatch"] = "*"
        try:
            self.client.put_object(**kwargs)
        except ClientError as e:
            if e.response["Error"]["Code"] == "PreconditionFailed":
                raise ObjectExistsError(bucket, key) from e
            raise
        log.debug("Uploaded %d bytes to s3://%s/%s", len(body), bucket, key)

    def get_public_url(self, bucket: str, key: str) -> str:
        path = quote(key, safe="/")
        base = self.config.public_base_url or self.config.aws_endpoint_url
        if base:
            return f"{base.rstrip('/')}/{bucket}/{path}"
        return f"https://{bucket}.s3.{self.config.aws_region}.amazonaws.com/{path}"

    def generate_presigned_url(self, bucket: str, key: str, expires_in: Optional[int] = None) -> str:
        expires = expires_in or self.config.signed_url_expire_seconds
        return self.client.generate_presigned_url(
            "get_object",
            Params={"Bucket": bucket, "Key": key},
            ExpiresIn=expires,
        )

    def delete(self, bucket: str, key: str):
        self.client.delete_object(Bucket=bucket, Key=key)
        log.debug("Deleted s3://%s/%s", bucket, key)

    def close(self):
        log.info("Closed S3 client")
