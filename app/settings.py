from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, model_validator
from typing import Optional

class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="allow",  # tolerate unknown vars if needed
    )

    aws_region: str = Field("us-east-1")
    aws_endpoint_url: Optional[str] = Field(None)
    aws_access_key_id: str = Field("test")
    aws_secret_access_key: str = Field("test")

    images_bucket: str = Field("imagens")
    profiles_bucket: str = Field("profiles")
    images_table: str = Field("images")
    users_table: str = Field("users")
    images_metadata_table: str = Field("images_metadata")

    signed_url_expire_seconds: int = Field(3600)
    cache_control_seconds: int = Field(3600)
    # Overrides the host part of public object URLs (CDN, localstack, ...)
    public_base_url: Optional[str] = Field(None)

    environment: str = Field("development")
    upload_dir: Optional[str] = Field(None)
    port: int = Field(3000)
    app_title: str = Field("Image Gateway")

    @model_validator(mode="after")
    def default_upload_dir(self):
        if not self.upload_dir:
            self.upload_dir = "/tmp/uploads" if self.environment == "production" else "uploads"
        return self

settings = Settings()
