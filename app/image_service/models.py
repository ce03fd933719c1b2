from typing import Optional, Union
from pydantic import BaseModel, ConfigDict, Field
from uuid import uuid4

def new_id() -> str:
    """Generates a new unique record ID."""
    return str(uuid4())

# -------------------------
# Storage references
# -------------------------
class PublicUrl(BaseModel):
    """A reference that is already a fully-qualified URL."""
    value: str

class StorageKey(BaseModel):
    """A reference relative to a bucket namespace."""
    value: str

ImageReference = Union[PublicUrl, StorageKey]

def parse_reference(value: str) -> ImageReference:
    if value.startswith("http"):
        return PublicUrl(value=value)
    return StorageKey(value=value)

# -------------------------
# Records and views
# -------------------------
class ImageMeta(BaseModel):
    id: str = Field(default_factory=new_id)
    user_id: str
    url: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    analysis: Optional[str] = None
    created_at: str

class ImageItem(BaseModel):
    id: str
    url: str
    user_id: str
    created_at: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    analysis: Optional[str] = None

class UploadResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str = "Upload completed successfully!"
    image_id: str = Field(alias="imageId")
    image_url: str = Field(alias="imageUrl")
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    analysis: Optional[str] = None

class DeleteResponse(BaseModel):
    success: bool = True

class CleanupOutcome(BaseModel):
    """Result of a best-effort step. Logged by the caller, never raised."""
    operation: str
    target: str
    ok: bool
    error: Optional[str] = None
