from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

class UserProfile(BaseModel):
    firebase_id: str
    id: str
    profile_image_url: Optional[str] = None
    created_at: str

class ProfileUploadResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str = "Profile image updated successfully!"
    profile_image_url: str = Field(alias="profileImageUrl")

class ProfileImageResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    profile_image_url: str = Field(alias="profileImageUrl")
