from fastapi import APIRouter, Depends, UploadFile, File, Form
from typing import Optional

from app.storage.dynamodb import DynamoDBService
from app.storage.s3 import S3Service
from app.storage.upload_buffer import buffered_upload
from app.dependencies.dependencies import get_s3_service, get_dynamodb_service, get_upload_dir
from app.profile_service.service import save_profile_image, get_profile_image_url
from app.profile_service.models import ProfileUploadResponse, ProfileImageResponse
from app.exceptions import MissingFileException, MissingFieldException

router = APIRouter(tags=["profiles"])

@router.post("/upload-profile", response_model=ProfileUploadResponse)
def upload_profile_image(
    image: Optional[UploadFile] = File(None),
    user_id: Optional[str] = Form(None),
    upload_dir: str = Depends(get_upload_dir),
    db: DynamoDBService = Depends(get_dynamodb_service),
    s3: S3Service = Depends(get_s3_service)
):
    """Replaces the user's profile picture, creating the user record if needed."""
    if image is None:
        raise MissingFileException()

    with buffered_upload(image, upload_dir) as uploaded:
        if not user_id:
            raise MissingFieldException("user_id")
        return save_profile_image(db=db, s3=s3, uploaded=uploaded, user_id=user_id)

@router.get("/profile-image/{user_id}", response_model=ProfileImageResponse)
def profile_image(
    user_id: str,
    db: DynamoDBService = Depends(get_dynamodb_service),
    s3: S3Service = Depends(get_s3_service)
):
    url = get_profile_image_url(db, s3, user_id)
    return ProfileImageResponse(profile_image_url=url)
