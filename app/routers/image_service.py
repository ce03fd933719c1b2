from fastapi import APIRouter, Depends, UploadFile, File, Form
from typing import List, Optional

from app.storage.dynamodb import DynamoDBService
from app.storage.s3 import S3Service
from app.storage.upload_buffer import buffered_upload
from app.dependencies.dependencies import get_s3_service, get_dynamodb_service, get_upload_dir
from app.image_service.service import save_image_and_meta, fetch_images, remove_image
from app.image_service.models import ImageItem, UploadResponse, DeleteResponse
from app.exceptions import MissingFileException, MissingFieldException

router = APIRouter(tags=["images"])

@router.get("/images", response_model=List[ImageItem])
def list_images_handler(
    db: DynamoDBService = Depends(get_dynamodb_service),
    s3: S3Service = Depends(get_s3_service)
):
    """Lists all images, newest first, each with a fetchable URL."""
    return fetch_images(db, s3)

@router.post("/upload", response_model=UploadResponse)
def upload_image(
    image: Optional[UploadFile] = File(None),
    user_id: Optional[str] = Form(None),
    latitude: Optional[str] = Form(None),
    longitude: Optional[str] = Form(None),
    analysis: Optional[str] = Form(None),
    upload_dir: str = Depends(get_upload_dir),
    db: DynamoDBService = Depends(get_dynamodb_service),
    s3: S3Service = Depends(get_s3_service)
):
    """Uploads an image with optional location and analysis."""
    if image is None:
        raise MissingFileException()

    with buffered_upload(image, upload_dir) as uploaded:
        if not user_id:
            raise MissingFieldException("user_id")
        return save_image_and_meta(
            db=db,
            s3=s3,
            uploaded=uploaded,
            user_id=user_id,
            latitude=latitude,
            longitude=longitude,
            analysis=analysis,
        )

@router.delete("/images/{image_id}", response_model=DeleteResponse)
def delete_image(
    image_id: str,
    db: DynamoDBService = Depends(get_dynamodb_service),
    s3: S3Service = Depends(get_s3_service)
):
    """Deletes an image record, its stored object and its metadata rows."""
    remove_image(db, s3, image_id)
    return DeleteResponse(success=True)
