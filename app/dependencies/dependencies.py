from fastapi import Request
from app.storage.dynamodb import DynamoDBService
from app.storage.s3 import S3Service
from app.settings import settings

def get_s3_service(request: Request) -> S3Service:
    """Dependency provider for S3Service"""
    return request.app.state.s3

def get_dynamodb_service(request: Request) -> DynamoDBService:
    """Dependency provider for DynamoDBService"""
    return request.app.state.db

def get_upload_dir() -> str:
    """Directory where incoming files are buffered"""
    return settings.upload_dir
