"""
    Centralized exception handling for the FastAPI application.
"""
from typing import Optional
from fastapi import Request, HTTPException
from fastapi.responses import JSONResponse
import logging

log = logging.getLogger(__name__)

class APIException(Exception):
    """Base class for API exceptions."""
    def __init__(self, status_code: int, detail: str, details: Optional[str] = None):
        self.status_code = status_code
        self.detail = detail
        self.details = details
        super().__init__(self.detail)

class MissingFileException(APIException):
    """Exception for requests that carry no file part."""
    def __init__(self):
        super().__init__(status_code=400, detail="No image uploaded")

class MissingFieldException(APIException):
    """Exception for a required form field that is absent or empty."""
    def __init__(self, field: str):
        super().__init__(status_code=400, detail=f"{field} is required")

class ImageNotFoundException(APIException):
    """Exception for when an image is not found."""
    def __init__(self, image_id: str):
        self.image_id = image_id
        super().__init__(status_code=404, detail="Image not found")

class UserNotFoundException(APIException):
    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(status_code=404, detail="User not found")

class ProfileImageNotFoundException(APIException):
    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(status_code=404, detail="Profile image not found")

class StorageException(APIException):
    """Exception for object storage failures."""
    def __init__(self, detail: str, details: Optional[str] = None):
        super().__init__(status_code=500, detail=detail, details=details)

class MetadataStoreException(APIException):
    """Exception for DynamoDB failures."""
    def __init__(self, detail: str, details: Optional[str] = None):
        super().__init__(status_code=500, detail=detail, details=details)

async def api_exception_handler(request: Request, exc: APIException):
    """Handles API exceptions."""
    if exc.status_code >= 500:
        log.error(f"API Exception: {exc.detail} ({exc.details})", exc_info=exc)
    else:
        log.warning(f"API Exception: {exc.detail}")
    content = {"error": exc.detail}
    if exc.details is not None:
        content["details"] = exc.details
    return JSONResponse(status_code=exc.status_code, content=content)

async def http_exception_handler(request: Request, exc: HTTPException):
    """Handles FastAPI HTTP exceptions."""
    log.error(f"HTTP Exception: {exc.detail}", exc_info=exc)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
    )

async def generic_exception_handler(request: Request, exc: Exception):
    """Handles all other exceptions."""
    log.error(f"Unhandled Exception: {str(exc)}", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"error": "An unexpected error occurred."},
    )

def add_exception_handlers(app):
    """Adds exception handlers to the FastAPI app."""
    app.add_exception_handler(APIException, api_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
