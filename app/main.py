from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import uvicorn
import logging

from app.storage.dynamodb import DynamoDBService
from app.storage.s3 import S3Service
from app.settings import settings
from app.routers.health import router as health_router
from app.routers.image_service import router as image_router
from app.routers.profile_service import router as profile_router
from app.exceptions import add_exception_handlers

logging.basicConfig(level=logging.INFO)
log = logging.getLogger("image-gateway")

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
        Async context manager for FastAPI application lifecycle events.
        Initializes and closes the object store and metadata store clients.
    """
    app.state.s3 = S3Service()
    app.state.db = DynamoDBService()
    log.info("Environment: %s", settings.environment)
    yield
    app.state.s3.close()
    app.state.db.close()

# Initialize App
app = FastAPI(
    title=settings.app_title,
    lifespan=lifespan,
    description="Image and profile picture gateway",
)

# Add exception handlers
add_exception_handlers(app)

# CORS - Middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "OPTIONS", "DELETE", "PUT"],
    allow_headers=["Content-Type", "Authorization"],
)

# Add the routers
app.include_router(health_router)
app.include_router(image_router)
app.include_router(profile_router)

if __name__ == "__main__":
    log.info("Server listening on port %d", settings.port)
    uvicorn.run("app.main:app", host="0.0.0.0", port=settings.port)
