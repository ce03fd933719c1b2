from datetime import datetime, timezone
from fastapi import APIRouter

router = APIRouter(tags=["health"])

@router.get("/health")
def health_check():
    """Liveness probe for the hosting platform."""
    return {"status": "OK", "timestamp": datetime.now(timezone.utc).isoformat()}

@router.get("/conexao")
def connection_check():
    return {"status": "Connection established successfully!"}
