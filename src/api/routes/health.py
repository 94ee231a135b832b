"""Health check endpoint for load balancers and uptime probes."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError

from adapter.mongodb.connection import get_mongodb_client

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["health"])


def _check_mongodb() -> dict:
    client = get_mongodb_client()
    if client is None:
        return {"status": "unhealthy", "message": "Connection failed or not configured"}
    try:
        client.admin.command('ping')
    except PyMongoError as e:
        logger.warning("Health check ping failed", extra={"error": str(e)[:200]})
        return {"status": "unhealthy", "message": f"Connection error: {str(e)[:200]}"}
    return {"status": "healthy", "message": "Connection successful"}


@router.get("")
async def health():
    """Report service status; 503 when the credential store is unreachable."""
    mongodb = _check_mongodb()
    healthy = mongodb["status"] == "healthy"
    return JSONResponse(
        content={
            "status": "healthy" if healthy else "degraded",
            "timestamp": datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
            "services": {"mongodb": mongodb},
        },
        status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
    )
