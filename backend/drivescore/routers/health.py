import os

from fastapi import APIRouter

from drivescore import __version__

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check():
    """Simple liveness probe."""
    return {
        "status": "healthy",
        "service": "Drive Score form extraction",
        "version": __version__,
        "environment": os.getenv("AWS_LAMBDA_FUNCTION_NAME", "local"),
    }
