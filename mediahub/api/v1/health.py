"""Health check endpoint."""

import platform
import sys

from fastapi import APIRouter, Depends

from mediahub.api.deps import Services, get_services

router = APIRouter()


@router.get("/health")
async def health_check(services: Services = Depends(get_services)):
    """Service health, queue state, and system info."""
    return {
        "status": "healthy",
        "queue": services.queue.get_queue_status().model_dump(),
        "uploads_dir": services.settings.uploads_path,
        "python_version": sys.version,
        "platform": platform.platform(),
    }
