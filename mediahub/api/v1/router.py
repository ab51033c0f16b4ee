"""Aggregate all API routers."""

from fastapi import APIRouter
from mediahub.api.v1.health import router as health_router
from mediahub.api.v1.media import router as media_router
from mediahub.api.v1.drafts import router as drafts_router

api_router = APIRouter(prefix="/api")
api_router.include_router(health_router, tags=["health"])
api_router.include_router(media_router, tags=["media"])
api_router.include_router(drafts_router, tags=["drafts"])
