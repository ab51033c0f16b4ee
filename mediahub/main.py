"""Mediahub backend - FastAPI application."""

import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from mediahub.api.deps import build_services
from mediahub.api.v1.health import router as health_root_router
from mediahub.api.v1.router import api_router
from mediahub.config import Settings, settings as default_settings
from mediahub.errors import MediaHubError
from mediahub.jobs.transcoder import Transcoder

logger = logging.getLogger(__name__)

# Content types browsers and HLS players expect for stream files
_STREAM_CONTENT_TYPES = {
    ".m3u8": "application/vnd.apple.mpegurl",
    ".ts": "video/MP2T",
}


def create_app(settings: Optional[Settings] = None, transcoder: Optional[Transcoder] = None) -> FastAPI:
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup and shutdown logic."""
        logging.basicConfig(
            level=settings.log_level.upper(),
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
        logger.info(f"Starting mediahub on {settings.host}:{settings.port}")
        logger.info(f"Uploads dir: {settings.uploads_path}")
        logger.info(f"Data dir: {os.path.abspath(settings.data_dir)}")

        os.makedirs(settings.uploads_path, exist_ok=True)
        os.makedirs(os.path.abspath(settings.data_dir), exist_ok=True)

        # Wire services into the API endpoints
        app.state.services = build_services(settings, transcoder=transcoder)

        yield

        # Jobs still queued are lost on shutdown
        status = app.state.services.queue.get_queue_status()
        if status.queued:
            logger.warning(f"Shutting down with {status.queued} queued job(s) not processed")
        app.state.services.queue.clear_queue()
        logger.info("Shutting down mediahub")

    app = FastAPI(
        title="Mediahub",
        description="Media ingestion and draft processing backend",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(MediaHubError)
    async def mediahub_error_handler(request: Request, exc: MediaHubError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc}")
        return JSONResponse(status_code=exc.status_code, content={"detail": str(exc)})

    @app.middleware("http")
    async def stream_content_types(request: Request, call_next):
        response = await call_next(request)
        path = request.url.path
        if path.startswith("/uploads/"):
            content_type = _STREAM_CONTENT_TYPES.get(os.path.splitext(path)[1].lower())
            if content_type:
                response.headers["content-type"] = content_type
        return response

    # Mount routers
    app.include_router(health_root_router, tags=["health"])  # GET /health at root
    app.include_router(api_router)  # All /api/* endpoints
    app.mount(
        "/uploads",
        StaticFiles(directory=settings.uploads_path, check_dir=False),
        name="uploads",
    )
    return app


app = create_app()


def run() -> None:
    import uvicorn

    uvicorn.run("mediahub.main:app", host=default_settings.host, port=default_settings.port)


if __name__ == "__main__":
    run()
