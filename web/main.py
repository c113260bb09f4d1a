"""FastAPI main application for InstaClone"""

import os
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from instaclone import __version__
from instaclone.utils.config import get_settings
from instaclone.utils.logger import get_logger, setup_logging

from .api import router as api_router
from .auth_routes import router as auth_router
from .errors import register_exception_handlers


def create_app() -> FastAPI:
    settings = get_settings()
    setup_logging(
        level=settings.logging.level,
        fmt=settings.logging.format,
        file_path=settings.logging.file_path,
        max_bytes=settings.logging.max_bytes,
        backup_count=settings.logging.backup_count,
    )
    logger = get_logger(__name__)

    app = FastAPI(
        title=settings.app.name,
        description="Invite-only photo sharing for school communities",
        version=__version__,
    )

    # CORS - configurable for production
    cors_origins = os.getenv("CORS_ORIGINS", "").split(",") if os.getenv("CORS_ORIGINS") else ["*"]
    environment = settings.app.environment.lower()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins if environment == "production" else ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)
    app.include_router(auth_router)
    app.include_router(api_router)

    if settings.media.provider == "local":
        uploads_path = Path(settings.media.uploads_dir)
        uploads_path.mkdir(parents=True, exist_ok=True)
        app.mount("/uploads", StaticFiles(directory=uploads_path), name="uploads")

    logger.info("InstaClone app created", environment=environment, media_provider=settings.media.provider)
    return app


app = create_app()
