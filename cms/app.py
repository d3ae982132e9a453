"""
FastAPI application entry point for the CMS backend.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from cms.config import get_settings
from cms.dependencies import close_reorder_sessions
from cms.routes import router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # Detach every Firestore listener before the process exits.
    close_reorder_sessions()
    logger.info("CMS backend stopped")


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper())
    app = FastAPI(title="Image Filter CMS", version="0.1.0", lifespan=lifespan)
    app.include_router(router, prefix=settings.api_prefix)
    return app


app = create_app()
