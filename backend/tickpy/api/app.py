"""
FastAPI application for inspecting tickpy stores.
"""

import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .. import __version__
from .endpoints import health_router, store_router

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    """Assemble the inspection API."""
    app = FastAPI(
        title="tickpy Inspector",
        version=__version__,
        description="Health, migration and cycle simulation endpoints for tickpy stores"
    )

    allowed_origins = [o.strip() for o in os.getenv('TICKPY_ALLOWED_ORIGINS', '*').split(',') if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        # Credentials cannot be used with wildcard origins
        allow_credentials=False if allowed_origins == ["*"] else True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health_router)
    app.include_router(store_router)
    logger.info("Store router registered at /api/store")

    return app
