"""
FastAPI application factory.

Start with:
    uvicorn frequence_api.app:app --reload --port 8000
    # or
    frequence-api
"""

from __future__ import annotations

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from frequence_shared.config import settings
from frequence_pipeline import __version__
from frequence_pipeline.utils.logging import configure_logging

from frequence_api.middleware.logging import LoggingMiddleware
from frequence_api.routers.exports import router as exports_router
from frequence_api.routers.functions import router as functions_router
from frequence_api.routers.health import router as health_router

logger = structlog.get_logger()


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="La Fréquence du Vivant workers",
        description="Data collection and literary export services",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(LoggingMiddleware)

    # Routers
    app.include_router(health_router)
    app.include_router(functions_router)
    app.include_router(exports_router)

    logger.info("app_created", cors_origins=settings.cors_origins_list)
    return app


app = create_app()


def main() -> None:
    import uvicorn

    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
