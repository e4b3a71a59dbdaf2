"""Insect API Main Application.

실행:
    uvicorn insect.main:app --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from insect.presentation.http.controllers import health_router, insect_router
from insect.presentation.http.errors import register_exception_handlers
from insect.setup.config import get_settings
from insect.setup.dependencies import close_resources
from insect_jobs.core.logging import configure_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """FastAPI 라이프스팬 이벤트."""
    settings = get_settings()
    logger.info(
        "insect_api_starting",
        extra={"service": settings.service_name, "version": settings.service_version},
    )
    yield
    logger.info("insect_api_shutting_down")
    await close_resources()


def create_app() -> FastAPI:
    """FastAPI 애플리케이션 생성."""
    settings = get_settings()

    configure_logging(
        service_name=settings.service_name,
        service_version=settings.service_version,
        log_level=settings.log_level,
        json_format=settings.log_format == "json",
    )

    app = FastAPI(
        title="Insect API",
        description="Async insect identification job queue",
        version=settings.service_version,
        docs_url="/api/v1/insect/docs",
        redoc_url="/api/v1/insect/redoc",
        openapi_url="/api/v1/insect/openapi.json",
        lifespan=lifespan,
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # Routers
    app.include_router(health_router)
    app.include_router(insect_router, prefix="/api/v1")

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
