"""
pg_provisioner.api.app

FastAPI app factory for the provisioning service.

Responsibilities:
- Build the FastAPI application and register routers/middleware.
- Provide a single composition root where cross-cutting concerns live.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from pg_provisioner import __version__
from pg_provisioner.api.routers.health import router as health_router
from pg_provisioner.api.routers.plans import router as plans_router
from pg_provisioner.observability.logging import configure_logging, get_logger
from pg_provisioner.observability.middleware import RequestContextMiddleware
from pg_provisioner.settings import Settings

log = get_logger(__name__)


def create_app(*, settings: Settings) -> FastAPI:
    configure_logging(
        service_name=settings.service_name,
        level=settings.log_level,
        json_logs=settings.env != "dev",
    )

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        log.info("startup", env=settings.env, enabled=settings.enable)
        yield
        log.info("shutdown")

    app = FastAPI(
        title="PostgreSQL Provisioner",
        version=__version__,
        docs_url="/docs",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(RequestContextMiddleware)
    app.include_router(health_router, tags=["health"])
    app.include_router(plans_router)
    return app


# --- Module Notes -----------------------------------------------------------
# This file is intentionally small: app composition stays here; plan building
# stays in the provisioning/service layers.
