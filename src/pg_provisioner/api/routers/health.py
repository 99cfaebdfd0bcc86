"""
pg_provisioner.api.routers.health

Health and readiness endpoints.

Responsibilities:
- Provide liveness probe (`/healthz`).
- Provide readiness probe (`/readyz`) reporting whether provisioning is enabled.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from pg_provisioner.api.deps import settings_dep
from pg_provisioner.settings import Settings

router = APIRouter()


@router.get("/healthz")
async def healthz() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/readyz")
async def readyz(settings: Settings = Depends(settings_dep)) -> dict[str, object]:
    return {"status": "ready", "enabled": settings.enable}
