"""
pg_provisioner.api.deps

FastAPI dependency wiring for the API layer.
"""

from __future__ import annotations

from fastapi import Depends, Request

from pg_provisioner.services.provisioning_service import ProvisioningService
from pg_provisioner.settings import Settings


def settings_dep(request: Request) -> Settings:
    # Settings are fixed at app creation (see `pg_provisioner.api.app.create_app`).
    return request.app.state.settings  # type: ignore[attr-defined]


def provisioning_service(settings: Settings = Depends(settings_dep)) -> ProvisioningService:
    return ProvisioningService(settings=settings)
