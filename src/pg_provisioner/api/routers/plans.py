from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from pg_provisioner.api.deps import provisioning_service
from pg_provisioner.provisioning.errors import ConfigurationError
from pg_provisioner.services.provisioning_service import ProvisioningService

router = APIRouter(prefix="/v1/plans", tags=["plans"])


class PlanRequest(BaseModel):
    # Multi-engine registry: name -> record, or a list of records carrying `name`.
    databases: dict[str, dict[str, Any]] | list[dict[str, Any]] = Field(default_factory=dict)


@router.post("")
async def render_plan(
    body: PlanRequest,
    svc: ProvisioningService = Depends(provisioning_service),
) -> dict[str, Any]:
    try:
        plan = svc.plan(body.databases)
    except ConfigurationError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    return plan.to_dict()


# --- Module Notes -----------------------------------------------------------
# Rendering is side-effect free; writing files and executing tasks stays with
# the host's provisioning run (ProvisioningService.apply).
