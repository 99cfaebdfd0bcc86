"""
pg_provisioner.services.provisioning_service

Provisioning lifecycle service.

Responsibilities:
- Build plans from a registry with the injected settings.
- Write rendered artifacts to disk.
- Apply a plan through an executor and report/raise on failures.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

from pg_provisioner.observability.logging import get_logger
from pg_provisioner.provisioning.plan import ProvisioningPlan, build_plan, write_plan_files
from pg_provisioner.scheduler.executor import Executor, SubprocessExecutor
from pg_provisioner.scheduler.runner import RunReport, run_plan
from pg_provisioner.settings import Settings

log = get_logger(__name__)


class ProvisioningService:
    def __init__(self, *, settings: Settings, executor: Executor | None = None) -> None:
        self._settings = settings
        self._executor = executor

    def plan(self, registry: Mapping[str, Any] | Sequence[Any]) -> ProvisioningPlan:
        plan = build_plan(self._settings, registry)
        log.info(
            "plan_built",
            active=plan.active,
            databases=[db.name for db in plan.databases],
            tasks=len(plan.tasks),
        )
        return plan

    def write(self, plan: ProvisioningPlan, *, root: str | None = None) -> list[Path]:
        written = write_plan_files(plan, root=root)
        log.info("plan_files_written", files=[str(p) for p in written])
        return written

    async def apply(
        self,
        registry: Mapping[str, Any] | Sequence[Any],
        *,
        check: bool = True,
    ) -> RunReport:
        """
        Build, write and execute a plan. With `check`, a run with failed or
        blocked tasks raises `ProvisioningFailed` after the run finishes.
        """

        plan = self.plan(registry)
        if not plan.active:
            return RunReport()
        self.write(plan)

        if self._executor is not None:
            report = await run_plan(plan, executor=self._executor)
        else:
            owned = SubprocessExecutor(ready_timeout=self._settings.service_ready_timeout)
            try:
                report = await run_plan(plan, executor=owned)
            finally:
                await owned.aclose()

        if check:
            report.raise_for_failures()
        return report


# --- Module Notes -----------------------------------------------------------
# A service-owned SubprocessExecutor stops the server it started once the run
# ends; pass an executor explicitly to keep services running afterwards.
