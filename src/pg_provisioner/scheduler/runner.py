"""
pg_provisioner.scheduler.runner

Runs a provisioning plan through the executor graph and summarizes the result.

Responsibilities:
- Compile and invoke the LangGraph runnable for a plan.
- Produce a `RunReport` (per-task outcomes plus the ordered event log).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from pg_provisioner.observability.logging import get_logger
from pg_provisioner.provisioning.errors import ProvisioningFailed
from pg_provisioner.provisioning.plan import ProvisioningPlan
from pg_provisioner.scheduler.executor import Executor
from pg_provisioner.scheduler.graph import build_run_graph
from pg_provisioner.scheduler.state import RunState

log = get_logger(__name__)


@dataclass(frozen=True)
class RunReport:
    outcomes: dict[str, str] = field(default_factory=dict)
    events: list[dict[str, Any]] = field(default_factory=list)

    def _with(self, outcome: str) -> tuple[str, ...]:
        return tuple(sorted(t for t, o in self.outcomes.items() if o == outcome))

    @property
    def failed(self) -> tuple[str, ...]:
        return self._with("failed")

    @property
    def blocked(self) -> tuple[str, ...]:
        return self._with("blocked")

    @property
    def skipped(self) -> tuple[str, ...]:
        return self._with("skipped")

    @property
    def succeeded(self) -> tuple[str, ...]:
        return self._with("succeeded")

    @property
    def ok(self) -> bool:
        return not self.failed and not self.blocked

    def raise_for_failures(self) -> None:
        if not self.ok:
            raise ProvisioningFailed(failed=self.failed, blocked=self.blocked)


async def run_plan(plan: ProvisioningPlan, *, executor: Executor) -> RunReport:
    if not plan.active:
        log.info("plan_inactive")
        return RunReport()

    runnable = build_run_graph(plan.graph, executor=executor)
    initial: RunState = {"outcomes": {}, "events": []}
    # One superstep per task is the worst case (a fully serial graph).
    final: RunState = await runnable.ainvoke(
        initial, config={"recursion_limit": len(plan.graph) + 10}
    )

    report = RunReport(
        outcomes=dict(final.get("outcomes", {})),
        events=list(final.get("events", [])),
    )
    log.info(
        "plan_finished",
        succeeded=len(report.succeeded),
        skipped=len(report.skipped),
        failed=list(report.failed),
        blocked=list(report.blocked),
    )
    return report


# --- Module Notes -----------------------------------------------------------
# A failed task never aborts the graph: independent databases keep provisioning,
# and only tasks that hard-require the failure are marked blocked.
