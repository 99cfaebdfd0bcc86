from __future__ import annotations

from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any

from pg_provisioner.observability.logging import get_logger
from pg_provisioner.provisioning.tasks import TaskDescriptor
from pg_provisioner.scheduler.executor import Executor
from pg_provisioner.scheduler.state import BLOCKING, RunState

log = get_logger(__name__)


def _update(task: TaskDescriptor, outcome: str, **details: Any) -> RunState:
    return {
        "outcomes": {task.id: outcome},
        "events": [{"task_id": task.id, "outcome": outcome, **details}],
    }


def marker_exists(task: TaskDescriptor) -> bool:
    return task.marker_path is not None and Path(task.marker_path).exists()


def touch_marker(task: TaskDescriptor) -> None:
    if task.marker_path is None:
        return
    marker = Path(task.marker_path)
    marker.parent.mkdir(parents=True, exist_ok=True)
    marker.touch()


def task_node(
    task: TaskDescriptor,
    *,
    hard_requirements: frozenset[str],
    executor: Executor,
) -> Callable[[RunState], Awaitable[RunState]]:
    """
    Node body for one task. LangGraph only schedules it once every
    predecessor has produced an outcome.
    """

    async def _node(state: RunState) -> RunState:
        outcomes = state.get("outcomes", {})

        blockers = sorted(r for r in hard_requirements if outcomes.get(r) in BLOCKING)
        if blockers:
            log.warning("task_blocked", task_id=task.id, blocked_by=blockers)
            return _update(task, "blocked", blocked_by=blockers)

        if task.skip_if_marker_exists and marker_exists(task):
            log.info("task_skipped", task_id=task.id, marker=task.marker_path)
            return _update(task, "skipped")

        if task.kind == "target":
            return _update(task, "reached")

        log.info("task_started", task_id=task.id, user=task.user)
        result = await executor.run(task)
        if not result.ok:
            log.error(
                "task_failed",
                task_id=task.id,
                returncode=result.returncode,
                output=result.output[-2000:],
            )
            return _update(task, "failed", returncode=result.returncode)

        if task.touch_marker_on_success:
            touch_marker(task)
        log.info("task_succeeded", task_id=task.id)
        return _update(task, "succeeded")

    return _node
