"""
pg_provisioner.scheduler.state

Typed state schema shared by the executor's graph nodes.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, TypedDict

from pg_provisioner.scheduler.reducers import append_events, merge_outcomes

Outcome = Literal["succeeded", "skipped", "failed", "blocked", "reached"]

# Outcomes that block tasks which hard-require the task.
BLOCKING: frozenset[str] = frozenset({"failed", "blocked"})


class RunState(TypedDict, total=False):
    # task id -> Outcome
    outcomes: Annotated[dict[str, str], merge_outcomes]
    events: Annotated[list[dict[str, Any]], append_events]
