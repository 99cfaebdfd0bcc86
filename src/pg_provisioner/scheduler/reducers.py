"""
pg_provisioner.scheduler.reducers

Reducers define how LangGraph merges updates from tasks that finish in the
same superstep (independent databases provision concurrently).
"""

from __future__ import annotations

from typing import Any


def append_events(
    left: list[dict[str, Any]] | None, right: list[dict[str, Any]] | None
) -> list[dict[str, Any]]:
    """
    Append-only reducer for the run's event log.

    Nodes return `{"events": [event]}` and this reducer concatenates.
    """

    if not left:
        return list(right or [])
    if not right:
        return list(left)
    return [*left, *right]


def merge_outcomes(left: dict[str, str] | None, right: dict[str, str] | None) -> dict[str, str]:
    # Each task writes only its own key, so collisions cannot happen.
    if not left:
        return dict(right or {})
    if not right:
        return dict(left)
    return {**left, **right}
