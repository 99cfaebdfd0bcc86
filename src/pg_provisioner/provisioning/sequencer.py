"""
pg_provisioner.provisioning.sequencer

Dependency sequencing for synthesized tasks.

Responsibilities:
- Fold `requires/after/before/required_by` into one predecessor relation.
- Reject unknown task ids, duplicate ids and cycles at build time.
- Provide a deterministic topological order for rendering and execution.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from graphlib import CycleError, TopologicalSorter
from types import MappingProxyType

from pg_provisioner.provisioning.errors import ConfigurationError
from pg_provisioner.provisioning.tasks import TaskDescriptor


@dataclass(frozen=True)
class DependencyGraph:
    tasks: Mapping[str, TaskDescriptor]
    # task id -> ids that must finish (or be skipped) first
    predecessors: Mapping[str, frozenset[str]]
    # task id -> ids whose failure blocks this task
    hard_requirements: Mapping[str, frozenset[str]]
    order: tuple[str, ...]

    def successors(self, task_id: str) -> frozenset[str]:
        return frozenset(t for t, preds in self.predecessors.items() if task_id in preds)

    def edges(self) -> list[tuple[str, str]]:
        return sorted((p, t) for t, preds in self.predecessors.items() for p in preds)

    def roots(self) -> tuple[str, ...]:
        return tuple(t for t in self.order if not self.predecessors[t])

    def leaves(self) -> tuple[str, ...]:
        has_successor = {p for preds in self.predecessors.values() for p in preds}
        return tuple(t for t in self.order if t not in has_successor)

    def __len__(self) -> int:
        return len(self.order)


def build_dependency_graph(tasks: Iterable[TaskDescriptor]) -> DependencyGraph:
    by_id: dict[str, TaskDescriptor] = {}
    for task in tasks:
        if task.id in by_id:
            raise ConfigurationError(f"duplicate task id {task.id!r}")
        by_id[task.id] = task

    preds: dict[str, set[str]] = {tid: set() for tid in by_id}
    hard: dict[str, set[str]] = {tid: set() for tid in by_id}

    def _known(ref: str, owner: str) -> str:
        if ref not in by_id:
            raise ConfigurationError(f"task {owner!r} references unknown task {ref!r}")
        return ref

    for task in by_id.values():
        for ref in task.requires:
            preds[task.id].add(_known(ref, task.id))
            hard[task.id].add(ref)
        for ref in task.after:
            preds[task.id].add(_known(ref, task.id))
        for ref in task.before:
            preds[_known(ref, task.id)].add(task.id)
        for ref in task.required_by:
            preds[_known(ref, task.id)].add(task.id)
            hard[ref].add(task.id)

    return DependencyGraph(
        tasks=MappingProxyType(by_id),
        predecessors=MappingProxyType({k: frozenset(v) for k, v in preds.items()}),
        hard_requirements=MappingProxyType({k: frozenset(v) for k, v in hard.items()}),
        order=_topological_order(preds),
    )


def _topological_order(preds: Mapping[str, set[str]]) -> tuple[str, ...]:
    sorter: TopologicalSorter[str] = TopologicalSorter(preds)
    try:
        sorter.prepare()
    except CycleError as e:
        cycle = " -> ".join(e.args[1])
        raise ConfigurationError(f"dependency cycle: {cycle}") from e

    out: list[str] = []
    while sorter.is_active():
        # Sorted within each level so repeated builds produce the same order.
        ready = sorted(sorter.get_ready())
        out.extend(ready)
        sorter.done(*ready)
    return tuple(out)
