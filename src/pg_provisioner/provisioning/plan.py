"""
pg_provisioner.provisioning.plan

Plan assembly: registry + settings -> one immutable `ProvisioningPlan`.

Responsibilities:
- Apply the activation predicate (module enabled and at least one database).
- Run the generators and the task synthesizer, then sequence the tasks.
- Collect rendered artifacts (pg_ident.conf, pg_hba.conf, sqlsh helpers) and
  write them out in full.
"""

from __future__ import annotations

import os
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pg_provisioner.provisioning import layout
from pg_provisioner.provisioning.access import AccessRule, build_access_rules, render_hba_file
from pg_provisioner.provisioning.identity import (
    IdentityMapEntry,
    build_identity_map,
    render_ident_file,
)
from pg_provisioner.provisioning.errors import ConfigurationError
from pg_provisioner.provisioning.registry import (
    DatabaseConfig,
    check_identifier_length,
    filter_registry,
    parse_registry,
)
from pg_provisioner.provisioning.sequencer import DependencyGraph, build_dependency_graph
from pg_provisioner.provisioning.tasks import TaskDescriptor, sqlsh_helper, synthesize_tasks
from pg_provisioner.settings import Settings


@dataclass(frozen=True, slots=True)
class PlanFile:
    content: str
    mode: int = 0o644


@dataclass(frozen=True)
class ProvisioningPlan:
    databases: tuple[DatabaseConfig, ...] = ()
    identity_map: tuple[IdentityMapEntry, ...] = ()
    access_rules: tuple[AccessRule, ...] = ()
    tasks: tuple[TaskDescriptor, ...] = ()
    graph: DependencyGraph = field(default_factory=lambda: build_dependency_graph(()))
    files: Mapping[str, PlanFile] = field(default_factory=dict)

    @property
    def active(self) -> bool:
        return bool(self.tasks)

    def ordered_tasks(self) -> list[TaskDescriptor]:
        return [self.graph.tasks[tid] for tid in self.graph.order]

    def to_dict(self) -> dict[str, Any]:
        return {
            "active": self.active,
            "databases": [db.name for db in self.databases],
            "files": {path: f.content for path, f in self.files.items()},
            "tasks": [
                {
                    **task.model_dump(mode="json"),
                    "predecessors": sorted(self.graph.predecessors[task.id]),
                }
                for task in self.ordered_tasks()
            ],
            "edges": [list(edge) for edge in self.graph.edges()],
        }


def build_plan(
    settings: Settings,
    registry: Mapping[str, Any] | Sequence[Any],
) -> ProvisioningPlan:
    """
    Build the full plan. Malformed registries raise `ConfigurationError`
    before anything is generated; a disabled module or a registry without
    PostgreSQL databases yields an empty (inactive) plan.
    """

    selected = filter_registry(parse_registry(registry))
    if not settings.enable or not selected:
        return ProvisioningPlan()

    databases = tuple(selected.values())
    for db in databases:
        _check_role_lengths(db, settings)
    identity_map = build_identity_map(databases, settings)
    access_rules = build_access_rules(databases)
    tasks = synthesize_tasks(databases, settings)
    graph = build_dependency_graph(tasks)

    files: dict[str, PlanFile] = {
        layout.ident_file_path(settings): PlanFile(render_ident_file(identity_map)),
        layout.hba_file_path(settings): PlanFile(render_hba_file(access_rules)),
    }
    for db in databases:
        if db.post_create:
            path = f"{layout.helper_dir(settings, db.name)}/sqlsh"
            files[path] = PlanFile(sqlsh_helper(db, settings), mode=0o755)

    return ProvisioningPlan(
        databases=databases,
        identity_map=identity_map,
        access_rules=access_rules,
        tasks=tasks,
        graph=graph,
        files=files,
    )


def _check_role_lengths(db: DatabaseConfig, settings: Settings) -> None:
    # `user_prefix` can push a valid registry name past the identifier limit.
    try:
        for name in (db.user, *db.owners):
            check_identifier_length(settings.unique_user(name), "role")
    except ValueError as e:
        raise ConfigurationError(f"database {db.name!r}: {e}") from e


def write_plan_files(
    plan: ProvisioningPlan, *, root: str | os.PathLike[str] | None = None
) -> list[Path]:
    """
    Write every artifact in full (never patched). `root` relocates the
    absolute plan paths, e.g. into a staging directory.
    """

    written: list[Path] = []
    for raw_path, plan_file in sorted(plan.files.items()):
        path = Path(raw_path)
        if root is not None:
            path = Path(root) / path.relative_to(path.anchor)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(plan_file.content, encoding="utf-8")
        path.chmod(plan_file.mode)
        written.append(path)
    return written
