"""
pg_provisioner.provisioning.tasks

Typed task descriptors and the provisioning task synthesizer.

Responsibilities:
- Define `TaskDescriptor`, validated at construction.
- Emit the shared cluster tasks (data dir, initdb, server, server target).
- Emit per-database create / post-create tasks and readiness targets.

Idempotency is expressed as data (`marker_path` + `skip_if_marker_exists`)
and evaluated by the scheduler, never as inline shell conditionals.
"""

from __future__ import annotations

import shlex
from collections.abc import Iterable
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from pg_provisioner.provisioning import layout
from pg_provisioner.provisioning.registry import DatabaseConfig
from pg_provisioner.settings import Settings

TaskKind = Literal["oneshot", "service", "target"]

DATADIR_TASK = "postgresql-datadir"
INITDB_TASK = "postgresql-initdb"
SERVER_TASK = "postgresql"
SERVER_TARGET = "db-server.target"

# Existence-checked so that re-running after a partial failure is safe.
CREATE_SCRIPT = """\
SELECT format('CREATE ROLE %I LOGIN', :'role')
 WHERE NOT EXISTS (SELECT 1 FROM pg_catalog.pg_roles WHERE rolname = :'role')
\\gexec
SELECT format('CREATE DATABASE %I OWNER %I', :'dbname', :'role')
 WHERE NOT EXISTS (SELECT 1 FROM pg_catalog.pg_database WHERE datname = :'dbname')
\\gexec
"""


class TaskDescriptor(BaseModel):
    """
    One unit handed to the scheduler.

    `requires` are hard dependencies (a failed requirement blocks this task);
    `after` is ordering only. `before`/`required_by` are the reverse forms and
    are folded into predecessor edges by the sequencer.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    description: str = ""
    kind: TaskKind = "oneshot"
    command: tuple[str, ...] = ()
    stdin: str | None = None
    environment: dict[str, str] = Field(default_factory=dict)
    path: tuple[str, ...] = ()
    user: str | None = None
    group: str | None = None

    requires: tuple[str, ...] = ()
    after: tuple[str, ...] = ()
    before: tuple[str, ...] = ()
    required_by: tuple[str, ...] = ()

    marker_path: str | None = None
    skip_if_marker_exists: bool = False
    touch_marker_on_success: bool = False

    ready_check: tuple[str, ...] = ()

    @model_validator(mode="after")
    def _consistent(self) -> TaskDescriptor:
        if self.kind == "target":
            if self.command or self.stdin is not None:
                raise ValueError(f"target {self.id!r} cannot carry a command")
        elif not self.command:
            raise ValueError(f"task {self.id!r} needs a command")
        if (self.skip_if_marker_exists or self.touch_marker_on_success) and not self.marker_path:
            raise ValueError(f"task {self.id!r} uses a marker but has no marker_path")
        if self.kind == "service" and self.touch_marker_on_success:
            raise ValueError(f"service {self.id!r} cannot write a completion marker")
        edges = (*self.requires, *self.after, *self.before, *self.required_by)
        if self.id in edges:
            raise ValueError(f"task {self.id!r} references itself")
        return self


def create_task_id(database: str) -> str:
    return f"database-{database}"


def post_create_task_id(database: str) -> str:
    return f"database-{database}-post-create"


def ready_target_id(database: str) -> str:
    return f"database-{database}.target"


def server_options(settings: Settings) -> dict[str, str]:
    return {
        "hba_file": layout.hba_file_path(settings),
        "ident_file": layout.ident_file_path(settings),
        "unix_socket_directories": settings.runtime_dir,
        "log_destination": "stderr",
        "port": str(settings.port),
        "listen_addresses": "",
    }


def cluster_tasks(settings: Settings) -> list[TaskDescriptor]:
    data_env = {"PGDATA": settings.data_dir}
    server_argv: list[str] = [settings.binary("postgres")]
    for key, value in server_options(settings).items():
        server_argv += ["-c", f"{key}={value}"]

    return [
        TaskDescriptor(
            id=DATADIR_TASK,
            description="Create PostgreSQL data directory",
            command=(
                "install", "-d", "-m", "0711",
                "-o", settings.service_user, "-g", settings.service_group,
                settings.data_dir,
            ),
            # An initialized cluster keeps the 0700 mode initdb gave it.
            marker_path=layout.cluster_marker_path(settings),
            skip_if_marker_exists=True,
            before=(INITDB_TASK,),
            required_by=(INITDB_TASK,),
        ),
        TaskDescriptor(
            id=INITDB_TASK,
            description="Initialize PostgreSQL Cluster",
            command=(settings.binary("initdb"),),
            environment=data_env,
            user=settings.service_user,
            group=settings.service_group,
            marker_path=layout.cluster_marker_path(settings),
            skip_if_marker_exists=True,
            before=(SERVER_TASK,),
            required_by=(SERVER_TASK,),
        ),
        TaskDescriptor(
            id=SERVER_TASK,
            description="PostgreSQL Server",
            kind="service",
            command=tuple(server_argv),
            environment=data_env,
            user=settings.service_user,
            group=settings.service_group,
            ready_check=(
                settings.binary("pg_isready"),
                "-q", "-h", settings.runtime_dir, "-p", str(settings.port),
            ),
            before=(SERVER_TARGET,),
            required_by=(SERVER_TARGET,),
        ),
        TaskDescriptor(id=SERVER_TARGET, description="Database server", kind="target"),
    ]


def connection_env(db: DatabaseConfig, settings: Settings) -> dict[str, str]:
    return {"PGHOST": db.socket_path or settings.runtime_dir, "PGPORT": str(settings.port)}


def database_tasks(db: DatabaseConfig, settings: Settings) -> list[TaskDescriptor]:
    role = settings.unique_user(db.user)
    create_id = create_task_id(db.name)
    target_id = ready_target_id(db.name)

    tasks = [
        TaskDescriptor(
            id=create_id,
            description=f"Create database {db.name} owned by {role}",
            command=(
                settings.binary("psql"),
                "-X", "-q",
                "-v", "ON_ERROR_STOP=1",
                "-v", f"role={role}",
                "-v", f"dbname={db.name}",
                "-d", "postgres",
                "-f", "-",
            ),
            stdin=CREATE_SCRIPT,
            environment=connection_env(db, settings),
            user=settings.service_user,
            group=settings.service_group,
            marker_path=layout.marker_path(settings, db.name, "create"),
            skip_if_marker_exists=True,
            touch_marker_on_success=True,
            requires=(SERVER_TASK,),
            after=(SERVER_TASK,),
            before=(target_id,),
            required_by=(target_id,),
        )
    ]

    if db.post_create:
        tasks.append(
            TaskDescriptor(
                id=post_create_task_id(db.name),
                description=f"Post-create script for database {db.name}",
                command=("/bin/sh", "-e", "-c", db.post_create),
                environment={**connection_env(db, settings), "PGDATABASE": db.name},
                path=(layout.helper_dir(settings, db.name),),
                # Least privilege: once the database exists, act as its owner.
                user=role,
                marker_path=layout.marker_path(settings, db.name, "post-create"),
                skip_if_marker_exists=True,
                touch_marker_on_success=True,
                requires=(SERVER_TASK, create_id),
                after=(SERVER_TASK, create_id),
                before=(target_id,),
                required_by=(target_id,),
            )
        )

    tasks.append(
        TaskDescriptor(
            id=target_id,
            description=f"Database {db.name} ready",
            kind="target",
            before=(settings.ready_target,),
            required_by=(settings.ready_target,),
        )
    )
    return tasks


def synthesize_tasks(
    databases: Iterable[DatabaseConfig], settings: Settings
) -> tuple[TaskDescriptor, ...]:
    tasks = cluster_tasks(settings)
    for db in databases:
        tasks.extend(database_tasks(db, settings))
    tasks.append(
        TaskDescriptor(id=settings.ready_target, description="All databases ready", kind="target")
    )
    return tuple(tasks)


def sqlsh_helper(db: DatabaseConfig, settings: Settings) -> str:
    """Connection helper placed on the post-create PATH, scoped to one database."""

    psql = shlex.quote(settings.binary("psql"))
    return f'#!/bin/sh\nexec {psql} {shlex.quote(db.name)} "$@"\n'


def shell_command(db_name: str, settings: Settings) -> tuple[tuple[str, ...], dict[str, str]]:
    """argv and environment for an interactive psql session on `db_name`."""

    return (settings.binary("psql"), db_name), {"PGHOST": settings.runtime_dir}
