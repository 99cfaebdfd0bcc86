"""
pg_provisioner.provisioning.layout

Filesystem layout contract.

Responsibilities:
- One data directory per engine schema, one marker file per (database, phase).
- Locations of the generated configuration files and connection helpers.
"""

from __future__ import annotations

from typing import Literal

from pg_provisioner.settings import Settings

Phase = Literal["create", "post-create"]


def marker_path(settings: Settings, database: str, phase: Phase) -> str:
    return f"{settings.state_dir}/.database-{phase}-{database}"


def cluster_marker_path(settings: Settings) -> str:
    # Written by initdb itself once the cluster exists.
    return f"{settings.data_dir}/PG_VERSION"


def ident_file_path(settings: Settings) -> str:
    return f"{settings.resolved_config_dir}/pg_ident.conf"


def hba_file_path(settings: Settings) -> str:
    return f"{settings.resolved_config_dir}/pg_hba.conf"


def helper_dir(settings: Settings, database: str) -> str:
    return f"{settings.runtime_dir}/helpers/{database}"
