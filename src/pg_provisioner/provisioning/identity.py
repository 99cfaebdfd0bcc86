"""
pg_provisioner.provisioning.identity

Peer-authentication identity map (pg_ident.conf) generation.

Every database gets one map group. The owning role maps onto itself and every
additional owner maps onto the owning role, so several OS identities can
connect as one shared role without sharing credentials.
"""

from __future__ import annotations

import hashlib
from collections.abc import Iterable
from dataclasses import dataclass

from pg_provisioner.provisioning.registry import DatabaseConfig
from pg_provisioner.settings import Settings


@dataclass(frozen=True, slots=True)
class IdentityMapEntry:
    map_name: str
    external_identity: str
    internal_role: str

    def render(self) -> str:
        return f'{self.map_name} "{self.external_identity}" "{self.internal_role}"'


def map_name(database: str) -> str:
    # Hashed so arbitrary database names fit the map-name token rules.
    return "db-owners-" + hashlib.sha256(database.encode("utf-8")).hexdigest()


def identity_entries(db: DatabaseConfig, settings: Settings) -> list[IdentityMapEntry]:
    group = map_name(db.name)
    role = settings.unique_user(db.user)

    entries = [IdentityMapEntry(group, role, role)]
    seen = {role}
    for owner in db.owners:
        external = settings.unique_user(owner)
        if external in seen:
            continue
        seen.add(external)
        entries.append(IdentityMapEntry(group, external, role))
    return entries


def build_identity_map(
    databases: Iterable[DatabaseConfig], settings: Settings
) -> tuple[IdentityMapEntry, ...]:
    out: list[IdentityMapEntry] = []
    for db in databases:
        out.extend(identity_entries(db, settings))
    return tuple(out)


def render_ident_file(entries: Iterable[IdentityMapEntry]) -> str:
    return "".join(f"{e.render()}\n" for e in entries)
