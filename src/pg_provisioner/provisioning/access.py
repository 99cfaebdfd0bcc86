"""
pg_provisioner.provisioning.access

Connection access rules (pg_hba.conf) generation.

Responsibilities:
- One peer rule per database bound to its identity map group.
- A trailing catch-all peer rule; PostgreSQL evaluates rules first-match-wins,
  so the catch-all must come after every database-specific rule.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from pg_provisioner.provisioning.identity import map_name
from pg_provisioner.provisioning.registry import DatabaseConfig


@dataclass(frozen=True, slots=True)
class AccessRule:
    database: str | None = None
    role: str = "all"
    auth_method: str = "peer"
    map_name: str | None = None
    connection_type: str = "local"

    def render(self) -> str:
        database = "all" if self.database is None else f'"{self.database}"'
        line = f"{self.connection_type} {database} {self.role} {self.auth_method}"
        if self.map_name is not None:
            line += f" map={self.map_name}"
        return line


CATCH_ALL = AccessRule()


def build_access_rules(databases: Iterable[DatabaseConfig]) -> tuple[AccessRule, ...]:
    rules = [AccessRule(database=db.name, map_name=map_name(db.name)) for db in databases]
    rules.append(CATCH_ALL)
    return tuple(rules)


def render_hba_file(rules: Iterable[AccessRule]) -> str:
    return "".join(f"{rule.render()}\n" for rule in rules)


# --- Module Notes -----------------------------------------------------------
# Database names are always quoted so a database literally named "all" does not
# turn into the keyword; `database=None` renders the bare keyword.
