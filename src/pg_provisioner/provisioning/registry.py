"""
pg_provisioner.provisioning.registry

Database registry model and engine filter.

Responsibilities:
- Validate raw registry input into immutable `DatabaseConfig` records.
- Select the entries that belong to the PostgreSQL engine.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from pg_provisioner.provisioning.errors import ConfigurationError

ENGINE = "postgresql"

# Names end up quoted inside pg_hba.conf/pg_ident.conf and as OS account names.
_NAME_RE = re.compile(r'^[^\s"\x00-\x1f\x7f]+$')

# NAMEDATALEN - 1; longer identifiers are silently truncated by PostgreSQL.
MAX_IDENTIFIER_BYTES = 63


def _check_name(value: str, what: str) -> str:
    if not value:
        raise ValueError(f"{what} must not be empty")
    if not _NAME_RE.match(value):
        raise ValueError(f"{what} {value!r} contains whitespace, quotes or control characters")
    check_identifier_length(value, what)
    return value


def check_identifier_length(value: str, what: str) -> None:
    if len(value.encode("utf-8")) > MAX_IDENTIFIER_BYTES:
        raise ValueError(f"{what} {value!r} is longer than {MAX_IDENTIFIER_BYTES} bytes")


def _check_database_name(value: str) -> str:
    _check_name(value, "database name")
    # Database names become marker and helper path components.
    if "/" in value or value.startswith("."):
        raise ValueError(f"database name {value!r} must not contain '/' or start with '.'")
    return value


class DatabaseConfig(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    name: str
    type: str
    user: str = Field(validation_alias=AliasChoices("user", "owningUser", "owning_user"))
    owners: tuple[str, ...] = Field(
        default=(),
        validation_alias=AliasChoices("owners", "additionalOwners", "additional_owners"),
    )
    post_create: str = Field(
        default="",
        validation_alias=AliasChoices("post_create", "postCreate", "postCreateScript"),
    )
    socket_path: str | None = Field(
        default=None, validation_alias=AliasChoices("socket_path", "socketPath")
    )

    @field_validator("name")
    @classmethod
    def _valid_name(cls, v: str) -> str:
        return _check_database_name(v)

    @field_validator("user")
    @classmethod
    def _valid_user(cls, v: str) -> str:
        return _check_name(v, "owning user")

    @field_validator("owners")
    @classmethod
    def _valid_owners(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        for owner in v:
            _check_name(owner, "owner")
        return v


def parse_registry(raw: Mapping[str, Any] | Sequence[Any]) -> dict[str, DatabaseConfig]:
    """
    Validate a raw registry (name -> record mapping, or a list of records)
    into `DatabaseConfig` records keyed by name.

    A record without `name` takes its mapping key; a record whose `name`
    disagrees with its key, or a repeated name, is a configuration error.
    """

    items: list[tuple[str | None, Any]]
    if isinstance(raw, Mapping):
        items = list(raw.items())
    else:
        items = [(None, record) for record in raw]

    out: dict[str, DatabaseConfig] = {}
    for key, record in items:
        db = _coerce(key, record)
        if key is not None and db.name != key:
            raise ConfigurationError(
                f"registry key {key!r} does not match database name {db.name!r}"
            )
        if db.name in out:
            raise ConfigurationError(f"duplicate database name {db.name!r}")
        out[db.name] = db
    return out


def _coerce(key: str | None, record: Any) -> DatabaseConfig:
    if isinstance(record, DatabaseConfig):
        return record
    if not isinstance(record, Mapping):
        raise ConfigurationError(f"registry entry {key!r} must be a mapping")
    data = dict(record)
    if key is not None:
        data.setdefault("name", key)
    try:
        return DatabaseConfig.model_validate(data)
    except ValidationError as e:
        label = data.get("name") or key
        raise ConfigurationError(f"invalid registry entry {label!r}: {e}") from e


def filter_registry(
    registry: Mapping[str, DatabaseConfig], engine: str = ENGINE
) -> dict[str, DatabaseConfig]:
    # Ordered by name so everything derived from the result is diff-stable.
    return {name: registry[name] for name in sorted(registry) if registry[name].type == engine}
