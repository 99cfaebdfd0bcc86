from __future__ import annotations

import pytest

from pg_provisioner.provisioning.errors import ConfigurationError
from pg_provisioner.provisioning.registry import DatabaseConfig, filter_registry, parse_registry


def _registry() -> dict:
    return {
        "zeta": {"type": "postgresql", "user": "z", "owners": ["z2"]},
        "cache": {"type": "mysql", "user": "c"},
        "alpha": {"type": "postgresql", "user": "a", "postCreate": "true", "socketPath": "/s"},
    }


def test_filter_keeps_only_postgresql_entries_unchanged() -> None:
    registry = parse_registry(_registry())
    selected = filter_registry(registry)

    assert list(selected) == ["alpha", "zeta"]
    assert selected["alpha"] is registry["alpha"]
    assert selected["alpha"].post_create == "true"
    assert selected["alpha"].socket_path == "/s"
    assert selected["zeta"].owners == ("z2",)


def test_filter_other_engine() -> None:
    assert list(filter_registry(parse_registry(_registry()), engine="mysql")) == ["cache"]


def test_filter_empty_registry() -> None:
    assert filter_registry({}) == {}


def test_aliases_accepted() -> None:
    db = parse_registry(
        {
            "x": {
                "type": "postgresql",
                "owningUser": "u",
                "additionalOwners": ["o"],
                "postCreateScript": "echo",
            }
        }
    )["x"]
    assert (db.user, db.owners, db.post_create, db.socket_path) == ("u", ("o",), "echo", None)


def test_list_input_keyed_by_name() -> None:
    registry = parse_registry([{"name": "b", "type": "postgresql", "user": "u"}])
    assert isinstance(registry["b"], DatabaseConfig)


@pytest.mark.parametrize(
    "raw",
    [
        {"": {"type": "postgresql", "user": "u"}},
        {"x": {"type": "postgresql", "user": ""}},
        {"x": {"type": "postgresql"}},
        {"x": {"type": "postgresql", "user": "u", "owners": ["bad owner"]}},
        {'x"y': {"type": "postgresql", "user": "u"}},
        {"x": {"name": "y", "type": "postgresql", "user": "u"}},
        {"x": "not-a-mapping"},
        {"../../escaped": {"type": "postgresql", "user": "u", "postCreate": "true"}},
        {"a/b": {"type": "postgresql", "user": "u"}},
        {".hidden": {"type": "postgresql", "user": "u"}},
        {"d" * 64: {"type": "postgresql", "user": "u"}},
        {"x": {"type": "postgresql", "user": "u" * 64}},
        {"x": {"type": "postgresql", "user": "u", "owners": ["o" * 64]}},
    ],
)
def test_malformed_entries_rejected(raw) -> None:
    with pytest.raises(ConfigurationError):
        parse_registry(raw)


def test_duplicate_names_in_list_rejected() -> None:
    record = {"name": "dup", "type": "postgresql", "user": "u"}
    with pytest.raises(ConfigurationError, match="duplicate"):
        parse_registry([record, dict(record)])


def test_identifier_limit_counts_bytes() -> None:
    assert parse_registry({"d" * 63: {"type": "postgresql", "user": "u" * 63}})
    with pytest.raises(ConfigurationError, match="63 bytes"):
        parse_registry({"x": {"type": "postgresql", "user": "é" * 32}})
