from __future__ import annotations

from typing import Any

import pytest

from pg_provisioner.provisioning.tasks import TaskDescriptor
from pg_provisioner.scheduler.executor import ExecResult
from pg_provisioner.settings import Settings


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        env="test",
        state_dir=str(tmp_path / "state"),
        runtime_dir=str(tmp_path / "run"),
        postgresql_bin_dir="/opt/pg/bin",
    )


@pytest.fixture
def app_registry() -> dict[str, Any]:
    return {
        "app": {
            "type": "postgresql",
            "user": "app_role",
            "owners": ["app_admin"],
            "postCreate": "sqlsh -c 'GRANT ALL ON SCHEMA public TO app_role'",
            "socketPath": "/run/pg",
        }
    }


class FakeExecutor:
    """Records task ids in call order; tasks listed in `fail` exit 1."""

    def __init__(self, fail: set[str] | None = None) -> None:
        self.fail = set(fail or ())
        self.calls: list[str] = []

    async def run(self, task: TaskDescriptor) -> ExecResult:
        self.calls.append(task.id)
        return ExecResult(returncode=1 if task.id in self.fail else 0)


@pytest.fixture
def fake_executor() -> FakeExecutor:
    return FakeExecutor()


@pytest.fixture
def failing_executor():
    def _make(*task_ids: str) -> FakeExecutor:
        return FakeExecutor(fail=set(task_ids))

    return _make
