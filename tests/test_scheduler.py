from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from pg_provisioner.provisioning.errors import ProvisioningFailed
from pg_provisioner.provisioning.plan import ProvisioningPlan, build_plan
from pg_provisioner.provisioning.tasks import TaskDescriptor
from pg_provisioner.scheduler.executor import ExecResult, SubprocessExecutor
from pg_provisioner.scheduler.nodes import touch_marker
from pg_provisioner.scheduler.runner import run_plan
from pg_provisioner.settings import Settings


def _two_databases(app_registry) -> dict:
    return {**app_registry, "billing": {"type": "postgresql", "user": "billing"}}


@pytest.mark.asyncio
async def test_run_orders_tasks_and_writes_markers(settings, app_registry, fake_executor) -> None:
    plan = build_plan(settings, app_registry)
    report = await run_plan(plan, executor=fake_executor)

    assert report.ok
    calls = fake_executor.calls
    assert calls.index("postgresql-initdb") < calls.index("postgresql")
    assert calls.index("postgresql") < calls.index("database-app")
    assert calls.index("database-app") < calls.index("database-app-post-create")
    assert report.outcomes["database-app.target"] == "reached"
    assert report.outcomes[settings.ready_target] == "reached"
    assert Path(settings.state_dir, ".database-create-app").exists()
    assert Path(settings.state_dir, ".database-post-create-app").exists()


@pytest.mark.asyncio
async def test_existing_markers_skip_tasks(settings, app_registry, fake_executor) -> None:
    plan = build_plan(settings, app_registry)
    await run_plan(plan, executor=fake_executor)

    fake_executor.calls.clear()
    report = await run_plan(build_plan(settings, app_registry), executor=fake_executor)

    assert report.ok
    assert "database-app" not in fake_executor.calls
    assert "database-app-post-create" not in fake_executor.calls
    assert set(report.skipped) >= {"database-app", "database-app-post-create"}
    assert report.outcomes["database-app.target"] == "reached"


@pytest.mark.asyncio
async def test_initialized_cluster_skips_initdb(settings, app_registry, fake_executor) -> None:
    Path(settings.data_dir).mkdir(parents=True)
    Path(settings.data_dir, "PG_VERSION").write_text("16\n")

    report = await run_plan(build_plan(settings, app_registry), executor=fake_executor)

    assert report.outcomes["postgresql-datadir"] == "skipped"
    assert report.outcomes["postgresql-initdb"] == "skipped"
    assert report.outcomes["postgresql"] == "succeeded"
    # initdb writes PG_VERSION itself; the scheduler never touches it.
    assert "postgresql-initdb" not in fake_executor.calls
    assert "postgresql-datadir" not in fake_executor.calls


@pytest.mark.asyncio
async def test_rerun_keeps_initialized_data_dir_mode(settings, app_registry) -> None:
    data_dir = Path(settings.data_dir)
    data_dir.mkdir(parents=True)
    data_dir.chmod(0o700)
    (data_dir / "PG_VERSION").write_text("16\n")

    class DatadirOnly(SubprocessExecutor):
        async def run(self, task: TaskDescriptor) -> ExecResult:
            if task.id == "postgresql-datadir":
                return await super().run(task)
            return ExecResult(returncode=0)

    report = await run_plan(build_plan(settings, app_registry), executor=DatadirOnly())

    assert report.outcomes["postgresql-datadir"] == "skipped"
    assert data_dir.stat().st_mode & 0o777 == 0o700


@pytest.mark.asyncio
async def test_failure_blocks_dependents_only(settings, app_registry, failing_executor) -> None:
    executor = failing_executor("database-app")
    report = await run_plan(build_plan(settings, _two_databases(app_registry)), executor=executor)

    assert report.failed == ("database-app",)
    assert set(report.blocked) == {
        "database-app-post-create",
        "database-app.target",
        settings.ready_target,
    }
    assert report.outcomes["database-billing"] == "succeeded"
    assert report.outcomes["database-billing.target"] == "reached"
    assert "database-app-post-create" not in executor.calls
    assert not Path(settings.state_dir, ".database-create-app").exists()

    with pytest.raises(ProvisioningFailed) as exc:
        report.raise_for_failures()
    assert exc.value.failed == ("database-app",)


@pytest.mark.asyncio
async def test_failed_task_retried_on_next_run(settings, app_registry, failing_executor) -> None:
    await run_plan(build_plan(settings, app_registry), executor=failing_executor("database-app"))

    retry = failing_executor()
    report = await run_plan(build_plan(settings, app_registry), executor=retry)

    assert report.ok
    assert "database-app" in retry.calls
    assert "database-app-post-create" in retry.calls


@pytest.mark.asyncio
async def test_independent_databases_run_concurrently(settings, app_registry) -> None:
    started: set[str] = set()
    both_running = asyncio.Event()

    class BarrierExecutor:
        async def run(self, task: TaskDescriptor) -> ExecResult:
            if task.id in ("database-app", "database-billing"):
                started.add(task.id)
                if len(started) == 2:
                    both_running.set()
                await asyncio.wait_for(both_running.wait(), timeout=5)
            return ExecResult(returncode=0)

    report = await run_plan(
        build_plan(settings, _two_databases(app_registry)), executor=BarrierExecutor()
    )
    assert report.ok
    assert started == {"database-app", "database-billing"}


@pytest.mark.asyncio
async def test_inactive_plan_runs_nothing(fake_executor) -> None:
    report = await run_plan(ProvisioningPlan(), executor=fake_executor)
    assert report.ok
    assert report.outcomes == {}
    assert fake_executor.calls == []


def test_subprocess_executor_switches_identity(settings: Settings, app_registry) -> None:
    plan = build_plan(settings, app_registry)
    post = plan.graph.tasks["database-app-post-create"]
    executor = SubprocessExecutor(current_user="root")

    argv = executor.argv(post, post.command)

    assert argv[:3] == ["runuser", "-u", "app_role"]
    assert "--" in argv
    env_part = argv[argv.index("env") + 1 :]
    assert "PGDATABASE=app" in env_part
    assert any(a.startswith("PATH=" + post.path[0]) for a in env_part)
    assert argv[-1] == post.command[-1]


def test_subprocess_executor_same_user_runs_directly() -> None:
    task = TaskDescriptor(id="t", command=("true",), user="me", environment={"A": "1"})
    assert SubprocessExecutor(current_user="me").argv(task, task.command) == ["env", "A=1", "true"]


@pytest.mark.asyncio
async def test_subprocess_executor_runs_commands() -> None:
    executor = SubprocessExecutor()
    ok = await executor.run(TaskDescriptor(id="t", command=("cat",), stdin="hello"))
    bad = await executor.run(TaskDescriptor(id="f", command=("false",)))
    missing = await executor.run(TaskDescriptor(id="m", command=("/nonexistent/binary",)))

    assert ok.ok and ok.output == "hello"
    assert bad.returncode != 0
    assert not missing.ok


def test_touch_marker(tmp_path) -> None:
    touch_marker(TaskDescriptor(id="t", command=("true",)))
    assert list(tmp_path.iterdir()) == []

    marker = tmp_path / "state" / ".done"
    touch_marker(
        TaskDescriptor(
            id="t", command=("true",), marker_path=str(marker), touch_marker_on_success=True
        )
    )
    assert marker.exists()
