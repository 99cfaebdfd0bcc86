"""
pg_provisioner.scheduler.executor

Execution boundary used by the graph nodes.

Responsibilities:
- Define the `Executor` protocol (run one task body, report its exit status).
- Provide `SubprocessExecutor`, which runs commands with asyncio subprocesses
  under the task's execution identity and supervises long-running services.
"""

from __future__ import annotations

import asyncio
import getpass
import os
from dataclasses import dataclass
from typing import Protocol

from pg_provisioner.observability.logging import get_logger
from pg_provisioner.provisioning.tasks import TaskDescriptor

log = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class ExecResult:
    returncode: int
    output: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class Executor(Protocol):
    async def run(self, task: TaskDescriptor) -> ExecResult: ...


class SubprocessExecutor:
    """
    Runs one-shot commands to completion. `service` tasks are started in the
    background and reported successful once `ready_check` exits 0.
    """

    def __init__(
        self,
        *,
        ready_timeout: float = 60.0,
        poll_interval: float = 0.5,
        current_user: str | None = None,
    ) -> None:
        self._ready_timeout = ready_timeout
        self._poll_interval = poll_interval
        self._current_user = current_user or getpass.getuser()
        self._services: dict[str, asyncio.subprocess.Process] = {}

    def argv(self, task: TaskDescriptor, command: tuple[str, ...]) -> list[str]:
        env_args = [f"{k}={v}" for k, v in sorted(self._task_env(task).items())]
        if task.user is None or task.user == self._current_user:
            return ["env", *env_args, *command]
        switch = ["runuser", "-u", task.user]
        if task.group:
            switch += ["-g", task.group]
        # `env` re-applies the task environment after the identity switch.
        return [*switch, "--", "env", *env_args, *command]

    def _task_env(self, task: TaskDescriptor) -> dict[str, str]:
        env = dict(task.environment)
        if task.path:
            env["PATH"] = os.pathsep.join([*task.path, os.environ.get("PATH", os.defpath)])
        return env

    async def run(self, task: TaskDescriptor) -> ExecResult:
        try:
            if task.kind == "service":
                return await self._start_service(task)
            return await self._run_oneshot(task)
        except OSError as e:
            # e.g. a missing binary; reported as a failed unit.
            return ExecResult(returncode=127, output=str(e))

    async def _run_oneshot(self, task: TaskDescriptor) -> ExecResult:
        proc = await asyncio.create_subprocess_exec(
            *self.argv(task, task.command),
            stdin=asyncio.subprocess.PIPE if task.stdin is not None else asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
        )
        stdin = task.stdin.encode("utf-8") if task.stdin is not None else None
        out, _ = await proc.communicate(input=stdin)
        return ExecResult(returncode=proc.returncode or 0, output=out.decode("utf-8", "replace"))

    async def _start_service(self, task: TaskDescriptor) -> ExecResult:
        proc = await asyncio.create_subprocess_exec(*self.argv(task, task.command))
        self._services[task.id] = proc
        if not task.ready_check:
            return ExecResult(returncode=0)

        loop = asyncio.get_running_loop()
        deadline = loop.time() + self._ready_timeout
        while loop.time() < deadline:
            if proc.returncode is not None:
                return ExecResult(returncode=proc.returncode or 1, output="service exited early")
            probe = await asyncio.create_subprocess_exec(
                *task.ready_check,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
            if await probe.wait() == 0:
                return ExecResult(returncode=0)
            await asyncio.sleep(self._poll_interval)

        log.warning("service_not_ready", task_id=task.id, timeout=self._ready_timeout)
        return ExecResult(returncode=1, output="readiness check timed out")

    async def aclose(self) -> None:
        for task_id, proc in self._services.items():
            if proc.returncode is None:
                log.info("service_stopping", task_id=task_id)
                proc.terminate()
                await proc.wait()
        self._services.clear()
