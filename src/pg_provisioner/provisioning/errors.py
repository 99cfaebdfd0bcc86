"""
pg_provisioner.provisioning.errors

Domain-specific exceptions raised by the provisioning core and executor.

Responsibilities:
- Signal configuration errors detected at build time.
- Signal task execution failures reported by the executor.
"""

from __future__ import annotations

from dataclasses import dataclass, field


class ConfigurationError(ValueError):
    """
    Raised while building a plan when the registry or the derived task graph
    is malformed. Nothing is generated when this is raised.
    """


@dataclass(frozen=True, slots=True)
class ProvisioningFailed(Exception):
    """
    Raised after a run when at least one task failed. Tasks that never ran
    because a hard requirement failed are listed in `blocked`.
    """

    failed: tuple[str, ...]
    blocked: tuple[str, ...] = field(default=())

    def __str__(self) -> str:
        msg = f"provisioning failed: {', '.join(self.failed)}"
        if self.blocked:
            msg += f" (blocked: {', '.join(self.blocked)})"
        return msg
