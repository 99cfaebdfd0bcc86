"""
pg_provisioner.__main__

Host entrypoint: `python -m pg_provisioner {render,apply} REGISTRY.json`.

Responsibilities:
- Load a JSON registry and the env-driven settings.
- `render` prints the plan as JSON; `apply` writes artifacts and runs the tasks.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

from pg_provisioner.observability.logging import configure_logging, get_logger
from pg_provisioner.provisioning.errors import ConfigurationError, ProvisioningFailed
from pg_provisioner.services.provisioning_service import ProvisioningService
from pg_provisioner.settings import get_settings

log = get_logger(__name__)


def _parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="pg_provisioner")
    p.add_argument("command", choices=("render", "apply"))
    p.add_argument("registry", type=Path, help="JSON file: database name -> record")
    return p


def main(argv: list[str] | None = None) -> int:
    args = _parser().parse_args(argv)
    settings = get_settings()
    configure_logging(service_name=settings.service_name, level=settings.log_level)

    registry = json.loads(args.registry.read_text(encoding="utf-8"))
    svc = ProvisioningService(settings=settings)
    try:
        if args.command == "render":
            json.dump(svc.plan(registry).to_dict(), sys.stdout, indent=2)
            sys.stdout.write("\n")
        else:
            asyncio.run(svc.apply(registry))
    except ConfigurationError as e:
        log.error("invalid_registry", error=str(e))
        return 2
    except ProvisioningFailed as e:
        log.error("provisioning_failed", failed=list(e.failed), blocked=list(e.blocked))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
