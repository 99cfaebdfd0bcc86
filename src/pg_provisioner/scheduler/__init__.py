"""
pg_provisioner.scheduler

Local executor for provisioning plans (LangGraph state machine).

Responsibilities:
- Honor the one-shot task contract: ordering, hard requirements,
  skip-if-marker-exists and marker creation on success.
- Run independent branches of the task graph concurrently.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Production deployments hand the plan's task descriptors to the host's service
# manager; this package exists for development hosts and for exercising the
# contract in tests.
