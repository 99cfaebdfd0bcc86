"""
pg_provisioner.services

Service-layer package.

Responsibilities:
- Compose plan building, artifact writing and execution.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Services should be pure Python and easily testable with fake executors.
