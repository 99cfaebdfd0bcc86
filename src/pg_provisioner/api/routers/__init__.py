"""
pg_provisioner.api.routers

HTTP routers (health probes, plan rendering).
"""
