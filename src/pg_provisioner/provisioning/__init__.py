"""
pg_provisioner.provisioning

Provisioning core: registry filtering, identity/access rule generation,
task synthesis and dependency sequencing.

Responsibilities:
- Turn a database registry plus settings into an immutable provisioning plan.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Everything in this package is pure (no I/O besides `plan.write_plan_files`);
# execution of the resulting tasks belongs to `pg_provisioner.scheduler`.
