"""
pg_provisioner.settings

Central configuration model (Pydantic Settings).

Responsibilities:
- Provide strongly-typed, env-driven settings for all layers.
- Derive filesystem locations (data dir, config dir) from the base directories.
- Offer a cached settings instance for dependency injection.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    One immutable settings object, assembled once and passed explicitly
    into every builder (no ambient lookups inside the provisioning core).
    """

    model_config = SettingsConfigDict(env_prefix="PGPROV_", case_sensitive=False, frozen=True)

    env: Literal["dev", "test", "prod"] = "dev"
    service_name: str = "pg-provisioner"
    log_level: str = "INFO"

    api_host: str = "0.0.0.0"
    api_port: int = 8080

    # Activation switch; a disabled module contributes no tasks at all.
    enable: bool = True

    # Filesystem layout
    state_dir: str = "/var/lib/pg-provisioner"
    runtime_dir: str = "/run/pg-provisioner"
    config_dir: str | None = None

    # Engine
    postgresql_bin_dir: str = "/usr/lib/postgresql/16/bin"
    postgresql_schema: str = "16"
    port: int = Field(default=5432, ge=1, le=65535)
    service_user: str = "postgres"
    service_group: str = "postgres"

    # Prepended to every declared user to obtain the host's account/role name.
    user_prefix: str = ""

    # Target reached once every database is ready.
    ready_target: str = "databases.target"

    # Seconds to wait for the server to accept connections (local executor).
    service_ready_timeout: float = Field(default=60.0, gt=0)

    @property
    def data_dir(self) -> str:
        return f"{self.state_dir}/postgresql/{self.postgresql_schema}"

    @property
    def resolved_config_dir(self) -> str:
        return self.config_dir or f"{self.state_dir}/postgresql/config"

    def binary(self, name: str) -> str:
        return f"{self.postgresql_bin_dir.rstrip('/')}/{name}"

    def unique_user(self, name: str) -> str:
        return f"{self.user_prefix}{name}"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    # Cache avoids re-parsing env vars for each request dependency.
    return Settings()


# --- Module Notes -----------------------------------------------------------
# Most modules depend on this one; keep field names stable since they double as
# environment variable names (PGPROV_<FIELD>).
