from __future__ import annotations

from functools import lru_cache

from pydantic import PositiveFloat
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration for the flow runner.

    Values are loaded from environment variables by default and may be
    overridden via CLI flags by the application entrypoint.
    """

    # Client SDK, as "package.module:factory". The factory is called with
    # the settings and must return an object implementing ``PTTClient``.
    client_factory: str = ""

    # Fallback credentials for config nodes without stored credentials.
    # Allowed empty so CLI/tests can run without an account.
    username: str = ""
    password: str = ""
    group_ids: str = "ALL"

    # RX behaviour
    ignore_self: bool = False
    reconnect_backoff_base: PositiveFloat = 0.5
    reconnect_backoff_max: PositiveFloat = 30.0

    log_level: str = "INFO"

    # pydantic-settings v2 configuration
    model_config = SettingsConfigDict(
        env_prefix="PTT_", env_file=".env", env_file_encoding="utf-8", case_sensitive=False
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
