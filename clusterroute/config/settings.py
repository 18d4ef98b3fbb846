"""Process-wide settings for router bootstrap.

Values come from the environment (``ROUTER_`` prefix) or an ``.env`` file and
describe the router installation rather than a particular bootstrap run.
Per-run choices (ports, name, SSL) are bootstrap options.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .retry import RetryConfig


class RouterSettings(BaseSettings):
    """Installation defaults used by the deployment manager and renderer.

    Examples
    --------
    >>> settings = RouterSettings(program_name="/usr/bin/mysqlrouter")
    >>> settings.config_file_name
    'mysqlrouter.conf'
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="ROUTER_",
        env_nested_delimiter="__",
        extra="ignore",
        frozen=True,
    )

    program_name: str = Field(default="mysqlrouter")
    config_file_name: str = Field(default="mysqlrouter.conf")
    keyring_file_name: str = Field(default="keyring")
    master_key_file_name: str = Field(default="mysqlrouter.key")

    connect_timeout: int = Field(default=30, ge=1)
    read_timeout: int = Field(default=30, ge=1)
    metadata_ttl: int = Field(default=5, ge=1)
    password_retries: int = Field(default=5, ge=1, le=10000)
    password_length: int = Field(default=32, ge=8, le=128)

    connect_retry: RetryConfig = Field(default_factory=RetryConfig)


@lru_cache(maxsize=1)
def get_settings() -> RouterSettings:
    return RouterSettings()
