"""Configuration validation tests.

Tests pydantic validation of router settings and retry policy.
No database connection required - pure validation testing.
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError
from rich.console import Console

from clusterroute.config.retry import RetryConfig
from clusterroute.config.settings import RouterSettings
from clusterroute.logger import LoggingConfig

console = Console()


class TestRouterSettings:
    """Test RouterSettings defaults and environment loading."""

    def test_valid_default_configuration(self) -> None:
        """Test that default configuration is valid."""
        console.print("[bold blue]Testing default RouterSettings[/bold blue]")

        settings = RouterSettings()

        assert settings.program_name == "mysqlrouter"
        assert settings.config_file_name == "mysqlrouter.conf"
        assert settings.keyring_file_name == "keyring"
        assert settings.master_key_file_name == "mysqlrouter.key"
        assert settings.connect_timeout == 30
        assert settings.read_timeout == 30
        assert settings.metadata_ttl == 5
        assert settings.password_retries == 5
        assert settings.connect_retry.max_attempts == 3

        console.print("[green]✓ Default configuration is valid[/green]")

    def test_environment_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that ROUTER_ variables, including nested retry fields, are read."""
        console.print("[bold blue]Testing ROUTER_ environment overrides[/bold blue]")

        monkeypatch.setenv("ROUTER_METADATA_TTL", "10")
        monkeypatch.setenv("ROUTER_MASTER_KEY_FILE_NAME", "")
        monkeypatch.setenv("ROUTER_CONNECT_RETRY__MAX_ATTEMPTS", "7")

        settings = RouterSettings()

        assert settings.metadata_ttl == 10
        assert settings.master_key_file_name == ""
        assert settings.connect_retry.max_attempts == 7

        console.print("[green]✓ Environment overrides applied[/green]")

    @pytest.mark.parametrize(
        ("field", "value"),
        [
            ("connect_timeout", 0),
            ("metadata_ttl", 0),
            ("password_retries", 0),
            ("password_retries", 10001),
            ("password_length", 4),
        ],
    )
    def test_out_of_range_values(self, field: str, value: int) -> None:
        console.print(f"[bold blue]Testing {field}={value}, expecting rejection[/bold blue]")

        with pytest.raises(ValidationError):
            RouterSettings(**{field: value})

        console.print(f"[green]✓ {field}={value} rejected[/green]")

    def test_settings_are_frozen(self) -> None:
        settings = RouterSettings()

        with pytest.raises(ValidationError):
            settings.metadata_ttl = 1  # type: ignore[misc]


class TestRetryConfig:
    """Test RetryConfig validation."""

    def test_defaults(self) -> None:
        config = RetryConfig()

        assert config.max_attempts == 3
        assert config.retry_on_exceptions is None
        assert config.reraise

    @pytest.mark.parametrize(
        ("field", "value"),
        [("max_attempts", 0), ("wait_min", -1.0), ("exp_base", 0.5)],
    )
    def test_invalid_values(self, field: str, value: float) -> None:
        with pytest.raises(ValidationError):
            RetryConfig(**{field: value})

    def test_extra_fields_forbidden(self) -> None:
        with pytest.raises(ValidationError):
            RetryConfig(unknown=1)  # type: ignore[call-arg]


class TestLoggingConfig:
    def test_defaults(self) -> None:
        config = LoggingConfig()

        assert config.level == "INFO"
        assert config.use_stderr
        assert config.library_log_levels == {"mysql.connector": "WARNING"}

    def test_invalid_level(self) -> None:
        with pytest.raises(ValidationError):
            LoggingConfig(level="LOUD")  # type: ignore[arg-type]
