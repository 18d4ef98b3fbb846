"""Unit tests for logging configuration."""

from __future__ import annotations

import pytest

from clusterroute.logger import (
    REDACTED,
    ConsoleFormatterStrategy,
    JsonFormatterStrategy,
    LoggingConfig,
    redact_secrets,
)


class TestRedactSecrets:
    """Test that secrets never reach a renderer."""

    def test_masks_secret_keys(self) -> None:
        event = {"event": "connecting", "password": "s3cret", "master_key": "k", "address": "db-1:3306"}

        result = redact_secrets(None, "info", event)

        assert result == {"event": "connecting", "password": REDACTED, "master_key": REDACTED, "address": "db-1:3306"}

    def test_leaves_other_events_alone(self) -> None:
        event = {"event": "router_account_created", "username": "mysql_router4_abc"}

        assert redact_secrets(None, "info", dict(event)) == event

    @pytest.mark.parametrize("strategy", [ConsoleFormatterStrategy(), JsonFormatterStrategy()])
    def test_runs_in_every_formatter(self, strategy: ConsoleFormatterStrategy | JsonFormatterStrategy) -> None:
        assert redact_secrets in strategy.build_processors()


class TestLoggingConfig:
    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("LOG_LEVEL", raising=False)

        config = LoggingConfig(_env_file=None)  # type: ignore[call-arg]

        assert config.level == "INFO"
        assert config.use_stderr
        assert config.library_log_levels == {"mysql.connector": "WARNING"}
