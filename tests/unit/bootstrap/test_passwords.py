"""Unit tests for credential generation."""

from __future__ import annotations

import pytest

from clusterroute.bootstrap.passwords import SecretsRandomGenerator, StaticPasswordSource, native_password_hash
from clusterroute.core.exceptions import ConfigurationError


class TestSecretsRandomGenerator:
    def test_identifier_alphabet(self) -> None:
        identifier = SecretsRandomGenerator().generate_identifier(12)

        assert len(identifier) == 12
        assert identifier.isalnum()
        assert identifier == identifier.lower()

    def test_strong_password_has_every_class(self) -> None:
        """Test that generated passwords satisfy typical validate_password policies."""
        password = SecretsRandomGenerator().generate_strong_password(32)

        assert len(password) == 32
        assert any(c.islower() for c in password)
        assert any(c.isupper() for c in password)
        assert any(c.isdigit() for c in password)
        assert any(not c.isalnum() for c in password)
        assert "'" not in password
        assert "\\" not in password

    def test_too_short(self) -> None:
        with pytest.raises(ValueError, match="at least 4"):
            SecretsRandomGenerator().generate_strong_password(3)


def test_native_password_hash() -> None:
    """Test the mysql_native_password hash of a known password."""
    assert native_password_hash("password") == "*2470C0C06DEE42FD1618BB99005ADCA2EC9D1E19"


class TestStaticPasswordSource:
    def test_answers_in_order(self) -> None:
        source = StaticPasswordSource(["a", "b"])

        assert source.prompt("first") == "a"
        assert source.prompt("second") == "b"
        assert source.prompts == ["first", "second"]

    def test_exhausted(self) -> None:
        with pytest.raises(ConfigurationError, match="No input available for: key"):
            StaticPasswordSource([]).prompt("key")
