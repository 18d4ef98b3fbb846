from __future__ import annotations

import pytest

from clusterroute.core.enums import SslMode
from clusterroute.core.exceptions import (
    AccountCleanupError,
    ClusterRouteError,
    ConfigurationError,
    ConflictError,
    DeploymentError,
    KeyringError,
    MetadataError,
    NoClusterError,
    PasswordPolicyError,
    ProvisioningError,
    SessionError,
)


class TestExceptionHierarchy:
    @pytest.mark.parametrize(
        ("error", "base"),
        [
            (ConfigurationError, ValueError),
            (NoClusterError, MetadataError),
            (AccountCleanupError, ProvisioningError),
            (PasswordPolicyError, ProvisioningError),
            (ConflictError, DeploymentError),
            (KeyringError, DeploymentError),
        ],
    )
    def test_subclasses(self, error: type[Exception], base: type[Exception]) -> None:
        assert issubclass(error, base)
        assert issubclass(error, ClusterRouteError)

    def test_session_error_carries_code(self) -> None:
        error = SessionError("Duplicate entry", 1062)

        assert str(error) == "Duplicate entry"
        assert error.code == 1062
        assert SessionError("x").code == 0


class TestSslMode:
    @pytest.mark.parametrize("value", ["preferred", "Preferred", "PREFERRED"])
    def test_case_insensitive(self, value: str) -> None:
        assert SslMode.parse(value) is SslMode.PREFERRED

    def test_unknown(self) -> None:
        with pytest.raises(ValueError, match="Invalid ssl mode 'maybe'"):
            SslMode.parse("maybe")
