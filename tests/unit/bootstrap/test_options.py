"""Unit tests for bootstrap option normalisation."""

from __future__ import annotations

import pytest

from clusterroute.bootstrap.options import fill_options, parse_base_port, validate_bind_address
from clusterroute.core.exceptions import ConfigurationError


class TestParseBasePort:
    """Test --base-port validation."""

    @pytest.mark.parametrize(("value", "expected"), [("1", 1), ("3306", 3306), ("65532", 65532)])
    def test_valid(self, value: str, expected: int) -> None:
        assert parse_base_port(value) == expected

    @pytest.mark.parametrize("value", ["0", "65533", "-1", "1.5", "abc", "", "123456", " 80", "٣٣٠٦"])
    def test_invalid(self, value: str) -> None:
        """Test that non-decimal values and ports leaving no room for four listeners are rejected."""
        with pytest.raises(ConfigurationError, match=f"Invalid base-port number {value}"):
            parse_base_port(value)


class TestValidateBindAddress:
    @pytest.mark.parametrize("value", ["0.0.0.0", "127.0.0.1", "::1", "fe80::1"])
    def test_valid(self, value: str) -> None:
        assert validate_bind_address(value) == value

    @pytest.mark.parametrize("value", ["localhost", "999.1.1.1", ""])
    def test_invalid(self, value: str) -> None:
        with pytest.raises(ConfigurationError, match="Invalid bind-address value"):
            validate_bind_address(value)


class TestFillOptions:
    """Test endpoint derivation."""

    def test_defaults(self) -> None:
        """Test the default classic and X protocol ports."""
        options = fill_options(False, {})

        assert options.rw_endpoint.port == 6446
        assert options.ro_endpoint.port == 6447
        assert options.rw_x_endpoint.port == 64460
        assert options.ro_x_endpoint.port == 64470
        assert options.bind_address == ""
        assert not options.rw_endpoint.socket

    def test_base_port_reserves_four_ports(self) -> None:
        options = fill_options(False, {"base-port": "1234"})

        ports = [e.port for e in (options.rw_endpoint, options.ro_endpoint, options.rw_x_endpoint, options.ro_x_endpoint)]
        assert ports == [1234, 1235, 1236, 1237]

    def test_multi_master_disables_read_only_endpoints(self) -> None:
        """Test that a multi-primary group gets no RO listeners."""
        options = fill_options(True, {"use-sockets": "1"})

        assert options.multi_master
        assert options.rw_endpoint.enabled
        assert options.rw_x_endpoint.enabled
        assert not options.ro_endpoint
        assert not options.ro_x_endpoint

    def test_sockets_and_skip_tcp(self) -> None:
        """Test that skip-tcp with use-sockets leaves socket-only listeners."""
        options = fill_options(False, {"use-sockets": "1", "skip-tcp": "1", "socketsdir": "/tmp/r"})

        assert options.rw_endpoint.port == 0
        assert options.rw_endpoint.socket == "mysql.sock"
        assert options.ro_endpoint.socket == "mysqlro.sock"
        assert options.rw_x_endpoint.socket == "mysqlx.sock"
        assert options.ro_x_endpoint.socket == "mysqlxro.sock"
        assert options.socketsdir == "/tmp/r"

    def test_skip_tcp_alone_disables_everything(self) -> None:
        options = fill_options(False, {"skip-tcp": "1"})

        assert not any(
            e.enabled for e in (options.rw_endpoint, options.ro_endpoint, options.rw_x_endpoint, options.ro_x_endpoint)
        )

    def test_ssl_options_keep_case_and_order(self) -> None:
        """Test that TLS options are kept verbatim in rendering order."""
        options = fill_options(False, {"ssl_ca": "/ca.pem", "ssl_mode": "verify_ca", "tls_version": "TLSv1.2"})

        assert list(options.ssl_options.items()) == [
            ("ssl_mode", "verify_ca"),
            ("tls_version", "TLSv1.2"),
            ("ssl_ca", "/ca.pem"),
        ]

    def test_invalid_ssl_mode(self) -> None:
        with pytest.raises(ConfigurationError, match="Invalid value for --ssl-mode option"):
            fill_options(False, {"ssl_mode": "bogus"})

    def test_defaults_are_forwarded(self) -> None:
        options = fill_options(False, {}, metadata_ttl=10, keyring_file_path="/r/data/keyring")

        assert options.metadata_ttl == 10
        assert options.keyring_file_path == "/r/data/keyring"
