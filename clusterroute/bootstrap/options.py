"""Bootstrap option validation and normalisation into `RouterOptions`.

Bootstrap options arrive as a flat ``str -> str`` mapping (keys named after
the command line options, e.g. ``base-port``) plus a multi-value mapping for
options that may repeat (``account-host``). Boolean switches are set by
presence of the key.
"""

from __future__ import annotations

import ipaddress
from collections.abc import Mapping, Sequence

from pydantic import BaseModel, ConfigDict, Field, computed_field

from ..core.enums import SslMode
from ..core.exceptions import ConfigurationError

type BootstrapOptions = Mapping[str, str]
type MultiValueOptions = Mapping[str, Sequence[str]]

DEFAULT_RW_PORT = 6446
DEFAULT_RO_PORT = 6447
DEFAULT_RW_X_PORT = 64460
DEFAULT_RO_X_PORT = 64470
MAX_TCP_PORT = 65535

# base-port reserves four consecutive ports: rw, ro, x_rw, x_ro
_PORTS_PER_ROUTER = 4

DEFAULT_BIND_ADDRESS = "0.0.0.0"

RW_SOCKET = "mysql.sock"
RO_SOCKET = "mysqlro.sock"
RW_X_SOCKET = "mysqlx.sock"
RO_X_SOCKET = "mysqlxro.sock"

# Rendered into [metadata_cache] in this order.
SSL_CONFIG_KEYS = ("ssl_mode", "ssl_cipher", "tls_version", "ssl_ca", "ssl_capath", "ssl_crl", "ssl_crlpath")


class Endpoint(BaseModel):
    """One routing listener. Disabled when it has neither a TCP port nor a socket."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    port: int = Field(default=0, ge=0, le=MAX_TCP_PORT)
    socket: str = ""

    @computed_field  # type: ignore[prop-decorator]
    @property
    def enabled(self) -> bool:
        return self.port > 0 or self.socket != ""

    def __bool__(self) -> bool:
        return self.enabled


DISABLED_ENDPOINT = Endpoint()


class RouterOptions(BaseModel):
    """Normalised options the configuration renderer consumes."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    multi_master: bool = False
    bind_address: str = ""
    rw_endpoint: Endpoint = Field(default_factory=Endpoint)
    ro_endpoint: Endpoint = Field(default_factory=Endpoint)
    rw_x_endpoint: Endpoint = Field(default_factory=Endpoint)
    ro_x_endpoint: Endpoint = Field(default_factory=Endpoint)
    socketsdir: str = ""
    ssl_options: dict[str, str] = Field(default_factory=dict)

    override_logdir: str = ""
    override_rundir: str = ""
    override_datadir: str = ""
    keyring_file_path: str = ""
    master_key_file_path: str = ""

    connect_timeout: int = Field(default=30, ge=1)
    read_timeout: int = Field(default=30, ge=1)
    metadata_ttl: int = Field(default=5, ge=1)


def parse_base_port(value: str) -> int:
    """Validate ``--base-port``.

    Raises
    ------
    ConfigurationError
        Unless the value is a plain decimal in 1..65535 leaving room for the
        three following ports.
    """
    if not (value.isascii() and value.isdigit()) or len(value) > 5:
        raise ConfigurationError(f"Invalid base-port number {value}")
    port = int(value)
    if port < 1 or port > MAX_TCP_PORT - (_PORTS_PER_ROUTER - 1):
        raise ConfigurationError(f"Invalid base-port number {value}")
    return port


def validate_bind_address(value: str) -> str:
    try:
        ipaddress.ip_address(value)
    except ValueError:
        raise ConfigurationError(f"Invalid bind-address value {value}") from None
    return value


def validate_ssl_mode(value: str) -> str:
    """Check ``--ssl-mode`` case-insensitively and return it unchanged."""
    try:
        SslMode.parse(value)
    except ValueError:
        raise ConfigurationError("Invalid value for --ssl-mode option") from None
    return value


def fill_options(multi_master: bool, options: BootstrapOptions, **defaults: int | str) -> RouterOptions:
    """Derive listener endpoints and rendering options from bootstrap options.

    Parameters
    ----------
    multi_master
        Multi-primary groups get no read-only endpoints.
    options
        Bootstrap options (``base-port``, ``bind-address``, ``use-sockets``,
        ``skip-tcp``, ``socketsdir``, ``logdir``, ``rundir``, ``datadir``,
        ``ssl_*``).
    **defaults
        Extra `RouterOptions` fields such as timeouts or keyring paths.

    Returns
    -------
    RouterOptions

    Examples
    --------
    >>> opts = fill_options(False, {"base-port": "1234"})
    >>> opts.rw_endpoint.port, opts.ro_x_endpoint.port
    (1234, 1237)
    """
    bind_address = ""
    if "bind-address" in options:
        bind_address = validate_bind_address(options["bind-address"])

    ports = [DEFAULT_RW_PORT, DEFAULT_RO_PORT, DEFAULT_RW_X_PORT, DEFAULT_RO_X_PORT]
    if "base-port" in options:
        base = parse_base_port(options["base-port"])
        ports = [base + offset for offset in range(_PORTS_PER_ROUTER)]
    if "skip-tcp" in options:
        ports = [0] * _PORTS_PER_ROUTER

    sockets = ["", "", "", ""]
    if "use-sockets" in options:
        sockets = [RW_SOCKET, RO_SOCKET, RW_X_SOCKET, RO_X_SOCKET]

    rw, ro, rw_x, ro_x = (Endpoint(port=port, socket=socket) for port, socket in zip(ports, sockets, strict=True))
    if multi_master:
        ro = ro_x = DISABLED_ENDPOINT

    if "ssl_mode" in options:
        validate_ssl_mode(options["ssl_mode"])
    ssl_options = {key: options[key] for key in SSL_CONFIG_KEYS if options.get(key)}

    return RouterOptions(
        multi_master=multi_master,
        bind_address=bind_address,
        rw_endpoint=rw,
        ro_endpoint=ro,
        rw_x_endpoint=rw_x,
        ro_x_endpoint=ro_x,
        socketsdir=options.get("socketsdir", ""),
        ssl_options=ssl_options,
        override_logdir=options.get("logdir", ""),
        override_rundir=options.get("rundir", ""),
        override_datadir=options.get("datadir", ""),
        **defaults,  # type: ignore[arg-type]
    )
