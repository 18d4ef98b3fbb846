"""`Session` implementation on top of mysql-connector-python."""

from __future__ import annotations

from decimal import Decimal
from typing import Any

import mysql.connector
from mysql.connector import errors as mysql_errors

from ..config.retry import RetryConfig
from ..core.enums import SslMode
from ..core.exceptions import SessionError
from ..core.types import Row
from ..logger import get_logger
from ..resilience.retry import retry
from .config import ConnectionSettings, SslSettings

logger = get_logger(__name__)

# Server unreachable, handshake interrupted and similar transport failures.
CONNECT_ERRORS: tuple[type[Exception], ...] = (mysql_errors.InterfaceError, mysql_errors.OperationalError)

_UNSUPPORTED_SSL_OPTIONS = ("capath", "crl", "crlpath")


def _to_text(value: object) -> str | None:
    if value is None:
        return None
    if isinstance(value, bytes | bytearray):
        return value.decode("utf-8", errors="replace")
    if isinstance(value, Decimal):
        return format(value, "f")
    return str(value)


def _session_error(exc: mysql_errors.Error) -> SessionError:
    return SessionError(exc.msg or str(exc), exc.errno or 0)


def build_ssl_params(ssl: SslSettings) -> dict[str, Any]:
    """Translate TLS options into ``mysql.connector.connect`` keyword arguments.

    Raises
    ------
    ValueError
        If ``ssl.mode`` is not a known mode.
    """
    params: dict[str, Any] = {}
    mode = SslMode.parse(ssl.mode) if ssl.mode else SslMode.PREFERRED

    if mode is SslMode.DISABLED:
        return {"ssl_disabled": True}
    if mode is SslMode.VERIFY_CA:
        params["ssl_verify_cert"] = True
    elif mode is SslMode.VERIFY_IDENTITY:
        params["ssl_verify_cert"] = True
        params["ssl_verify_identity"] = True

    if ssl.ca:
        params["ssl_ca"] = ssl.ca
    if ssl.cert:
        params["ssl_cert"] = ssl.cert
    if ssl.key:
        params["ssl_key"] = ssl.key
    if ssl.tls_version:
        params["tls_versions"] = [v.strip() for v in ssl.tls_version.split(",") if v.strip()]
    if ssl.cipher:
        params["tls_ciphersuites"] = [c.strip() for c in ssl.cipher.split(":") if c.strip()]

    for option in _UNSUPPORTED_SSL_OPTIONS:
        if getattr(ssl, option):
            logger.warning("ssl_option_ignored_by_driver", option=f"ssl_{option}")

    return params


def build_connect_params(settings: ConnectionSettings) -> dict[str, Any]:
    params: dict[str, Any] = {
        "user": settings.user,
        "password": settings.password.get_secret_value(),
        "connection_timeout": settings.connect_timeout,
        "autocommit": True,
        **build_ssl_params(settings.ssl),
    }
    if settings.unix_socket:
        params["unix_socket"] = settings.unix_socket
    else:
        params["host"] = settings.host
        params["port"] = settings.port or 3306
    return params


class MySQLSession:
    """Blocking session backed by a single mysql-connector connection.

    Only ``connect`` is retried, and only on transport failures. Rows are
    returned as tuples of strings so callers parse one representation.

    Parameters
    ----------
    retry_config
        Backoff policy for establishing the connection.
    """

    __slots__ = ("_connection", "_retry_config")

    def __init__(self, retry_config: RetryConfig | None = None) -> None:
        base = retry_config or RetryConfig()
        self._retry_config = base.model_copy(update={"retry_on_exceptions": CONNECT_ERRORS})
        self._connection: Any = None

    @property
    def connected(self) -> bool:
        return self._connection is not None

    def connect(self, settings: ConnectionSettings) -> None:
        params = build_connect_params(settings)
        opener = retry(self._retry_config)(mysql.connector.connect)
        logger.info("connecting", address=settings.address)
        try:
            self._connection = opener(**params)
        except mysql_errors.Error as exc:
            raise _session_error(exc) from exc

    def _run(self, sql: str) -> tuple[list[Row], int]:
        if self._connection is None:
            raise SessionError("Not connected")
        try:
            cursor = self._connection.cursor()
            try:
                cursor.execute(sql)
                rows = [tuple(_to_text(v) for v in row) for row in cursor.fetchall()] if cursor.with_rows else []
                return rows, cursor.lastrowid or 0
            finally:
                cursor.close()
        except mysql_errors.Error as exc:
            raise _session_error(exc) from exc

    def query(self, sql: str) -> list[Row]:
        rows, _ = self._run(sql)
        return rows

    def query_one(self, sql: str) -> Row | None:
        rows, _ = self._run(sql)
        return rows[0] if rows else None

    def execute(self, sql: str) -> int:
        _, last_insert_id = self._run(sql)
        return last_insert_id

    def close(self) -> None:
        if self._connection is None:
            return
        try:
            self._connection.close()
        except mysql_errors.Error as exc:
            logger.warning("close_failed", error=str(exc))
        finally:
            self._connection = None

    def __enter__(self) -> MySQLSession:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
