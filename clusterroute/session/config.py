"""Connection settings for the bootstrap session.

- `SslSettings`: TLS options given on the command line, kept verbatim
- `ConnectionSettings`: endpoint, credentials and timeouts for one session
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, SecretStr, computed_field


class SslSettings(BaseModel):
    """TLS options for the bootstrap connection.

    Values are stored as given; ``mode`` keeps the user's spelling so the
    rendered configuration can repeat it unchanged.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    mode: str | None = Field(default=None)
    cipher: str | None = Field(default=None)
    tls_version: str | None = Field(default=None)
    ca: str | None = Field(default=None)
    capath: str | None = Field(default=None)
    crl: str | None = Field(default=None)
    crlpath: str | None = Field(default=None)
    cert: str | None = Field(default=None)
    key: str | None = Field(default=None)


class ConnectionSettings(BaseModel):
    """Everything needed to open a session against one cluster member."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    host: str = Field(default="127.0.0.1")
    port: int = Field(default=3306, ge=0, le=65535)
    user: str = Field(default="root")
    password: SecretStr = Field(default_factory=lambda: SecretStr(""))
    unix_socket: str | None = Field(default=None)
    connect_timeout: int = Field(default=30, ge=1)
    read_timeout: int = Field(default=30, ge=1)
    ssl: SslSettings = Field(default_factory=SslSettings)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def address(self) -> str:
        """Human readable endpoint, safe to log."""
        if self.unix_socket:
            return f"{self.user}@{self.unix_socket}"
        host = f"[{self.host}]" if ":" in self.host else self.host
        return f"{self.user}@{host}:{self.port}"
