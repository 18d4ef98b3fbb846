"""Session boundary used by the resolver and the provisioner.

Anything that can run SQL text and hand back string rows satisfies `Session`.
The concrete driver lives in `clusterroute.session.mysql`; tests substitute a
scripted replayer.
"""

from __future__ import annotations

from types import TracebackType
from typing import Protocol, Self, runtime_checkable

from ..core.exceptions import SessionError
from ..core.types import Row
from ..logger import get_logger
from .config import ConnectionSettings

logger = get_logger(__name__)


@runtime_checkable
class Session(Protocol):
    """Blocking SQL session.

    Every method raises `SessionError` carrying the server message and code.
    Row values are strings, or ``None`` for SQL NULL.
    """

    def connect(self, settings: ConnectionSettings) -> None: ...

    def query(self, sql: str) -> list[Row]: ...

    def query_one(self, sql: str) -> Row | None: ...

    def execute(self, sql: str) -> int:
        """Run a statement and return the last insert id (0 when none)."""
        ...

    def close(self) -> None: ...


class Transaction:
    """Explicit transaction on a session.

    ``START TRANSACTION`` on enter, ``COMMIT`` on a clean exit and ``ROLLBACK``
    when the block raises. The exception is always propagated.

    Examples
    --------
    >>> with Transaction(session) as tx:
    ...     session.execute("INSERT ...")
    ...     tx.restart()  # ROLLBACK + START TRANSACTION
    """

    __slots__ = ("_active", "_session")

    def __init__(self, session: Session) -> None:
        self._session = session
        self._active = False

    @property
    def active(self) -> bool:
        return self._active

    def begin(self) -> None:
        self._session.execute("START TRANSACTION")
        self._active = True

    def commit(self) -> None:
        self._session.execute("COMMIT")
        self._active = False

    def rollback(self) -> None:
        self._active = False
        self._session.execute("ROLLBACK")

    def restart(self) -> None:
        """Discard the work done so far and open a fresh transaction."""
        self.rollback()
        self.begin()

    def __enter__(self) -> Self:
        self.begin()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if not self._active:
            return
        if exc_type is None:
            self.commit()
            return
        try:
            self.rollback()
        except SessionError as rollback_error:
            logger.warning("rollback_failed", error=str(rollback_error), cause=str(exc_val))


def quote(value: str) -> str:
    """Render ``value`` as a single-quoted SQL string literal."""
    escaped = value.replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"
