"""Conversion of raw result rows into typed values.

Rows arrive as tuples of strings with ``None`` for SQL NULL. Every helper
here either returns a well-formed value or raises `MetadataFormatError`.
"""

from __future__ import annotations

from ..core.enums import MemberRole, MemberState
from ..core.exceptions import MetadataFormatError
from ..core.types import Row
from ..logger import get_logger
from .models import Member

logger = get_logger(__name__)

MAX_PORT = 65535

_KNOWN_STATES = {state.value: state for state in MemberState if state is not MemberState.OTHER}


def require_width(row: Row, expected: int, message: str) -> None:
    """Raise ``MetadataFormatError(message)`` unless the row has ``expected`` fields."""
    if len(row) != expected:
        raise MetadataFormatError(message)


def parse_int(value: str | None, field: str, minimum: int | None = None, maximum: int | None = None) -> int:
    """Parse an integer column, optionally bounded to ``minimum..maximum``."""
    if value is None:
        raise MetadataFormatError(f"Unexpected NULL value for {field}")
    try:
        number = int(value)
    except ValueError:
        raise MetadataFormatError(f"Unexpected value {value!r} for {field}") from None
    if (minimum is not None and number < minimum) or (maximum is not None and number > maximum):
        raise MetadataFormatError(f"Unexpected value {value!r} for {field}")
    return number


def parse_flag(value: str | None) -> bool:
    """Server boolean variables read back as ``1`` / ``ON``."""
    return value in ("1", "ON")


def parse_member_state(value: str, member_id: str) -> MemberState:
    """Map a ``member_state`` string; matching is case-sensitive.

    Unknown states map to `MemberState.OTHER` and are logged.
    """
    state = _KNOWN_STATES.get(value)
    if state is None:
        logger.info("unknown_member_state", state=value, member_id=member_id)
        return MemberState.OTHER
    return state


def map_member_row(row: Row, primary_id: str) -> tuple[Member, bool]:
    """Turn one group membership row into a `Member`.

    Parameters
    ----------
    row
        ``(member_id, member_host, member_port, member_state, single_primary_mode)``.
    primary_id
        Primary member id reported by the server, possibly empty.

    Returns
    -------
    tuple[Member, bool]
        The member and whether the row reported single-primary mode.

    Raises
    ------
    MetadataFormatError
        On a row of the wrong width, a NULL id/host/port/state or a port
        outside 0..65535.
    """
    require_width(
        row,
        5,
        f"Unexpected number of fields in resultset from group_replication query. Expected = 5, got = {len(row)}",
    )
    member_id, host, port, state, mode_flag = row
    if member_id is None or host is None or port is None or state is None:
        logger.warning("null_member_field", row=row)
        raise MetadataFormatError("Unexpected value in group_replication_metadata query results")

    single_master = parse_flag(mode_flag)
    role = MemberRole.PRIMARY if member_id == primary_id or not single_master else MemberRole.SECONDARY
    member = Member(
        member_id=member_id,
        host=host,
        port=parse_int(port, "member_port", minimum=0, maximum=MAX_PORT),
        state=parse_member_state(state, member_id),
        role=role,
    )
    return member, single_master
