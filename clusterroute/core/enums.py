from __future__ import annotations

from enum import StrEnum


class MemberState(StrEnum):
    ONLINE = "ONLINE"
    OFFLINE = "OFFLINE"
    UNREACHABLE = "UNREACHABLE"
    RECOVERING = "RECOVERING"
    ERROR = "ERROR"
    OTHER = "OTHER"


class MemberRole(StrEnum):
    PRIMARY = "PRIMARY"
    SECONDARY = "SECONDARY"


class TopologyMode(StrEnum):
    SINGLE_MASTER = "single-master"
    MULTI_MASTER = "multi-master"


class TopologyType(StrEnum):
    """Topology tag stored in the cluster metadata replicasets table."""

    SINGLE_PRIMARY = "pm"
    MULTI_PRIMARY = "mm"


class SslMode(StrEnum):
    DISABLED = "DISABLED"
    PREFERRED = "PREFERRED"
    REQUIRED = "REQUIRED"
    VERIFY_CA = "VERIFY_CA"
    VERIFY_IDENTITY = "VERIFY_IDENTITY"

    @classmethod
    def parse(cls, value: str) -> SslMode:
        """Parse an ssl mode case-insensitively.

        Raises
        ------
        ValueError
            If the value names no known mode.
        """
        try:
            return cls(value.upper())
        except ValueError:
            raise ValueError(f"Invalid ssl mode {value!r}") from None
