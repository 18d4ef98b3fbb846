"""Pre-bootstrap checks on the cluster metadata schema and member state."""

from __future__ import annotations

from ..core.enums import MemberState
from ..core.exceptions import (
    ClusterStateError,
    MetadataError,
    MetadataFormatError,
    MetadataNotSupportedError,
    SessionError,
    UnsupportedSchemaError,
)
from ..core.types import Row
from ..logger import get_logger
from ..session.base import Session
from .models import REQUIRED_SCHEMA_VERSION, QuorumStatus, SchemaVersion
from .rows import parse_int, require_width
from .topology import TopologyResolver

logger = get_logger(__name__)

SCHEMA_VERSION_QUERY = "SELECT * FROM mysql_innodb_cluster_metadata.schema_version"

METADATA_SUPPORTED_QUERY = (
    "SELECT  ((SELECT count(*) FROM mysql_innodb_cluster_metadata.clusters) <= 1 "
    " AND (SELECT count(*) FROM mysql_innodb_cluster_metadata.replicasets) <= 1) as has_one_replicaset,"
    " (SELECT attributes->>'$.group_replication_group_name' FROM mysql_innodb_cluster_metadata.replicasets) "
    " = @@group_replication_group_name as replicaset_is_ours"
)

MEMBER_STATE_QUERY = (
    "SELECT member_state FROM performance_schema.replication_group_members WHERE member_id = @@server_uuid"
)


def _query_one(session: Session, sql: str) -> Row | None:
    try:
        return session.query_one(sql)
    except SessionError as exc:
        raise MetadataError(exc.message) from exc


class SchemaValidator:
    """Checks that a server hosts metadata this router can be bootstrapped from.

    Parameters
    ----------
    session
        Open session to the bootstrap server.
    required
        Minimum compatible schema version.
    """

    __slots__ = ("_required", "_session")

    def __init__(self, session: Session, required: SchemaVersion = REQUIRED_SCHEMA_VERSION) -> None:
        self._session = session
        self._required = required

    def validate(self) -> SchemaVersion:
        """Read and check the metadata schema version.

        Raises
        ------
        MetadataFormatError
            Missing row, a row with other than 2 or 3 values, or a negative field.
        UnsupportedSchemaError
            Version outside the supported range.
        """
        row = _query_one(self._session, SCHEMA_VERSION_QUERY)
        if row is None:
            raise MetadataFormatError("No result returned for metadata query")
        if len(row) not in (2, 3):
            raise MetadataFormatError(
                "Invalid number of values returned from mysql_innodb_cluster_metadata.schema_version: "
                f"expected 2 or 3 got {len(row)}"
            )
        version = SchemaVersion(
            major=parse_int(row[0], "major", minimum=0),
            minor=parse_int(row[1], "minor", minimum=0),
            patch=parse_int(row[2], "patch", minimum=0) if len(row) == 3 else 0,
        )
        if not version.is_compatible_with(self._required):
            raise UnsupportedSchemaError(
                f"This version of MySQL Router is not compatible with the provided MySQL InnoDB cluster "
                f"metadata (found {version}, required {self._required})"
            )
        return version

    def check_metadata_supported(self) -> None:
        """Require exactly one cluster/replicaset, owned by this server's group.

        A NULL ``replicaset_is_ours`` (group name not recorded) passes.
        """
        row = _query_one(self._session, METADATA_SUPPORTED_QUERY)
        if row is None:
            raise MetadataFormatError("No result returned for metadata query")
        require_width(
            row, 2, f"Invalid number of values returned from query for metadata support: expected 2 got {len(row)}"
        )
        has_one_replicaset, replicaset_is_ours = row
        if has_one_replicaset != "1":
            raise MetadataNotSupportedError(
                "The provided server contains an unsupported InnoDB cluster metadata "
                "(more than one cluster or replicaset defined)"
            )
        if replicaset_is_ours is not None and replicaset_is_ours == "0":
            raise MetadataNotSupportedError(
                "The provided server contains an unsupported InnoDB cluster metadata "
                "(replicaset does not belong to this server's group)"
            )

    def check_member_online(self) -> None:
        row = _query_one(self._session, MEMBER_STATE_QUERY)
        if row is None or not row:
            raise MetadataFormatError("No result returned for metadata query")
        state = row[0]
        if state != MemberState.ONLINE:
            raise ClusterStateError(
                f"The provided server is currently not an ONLINE member of a InnoDB cluster (state: {state})"
            )

    def validate_cluster_session(self) -> tuple[SchemaVersion, QuorumStatus]:
        """Run every pre-bootstrap check in order.

        Returns
        -------
        tuple[SchemaVersion, QuorumStatus]
            Schema version and quorum. Loss of quorum is logged, not raised.
        """
        version = self.validate()
        self.check_metadata_supported()
        self.check_member_online()
        quorum = TopologyResolver(self._session).check_quorum()
        if not quorum.has_quorum:
            logger.warning("group_has_no_quorum", online=quorum.online, total=quorum.total)
        logger.info("metadata_validated", schema_version=str(version), online=quorum.online, total=quorum.total)
        return version, quorum
