"""Resolve group membership, roles and quorum from a live session.

All queries run sequentially on the caller's session; the primary lookup
always precedes the membership query so roles are assigned against one
primary id.
"""

from __future__ import annotations

from ..core.enums import TopologyMode, TopologyType
from ..core.exceptions import (
    AmbiguousTargetError,
    MetadataError,
    MetadataFormatError,
    NoClusterError,
    SessionError,
)
from ..core.types import Row
from ..logger import get_logger
from ..session.base import Session
from .models import ClusterIdentity, Member, QuorumStatus, TopologySnapshot
from .rows import map_member_row, parse_int, require_width

logger = get_logger(__name__)

PRIMARY_MEMBER_QUERY = "show status like 'group_replication_primary_member'"

MEMBERS_QUERY = (
    "SELECT member_id, member_host, member_port, member_state, @@group_replication_single_primary_mode"
    " FROM performance_schema.replication_group_members"
    " WHERE channel_name = 'group_replication_applier'"
)

QUORUM_QUERY = (
    "SELECT SUM(IF(member_state = 'ONLINE', 1, 0)) as num_onlines, COUNT(*) as num_total"
    " FROM performance_schema.replication_group_members"
)

BOOTSTRAP_SERVERS_QUERY = (
    "SELECT F.cluster_name, R.replicaset_name, R.topology_type,"
    " JSON_UNQUOTE(JSON_EXTRACT(I.addresses, '$.mysqlClassic'))"
    " FROM mysql_innodb_cluster_metadata.clusters AS F,"
    " mysql_innodb_cluster_metadata.instances AS I,"
    " mysql_innodb_cluster_metadata.replicasets AS R"
    " WHERE R.replicaset_id = (SELECT replicaset_id FROM mysql_innodb_cluster_metadata.instances"
    " WHERE mysql_server_uuid = @@server_uuid)"
    " AND I.replicaset_id = R.replicaset_id AND R.cluster_id = F.cluster_id"
)


class TopologyResolver:
    """Read-only view of a group's membership through one session.

    Examples
    --------
    >>> resolver = TopologyResolver(session)
    >>> snapshot = resolver.resolve()
    >>> [m.address for m in snapshot.primaries]
    ['db-1:3306']
    """

    __slots__ = ("_session",)

    def __init__(self, session: Session) -> None:
        self._session = session

    def _query(self, sql: str) -> list[Row]:
        try:
            return self._session.query(sql)
        except SessionError as exc:
            raise MetadataError(exc.message) from exc

    def _query_one(self, sql: str) -> Row | None:
        try:
            return self._session.query_one(sql)
        except SessionError as exc:
            raise MetadataError(exc.message) from exc

    def resolve_primary(self) -> str:
        """Return the primary member id, or ``""`` when there is none.

        The value is empty when the server is not part of a group, or the
        group runs multi-primary.
        """
        row = self._query_one(PRIMARY_MEMBER_QUERY)
        if row is None:
            return ""
        require_width(
            row,
            2,
            f"Unexpected number of fields in the status response. Expected = 2, got = {len(row)}",
        )
        return row[1] or ""

    def resolve_members(self) -> tuple[dict[str, Member], bool]:
        """Return members keyed by id and whether the group is single-primary.

        Raises
        ------
        MetadataFormatError
            On malformed rows.
        MetadataError
            When a query fails.
        """
        return self._members_for(self.resolve_primary())

    def _members_for(self, primary_id: str) -> tuple[dict[str, Member], bool]:
        members: dict[str, Member] = {}
        single_master = False
        for row in self._query(MEMBERS_QUERY):
            member, single_master = map_member_row(row, primary_id)
            members[member.member_id] = member
        return members, single_master

    def resolve(self) -> TopologySnapshot:
        primary_id = self.resolve_primary()
        members, single_master = self._members_for(primary_id)

        snapshot = TopologySnapshot(
            primary_id=primary_id,
            mode=TopologyMode.SINGLE_MASTER if single_master else TopologyMode.MULTI_MASTER,
            members=members,
        )
        logger.debug(
            "topology_resolved",
            primary_id=primary_id,
            mode=str(snapshot.mode),
            online=snapshot.online_count,
            total=snapshot.total_count,
        )
        return snapshot

    def check_quorum(self) -> QuorumStatus:
        """Count ONLINE members against the group size.

        Losing quorum is reported through `QuorumStatus.has_quorum`, not raised.
        """
        row = self._query_one(QUORUM_QUERY)
        if row is None:
            raise MetadataFormatError("No result returned for metadata query")
        require_width(
            row,
            2,
            "Invalid number of values returned from performance_schema.replication_group_members: "
            f"expected 2 got {len(row)}",
        )
        # SUM() over an empty table is NULL
        online = parse_int(row[0], "num_onlines") if row[0] is not None else 0
        return QuorumStatus(online=online, total=parse_int(row[1], "num_total"))

    def fetch_bootstrap_servers(self) -> ClusterIdentity:
        """Identify the cluster and replicaset the session's server belongs to.

        Raises
        ------
        NoClusterError
            No cluster or replicaset is defined.
        AmbiguousTargetError
            Rows name more than one cluster or replicaset.
        MetadataFormatError
            Unknown topology type or malformed rows.
        """
        rows = self._query(BOOTSTRAP_SERVERS_QUERY)
        if not rows:
            raise NoClusterError("No clusters defined in metadata server")

        cluster_name = replicaset_name = topology = ""
        addresses: list[str] = []
        for row in rows:
            require_width(row, 4, f"Unexpected number of fields in the bootstrap servers response: {len(row)}")
            row_cluster, row_replicaset, row_topology, address = row
            if row_cluster is None or row_replicaset is None or row_topology is None or address is None:
                raise MetadataFormatError("Unexpected NULL value in the bootstrap servers response")
            if not cluster_name:
                cluster_name, replicaset_name, topology = row_cluster, row_replicaset, row_topology
            elif row_cluster != cluster_name:
                raise AmbiguousTargetError(
                    "Metadata contains more than one cluster configuration available. "
                    "Bootstrapping against multiple clusters is not supported"
                )
            elif row_replicaset != replicaset_name:
                raise AmbiguousTargetError(
                    "Metadata contains more than one replica-set configuration available. "
                    "Bootstrapping against multiple replica-sets is not supported"
                )
            addresses.append(address)

        try:
            topology_type = TopologyType(topology)
        except ValueError:
            raise MetadataFormatError(f"Unknown topology type in metadata: {topology}") from None

        return ClusterIdentity.from_addresses(cluster_name, replicaset_name, topology_type, addresses)
