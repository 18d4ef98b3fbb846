"""Immutable records produced by metadata and topology queries.

- `Member`: one row of ``performance_schema.replication_group_members``
- `TopologySnapshot`: full membership view from one resolution pass
- `SchemaVersion`: version of the ``mysql_innodb_cluster_metadata`` schema
- `QuorumStatus`: aggregate ONLINE/total count
- `ClusterIdentity`: cluster, replicaset and bootstrap servers a router serves
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Self

from pydantic import BaseModel, ConfigDict, Field, computed_field

from ..core.enums import MemberRole, MemberState, TopologyMode, TopologyType


class Member(BaseModel):
    model_config = ConfigDict(frozen=True)

    member_id: str
    host: str
    port: int = Field(ge=0, le=65535)
    state: MemberState
    role: MemberRole

    @property
    def is_online(self) -> bool:
        return self.state is MemberState.ONLINE

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"


def _has_quorum(online: int, total: int) -> bool:
    return online * 2 > total


class TopologySnapshot(BaseModel):
    """Membership of the group as seen by one member at one point in time.

    Snapshots are built whole from a single resolution pass and never
    modified afterwards; a newer view is a new snapshot.
    """

    model_config = ConfigDict(frozen=True)

    primary_id: str = ""
    mode: TopologyMode
    members: Mapping[str, Member] = Field(default_factory=dict)
    taken_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @computed_field  # type: ignore[prop-decorator]
    @property
    def online_count(self) -> int:
        return sum(1 for member in self.members.values() if member.is_online)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_count(self) -> int:
        return len(self.members)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def has_quorum(self) -> bool:
        """True when strictly more than half of the members are ONLINE."""
        return _has_quorum(self.online_count, self.total_count)

    @property
    def multi_master(self) -> bool:
        return self.mode is TopologyMode.MULTI_MASTER

    @property
    def primaries(self) -> tuple[Member, ...]:
        return tuple(m for m in self.members.values() if m.role is MemberRole.PRIMARY)

    @property
    def secondaries(self) -> tuple[Member, ...]:
        return tuple(m for m in self.members.values() if m.role is MemberRole.SECONDARY)


class SchemaVersion(BaseModel):
    model_config = ConfigDict(frozen=True)

    major: int = Field(ge=0)
    minor: int = Field(ge=0)
    patch: int = Field(default=0, ge=0)

    def is_compatible_with(self, required: SchemaVersion) -> bool:
        """Same major version and at least the required minor/patch."""
        return self.major == required.major and (self.minor, self.patch) >= (required.minor, required.patch)

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


REQUIRED_SCHEMA_VERSION = SchemaVersion(major=1, minor=0, patch=0)


class QuorumStatus(BaseModel):
    model_config = ConfigDict(frozen=True)

    online: int = Field(ge=0)
    total: int = Field(ge=0)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def has_quorum(self) -> bool:
        return _has_quorum(self.online, self.total)


class ClusterIdentity(BaseModel):
    """Cluster a router is being bootstrapped against.

    Examples
    --------
    >>> identity = ClusterIdentity(
    ...     cluster_name="mycluster",
    ...     replicaset_name="default",
    ...     topology_type=TopologyType.SINGLE_PRIMARY,
    ...     bootstrap_servers=("mysql://a:3306", "mysql://b:3306"),
    ... )
    >>> identity.bootstrap_server_addresses
    'mysql://a:3306,mysql://b:3306'
    """

    model_config = ConfigDict(frozen=True)

    cluster_name: str
    replicaset_name: str
    topology_type: TopologyType
    bootstrap_servers: tuple[str, ...] = Field(default_factory=tuple)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def multi_master(self) -> bool:
        return self.topology_type is TopologyType.MULTI_PRIMARY

    @computed_field  # type: ignore[prop-decorator]
    @property
    def bootstrap_server_addresses(self) -> str:
        return ",".join(self.bootstrap_servers)

    @classmethod
    def from_addresses(
        cls: type[Self],
        cluster_name: str,
        replicaset_name: str,
        topology_type: TopologyType,
        addresses: list[str],
    ) -> Self:
        """Build an identity from bare ``host:port`` addresses."""
        return cls(
            cluster_name=cluster_name,
            replicaset_name=replicaset_name,
            topology_type=topology_type,
            bootstrap_servers=tuple(f"mysql://{address}" for address in addresses),
        )
