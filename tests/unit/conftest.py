"""Shared fixtures for unit tests.

Provides:
- ScriptedSession: replays expected SQL statements with canned results
- FakeRandomGenerator: deterministic account suffixes and passwords
- script_cluster_checks / script_fresh_provisioning: common statement scripts
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import pytest

from clusterroute.bootstrap.target import SSL_CIPHER_QUERY
from clusterroute.core.exceptions import SessionError
from clusterroute.metadata.schema import MEMBER_STATE_QUERY, METADATA_SUPPORTED_QUERY, SCHEMA_VERSION_QUERY
from clusterroute.metadata.topology import BOOTSTRAP_SERVERS_QUERY, QUORUM_QUERY

if TYPE_CHECKING:
    from clusterroute.core.types import Row
    from clusterroute.session.config import ConnectionSettings

ACCOUNT_SUFFIX = "012345678901"
HOSTNAME = "testhost"


@dataclass
class Expectation:
    kind: str
    prefix: str
    rows: list[Row] = field(default_factory=list)
    last_insert_id: int = 0
    error: SessionError | None = None


class ScriptedSession:
    """Session double that replays an ordered script of statements.

    A statement matches an expectation when it starts with the expected
    prefix; an empty prefix matches anything. Queries and executes are
    scripted separately so a query answered by ``execute`` fails the test.
    """

    def __init__(self) -> None:
        self._expected: deque[Expectation] = deque()
        self.statements: list[str] = []
        self.settings: ConnectionSettings | None = None
        self.closed = False

    def expect_query(self, prefix: str, rows: list[Row] | None = None, error: SessionError | None = None) -> None:
        self._expected.append(Expectation("query", prefix, rows or [], error=error))

    def expect_execute(self, prefix: str, last_insert_id: int = 0, error: SessionError | None = None) -> None:
        self._expected.append(Expectation("execute", prefix, last_insert_id=last_insert_id, error=error))

    def _next(self, kind: str, sql: str) -> Expectation:
        self.statements.append(sql)
        if not self._expected:
            raise AssertionError(f"Unexpected {kind}: {sql}")
        expectation = self._expected.popleft()
        if expectation.kind != kind or not sql.startswith(expectation.prefix):
            raise AssertionError(f"Expected {expectation.kind} {expectation.prefix!r}, got {kind} {sql!r}")
        if expectation.error is not None:
            raise expectation.error
        return expectation

    def connect(self, settings: ConnectionSettings) -> None:
        self.settings = settings

    def query(self, sql: str) -> list[Row]:
        return list(self._next("query", sql).rows)

    def query_one(self, sql: str) -> Row | None:
        rows = self._next("query", sql).rows
        return rows[0] if rows else None

    def execute(self, sql: str) -> int:
        return self._next("execute", sql).last_insert_id

    def close(self) -> None:
        self.closed = True

    @property
    def pending(self) -> list[str]:
        return [expectation.prefix for expectation in self._expected]


class FakeRandomGenerator:
    """Returns a fixed account suffix and numbered passwords."""

    def __init__(self) -> None:
        self.passwords: list[str] = []

    def generate_identifier(self, length: int) -> str:
        return ACCOUNT_SUFFIX[:length]

    def generate_strong_password(self, length: int) -> str:
        password = f"Passw0rd-{len(self.passwords) + 1}"
        self.passwords.append(password)
        return password


def script_cluster_checks(
    session: ScriptedSession,
    cluster_name: str = "mycluster",
    topology_type: str = "pm",
    ssl_cipher: str | None = "DHE-RSA-AES256-SHA",
) -> None:
    """Script schema, membership, quorum, TLS and cluster identity queries."""
    session.expect_query(SCHEMA_VERSION_QUERY, [("1", "0", "1")])
    session.expect_query(METADATA_SUPPORTED_QUERY, [("1", "1")])
    session.expect_query(MEMBER_STATE_QUERY, [("ONLINE",)])
    session.expect_query(QUORUM_QUERY, [("3", "3")])
    if ssl_cipher is not None:
        session.expect_query(SSL_CIPHER_QUERY, [("ssl_cipher", ssl_cipher)])
    session.expect_query(
        BOOTSTRAP_SERVERS_QUERY,
        [
            (cluster_name, "myreplicaset", topology_type, "somehost:3306"),
            (cluster_name, "myreplicaset", topology_type, "otherhost:3306"),
        ],
    )


def script_fresh_provisioning(session: ScriptedSession, router_id: int = 4) -> None:
    """Script registration of a new router and creation of its account."""
    session.expect_execute("START TRANSACTION")
    session.expect_query("SELECT host_id, host_name")
    session.expect_execute("INSERT INTO mysql_innodb_cluster_metadata.hosts", last_insert_id=1)
    session.expect_execute("INSERT INTO mysql_innodb_cluster_metadata.routers", last_insert_id=router_id)
    script_account_creation(session, router_id)


def script_reused_provisioning(session: ScriptedSession, router_id: int = 4) -> None:
    """Script a re-bootstrap that keeps an already registered router id."""
    session.expect_execute("START TRANSACTION")
    session.expect_query("SELECT h.host_id, h.host_name", [("1", HOSTNAME)])
    script_account_creation(session, router_id)


def script_account_creation(session: ScriptedSession, router_id: int = 4) -> None:
    username = f"mysql_router{router_id}_{ACCOUNT_SUFFIX}"
    session.expect_query("SELECT COUNT(*) FROM mysql.user WHERE user", [("0",)])
    session.expect_execute(f"CREATE USER {username}@'%'")
    session.expect_execute("GRANT SELECT ON mysql_innodb_cluster_metadata.*")
    session.expect_execute("GRANT SELECT ON performance_schema.replication_group_members")
    session.expect_execute("GRANT SELECT ON performance_schema.replication_group_member_stats")
    session.expect_execute("UPDATE mysql_innodb_cluster_metadata.routers SET attributes = ")
    session.expect_execute("COMMIT")


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def session() -> ScriptedSession:
    return ScriptedSession()


@pytest.fixture
def random_generator() -> FakeRandomGenerator:
    return FakeRandomGenerator()
