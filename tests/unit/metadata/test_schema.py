"""Unit tests for pre-bootstrap metadata checks."""

from __future__ import annotations

import pytest

from clusterroute.core.exceptions import (
    ClusterStateError,
    MetadataError,
    MetadataFormatError,
    MetadataNotSupportedError,
    SessionError,
    UnsupportedSchemaError,
)
from clusterroute.metadata.models import SchemaVersion
from clusterroute.metadata.schema import (
    MEMBER_STATE_QUERY,
    METADATA_SUPPORTED_QUERY,
    SCHEMA_VERSION_QUERY,
    SchemaValidator,
)
from clusterroute.metadata.topology import QUORUM_QUERY
from tests.unit.conftest import ScriptedSession


class TestSchemaVersion:
    """Test schema version compatibility."""

    @pytest.mark.parametrize(
        ("version", "expected"),
        [
            (SchemaVersion(major=1, minor=0, patch=0), True),
            (SchemaVersion(major=1, minor=0, patch=1), True),
            (SchemaVersion(major=1, minor=2, patch=0), True),
            (SchemaVersion(major=0, minor=9, patch=9), False),
            (SchemaVersion(major=2, minor=0, patch=0), False),
        ],
    )
    def test_same_major_and_not_older(self, version: SchemaVersion, expected: bool) -> None:
        """Test that a version is compatible when the major matches and it is not older."""
        required = SchemaVersion(major=1, minor=0, patch=0)

        assert version.is_compatible_with(required) is expected

    def test_str(self) -> None:
        assert str(SchemaVersion(major=1, minor=0, patch=1)) == "1.0.1"


class TestValidate:
    """Test reading of the schema_version table."""

    @pytest.mark.parametrize(
        ("row", "expected"),
        [
            (("1", "0", "1"), SchemaVersion(major=1, minor=0, patch=1)),
            (("1", "0"), SchemaVersion(major=1, minor=0, patch=0)),
        ],
    )
    def test_accepts_two_or_three_values(
        self, session: ScriptedSession, row: tuple[str, ...], expected: SchemaVersion
    ) -> None:
        """Test that the patch level is optional."""
        session.expect_query(SCHEMA_VERSION_QUERY, [row])

        assert SchemaValidator(session).validate() == expected

    @pytest.mark.parametrize("row", [("1",), ("1", "0", "0", "0")])
    def test_rejects_other_widths(self, session: ScriptedSession, row: tuple[str, ...]) -> None:
        """Test that rows with other than two or three values are rejected."""
        session.expect_query(SCHEMA_VERSION_QUERY, [row])

        with pytest.raises(MetadataFormatError, match=f"expected 2 or 3 got {len(row)}"):
            SchemaValidator(session).validate()

    @pytest.mark.parametrize("row", [("-1", "0", "0"), ("1", "-2"), ("1", "0", "x")])
    def test_rejects_malformed_fields(self, session: ScriptedSession, row: tuple[str, ...]) -> None:
        session.expect_query(SCHEMA_VERSION_QUERY, [row])

        with pytest.raises(MetadataFormatError, match="Unexpected value"):
            SchemaValidator(session).validate()

    def test_rejects_incompatible_version(self, session: ScriptedSession) -> None:
        """Test that a newer major version is not supported."""
        session.expect_query(SCHEMA_VERSION_QUERY, [("2", "0", "0")])

        with pytest.raises(UnsupportedSchemaError, match=r"found 2\.0\.0, required 1\.0\.0"):
            SchemaValidator(session).validate()

    def test_missing_schema_table(self, session: ScriptedSession) -> None:
        """Test that a server without the metadata schema fails with the server message."""
        session.expect_query(
            SCHEMA_VERSION_QUERY,
            error=SessionError("Table 'mysql_innodb_cluster_metadata.schema_version' doesn't exist", 1146),
        )

        with pytest.raises(MetadataError, match="doesn't exist"):
            SchemaValidator(session).validate()


class TestCheckMetadataSupported:
    """Test the single cluster / own replicaset requirement."""

    def test_supported(self, session: ScriptedSession) -> None:
        session.expect_query(METADATA_SUPPORTED_QUERY, [("1", "1")])

        SchemaValidator(session).check_metadata_supported()

    def test_group_name_not_recorded_passes(self, session: ScriptedSession) -> None:
        """Test that a NULL replicaset_is_ours is accepted."""
        session.expect_query(METADATA_SUPPORTED_QUERY, [("1", None)])

        SchemaValidator(session).check_metadata_supported()

    @pytest.mark.parametrize("row", [("0", "1"), ("1", "0"), (None, "1")])
    def test_unsupported(self, session: ScriptedSession, row: tuple[str | None, ...]) -> None:
        """Test that several clusters or a foreign replicaset are rejected."""
        session.expect_query(METADATA_SUPPORTED_QUERY, [row])

        with pytest.raises(MetadataNotSupportedError):
            SchemaValidator(session).check_metadata_supported()


class TestValidateClusterSession:
    """Test the complete pre-bootstrap check sequence."""

    def test_runs_checks_in_order(self, session: ScriptedSession) -> None:
        """Test that schema, support, member state and quorum are checked in that order."""
        session.expect_query(SCHEMA_VERSION_QUERY, [("1", "0", "1")])
        session.expect_query(METADATA_SUPPORTED_QUERY, [("1", "1")])
        session.expect_query(MEMBER_STATE_QUERY, [("ONLINE",)])
        session.expect_query(QUORUM_QUERY, [("3", "3")])

        version, quorum = SchemaValidator(session).validate_cluster_session()

        assert str(version) == "1.0.1"
        assert quorum.has_quorum
        assert session.pending == []

    def test_member_not_online(self, session: ScriptedSession) -> None:
        """Test that a RECOVERING bootstrap server is refused."""
        session.expect_query(SCHEMA_VERSION_QUERY, [("1", "0", "1")])
        session.expect_query(METADATA_SUPPORTED_QUERY, [("1", "1")])
        session.expect_query(MEMBER_STATE_QUERY, [("RECOVERING",)])

        with pytest.raises(ClusterStateError, match="not an ONLINE member"):
            SchemaValidator(session).validate_cluster_session()

    def test_quorum_loss_only_warns(self, session: ScriptedSession) -> None:
        """Test that a group without quorum is reported but not raised."""
        session.expect_query(SCHEMA_VERSION_QUERY, [("1", "0", "1")])
        session.expect_query(METADATA_SUPPORTED_QUERY, [("1", "1")])
        session.expect_query(MEMBER_STATE_QUERY, [("ONLINE",)])
        session.expect_query(QUORUM_QUERY, [("1", "3")])

        _, quorum = SchemaValidator(session).validate_cluster_session()

        assert not quorum.has_quorum
        assert (quorum.online, quorum.total) == (1, 3)
