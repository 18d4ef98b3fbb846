"""Cluster metadata checks and group topology resolution."""

from __future__ import annotations

from .models import ClusterIdentity, Member, QuorumStatus, SchemaVersion, TopologySnapshot
from .monitor import TopologyMonitor
from .schema import SchemaValidator
from .topology import TopologyResolver

__all__ = [
    "ClusterIdentity",
    "Member",
    "QuorumStatus",
    "SchemaValidator",
    "SchemaVersion",
    "TopologyMonitor",
    "TopologyResolver",
    "TopologySnapshot",
]
