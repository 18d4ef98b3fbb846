"""Cluster topology resolution and router bootstrap for MySQL group replication."""

from __future__ import annotations

from .bootstrap import DeploymentManager, DeploymentResult
from .config import RouterSettings, get_settings
from .core import ClusterRouteError
from .metadata import TopologyMonitor, TopologyResolver, TopologySnapshot

__version__ = "0.1.0"

__all__ = [
    "ClusterRouteError",
    "DeploymentManager",
    "DeploymentResult",
    "RouterSettings",
    "TopologyMonitor",
    "TopologyResolver",
    "TopologySnapshot",
    "__version__",
    "get_settings",
]
