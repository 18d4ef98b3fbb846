"""Core module exports."""

from __future__ import annotations

from .enums import MemberRole, MemberState, SslMode, TopologyMode, TopologyType
from .exceptions import (
    AccountCleanupError,
    AccountCreationError,
    AmbiguousTargetError,
    ClusterRouteError,
    ClusterStateError,
    ConfigurationError,
    ConflictError,
    DeploymentError,
    KeyringError,
    MetadataError,
    MetadataFormatError,
    MetadataNotSupportedError,
    NoClusterError,
    PasswordPolicyError,
    ProvisioningError,
    SessionError,
    UnsupportedSchemaError,
)

__all__ = [
    "AccountCleanupError",
    "AccountCreationError",
    "AmbiguousTargetError",
    "ClusterRouteError",
    "ClusterStateError",
    "ConfigurationError",
    "ConflictError",
    "DeploymentError",
    "KeyringError",
    "MemberRole",
    "MemberState",
    "MetadataError",
    "MetadataFormatError",
    "MetadataNotSupportedError",
    "NoClusterError",
    "PasswordPolicyError",
    "ProvisioningError",
    "SessionError",
    "SslMode",
    "TopologyMode",
    "TopologyType",
    "UnsupportedSchemaError",
]
