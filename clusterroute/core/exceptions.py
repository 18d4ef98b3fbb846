"""Exception hierarchy for topology resolution and router bootstrap.

Every error raised by this package derives from `ClusterRouteError` so callers
can catch one base type. The subclasses mirror where a bootstrap run can fail:

- `ConfigurationError`: bad user input, raised before any network call
- `SessionError`: transport/SQL failure carrying the server error code
- `MetadataError`: unexpected or unsupported cluster metadata
- `ProvisioningError`: router account could not be (re)created
- `DeploymentError`: on-disk deployment cannot be written
"""

from __future__ import annotations


class ClusterRouteError(Exception):
    """Base class for all clusterroute errors."""


class ConfigurationError(ClusterRouteError, ValueError):
    """Invalid bootstrap option or setting."""


class SessionError(ClusterRouteError):
    """A session operation failed.

    Parameters
    ----------
    message
        Error text as reported by the server or driver.
    code
        Numeric server error code (0 when unknown).
    """

    def __init__(self, message: str, code: int = 0) -> None:
        super().__init__(message)
        self.message = message
        self.code = code

    def __str__(self) -> str:
        return self.message


class MetadataError(ClusterRouteError):
    """Cluster metadata could not be interpreted."""


class MetadataFormatError(MetadataError):
    """A metadata or status query returned an unexpected row shape or NULL field."""


class UnsupportedSchemaError(MetadataError):
    """Metadata schema version is outside the supported range."""


class MetadataNotSupportedError(MetadataError):
    """Metadata describes a layout the router cannot be bootstrapped against."""


class ClusterStateError(MetadataError):
    """Bootstrap server is not in a state that allows bootstrapping."""


class AmbiguousTargetError(MetadataError):
    """More than one cluster or replicaset matched the bootstrap query."""


class NoClusterError(MetadataError):
    """No cluster or replicaset is defined in the metadata."""


class ProvisioningError(ClusterRouteError):
    """Router account provisioning failed."""


class AccountCleanupError(ProvisioningError):
    """Existing router accounts could not be inspected or removed."""


class AccountCreationError(ProvisioningError):
    """Router account could not be created or granted privileges."""


class PasswordPolicyError(ProvisioningError):
    """Server password policy rejected every generated password."""


class DeploymentError(ClusterRouteError):
    """Deployment directory or its files could not be prepared."""


class ConflictError(DeploymentError):
    """Target directory already holds a deployment for a different cluster."""


class KeyringError(DeploymentError):
    """Keyring or master key is invalid."""
