"""Router bootstrap: options, account provisioning, keyring and deployment."""

from __future__ import annotations

from .deployment import DeploymentManager, DeploymentRecord, DeploymentResult, validate_router_name
from .keyring import FileKeyring, SecretStore
from .options import BootstrapOptions, Endpoint, MultiValueOptions, RouterOptions, fill_options
from .passwords import (
    GetpassPasswordSource,
    PasswordSource,
    RandomGenerator,
    SecretsRandomGenerator,
    StaticPasswordSource,
)
from .provisioner import AccountCredential, AccountProvisioner, ProvisionRequest, ProvisionResult
from .renderer import render
from .target import BootstrapTarget, parse_target

__all__ = [
    "AccountCredential",
    "AccountProvisioner",
    "BootstrapOptions",
    "BootstrapTarget",
    "DeploymentManager",
    "DeploymentRecord",
    "DeploymentResult",
    "Endpoint",
    "FileKeyring",
    "GetpassPasswordSource",
    "MultiValueOptions",
    "PasswordSource",
    "ProvisionRequest",
    "ProvisionResult",
    "RandomGenerator",
    "RouterOptions",
    "SecretStore",
    "SecretsRandomGenerator",
    "StaticPasswordSource",
    "fill_options",
    "parse_target",
    "render",
    "validate_router_name",
]
