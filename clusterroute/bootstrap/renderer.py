"""Render the router INI configuration.

`render` is a pure function of its arguments: identical inputs give
byte-identical output, so an unchanged deployment produces no backup file
on re-bootstrap.
"""

from __future__ import annotations

from ..metadata.models import ClusterIdentity
from .options import DEFAULT_BIND_ADDRESS, Endpoint, RouterOptions

HEADER = "# File automatically generated during MySQL Router bootstrap"

PROTOCOL_CLASSIC = "classic"
PROTOCOL_X = "x"


def _routing_section(
    name: str,
    endpoint: Endpoint,
    options: RouterOptions,
    destination: str,
    role: str,
    protocol: str,
) -> list[str]:
    lines = [f"[routing:{name}]"]
    if endpoint.port > 0:
        lines.append(f"bind_address={options.bind_address or DEFAULT_BIND_ADDRESS}")
        lines.append(f"bind_port={endpoint.port}")
    if endpoint.socket:
        lines.append(f"socket={options.socketsdir}/{endpoint.socket}")
    lines.extend(
        [
            f"destinations=metadata-cache://{destination}?role={role}",
            "routing_strategy=round-robin",
            f"protocol={protocol}",
            "",
        ]
    )
    return lines


def render(
    identity: ClusterIdentity,
    options: RouterOptions,
    router_id: int,
    name: str = "",
    run_as_user: str = "",
    account_username: str = "",
) -> str:
    """Build the configuration file text.

    Parameters
    ----------
    identity
        Cluster and replicaset the router serves.
    options
        Normalised options from `fill_options`.
    router_id
        Id of the router row in the cluster metadata.
    name
        Router name, omitted when empty.
    run_as_user
        OS user the router runs as, omitted when empty.
    account_username
        Database account the metadata cache connects with.

    Returns
    -------
    str
        Complete file contents ending with a blank line.
    """
    cluster = identity.cluster_name
    lines = [HEADER, "[DEFAULT]"]
    if name:
        lines.append(f"name={name}")
    if run_as_user:
        lines.append(f"user={run_as_user}")
    for key, value in (
        ("logging_folder", options.override_logdir),
        ("runtime_folder", options.override_rundir),
        ("data_folder", options.override_datadir),
        ("keyring_path", options.keyring_file_path),
        ("master_key_path", options.master_key_file_path),
    ):
        if value:
            lines.append(f"{key}={value}")
    lines.extend(
        [
            f"connect_timeout={options.connect_timeout}",
            f"read_timeout={options.read_timeout}",
            "",
            "[logger]",
            "level = INFO",
            "",
            f"[metadata_cache:{cluster}]",
            f"router_id={router_id}",
            f"bootstrap_server_addresses={identity.bootstrap_server_addresses}",
            f"user={account_username}",
            f"metadata_cluster={cluster}",
            f"ttl={options.metadata_ttl}",
        ]
    )
    lines.extend(f"{key}={value}" for key, value in options.ssl_options.items())
    lines.append("")

    prefix = f"{cluster}_{identity.replicaset_name}"
    destination = f"{cluster}/{identity.replicaset_name}"
    for suffix, endpoint, role, protocol in (
        ("rw", options.rw_endpoint, "PRIMARY", PROTOCOL_CLASSIC),
        ("ro", options.ro_endpoint, "SECONDARY", PROTOCOL_CLASSIC),
        ("x_rw", options.rw_x_endpoint, "PRIMARY", PROTOCOL_X),
        ("x_ro", options.ro_x_endpoint, "SECONDARY", PROTOCOL_X),
    ):
        if endpoint.enabled:
            lines.extend(_routing_section(f"{prefix}_{suffix}", endpoint, options, destination, role, protocol))

    return "\n".join(lines) + "\n"
