"""Command-line interface.

Usage::

    clusterroute bootstrap admin@db-1:3306 -d /opt/router --name r1

Logs go to stderr; the deployment summary is printed on stdout.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from . import __version__
from .bootstrap import DeploymentManager, DeploymentResult
from .config import get_settings
from .core.exceptions import ClusterRouteError, ConfigurationError
from .logger import configure_logging, get_logger

logger = get_logger(__name__)

# (command line option, bootstrap option key)
SSL_OPTIONS = (
    ("--ssl-mode", "ssl_mode"),
    ("--ssl-cipher", "ssl_cipher"),
    ("--tls-version", "tls_version"),
    ("--ssl-ca", "ssl_ca"),
    ("--ssl-capath", "ssl_capath"),
    ("--ssl-crl", "ssl_crl"),
    ("--ssl-crlpath", "ssl_crlpath"),
    ("--ssl-cert", "ssl_cert"),
    ("--ssl-key", "ssl_key"),
)

VALUE_OPTIONS = (
    "name",
    "base-port",
    "bind-address",
    "password-retries",
    "user",
    "bootstrap_socket",
    "socketsdir",
    "logdir",
    "rundir",
    "datadir",
)
SWITCH_OPTIONS = ("force", "use-sockets", "skip-tcp", "force-password-validation")


def collect_options(args: argparse.Namespace) -> tuple[dict[str, str], dict[str, list[str]]]:
    """Turn parsed arguments into bootstrap and multi-value option mappings.

    Raises
    ------
    ConfigurationError
        An ``--ssl-*`` option was given an empty value.
    """
    options: dict[str, str] = {}
    for key in VALUE_OPTIONS:
        value = getattr(args, key.replace("-", "_"))
        if value is not None:
            options[key] = value
    for key in SWITCH_OPTIONS:
        if getattr(args, key.replace("-", "_")):
            options[key] = "1"
    for flag, key in SSL_OPTIONS:
        value = getattr(args, key)
        if value is None:
            continue
        if not value:
            raise ConfigurationError(f"Value for option '{flag}' can't be empty.")
        options[key] = value

    multivalue: dict[str, list[str]] = {}
    if args.account_host:
        multivalue["account-host"] = list(args.account_host)
    return options, multivalue


def print_summary(result: DeploymentResult) -> None:
    options = result.options
    kind = "multi-master" if result.cluster.multi_master else "single-master"
    print(f"# MySQL Router configured for the InnoDB cluster '{result.cluster.cluster_name}' ({kind})")
    print(f"# Configuration written to {result.config_path}")
    if result.backup_created:
        print(f"# Previous configuration saved as {result.config_path.name}.bak")
    print()
    print("## Classic MySQL protocol connections to cluster:")
    for label, endpoint in (("Read/Write", options.rw_endpoint), ("Read/Only", options.ro_endpoint)):
        if endpoint.port:
            print(f"- {label} Connections: localhost:{endpoint.port}")
        if endpoint.socket:
            print(f"- {label} Connections: {Path(options.socketsdir) / endpoint.socket}")
    print()
    print("## X protocol connections to cluster:")
    for label, endpoint in (("Read/Write", options.rw_x_endpoint), ("Read/Only", options.ro_x_endpoint)):
        if endpoint.port:
            print(f"- {label} Connections: localhost:{endpoint.port}")
        if endpoint.socket:
            print(f"- {label} Connections: {Path(options.socketsdir) / endpoint.socket}")


def cmd_bootstrap(args: argparse.Namespace) -> int:
    try:
        options, multivalue = collect_options(args)
        manager = DeploymentManager(get_settings())
        result = manager.bootstrap(args.target, args.directory, options, multivalue)
    except ClusterRouteError as exc:
        logger.error("bootstrap_failed", error=str(exc), error_type=type(exc).__name__)
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    print_summary(result)
    return 0


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="clusterroute",
        description="Bootstrap MySQL Router deployments against an InnoDB cluster",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    bootstrap_parser = subparsers.add_parser(
        "bootstrap",
        help="Register a router with the cluster and write its configuration",
    )
    bootstrap_parser.add_argument("target", help="Cluster member as [mysql://][user[:password]@]host[:port]")
    bootstrap_parser.add_argument("-d", "--directory", required=True, help="Deployment directory")
    bootstrap_parser.add_argument("--name", help="Router instance name")
    bootstrap_parser.add_argument("--force", action="store_true", help="Replace an existing registration")
    bootstrap_parser.add_argument("--base-port", help="First of four consecutive listener ports")
    bootstrap_parser.add_argument("--bind-address", help="Address the listeners bind to")
    bootstrap_parser.add_argument("--use-sockets", action="store_true", help="Also listen on unix sockets")
    bootstrap_parser.add_argument("--skip-tcp", action="store_true", help="Do not listen on TCP ports")
    bootstrap_parser.add_argument("--bootstrap-socket", dest="bootstrap_socket", help="Connect through this socket")
    bootstrap_parser.add_argument("--password-retries", help="Attempts at a password the server accepts")
    bootstrap_parser.add_argument(
        "--force-password-validation",
        action="store_true",
        help="Never create the account from a password hash",
    )
    bootstrap_parser.add_argument(
        "--account-host",
        action="append",
        metavar="HOST",
        help="Host pattern for the router account (repeatable)",
    )
    for flag, key in SSL_OPTIONS:
        bootstrap_parser.add_argument(flag, dest=key)
    bootstrap_parser.add_argument("--user", help="OS user the router runs as")
    bootstrap_parser.add_argument("--socketsdir", help="Directory for the unix sockets (default: deployment directory)")
    bootstrap_parser.add_argument("--logdir", help="Log directory (default: <directory>/log)")
    bootstrap_parser.add_argument("--rundir", help="Runtime directory (default: <directory>/run)")
    bootstrap_parser.add_argument("--datadir", help="Data directory (default: <directory>/data)")
    bootstrap_parser.set_defaults(func=cmd_bootstrap)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    configure_logging()
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
