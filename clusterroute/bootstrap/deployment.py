"""Directory deployment of a bootstrapped router.

`DeploymentManager.bootstrap` drives the whole run:

1. validate the router name and every option that can be checked offline
2. parse the target and open a session (connect is retried on transport errors)
3. check the metadata schema, member state and quorum, then identify the cluster
4. decide between refreshing, replacing or refusing an existing deployment
5. open the keyring, provision the router account and store its password
6. render the configuration and write it with the start/stop scripts

Any failure after the deployment directory was created by this run removes
the directory again; a directory that existed before is left in place.
"""

from __future__ import annotations

import configparser
import os
import shutil
import socket
from collections.abc import Callable
from pathlib import Path

from pydantic import BaseModel, ConfigDict

from ..config.settings import RouterSettings
from ..core.exceptions import ConfigurationError, ConflictError, DeploymentError
from ..logger import bind_context, get_logger
from ..metadata.models import ClusterIdentity
from ..metadata.schema import SchemaValidator
from ..metadata.topology import TopologyResolver
from ..session.base import Session
from ..session.config import SslSettings
from ..session.mysql import MySQLSession
from .keyring import FileKeyring, load_or_create_master_key, validate_master_key
from .options import (
    BootstrapOptions,
    MultiValueOptions,
    RouterOptions,
    fill_options,
    parse_base_port,
    validate_bind_address,
    validate_ssl_mode,
)
from .passwords import GetpassPasswordSource, PasswordSource, RandomGenerator, SecretsRandomGenerator
from .provisioner import (
    AccountCredential,
    AccountProvisioner,
    ProvisionRequest,
    endpoint_attributes,
    parse_password_retries,
)
from .renderer import render
from .scripts import set_owner, write_scripts
from .target import parse_target, resolve_password, warn_on_no_ssl

logger = get_logger(__name__)

MAX_ROUTER_NAME_LENGTH = 255
RESERVED_ROUTER_NAME = "system"
DIRECTORY_MODE = 0o700
CONFIG_FILE_MODE = 0o600
LOG_DIR = "log"
RUN_DIR = "run"
DATA_DIR = "data"

type SessionFactory = Callable[[], Session]


class DeploymentRecord(BaseModel):
    """What an existing configuration file says about its router."""

    model_config = ConfigDict(frozen=True)

    router_id: int = 0
    router_name: str = ""
    cluster_name: str = ""


class DeploymentResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    directory: Path
    config_path: Path
    router_id: int
    router_name: str
    cluster: ClusterIdentity
    account_username: str
    options: RouterOptions
    backup_created: bool = False


def validate_router_name(name: str) -> None:
    """Reject reserved, multi-line and overlong router names. Empty is allowed."""
    if name == RESERVED_ROUTER_NAME:
        raise ConfigurationError(f"Router name '{name}' is reserved")
    if "\n" in name or "\r" in name:
        raise ConfigurationError(f"Router name '{name}' contains invalid characters.")
    if len(name) > MAX_ROUTER_NAME_LENGTH:
        raise ConfigurationError(f"Router name '{name}' too long (max {MAX_ROUTER_NAME_LENGTH}).")


def validate_offline_options(options: BootstrapOptions, default_retries: int) -> int:
    """Check every option that needs no server; return the password retry limit."""
    retries = default_retries
    if "password-retries" in options:
        retries = parse_password_retries(options["password-retries"])
    if "base-port" in options:
        parse_base_port(options["base-port"])
    if "bind-address" in options:
        validate_bind_address(options["bind-address"])
    if "ssl_mode" in options:
        validate_ssl_mode(options["ssl_mode"])
    return retries


def read_deployment_record(config_path: Path) -> DeploymentRecord:
    """Read router id, name and cluster from an existing configuration.

    A missing or empty file yields router id 0.
    """
    if not config_path.exists():
        return DeploymentRecord()
    parser = configparser.ConfigParser(interpolation=None, strict=False)
    try:
        parser.read(config_path, encoding="utf-8")
    except configparser.Error as exc:
        raise DeploymentError(f"Could not read existing configuration '{config_path}': {exc}") from exc

    router_name = parser.defaults().get("name", "")
    for section in parser.sections():
        kind, _, cluster_name = section.partition(":")
        if kind != "metadata_cache":
            continue
        raw_id = parser.get(section, "router_id", fallback="0")
        router_id = int(raw_id) if raw_id.isdigit() else 0
        return DeploymentRecord(router_id=router_id, router_name=router_name, cluster_name=cluster_name)
    return DeploymentRecord(router_name=router_name)


def check_existing_deployment(record: DeploymentRecord, cluster_name: str, force: bool) -> int:
    """Return the router id to reuse for ``cluster_name``, 0 to register anew.

    Raises
    ------
    ConflictError
        The deployment belongs to another cluster and ``force`` is not set.
    """
    if not record.cluster_name or record.cluster_name == cluster_name:
        return record.router_id
    if not force:
        raise ConflictError(
            f"The given Router instance is already configured for a cluster named '{record.cluster_name}'.\n"
            "If you'd like to replace it, please use the --force option while bootstrapping."
        )
    logger.warning("replacing_deployment", previous_cluster=record.cluster_name, cluster=cluster_name)
    return 0


def write_config(config_path: Path, content: str) -> bool:
    """Replace ``config_path`` with ``content``; return whether a ``.bak`` was made.

    The previous file is copied to ``<name>.bak`` only when its content changes.
    """
    tmp_path = config_path.with_name(config_path.name + ".tmp")
    tmp_path.write_text(content, encoding="utf-8")
    os.chmod(tmp_path, CONFIG_FILE_MODE)

    backup_created = False
    if config_path.exists() and config_path.read_text(encoding="utf-8") != content:
        shutil.copy2(config_path, config_path.with_name(config_path.name + ".bak"))
        backup_created = True
    os.replace(tmp_path, config_path)
    return backup_created


def ssl_settings_from_options(options: BootstrapOptions) -> SslSettings:
    return SslSettings(
        mode=options.get("ssl_mode"),
        cipher=options.get("ssl_cipher"),
        tls_version=options.get("tls_version"),
        ca=options.get("ssl_ca"),
        capath=options.get("ssl_capath"),
        crl=options.get("ssl_crl"),
        crlpath=options.get("ssl_crlpath"),
        cert=options.get("ssl_cert"),
        key=options.get("ssl_key"),
    )


class DeploymentManager:
    """Bootstraps a router into a self-contained directory.

    Parameters
    ----------
    settings
        Installation defaults (file names, timeouts, retry policy).
    session_factory
        Creates the unconnected session used for the whole run.
    password_source
        Answers password prompts (server password, master key).
    random
        Source of account name suffixes and passwords.
    hostname
        Name this host is registered under in the cluster metadata.

    Examples
    --------
    >>> manager = DeploymentManager(RouterSettings())
    >>> result = manager.bootstrap("admin@db-1:3306", "/opt/router", {"name": "r1"})
    >>> result.config_path
    PosixPath('/opt/router/mysqlrouter.conf')
    """

    __slots__ = ("_hostname", "_password_source", "_random", "_session_factory", "_settings")

    def __init__(
        self,
        settings: RouterSettings,
        session_factory: SessionFactory | None = None,
        password_source: PasswordSource | None = None,
        random: RandomGenerator | None = None,
        hostname: str | None = None,
    ) -> None:
        self._settings = settings
        self._session_factory = session_factory or (lambda: MySQLSession(settings.connect_retry))
        self._password_source = password_source or GetpassPasswordSource()
        self._random = random or SecretsRandomGenerator()
        self._hostname = hostname or socket.gethostname()

    def bootstrap(
        self,
        target: str,
        directory: str | Path,
        options: BootstrapOptions,
        multivalue_options: MultiValueOptions | None = None,
    ) -> DeploymentResult:
        """Bootstrap a router deployment in ``directory`` against ``target``.

        Raises
        ------
        ConfigurationError
            Invalid name or option, raised before connecting.
        MetadataError
            The target is not a usable cluster member.
        ConflictError
            ``directory`` holds a deployment for another cluster.
        KeyringError
            Invalid master key or master key file.
        ProvisioningError
            The router account could not be created.
        DeploymentError
            The deployment directory or its files could not be written.
        SessionError
            The connection or a statement failed.
        """
        router_name = options.get("name", "")
        validate_router_name(router_name)
        password_retries = validate_offline_options(options, self._settings.password_retries)

        bootstrap_target = parse_target(target, options.get("bootstrap_socket"))
        password = resolve_password(bootstrap_target, self._password_source)

        prompted_master_key = ""
        if not self._settings.master_key_file_name:
            prompted_master_key = validate_master_key(
                self._password_source.prompt("Please provide an encryption key")
            )

        session = self._session_factory()
        session.connect(
            bootstrap_target.connection_settings(
                password,
                ssl=ssl_settings_from_options(options),
                connect_timeout=self._settings.connect_timeout,
                read_timeout=self._settings.read_timeout,
            )
        )
        try:
            SchemaValidator(session).validate_cluster_session()
            warn_on_no_ssl(session, options.get("ssl_mode"))
            identity = TopologyResolver(session).fetch_bootstrap_servers()
            bind_context(cluster=identity.cluster_name)
            return self._deploy(
                session,
                identity,
                Path(directory),
                options,
                multivalue_options or {},
                router_name,
                password_retries,
                prompted_master_key,
            )
        finally:
            session.close()

    def _deploy(
        self,
        session: Session,
        identity: ClusterIdentity,
        directory: Path,
        options: BootstrapOptions,
        multivalue_options: MultiValueOptions,
        router_name: str,
        password_retries: int,
        prompted_master_key: str,
    ) -> DeploymentResult:
        settings = self._settings
        if directory.exists() and not directory.is_dir():
            raise DeploymentError(f"Can't use '{directory}' as deployment directory: not a directory")
        config_path = directory / settings.config_file_name
        record = read_deployment_record(config_path)
        router_id = check_existing_deployment(record, identity.cluster_name, "force" in options)
        router_name = router_name or record.router_name

        existed = directory.exists()
        provisioner = AccountProvisioner(session, self._random, settings.password_length)
        credential: AccountCredential | None = None
        try:
            directory.mkdir(mode=DIRECTORY_MODE, parents=True, exist_ok=True)
            absolute = directory.resolve()
            data_dir = Path(options["datadir"]) if options.get("datadir") else absolute / DATA_DIR
            for subdir in (
                Path(options["logdir"]) if options.get("logdir") else absolute / LOG_DIR,
                Path(options["rundir"]) if options.get("rundir") else absolute / RUN_DIR,
                data_dir,
            ):
                subdir.mkdir(mode=DIRECTORY_MODE, parents=True, exist_ok=True)

            master_key_path: Path | None = None
            if prompted_master_key:
                master_key = prompted_master_key
            else:
                master_key_path = absolute / settings.master_key_file_name
                master_key, _ = load_or_create_master_key(master_key_path)
            keyring = FileKeyring(data_dir / settings.keyring_file_name, master_key)

            effective_options = dict(options)
            if "use-sockets" in options and not options.get("socketsdir"):
                effective_options["socketsdir"] = str(absolute)
            router_options = fill_options(
                identity.multi_master,
                effective_options,
                connect_timeout=settings.connect_timeout,
                read_timeout=settings.read_timeout,
                metadata_ttl=settings.metadata_ttl,
                keyring_file_path=str(keyring.path),
                master_key_file_path=str(master_key_path) if master_key_path else "",
            )

            result = provisioner.provision(
                ProvisionRequest(
                    hostname=self._hostname,
                    router_name=router_name,
                    router_id=router_id,
                    force="force" in options,
                    account_hosts=tuple(multivalue_options.get("account-host") or ("%",)),
                    password_retries=password_retries,
                    force_password_validation="force-password-validation" in options,
                    endpoints=endpoint_attributes(router_options),
                )
            )
            credential = result.credential
            keyring.store(credential.username, credential.password.get_secret_value())

            run_as_user = options.get("user", "")
            content = render(identity, router_options, result.router_id, router_name, run_as_user, credential.username)
            backup_created = write_config(config_path, content)
            write_scripts(absolute, settings.program_name, settings.config_file_name, run_as_user)
            if run_as_user:
                for path in (absolute, data_dir, config_path, keyring.path, master_key_path):
                    if path is not None:
                        set_owner(path, run_as_user)
        except OSError as exc:
            self._cleanup(directory, existed, config_path, provisioner, credential)
            raise DeploymentError(f"Could not deploy router to '{directory}': {exc}") from exc
        except Exception:
            self._cleanup(directory, existed, config_path, provisioner, credential)
            raise

        logger.info(
            "bootstrap_completed",
            directory=str(absolute),
            router_id=result.router_id,
            router_name=router_name,
            multi_master=identity.multi_master,
            backup_created=backup_created,
        )
        return DeploymentResult(
            directory=absolute,
            config_path=config_path,
            router_id=result.router_id,
            router_name=router_name,
            cluster=identity,
            account_username=credential.username,
            options=router_options,
            backup_created=backup_created,
        )

    @staticmethod
    def _cleanup(
        directory: Path,
        existed: bool,
        config_path: Path,
        provisioner: AccountProvisioner,
        credential: AccountCredential | None,
    ) -> None:
        if credential is not None:
            provisioner.revoke(credential)
        if existed:
            config_path.with_name(config_path.name + ".tmp").unlink(missing_ok=True)
            return
        try:
            shutil.rmtree(directory)
        except OSError as exc:
            logger.warning("deployment_cleanup_failed", directory=str(directory), error=str(exc))
        else:
            logger.info("deployment_directory_removed", directory=str(directory))
