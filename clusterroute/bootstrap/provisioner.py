"""Router account provisioning.

`AccountProvisioner` is the only component that modifies the cluster. One
`provision` call registers the router in the cluster metadata, replaces its
database account and records the router's endpoints, all inside a single
transaction. Account creation follows a small state machine:

====================  ======================  ============================
attempt               server error            next step
====================  ======================  ============================
HASHED                1524 plugin not loaded  restart, try PLAIN
HASHED                1819 password policy    restart, try PLAIN
PLAIN                 1819 password policy    restart, new password, PLAIN
any                   anything else           fail
====================  ======================  ============================

"restart" is ``ROLLBACK`` + ``START TRANSACTION`` followed by re-running the
registration and cleanup steps the rollback discarded.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import StrEnum
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict, Field, SecretStr

from ..core.exceptions import (
    AccountCleanupError,
    AccountCreationError,
    ConfigurationError,
    PasswordPolicyError,
    ProvisioningError,
    SessionError,
)
from ..logger import get_logger
from ..session.base import Session, Transaction, quote
from .options import Endpoint, RouterOptions
from .passwords import RandomGenerator, native_password_hash

logger = get_logger(__name__)

ER_DUP_ENTRY = 1062
ER_PLUGIN_IS_NOT_LOADED = 1524
ER_NOT_VALID_PASSWORD = 1819

MIN_PASSWORD_RETRIES = 1
MAX_PASSWORD_RETRIES = 10000
DEFAULT_PASSWORD_RETRIES = 5
USERNAME_SUFFIX_LENGTH = 12

GRANT_TARGETS = (
    "mysql_innodb_cluster_metadata.*",
    "performance_schema.replication_group_members",
    "performance_schema.replication_group_member_stats",
)


class AttemptKind(StrEnum):
    HASHED = "hashed"
    PLAIN = "plain"


class Action(StrEnum):
    FALLBACK_TO_PLAIN = "fallback_to_plain"
    RETRY_WITH_NEW_PASSWORD = "retry_with_new_password"
    FAIL = "fail"


TRANSITIONS: Mapping[tuple[AttemptKind, int], Action] = MappingProxyType(
    {
        (AttemptKind.HASHED, ER_PLUGIN_IS_NOT_LOADED): Action.FALLBACK_TO_PLAIN,
        (AttemptKind.HASHED, ER_NOT_VALID_PASSWORD): Action.FALLBACK_TO_PLAIN,
        (AttemptKind.PLAIN, ER_NOT_VALID_PASSWORD): Action.RETRY_WITH_NEW_PASSWORD,
    }
)


def next_action(kind: AttemptKind, error_code: int) -> Action:
    return TRANSITIONS.get((kind, error_code), Action.FAIL)


def parse_password_retries(value: str) -> int:
    """Validate ``--password-retries``.

    Raises
    ------
    ConfigurationError
        Unless ``value`` is an integer from 1 to 10000.
    """
    error = ConfigurationError(
        f"Invalid password-retries value '{value}'; please pick a value from "
        f"{MIN_PASSWORD_RETRIES} to {MAX_PASSWORD_RETRIES}"
    )
    if not (value.isascii() and value.isdigit()):
        raise error
    retries = int(value)
    if not MIN_PASSWORD_RETRIES <= retries <= MAX_PASSWORD_RETRIES:
        raise error
    return retries


def _endpoint_attribute(endpoint: Endpoint, socketsdir: str) -> str:
    if endpoint.port > 0:
        return str(endpoint.port)
    if endpoint.socket:
        return f"{socketsdir}/{endpoint.socket}"
    return ""


def endpoint_attributes(options: RouterOptions) -> dict[str, str]:
    """Endpoint payload stored in the router's metadata row."""
    return {
        "RWEndpoint": _endpoint_attribute(options.rw_endpoint, options.socketsdir),
        "ROEndpoint": _endpoint_attribute(options.ro_endpoint, options.socketsdir),
        "RWXEndpoint": _endpoint_attribute(options.rw_x_endpoint, options.socketsdir),
        "ROXEndpoint": _endpoint_attribute(options.ro_x_endpoint, options.socketsdir),
    }


class AccountCredential(BaseModel):
    """Router database account. The password never appears in repr or logs."""

    model_config = ConfigDict(frozen=True)

    username: str
    hosts: tuple[str, ...] = ("%",)
    password: SecretStr

    @property
    def accounts(self) -> str:
        """``user@'host'`` list for account management statements."""
        return ",".join(f"{self.username}@{quote(host)}" for host in self.hosts)


class ProvisionRequest(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    hostname: str
    router_name: str = ""
    router_id: int = Field(default=0, ge=0)
    force: bool = False
    account_hosts: tuple[str, ...] = Field(default=("%",), min_length=1)
    password_retries: int = Field(
        default=DEFAULT_PASSWORD_RETRIES, ge=MIN_PASSWORD_RETRIES, le=MAX_PASSWORD_RETRIES
    )
    force_password_validation: bool = False
    endpoints: dict[str, str] = Field(default_factory=dict)


class ProvisionResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    router_id: int
    credential: AccountCredential


class AccountProvisioner:
    """Registers a router and creates its account on the cluster.

    Parameters
    ----------
    session
        Open session to a writable cluster member.
    random
        Source of the account name suffix and passwords.
    password_length
        Length of generated passwords.

    Examples
    --------
    >>> provisioner = AccountProvisioner(session, SecretsRandomGenerator())
    >>> result = provisioner.provision(ProvisionRequest(hostname="app-1", router_name="r1"))
    >>> result.credential.username
    'mysql_router7_k2c9x0a1b3d4'
    """

    __slots__ = ("_password_length", "_random", "_session")

    def __init__(self, session: Session, random: RandomGenerator, password_length: int = 32) -> None:
        self._session = session
        self._random = random
        self._password_length = password_length

    def provision(self, request: ProvisionRequest) -> ProvisionResult:
        """Run the whole provisioning transaction.

        Raises
        ------
        AccountCleanupError
            Existing accounts with the same name could not be inspected or dropped.
        AccountCreationError
            ``CREATE USER`` or a ``GRANT`` failed with a non-retryable error.
        PasswordPolicyError
            Every generated password was rejected by the server policy.
        SessionError
            Any other statement failed. Accounts created before the failure are dropped.
        """
        credential: AccountCredential | None = None
        try:
            with Transaction(self._session) as tx:
                router_id, username, password = self._create_account(request, tx)
                credential = AccountCredential(
                    username=username, hosts=request.account_hosts, password=SecretStr(password)
                )
                self._grant(credential)
                self._update_router_attributes(router_id, username, request.endpoints)
        except Exception:
            # CREATE USER commits implicitly; ROLLBACK does not remove the accounts
            if credential is not None:
                self.revoke(credential)
            raise

        logger.info("router_account_created", router_id=router_id, username=username, hosts=list(credential.hosts))
        return ProvisionResult(router_id=router_id, credential=credential)

    def _create_account(self, request: ProvisionRequest, tx: Transaction) -> tuple[int, str, str]:
        """Register the router and create its account.

        Returns the router id, the account name and the accepted password.
        """
        suffix = self._random.generate_identifier(USERNAME_SUFFIX_LENGTH)
        password = self._random.generate_strong_password(self._password_length)
        kind = AttemptKind.PLAIN if request.force_password_validation else AttemptKind.HASHED
        plain_attempts = 0

        while True:
            router_id = self.register_router(request)
            username = f"mysql_router{router_id}_{suffix}"
            self.delete_account_for_all_hosts(username)

            if kind is AttemptKind.PLAIN:
                plain_attempts += 1
            try:
                self._create_user(username, request.account_hosts, password, kind)
                return router_id, username, password
            except SessionError as exc:
                action = next_action(kind, exc.code)
                if action is Action.FAIL:
                    raise AccountCreationError(f"Error creating MySQL account for router: {exc.message}") from exc
                if action is Action.RETRY_WITH_NEW_PASSWORD:
                    if plain_attempts >= request.password_retries:
                        raise PasswordPolicyError(
                            f"Error creating user account: {exc.message}\n"
                            " Try to decrease the validate_password rules and try the operation again."
                        ) from exc
                    password = self._random.generate_strong_password(self._password_length)
                logger.info(
                    "account_creation_retry",
                    attempt=str(kind),
                    error_code=exc.code,
                    action=str(action),
                    plain_attempts=plain_attempts,
                )
                tx.restart()
                kind = AttemptKind.PLAIN

    def register_router(self, request: ProvisionRequest) -> int:
        """Return the router id, registering the router when needed.

        An id carried over from an existing deployment is kept while the
        metadata still lists it for this host.
        """
        if request.router_id > 0:
            row = self._session.query_one(
                "SELECT h.host_id, h.host_name FROM mysql_innodb_cluster_metadata.routers r"
                " JOIN mysql_innodb_cluster_metadata.hosts h ON r.host_id = h.host_id"
                f" WHERE r.router_id = {request.router_id}"
            )
            if row is not None and row[1] == request.hostname:
                return request.router_id
            logger.warning("router_id_not_registered", router_id=request.router_id, hostname=request.hostname)

        host_id = self._ensure_host(request.hostname)
        try:
            return self._session.execute(
                "INSERT INTO mysql_innodb_cluster_metadata.routers (host_id, router_name)"
                f" VALUES ({host_id}, {quote(request.router_name)})"
            )
        except SessionError as exc:
            if exc.code != ER_DUP_ENTRY:
                raise
            if not request.force:
                raise ProvisioningError(
                    f"It appears that a router instance named '{request.router_name}' has been previously "
                    "configured in this host. If that instance no longer exists, use the --force option "
                    "to overwrite it."
                ) from exc

        row = self._session.query_one(
            "SELECT router_id FROM mysql_innodb_cluster_metadata.routers"
            f" WHERE host_id = {host_id} AND router_name = {quote(request.router_name)}"
        )
        if row is None or row[0] is None:
            raise ProvisioningError(f"Router '{request.router_name}' could not be found in the cluster metadata")
        return int(row[0])

    def _ensure_host(self, hostname: str) -> int:
        row = self._session.query_one(
            "SELECT host_id, host_name FROM mysql_innodb_cluster_metadata.hosts"
            f" WHERE host_name = {quote(hostname)} LIMIT 1"
        )
        if row is not None and row[0] is not None:
            return int(row[0])
        return self._session.execute(
            "INSERT INTO mysql_innodb_cluster_metadata.hosts (host_name, location, attributes)"
            f" VALUES ({quote(hostname)}, '', JSON_OBJECT('registeredFrom', 'mysql-router'))"
        )

    def delete_account_for_all_hosts(self, username: str) -> None:
        """Drop every ``username@<any host>`` account.

        Raises
        ------
        AccountCleanupError
            If the accounts cannot be counted or dropped.
        """
        try:
            row = self._session.query_one(f"SELECT COUNT(*) FROM mysql.user WHERE user = {quote(username)}")
        except SessionError as exc:
            raise AccountCleanupError(f"Error querying for existing Router accounts: {exc.message}") from exc

        count = int(row[0]) if row is not None and row[0] else 0
        if count == 0:
            return

        logger.info("dropping_existing_accounts", username=username, count=count)
        try:
            self._session.execute(
                "SELECT CONCAT('DROP USER ', GROUP_CONCAT(QUOTE(user), '@', QUOTE(host))) INTO @drop_user_sql"
                f" FROM mysql.user WHERE user LIKE {quote(username)}"
            )
            self._session.execute("PREPARE drop_user_stmt FROM @drop_user_sql")
            self._session.execute("EXECUTE drop_user_stmt")
            self._session.execute("DEALLOCATE PREPARE drop_user_stmt")
        except SessionError as exc:
            raise AccountCleanupError(f"Error removing old MySQL account for router: {exc.message}") from exc

    def _create_user(self, username: str, hosts: tuple[str, ...], password: str, kind: AttemptKind) -> None:
        if kind is AttemptKind.HASHED:
            auth = f"IDENTIFIED WITH mysql_native_password AS {quote(native_password_hash(password))}"
        else:
            auth = f"IDENTIFIED BY {quote(password)}"
        self._session.execute("CREATE USER " + ", ".join(f"{username}@{quote(host)} {auth}" for host in hosts))

    def _grant(self, credential: AccountCredential) -> None:
        try:
            for host in credential.hosts:
                for target in GRANT_TARGETS:
                    self._session.execute(f"GRANT SELECT ON {target} TO {credential.username}@{quote(host)}")
        except SessionError as exc:
            raise AccountCreationError(f"Error creating MySQL account for router: {exc.message}") from exc

    def revoke(self, credential: AccountCredential) -> None:
        """Drop the accounts of ``credential``; failures are logged."""
        try:
            self._session.execute(f"DROP USER IF EXISTS {credential.accounts}")
        except SessionError as exc:
            logger.warning("account_drop_failed", username=credential.username, error=exc.message)

    def _update_router_attributes(self, router_id: int, username: str, endpoints: Mapping[str, str]) -> None:
        attributes = {**endpoints, "MetadataUser": username}
        payload = ", ".join(f"{quote(key)}, {quote(value)}" for key, value in attributes.items())
        self._session.execute(
            f"UPDATE mysql_innodb_cluster_metadata.routers SET attributes = JSON_OBJECT({payload})"
            f" WHERE router_id = {router_id}"
        )
