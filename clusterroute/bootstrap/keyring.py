"""Encrypted on-disk store for the router account password.

The keyring file is ``<salt><Fernet token>``; the Fernet key is derived from
the master key with PBKDF2-HMAC-SHA256. The master key itself lives in a
separate file next to the deployment, or is prompted for when no master key
file is configured.
"""

from __future__ import annotations

import base64
import json
import os
import secrets
import string
from pathlib import Path
from typing import Protocol

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from ..core.exceptions import KeyringError
from ..logger import get_logger

logger = get_logger(__name__)

MAX_MASTER_KEY_LENGTH = 255
GENERATED_MASTER_KEY_LENGTH = 32
SALT_LENGTH = 16
KDF_ITERATIONS = 390_000
PRIVATE_FILE_MODE = 0o600


class SecretStore(Protocol):
    def store(self, key: str, value: str) -> None: ...

    def retrieve(self, key: str) -> str: ...


def validate_master_key(master_key: str) -> str:
    if not master_key:
        raise KeyringError("Keyring encryption key must not be empty")
    if len(master_key.encode("utf-8")) > MAX_MASTER_KEY_LENGTH:
        raise KeyringError(f"Keyring encryption key is too long (max {MAX_MASTER_KEY_LENGTH} characters)")
    return master_key


def write_private_file(path: Path, data: bytes) -> None:
    """Write ``data`` readable by the owner only, replacing ``path`` atomically."""
    tmp_path = path.with_name(path.name + ".tmp")
    fd = os.open(tmp_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, PRIVATE_FILE_MODE)
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
        os.chmod(tmp_path, PRIVATE_FILE_MODE)
        os.replace(tmp_path, path)
    except OSError:
        tmp_path.unlink(missing_ok=True)
        raise


def load_or_create_master_key(path: Path) -> tuple[str, bool]:
    """Read the master key from ``path``, creating a random one if missing.

    Returns
    -------
    tuple[str, bool]
        The key and whether the file was created by this call.

    Raises
    ------
    KeyringError
        If ``path`` names a directory or an empty file, or holds a key longer
        than `MAX_MASTER_KEY_LENGTH`.
    """
    if path.is_dir() or path.name in ("", ".", ".."):
        raise KeyringError(f"Invalid master key file '{path}'")

    if path.exists():
        try:
            master_key = path.read_text(encoding="utf-8").strip()
        except (OSError, UnicodeDecodeError) as exc:
            raise KeyringError(f"Invalid master key file '{path}': {exc}") from exc
        if not master_key:
            raise KeyringError(f"Invalid master key file '{path}'")
        return validate_master_key(master_key), False

    alphabet = string.ascii_letters + string.digits
    master_key = "".join(secrets.choice(alphabet) for _ in range(GENERATED_MASTER_KEY_LENGTH))
    path.parent.mkdir(parents=True, exist_ok=True)
    write_private_file(path, master_key.encode("utf-8"))
    logger.info("master_key_created", path=str(path))
    return master_key, True


def _derive_key(master_key: str, salt: bytes) -> bytes:
    kdf = PBKDF2HMAC(algorithm=hashes.SHA256(), length=32, salt=salt, iterations=KDF_ITERATIONS)
    return base64.urlsafe_b64encode(kdf.derive(master_key.encode("utf-8")))


class FileKeyring:
    """Fernet-encrypted ``key -> secret`` map persisted to a single file.

    Parameters
    ----------
    path
        Keyring file location.
    master_key
        Secret the file encryption key is derived from.

    Examples
    --------
    >>> keyring = FileKeyring(Path("data/keyring"), "s3cr3t")
    >>> keyring.store("mysql_router4_abc", "password")
    >>> FileKeyring(Path("data/keyring"), "s3cr3t").retrieve("mysql_router4_abc")
    'password'
    """

    __slots__ = ("_entries", "_fernet", "_path", "_salt")

    def __init__(self, path: Path, master_key: str) -> None:
        self._path = path
        validate_master_key(master_key)
        self._entries: dict[str, str] = {}
        if path.exists():
            blob = path.read_bytes()
            self._salt, token = blob[:SALT_LENGTH], blob[SALT_LENGTH:]
            self._fernet = Fernet(_derive_key(master_key, self._salt))
            try:
                self._entries = json.loads(self._fernet.decrypt(token))
            except (InvalidToken, ValueError) as exc:
                raise KeyringError(f"Invalid keyring file '{path}': wrong master key or corrupted file") from exc
        else:
            self._salt = os.urandom(SALT_LENGTH)
            self._fernet = Fernet(_derive_key(master_key, self._salt))

    @property
    def path(self) -> Path:
        return self._path

    def store(self, key: str, value: str) -> None:
        self._entries[key] = value
        self.save()

    def retrieve(self, key: str) -> str:
        try:
            return self._entries[key]
        except KeyError:
            raise KeyringError(f"No secret stored for '{key}'") from None

    def save(self) -> None:
        token = self._fernet.encrypt(json.dumps(self._entries).encode("utf-8"))
        self._path.parent.mkdir(parents=True, exist_ok=True)
        write_private_file(self._path, self._salt + token)
