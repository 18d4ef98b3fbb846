"""Password prompting and random credential generation.

Both are injected capabilities so tests can script prompts and make
generated account names deterministic.
"""

from __future__ import annotations

import getpass
import hashlib
import secrets
import string
from collections.abc import Iterable
from typing import Protocol

from ..core.exceptions import ConfigurationError

_IDENTIFIER_ALPHABET = string.ascii_lowercase + string.digits
_PASSWORD_ALPHABETS = (
    string.ascii_lowercase,
    string.ascii_uppercase,
    string.digits,
    "~@#$^&*()-=+]}[{|;:.>,</?",
)


class PasswordSource(Protocol):
    def prompt(self, prompt: str) -> str: ...


class GetpassPasswordSource:
    """Reads passwords from the controlling terminal without echo."""

    def prompt(self, prompt: str) -> str:
        try:
            return getpass.getpass(f"{prompt}: ")
        except EOFError:
            raise ConfigurationError(f"No input available for: {prompt}") from None


class StaticPasswordSource:
    """Answers prompts from a fixed sequence, in order."""

    def __init__(self, answers: Iterable[str]) -> None:
        self._answers = list(answers)
        self.prompts: list[str] = []

    def prompt(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if not self._answers:
            raise ConfigurationError(f"No input available for: {prompt}")
        return self._answers.pop(0)


class RandomGenerator(Protocol):
    def generate_identifier(self, length: int) -> str: ...

    def generate_strong_password(self, length: int) -> str: ...


class SecretsRandomGenerator:
    """`RandomGenerator` backed by the ``secrets`` CSPRNG."""

    def generate_identifier(self, length: int) -> str:
        return "".join(secrets.choice(_IDENTIFIER_ALPHABET) for _ in range(length))

    def generate_strong_password(self, length: int) -> str:
        """Random password containing at least one character of every class.

        Raises
        ------
        ValueError
            If ``length`` cannot fit one character of each class.
        """
        if length < len(_PASSWORD_ALPHABETS):
            raise ValueError(f"password length must be at least {len(_PASSWORD_ALPHABETS)}")
        chars = [secrets.choice(alphabet) for alphabet in _PASSWORD_ALPHABETS]
        everything = "".join(_PASSWORD_ALPHABETS)
        chars.extend(secrets.choice(everything) for _ in range(length - len(chars)))
        secrets.SystemRandom().shuffle(chars)
        return "".join(chars)


def native_password_hash(password: str) -> str:
    """Hash in the ``mysql_native_password`` format: ``*`` + HEX(SHA1(SHA1(pw)))."""
    stage1 = hashlib.sha1(password.encode("utf-8")).digest()  # noqa: S324
    return "*" + hashlib.sha1(stage1).hexdigest().upper()  # noqa: S324
