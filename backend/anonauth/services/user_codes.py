"""Human-presentable user code generators.

A generator only produces candidates; it never checks uniqueness. The
issuance orchestrator calls it repeatedly, up to the generator's
``retry_limit``, until a candidate's hash is free in the code store.

Built-in types:
    - ``numeric``: digits only, easy to type on a phone keypad.
    - ``alphanumeric``: ``XXXX-XXXX`` from uppercase letters and digits,
      excluding the confusable characters 0, O, 1, I and L.
"""

import secrets
import string
from abc import ABC, abstractmethod

from anonauth.core.errors import InvalidArgumentError

DEFAULT_RETRY_LIMIT = 5
DEFAULT_NUMERIC_LENGTH = 6
DEFAULT_ALPHANUMERIC_LENGTH = 8

_CONFUSABLE_CHARACTERS = "0O1IL"
ALPHANUMERIC_ALPHABET = "".join(
    c
    for c in string.ascii_uppercase + string.digits
    if c not in _CONFUSABLE_CHARACTERS
)


class UserCodeGenerator(ABC):
    """Produces candidate user codes of one type.

    Attributes:
        user_code_type: Type string the generator is registered under.
        retry_limit: Maximum number of candidates the caller may request
            for a single issuance.
    """

    user_code_type: str
    retry_limit: int

    @abstractmethod
    async def generate(self) -> str:
        """Return a new candidate user code."""
        ...


class NumericUserCodeGenerator(UserCodeGenerator):
    """Digits-only user codes.

    Args:
        length: Number of digits.
        retry_limit: Maximum candidates per issuance.
    """

    user_code_type = "numeric"

    def __init__(
        self,
        length: int = DEFAULT_NUMERIC_LENGTH,
        retry_limit: int = DEFAULT_RETRY_LIMIT,
    ) -> None:
        if length <= 0 or retry_limit <= 0:
            raise ValueError("length and retry_limit must be positive")
        self.length = length
        self.retry_limit = retry_limit

    async def generate(self) -> str:
        return "".join(secrets.choice(string.digits) for _ in range(self.length))


class AlphanumericUserCodeGenerator(UserCodeGenerator):
    """Readable alphanumeric user codes grouped in blocks of four.

    Args:
        length: Number of code characters, excluding separators.
        retry_limit: Maximum candidates per issuance.
    """

    user_code_type = "alphanumeric"

    def __init__(
        self,
        length: int = DEFAULT_ALPHANUMERIC_LENGTH,
        retry_limit: int = DEFAULT_RETRY_LIMIT,
    ) -> None:
        if length <= 0 or retry_limit <= 0:
            raise ValueError("length and retry_limit must be positive")
        self.length = length
        self.retry_limit = retry_limit

    async def generate(self) -> str:
        code = "".join(secrets.choice(ALPHANUMERIC_ALPHABET) for _ in range(self.length))
        return "-".join(code[i : i + 4] for i in range(0, len(code), 4))


class UserCodeService:
    """Registry of user code generators, keyed by type string.

    Args:
        generators: Generators to register. Defaults to the built-in numeric
            and alphanumeric generators.
    """

    def __init__(self, generators: list[UserCodeGenerator] | None = None) -> None:
        if generators is None:
            generators = [NumericUserCodeGenerator(), AlphanumericUserCodeGenerator()]
        self._generators: dict[str, UserCodeGenerator] = {}
        for generator in generators:
            self.register(generator)

    def register(self, generator: UserCodeGenerator) -> None:
        """Add or replace the generator for ``generator.user_code_type``."""
        self._generators[generator.user_code_type] = generator

    @property
    def user_code_types(self) -> list[str]:
        """Registered type strings."""
        return sorted(self._generators)

    async def get_generator(self, user_code_type: str) -> UserCodeGenerator:
        """Look up the generator for a user code type.

        Args:
            user_code_type: Type string, e.g. ``"numeric"``.

        Returns:
            The registered generator.

        Raises:
            InvalidArgumentError: If no generator is registered for the type.
        """
        try:
            return self._generators[user_code_type]
        except KeyError:
            raise InvalidArgumentError(
                "user_code_type",
                f"Unknown user code type: {user_code_type}",
            ) from None
