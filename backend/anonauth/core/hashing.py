"""One-way hashing of user codes.

The issuance pipeline stores only the digest of a user code and looks
records up by that digest, so the function must be deterministic. It is
passed around as a plain callable so callers can swap it out.
"""

import hashlib
from collections.abc import Callable

UserCodeHasher = Callable[[str], str]


def sha256_hex(value: str) -> str:
    """Return the SHA-256 hex digest of *value*.

    Args:
        value: Plain user code.

    Returns:
        64-character lowercase hex digest.
    """
    return hashlib.sha256(value.encode()).hexdigest()
