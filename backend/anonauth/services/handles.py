"""Opaque verification code (server-side handle) generation."""

import secrets

# 32 random bytes, URL-safe base64 encoded (43 characters)
HANDLE_BYTES = 32


class HandleGenerator:
    """Generates high-entropy opaque handles.

    Args:
        num_bytes: Random bytes per handle.
    """

    def __init__(self, num_bytes: int = HANDLE_BYTES) -> None:
        self._num_bytes = num_bytes

    async def generate(self) -> str:
        """Return a new URL-safe handle."""
        return secrets.token_urlsafe(self._num_bytes)
