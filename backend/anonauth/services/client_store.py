"""Registered client lookup.

Clients come from the ``CLIENTS`` setting; lookups return only enabled
clients so a disabled client is indistinguishable from an unknown one.
"""

import logging

from anonauth.schemas.clients import ClientConfig
from anonauth.services.issuance_types import Client

logger = logging.getLogger(__name__)


class InMemoryClientStore:
    """Dict-backed client registry.

    Args:
        clients: Initial clients.
    """

    def __init__(self, clients: list[Client] | None = None) -> None:
        self._clients: dict[str, Client] = {}
        for client in clients or []:
            self.add(client)

    @classmethod
    def from_config(cls, configs: list[ClientConfig]) -> "InMemoryClientStore":
        """Build a store from configured clients."""
        store = cls([config.to_client() for config in configs])
        logger.info("Loaded %d registered client(s)", len(store))
        return store

    def add(self, client: Client) -> None:
        """Register or replace a client."""
        self._clients[client.client_id] = client

    async def find_enabled_client(self, client_id: str) -> Client | None:
        """Return the client if it exists and is enabled."""
        client = self._clients.get(client_id)
        if client is None or not client.enabled:
            return None
        return client

    def __len__(self) -> int:
        return len(self._clients)
