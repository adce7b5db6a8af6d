"""Shared dependencies for API endpoints.

Endpoints receive the issuance services through FastAPI dependency
injection, so tests can swap them with ``app.dependency_overrides``.
"""

from typing import Annotated

from fastapi import Depends

from anonauth.core.config import AuthorizationOptions, options
from anonauth.services.client_store import InMemoryClientStore
from anonauth.services.factory import get_client_store, get_issuance_orchestrator
from anonauth.services.issuance_orchestrator import IssuanceOrchestrator


def get_authorization_options() -> AuthorizationOptions:
    """Return the process-wide authorization options."""
    return options


def get_orchestrator() -> IssuanceOrchestrator:
    """Return the issuance orchestrator singleton."""
    return get_issuance_orchestrator()


def get_clients() -> InMemoryClientStore:
    """Return the registered client store singleton."""
    return get_client_store()


Orchestrator = Annotated[IssuanceOrchestrator, Depends(get_orchestrator)]
ClientStore = Annotated[InMemoryClientStore, Depends(get_clients)]
Options = Annotated[AuthorizationOptions, Depends(get_authorization_options)]
