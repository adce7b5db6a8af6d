"""Anonymous authorization endpoint.

Endpoints:
- POST /connect/anonymous: issue a verification code and deliver a user
  code out-of-band
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Form, Request

from anonauth.api.deps import ClientStore, Options, Orchestrator
from anonauth.core.config import settings
from anonauth.core.rate_limiting import limiter
from anonauth.schemas.authorization import (
    AuthorizationRequestForm,
    AuthorizationResponse,
)
from anonauth.services.request_validation import validate_authorization_request

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/anonymous")
@limiter.limit(lambda: settings.rate_limit_authorize)
async def authorize_anonymous(
    request: Request,  # noqa: ARG001
    orchestrator: Orchestrator,
    clients: ClientStore,
    authorization_options: Options,
    client_id: Annotated[str, Form()],
    transport: Annotated[str, Form()],
    transport_data: Annotated[str, Form()],
    scope: Annotated[str | None, Form()] = None,
    redirect_uri: Annotated[str | None, Form()] = None,
    provider: Annotated[str | None, Form()] = None,
    description: Annotated[str | None, Form()] = None,
) -> AuthorizationResponse:
    """Start an anonymous authorization.

    The response returns as soon as the code is issued; storing the record
    and delivering the message finish in the background.

    Raises:
        UnauthorizedError: Unknown or disabled client.
        ValidationError: Invalid request fields.
        ExhaustedRetriesError: No unique user code could be generated.
        UnsupportedTransportError: No message format for the transport.
    """
    form = AuthorizationRequestForm(
        client_id=client_id,
        transport=transport,
        transport_data=transport_data,
        scope=scope,
        redirect_uri=redirect_uri,
        provider=provider,
        description=description,
    )
    validated = await validate_authorization_request(
        form, clients, authorization_options
    )
    response = await orchestrator.issue(validated, base_url=settings.public_base_url)
    logger.info(
        "Issued anonymous authorization for client %s via %s",
        form.client_id,
        validated.transport,
    )
    return response
