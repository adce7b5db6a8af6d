"""Validation of raw anonymous authorization requests.

Turns the submitted form into a ValidatedRequest the issuance orchestrator
can trust: field lengths, client, transport, redirect URI and scopes.
"""

from anonauth.core.config import AuthorizationOptions
from anonauth.core.errors import UnauthorizedError, ValidationError
from anonauth.schemas.authorization import AuthorizationRequestForm
from anonauth.services.client_store import InMemoryClientStore
from anonauth.services.issuance_types import ValidatedRequest


def _check_lengths(form: AuthorizationRequestForm, options: AuthorizationOptions) -> None:
    limits = options.input_length_restrictions
    checks = {
        "client_id": (form.client_id, limits.client_id),
        "scope": (form.scope, limits.scope),
        "redirect_uri": (form.redirect_uri, limits.redirect_uri),
        "description": (form.description, limits.description),
        "transport": (form.transport, limits.transport),
        "transport_data": (form.transport_data, limits.transport_data),
        "provider": (form.provider, limits.provider),
    }
    errors = [
        {"field": name, "error": "TOO_LONG", "max_length": limit}
        for name, (value, limit) in checks.items()
        if value is not None and len(value) > limit
    ]
    if errors:
        raise ValidationError("Request field exceeds maximum length", details=errors)


async def validate_authorization_request(
    form: AuthorizationRequestForm,
    clients: InMemoryClientStore,
    options: AuthorizationOptions,
) -> ValidatedRequest:
    """Validate an authorization request.

    Args:
        form: Submitted request fields.
        clients: Registered client lookup.
        options: Authorization options.

    Returns:
        ValidatedRequest ready for issuance.

    Raises:
        ValidationError: On an oversized field, a disabled transport, missing
            transport data, an unregistered redirect URI or a scope the
            client may not request.
        UnauthorizedError: If the client is unknown or disabled.
    """
    _check_lengths(form, options)

    client = await clients.find_enabled_client(form.client_id)
    if client is None:
        raise UnauthorizedError()

    transport = form.transport.strip()
    if transport not in options.transports:
        raise ValidationError(
            f"Transport '{transport}' is not enabled",
            details=[{"field": "transport", "error": "UNSUPPORTED"}],
        )

    transport_data = form.transport_data.strip()
    if not transport_data:
        raise ValidationError(
            "Transport data is required",
            details=[{"field": "transport_data", "error": "REQUIRED"}],
        )

    redirect_uri = form.redirect_uri or None
    if redirect_uri is not None and redirect_uri not in client.redirect_uris:
        raise ValidationError(
            "Redirect URI is not registered for this client",
            details=[{"field": "redirect_uri", "error": "NOT_REGISTERED"}],
        )

    requested_scopes = (form.scope or "").split()
    denied = [s for s in requested_scopes if s not in client.allowed_scopes]
    if denied:
        raise ValidationError(
            "Requested scope is not allowed for this client",
            details=[{"field": "scope", "error": "NOT_ALLOWED", "scopes": denied}],
        )

    return ValidatedRequest(
        client=client,
        description=form.description,
        redirect_url=redirect_uri,
        requested_scopes=requested_scopes,
        transport=transport,
        transport_data=transport_data,
        provider=form.provider,
    )
