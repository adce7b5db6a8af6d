"""Anonymous authorization request/response schemas.

The response mirrors the device authorization response shape: an opaque
code, two verification URI variants, expiry and polling interval.
"""

from pydantic import BaseModel, ConfigDict


class AuthorizationRequestForm(BaseModel):
    """Raw authorization request fields, before validation."""

    model_config = ConfigDict(extra="forbid")

    client_id: str
    transport: str
    transport_data: str
    scope: str | None = None
    redirect_uri: str | None = None
    provider: str | None = None
    description: str | None = None


class AuthorizationResponse(BaseModel):
    """Response returned to the client after a code has been issued.

    Attributes:
        verification_code: Opaque handle to poll with.
        verification_uri: Where the user enters the user code.
        verification_uri_complete: verification_uri with the verification
            code embedded as a query parameter.
        expires_in: Record lifetime in seconds.
        interval: Minimum polling interval in seconds.
    """

    verification_code: str
    verification_uri: str
    verification_uri_complete: str
    expires_in: int
    interval: int
