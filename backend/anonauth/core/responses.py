"""Error response envelope.

Every error leaves the API as ``{"error": {"code", "message", "details"}}``.
Successful issuance responses are returned bare, in the device
authorization response shape.
"""

from pydantic import BaseModel


class ErrorDetail(BaseModel):
    """Error body.

    Attributes:
        code: Machine-readable error code (e.g., "INVALID_ARGUMENT").
        message: Human-readable error message.
        details: Optional list of field-level errors.
    """

    code: str
    message: str
    details: list[dict] | None = None


class ErrorResponse(BaseModel):
    """Standard error response envelope."""

    error: ErrorDetail
