"""Error classes.

HTTP-facing errors derive from APIError, which carries a machine-readable
code, a human-readable message and the HTTP status to return. The single
exception handler in ``anonauth.main`` renders them in the standard
``{"error": {...}}`` envelope.

ConfigurationInvalidError is the exception to that rule: it is raised while
the process starts and is never turned into an HTTP response.
"""


class APIError(Exception):
    """Base class for API errors.

    All API errors have a code, message, and HTTP status.
    Subclasses set default status_code.

    Attributes:
        code: Machine-readable error code (e.g., "NOT_FOUND").
        message: Human-readable error message.
        status_code: HTTP status code to return.
        details: Optional list of additional error details.
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: list[dict] | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(message)


class ValidationError(APIError):
    """Field validation failed (400).

    Use for request body validation errors, query param errors, etc.
    """

    def __init__(
        self,
        message: str,
        details: list[dict] | None = None,
    ) -> None:
        super().__init__(
            code="VALIDATION_ERROR",
            message=message,
            status_code=400,
            details=details,
        )


class UnauthorizedError(APIError):
    """Client authentication failed (401).

    Raised for unknown or disabled clients.
    """

    def __init__(self, message: str = "Invalid client") -> None:
        super().__init__(
            code="UNAUTHORIZED",
            message=message,
            status_code=401,
        )


class ConflictError(APIError):
    """Duplicate or conflicting resource (409).

    Accepts custom code for specific conflict types.
    """

    def __init__(
        self,
        code: str,
        message: str,
        details: list[dict] | None = None,
    ) -> None:
        super().__init__(
            code=code,
            message=message,
            status_code=409,
            details=details,
        )


# =============================================================================
# Issuance errors
# =============================================================================


class InvalidArgumentError(APIError):
    """Issuance was called without a validated request or client (400).

    Also raised for an unknown user code type.
    """

    def __init__(self, argument: str, message: str | None = None) -> None:
        self.argument = argument
        super().__init__(
            code="INVALID_ARGUMENT",
            message=message or f"Missing required argument: {argument}",
            status_code=400,
        )


class ExhaustedRetriesError(APIError):
    """No unique user code was found within the generator's retry limit (503).

    Args:
        user_code_type: Generator type that ran out of attempts.
        attempts: Number of candidates generated.
    """

    def __init__(self, user_code_type: str, attempts: int) -> None:
        self.user_code_type = user_code_type
        self.attempts = attempts
        super().__init__(
            code="USER_CODE_EXHAUSTED",
            message="Unable to create a unique user code",
            status_code=503,
            details=[{"user_code_type": user_code_type, "attempts": attempts}],
        )


class UnsupportedTransportError(APIError):
    """No message format exists for the requested transport (400).

    Args:
        transport: Requested transport channel name.
        client_name: Client the message was being rendered for.
    """

    def __init__(self, transport: str, client_name: str) -> None:
        self.transport = transport
        super().__init__(
            code="UNSUPPORTED_TRANSPORT",
            message=(
                f"Cannot find message format '{transport}' "
                f"for client '{client_name}'"
            ),
            status_code=400,
        )


class DuplicateUserCodeError(ConflictError):
    """A store refused a record whose key or user code hash is already live (409)."""

    def __init__(self, message: str = "User code is already in use") -> None:
        super().__init__(code="DUPLICATE_USER_CODE", message=message)


# =============================================================================
# Startup errors
# =============================================================================


class ConfigurationInvalidError(Exception):
    """A required option is unset, empty, or zero.

    Raised only while building configuration at startup. Not a ValueError
    subclass, so pydantic propagates it unwrapped.

    Args:
        option: Name of the offending option.
    """

    def __init__(self, option: str) -> None:
        self.option = option
        super().__init__(f"bad or missing config: {option}")
