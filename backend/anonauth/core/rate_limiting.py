"""Rate limiting configuration using slowapi.

Issuing a code sends an SMS or email, so the authorization endpoint is
limited per client IP to keep delivery costs and message spam bounded.

Usage in routers:
    from anonauth.core.rate_limiting import limiter

    @router.post("/connect/anonymous")
    @limiter.limit(lambda: settings.rate_limit_authorize)
    async def authorize(request: Request, ...):
        ...
"""

from fastapi import Request, Response
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from anonauth.core.config import settings

# In-memory storage; one limiter per process
limiter = Limiter(
    key_func=get_remote_address,
    enabled=settings.rate_limit_enabled,
)


def rate_limit_exceeded_handler(
    _request: Request,
    exc: RateLimitExceeded,
) -> Response:
    """Return 429 in the standard error envelope.

    Args:
        request: The incoming request.
        exc: The rate limit exception.

    Returns:
        JSONResponse with 429 status and a Retry-After header.
    """
    # The window length of the exceeded limit, e.g. 3600 for "3 per 1 hour"
    try:
        retry_after = str(exc.limit.limit.get_expiry())
    except AttributeError:
        retry_after = "60"

    return JSONResponse(
        status_code=429,
        content={
            "error": {
                "code": "RATE_LIMITED",
                "message": f"Rate limit exceeded: {exc.detail}",
            }
        },
        headers={"Retry-After": retry_after},
    )
