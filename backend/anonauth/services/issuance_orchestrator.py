"""Anonymous authorization code issuance.

Issues an out-of-band authorization: an opaque verification code the client
polls with, and a short user code delivered to the user through SMS, email
or another registered transport.

Flow:
1. Generate the verification code (opaque handle).
2. Resolve lifetime and retry budget (client property, else default).
3. Generate a user code whose hash is not held by an active record.
4. Persist the issuance record, hash only, without waiting.
5. Render the delivery message and dispatch it without waiting, once the
   record is stored. A record refused as a duplicate is never delivered.
6. Return the authorization response.

Persistence and dispatch run as background tasks: the response can reach
the client before either finishes. A render failure after step 4 leaves the
record persisted; it expires on its own.
"""

import asyncio
from urllib.parse import urlsplit

import structlog

from anonauth.core.clock import Clock
from anonauth.core.config import VERIFICATION_CODE_PARAMETER, AuthorizationOptions
from anonauth.core.errors import (
    DuplicateUserCodeError,
    ExhaustedRetriesError,
    InvalidArgumentError,
)
from anonauth.core.hashing import UserCodeHasher, sha256_hex
from anonauth.schemas.authorization import AuthorizationResponse
from anonauth.services.background_tasks import BackgroundTaskRunner
from anonauth.services.code_store import CodeStore
from anonauth.services.handles import HandleGenerator
from anonauth.services.issuance_types import (
    DeliveryContext,
    IssuanceRecord,
    ValidatedRequest,
)
from anonauth.services.message_formats import render_message
from anonauth.services.user_codes import UserCodeService
from anonauth.transports.registry import TransportRegistry

logger = structlog.get_logger()


def build_verification_uri(verification_uri: str, base_url: str | None) -> str:
    """Make a relative verification URI absolute against *base_url*.

    Absolute URIs and calls without a base URL are returned unchanged.
    """
    if base_url is None or urlsplit(verification_uri).scheme:
        return verification_uri
    return f"{base_url.rstrip('/')}/{verification_uri.lstrip('/')}"


def build_verification_uri_complete(verification_uri: str, verification_code: str) -> str:
    """Embed the verification code in the verification URI."""
    return (
        f"{verification_uri.rstrip('/')}"
        f"?{VERIFICATION_CODE_PARAMETER}={verification_code}"
    )


class IssuanceOrchestrator:
    """Coordinates one anonymous authorization issuance.

    Args:
        options: Validated authorization options.
        user_code_service: Generator lookup by user code type.
        code_store: Issuance record store.
        transports: Transport registry used for delivery.
        handle_generator: Verification code generator.
        clock: Time source for record timestamps.
        hasher: One-way user code digest.
        background: Runner for fire-and-forget persistence and delivery.
    """

    def __init__(
        self,
        *,
        options: AuthorizationOptions,
        user_code_service: UserCodeService,
        code_store: CodeStore,
        transports: TransportRegistry,
        handle_generator: HandleGenerator | None = None,
        clock: Clock | None = None,
        hasher: UserCodeHasher = sha256_hex,
        background: BackgroundTaskRunner | None = None,
    ) -> None:
        self.options = options
        self.user_code_service = user_code_service
        self.code_store = code_store
        self.transports = transports
        self.handle_generator = handle_generator or HandleGenerator()
        self.clock = clock or Clock()
        self.hasher = hasher
        self.background = background or BackgroundTaskRunner()

    async def issue(
        self,
        request: ValidatedRequest | None,
        base_url: str | None = None,
    ) -> AuthorizationResponse:
        """Issue a verification code and deliver a user code.

        Args:
            request: Validated authorization request.
            base_url: Public base URL joined with a relative verification URI.

        Returns:
            AuthorizationResponse for the client.

        Raises:
            InvalidArgumentError: If the request or its client is missing,
                or the user code type is unknown.
            ExhaustedRetriesError: If no unique user code could be found.
            UnsupportedTransportError: If no message format exists for the
                requested transport.
        """
        if request is None:
            raise InvalidArgumentError("request")
        client = request.client
        if client is None:
            raise InvalidArgumentError("client")

        verification_code = await self.handle_generator.generate()

        lifetime = client.get_positive_int_property(
            self.options.lifetime_property_name, self.options.default_lifetime
        )
        allowed_retries = client.get_positive_int_property(
            self.options.allowed_retries_property_name, self.options.allowed_retries
        )
        logger.debug(
            "anonymous_issuance_start",
            client_id=client.client_id,
            transport=request.transport,
            lifetime=lifetime,
            allowed_retries=allowed_retries,
        )

        user_code_type = client.user_code_type or self.options.default_user_code_type
        user_code = await self.generate_unique_user_code(user_code_type)

        record = IssuanceRecord(
            verification_code=verification_code,
            client_id=client.client_id,
            user_code_hash=self.hasher(user_code),
            created_at=self.clock.now_utc(),
            lifetime=lifetime,
            allowed_retries=allowed_retries,
            transport=request.transport,
            description=request.description,
            return_url=request.redirect_url,
            requested_scopes=list(request.requested_scopes),
        )
        persisted = self.background.spawn(
            self._persist(record), name=f"persist-anonymous-code-{client.client_id}"
        )

        context = DeliveryContext(
            transport=request.transport,
            data=request.transport_data,
            provider=request.provider,
        )
        context.body = render_message(client, user_code, context, self.options)
        self.background.spawn(
            self._deliver(persisted, context),
            name=f"deliver-user-code-{request.transport}",
        )
        logger.debug(
            "anonymous_issuance_dispatched",
            client_id=client.client_id,
            transport=request.transport,
        )

        verification_uri = build_verification_uri(
            self.options.verification_uri, base_url
        )
        return AuthorizationResponse(
            verification_code=verification_code,
            verification_uri=verification_uri,
            verification_uri_complete=build_verification_uri_complete(
                verification_uri, verification_code
            ),
            expires_in=lifetime,
            interval=self.options.interval,
        )

    async def generate_unique_user_code(self, user_code_type: str) -> str:
        """Generate a user code whose hash no active record holds.

        Checks are read-only; the store's insert-if-absent catches what
        slips through between the check and the write.

        Args:
            user_code_type: Generator type to use.

        Returns:
            Plain user code.

        Raises:
            InvalidArgumentError: If the type is unknown.
            ExhaustedRetriesError: If every candidate collided.
        """
        generator = await self.user_code_service.get_generator(user_code_type)
        for attempt in range(1, generator.retry_limit + 1):
            candidate = await generator.generate()
            existing = await self.code_store.find_by_user_code_hash(
                self.hasher(candidate), include_expired=False
            )
            if existing is None:
                logger.debug(
                    "user_code_generated",
                    user_code_type=user_code_type,
                    attempts=attempt,
                )
                return candidate
            logger.debug(
                "user_code_collision",
                user_code_type=user_code_type,
                attempt=attempt,
            )

        logger.warning(
            "user_code_exhausted",
            user_code_type=user_code_type,
            attempts=generator.retry_limit,
        )
        raise ExhaustedRetriesError(user_code_type, generator.retry_limit)

    async def _persist(self, record: IssuanceRecord) -> bool:
        try:
            await self.code_store.store(record.verification_code, record)
        except DuplicateUserCodeError:
            logger.error(
                "anonymous_code_persist_conflict",
                client_id=record.client_id,
            )
            return False
        logger.debug("anonymous_code_persisted", client_id=record.client_id)
        return True

    async def _deliver(
        self, persisted: asyncio.Task[bool], context: DeliveryContext
    ) -> None:
        # Only the user code of a stored record is sent
        if not await persisted:
            logger.warning("user_code_delivery_skipped", transport=context.transport)
            return
        await self.transports.dispatch(context)
