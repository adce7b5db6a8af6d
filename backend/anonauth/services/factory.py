"""Service factory functions.

Singleton pattern for the issuance pipeline. The first call builds each
service from ``settings`` and ``options``; later calls reuse it. Tests call
``reset_services()`` between cases.
"""

import logging

from anonauth.core.config import AuthorizationOptions, Settings, options, settings
from anonauth.core.errors import ConfigurationInvalidError
from anonauth.services.background_tasks import BackgroundTaskRunner
from anonauth.services.client_store import InMemoryClientStore
from anonauth.services.code_store import CodeStore, DatabaseCodeStore, InMemoryCodeStore
from anonauth.services.issuance_orchestrator import IssuanceOrchestrator
from anonauth.services.message_formats import EMAIL_TRANSPORT, SMS_TRANSPORT
from anonauth.services.user_codes import UserCodeService
from anonauth.transports import (
    ConsoleTransporter,
    HttpSmsTransporter,
    ResendEmailTransporter,
    TransportRegistry,
    Transporter,
)

logger = logging.getLogger(__name__)

_code_store: CodeStore | None = None
_user_code_service: UserCodeService | None = None
_transport_registry: TransportRegistry | None = None
_background_runner: BackgroundTaskRunner | None = None
_client_store: InMemoryClientStore | None = None
_orchestrator: IssuanceOrchestrator | None = None


def get_code_store(config: Settings | None = None) -> CodeStore:
    """Get or create the issuance record store.

    Args:
        config: Settings to build from. Defaults to the global settings.

    Returns:
        DatabaseCodeStore or InMemoryCodeStore per ``code_store_backend``.
    """
    global _code_store

    if _code_store is None:
        config = config or settings
        if config.code_store_backend == "database":
            from anonauth.core.database import async_session_factory

            _code_store = DatabaseCodeStore(async_session_factory)
        else:
            logger.warning("Using in-memory code store; records are lost on restart")
            _code_store = InMemoryCodeStore()

    return _code_store


def get_user_code_service() -> UserCodeService:
    """Get or create the user code generator registry."""
    global _user_code_service

    if _user_code_service is None:
        _user_code_service = UserCodeService()

    return _user_code_service


# Option that must be set to deliver on each built-in channel
_CREDENTIAL_OPTIONS = {
    SMS_TRANSPORT: "sms_gateway_url",
    EMAIL_TRANSPORT: "resend_api_key",
}


def _build_transporter(channel: str, config: Settings) -> Transporter:
    """Pick the transporter for a channel.

    Outside production a channel without credentials falls back to the
    console. In production it is a startup error: the console logs the
    plain user code.

    Raises:
        ConfigurationInvalidError: In production, if the channel has no
            delivery credentials.
    """
    sms_ready = bool(
        config.sms_gateway_url and config.sms_gateway_api_key.get_secret_value()
    )
    if channel == SMS_TRANSPORT and sms_ready:
        return HttpSmsTransporter(
            gateway_url=config.sms_gateway_url,
            api_key=config.sms_gateway_api_key,
            sender=config.sms_sender,
        )
    if channel == EMAIL_TRANSPORT and config.resend_api_key.get_secret_value():
        return ResendEmailTransporter(
            api_key=config.resend_api_key,
            sender=config.email_from,
            subject=config.email_subject,
        )

    if config.environment == "production":
        raise ConfigurationInvalidError(
            _CREDENTIAL_OPTIONS.get(channel, f"transport {channel}")
        )
    logger.warning("No credentials for transport %s; logging messages", channel)
    return ConsoleTransporter(channel)


def get_transport_registry(
    config: Settings | None = None,
    authorization_options: AuthorizationOptions | None = None,
) -> TransportRegistry:
    """Get or create the transport registry.

    One transporter is registered per enabled transport.

    Args:
        config: Settings holding delivery credentials.
        authorization_options: Options listing the enabled transports.

    Returns:
        TransportRegistry instance.
    """
    global _transport_registry

    if _transport_registry is None:
        config = config or settings
        authorization_options = authorization_options or options
        registry = TransportRegistry()
        for channel in authorization_options.transports:
            registry.register(_build_transporter(channel, config))
        _transport_registry = registry

    return _transport_registry


def get_background_runner() -> BackgroundTaskRunner:
    """Get or create the background task runner."""
    global _background_runner

    if _background_runner is None:
        _background_runner = BackgroundTaskRunner()

    return _background_runner


def get_client_store(config: Settings | None = None) -> InMemoryClientStore:
    """Get or create the registered client store."""
    global _client_store

    if _client_store is None:
        config = config or settings
        _client_store = InMemoryClientStore.from_config(config.clients)

    return _client_store


def get_issuance_orchestrator() -> IssuanceOrchestrator:
    """Get or create the issuance orchestrator, wiring the other singletons."""
    global _orchestrator

    if _orchestrator is None:
        _orchestrator = IssuanceOrchestrator(
            options=options,
            user_code_service=get_user_code_service(),
            code_store=get_code_store(),
            transports=get_transport_registry(),
            background=get_background_runner(),
        )

    return _orchestrator


def reset_services() -> None:
    """Reset service singletons.

    Used in tests to ensure isolation between test cases.
    """
    global _code_store, _user_code_service, _transport_registry
    global _background_runner, _client_store, _orchestrator
    _code_store = None
    _user_code_service = None
    _transport_registry = None
    _background_runner = None
    _client_store = None
    _orchestrator = None
