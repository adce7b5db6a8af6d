"""Message templating for user code delivery.

Resolution order for the message format, first match wins:

1. Client property ``formats:{transport}``.
2. Client override of the transport class's default format property
   (``options.user_code_sms_format_property_name`` for SMS,
   ``options.user_code_email_format_property_name`` for email).
3. System-wide default format of the transport class.
4. Transport belongs to no known class: unsupported.

Rendering is a single substitution of the user code placeholder. No other
templating features exist.
"""

from dataclasses import dataclass
from enum import Enum

from anonauth.core.config import USER_CODE_PLACEHOLDER, AuthorizationOptions
from anonauth.core.errors import UnsupportedTransportError
from anonauth.services.issuance_types import Client, DeliveryContext

SMS_TRANSPORT = "sms"
EMAIL_TRANSPORT = "email"

CLIENT_FORMAT_PREFIX = "formats:"


class FormatSource(Enum):
    """Where a message format was found."""

    CLIENT_TRANSPORT = "client_transport"
    CLIENT_DEFAULT = "client_default"
    SYSTEM_DEFAULT = "system_default"
    UNSUPPORTED = "unsupported"


@dataclass(frozen=True)
class FormatResolution:
    """Outcome of message format resolution.

    Attributes:
        source: Which step of the resolution order matched.
        message_format: The format string, None when unsupported.
    """

    source: FormatSource
    message_format: str | None = None

    @property
    def is_supported(self) -> bool:
        return self.source is not FormatSource.UNSUPPORTED


def _transport_defaults(
    transport: str, options: AuthorizationOptions
) -> tuple[str, str] | None:
    """Return (client property name, system default) for a transport class."""
    if transport == SMS_TRANSPORT:
        return options.user_code_sms_format_property_name, options.user_code_sms_format
    if transport == EMAIL_TRANSPORT:
        return (
            options.user_code_email_format_property_name,
            options.user_code_email_format,
        )
    return None


def resolve_message_format(
    client: Client, transport: str, options: AuthorizationOptions
) -> FormatResolution:
    """Find the message format for a client and transport.

    Args:
        client: Client the message is rendered for.
        transport: Requested transport channel name.
        options: Authorization options holding system defaults.

    Returns:
        FormatResolution tagged with the matching step.
    """
    client_format = client.properties.get(f"{CLIENT_FORMAT_PREFIX}{transport}")
    if client_format is not None:
        return FormatResolution(FormatSource.CLIENT_TRANSPORT, client_format)

    defaults = _transport_defaults(transport, options)
    if defaults is None:
        return FormatResolution(FormatSource.UNSUPPORTED)

    property_name, system_default = defaults
    client_default = client.properties.get(property_name)
    if client_default is not None:
        return FormatResolution(FormatSource.CLIENT_DEFAULT, client_default)

    return FormatResolution(FormatSource.SYSTEM_DEFAULT, system_default)


def render_message(
    client: Client,
    user_code: str,
    context: DeliveryContext,
    options: AuthorizationOptions,
) -> str:
    """Render the delivery message body for a user code.

    Args:
        client: Client the message is rendered for.
        user_code: Plain user code to embed.
        context: Delivery context naming the transport.
        options: Authorization options holding system defaults.

    Returns:
        The message body with every placeholder replaced.

    Raises:
        UnsupportedTransportError: If no format exists for the transport.
    """
    resolution = resolve_message_format(client, context.transport, options)
    if not resolution.is_supported or resolution.message_format is None:
        raise UnsupportedTransportError(
            context.transport, client.client_name or client.client_id
        )
    return resolution.message_format.replace(USER_CODE_PLACEHOLDER, user_code)
