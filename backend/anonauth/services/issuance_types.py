"""Domain types for anonymous authorization code issuance.

- Client: registered client metadata as the issuance pipeline sees it.
- ValidatedRequest: output of request validation, input of issuance.
- IssuanceRecord: the persisted state of one issuance call.
- DeliveryContext: what a transporter needs to deliver one message.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta

logger = logging.getLogger(__name__)


@dataclass
class Client:
    """Registered client.

    Attributes:
        client_id: Unique client identifier.
        client_name: Display name used in error messages.
        enabled: Disabled clients are rejected by request validation.
        user_code_type: Preferred user code type, None for the default.
        allowed_scopes: Scopes the client may request.
        redirect_uris: Registered return URLs.
        properties: Free-form string properties (lifetime and retry
            overrides, message formats, ...).
    """

    client_id: str
    client_name: str = ""
    enabled: bool = True
    user_code_type: str | None = None
    allowed_scopes: list[str] = field(default_factory=list)
    redirect_uris: list[str] = field(default_factory=list)
    properties: dict[str, str] = field(default_factory=dict)

    def get_positive_int_property(self, name: str, default: int) -> int:
        """Read an integer override from the client properties.

        Missing, non-numeric and non-positive values fall back to *default*,
        so lifetimes and retry budgets stay positive whatever the client
        configuration says.

        Args:
            name: Property name.
            default: System default.

        Returns:
            The client override, or *default*.
        """
        raw = self.properties.get(name)
        if raw is None:
            return default
        try:
            value = int(raw)
        except (TypeError, ValueError):
            logger.warning(
                "Ignoring non-integer property %r=%r for client %s",
                name,
                raw,
                self.client_id,
            )
            return default
        if value <= 0:
            logger.warning(
                "Ignoring non-positive property %r=%d for client %s",
                name,
                value,
                self.client_id,
            )
            return default
        return value


@dataclass
class ValidatedRequest:
    """An authorization request that passed validation.

    Attributes:
        client: The requesting client.
        description: Free-text description shown to the user.
        redirect_url: Return URL after the grant completes.
        requested_scopes: Scopes requested by the client.
        transport: Delivery channel name (e.g. "sms", "email").
        transport_data: Channel addressing data (phone number, email, ...).
        provider: Originating provider identifier.
    """

    client: Client | None
    description: str | None = None
    redirect_url: str | None = None
    requested_scopes: list[str] = field(default_factory=list)
    transport: str = ""
    transport_data: str = ""
    provider: str | None = None


@dataclass
class IssuanceRecord:
    """Persisted issuance state, keyed by verification code.

    Only the hash of the user code is kept; the plaintext is delivered to the
    user and forgotten.

    Attributes:
        verification_code: Opaque handle, primary key.
        client_id: Issuing client.
        user_code_hash: One-way digest of the user code.
        created_at: Creation timestamp (UTC).
        lifetime: Seconds until the record expires.
        allowed_retries: Redemption attempts allowed downstream.
        transport: Delivery channel name.
        description: Free-text description.
        return_url: Return URL after the grant completes.
        requested_scopes: Requested scopes.
    """

    verification_code: str
    client_id: str
    user_code_hash: str
    created_at: datetime
    lifetime: int
    allowed_retries: int
    transport: str
    description: str | None = None
    return_url: str | None = None
    requested_scopes: list[str] = field(default_factory=list)

    @property
    def expires_at(self) -> datetime:
        """Moment the record stops being active."""
        return self.created_at + timedelta(seconds=self.lifetime)

    def is_expired(self, now: datetime) -> bool:
        """Whether the record is no longer active at *now*."""
        return now >= self.expires_at


@dataclass
class DeliveryContext:
    """Everything a transporter needs to deliver one message.

    Attributes:
        transport: Delivery channel name.
        data: Channel addressing data.
        provider: Originating provider identifier.
        body: Rendered message body, set after templating.
    """

    transport: str
    data: str
    provider: str | None = None
    body: str = ""
