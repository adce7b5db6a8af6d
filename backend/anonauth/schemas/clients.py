"""Client configuration schema.

Clients are registered through the ``CLIENTS`` environment variable as a
JSON list, for example::

    CLIENTS='[{"client_id": "kiosk", "allowed_scopes": ["openid"],
              "properties": {"formats:sms": "Code: {user_code}"}}]'
"""

from pydantic import BaseModel, ConfigDict, Field

from anonauth.services.issuance_types import Client


class ClientConfig(BaseModel):
    """One registered client as read from configuration."""

    model_config = ConfigDict(extra="forbid")

    client_id: str = Field(min_length=1)
    client_name: str = ""
    enabled: bool = True
    user_code_type: str | None = None
    allowed_scopes: list[str] = []
    redirect_uris: list[str] = []
    properties: dict[str, str] = {}

    def to_client(self) -> Client:
        """Convert to the domain Client used by the issuance pipeline."""
        return Client(
            client_id=self.client_id,
            client_name=self.client_name or self.client_id,
            enabled=self.enabled,
            user_code_type=self.user_code_type,
            allowed_scopes=list(self.allowed_scopes),
            redirect_uris=list(self.redirect_uris),
            properties=dict(self.properties),
        )
