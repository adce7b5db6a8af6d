"""SMS delivery via an HTTP gateway.

Posts ``{"to", "from", "body", "provider"}`` as JSON to the configured
gateway URL with a bearer API key. Any 2xx response counts as accepted.
"""

import logging

import httpx
from pydantic import SecretStr

from anonauth.services.issuance_types import DeliveryContext
from anonauth.transports.base import Transporter

logger = logging.getLogger(__name__)

_SMS_TIMEOUT = 10.0


class HttpSmsTransporter(Transporter):
    """Sends user code text messages through an HTTP SMS gateway.

    Args:
        gateway_url: Gateway endpoint.
        api_key: Gateway API key.
        sender: Sender id shown on the handset.
        timeout: Request timeout in seconds.
    """

    def __init__(
        self,
        *,
        gateway_url: str,
        api_key: SecretStr,
        sender: str,
        timeout: float = _SMS_TIMEOUT,
    ) -> None:
        self._gateway_url = gateway_url
        self._api_key = api_key
        self._sender = sender
        self._timeout = timeout

    @property
    def channel(self) -> str:
        return "sms"

    async def send(self, context: DeliveryContext) -> None:
        """Post the message to the gateway.

        Raises:
            httpx.HTTPError: On network failure or a non-2xx response.
        """
        payload: dict[str, str] = {
            "to": context.data,
            "from": self._sender,
            "body": context.body,
        }
        if context.provider:
            payload["provider"] = context.provider

        async with httpx.AsyncClient() as client:
            resp = await client.post(
                self._gateway_url,
                headers={
                    "Authorization": f"Bearer {self._api_key.get_secret_value()}",
                },
                json=payload,
                timeout=self._timeout,
            )
            resp.raise_for_status()
        logger.debug("User code SMS accepted by gateway")
