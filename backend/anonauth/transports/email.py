"""Email delivery via the Resend API.

Simple HTTP POST to Resend with a plain-text body.
"""

import logging

import httpx
from pydantic import SecretStr

from anonauth.services.issuance_types import DeliveryContext
from anonauth.transports.base import Transporter

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"
_RESEND_TIMEOUT = 10.0


class ResendEmailTransporter(Transporter):
    """Sends user code emails through Resend.

    Args:
        api_key: Resend API key.
        sender: From address.
        subject: Email subject line.
        api_url: Resend endpoint, overridable for tests.
        timeout: Request timeout in seconds.
    """

    def __init__(
        self,
        *,
        api_key: SecretStr,
        sender: str,
        subject: str,
        api_url: str = RESEND_API_URL,
        timeout: float = _RESEND_TIMEOUT,
    ) -> None:
        self._api_key = api_key
        self._sender = sender
        self._subject = subject
        self._api_url = api_url
        self._timeout = timeout

    @property
    def channel(self) -> str:
        return "email"

    async def send(self, context: DeliveryContext) -> None:
        """Post the message to Resend.

        Raises:
            httpx.HTTPError: On network failure or a non-2xx response.
        """
        async with httpx.AsyncClient() as client:
            resp = await client.post(
                self._api_url,
                headers={
                    "Authorization": f"Bearer {self._api_key.get_secret_value()}",
                },
                json={
                    "from": self._sender,
                    "to": context.data,
                    "subject": self._subject,
                    "text": context.body,
                },
                timeout=self._timeout,
            )
            resp.raise_for_status()
        logger.debug("User code email accepted by Resend")
