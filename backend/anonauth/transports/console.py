"""Console transporter for local development.

Logs the rendered message instead of delivering it. Used for a channel
whose credentials are not configured.
"""

import logging

from anonauth.services.issuance_types import DeliveryContext
from anonauth.transports.base import Transporter

logger = logging.getLogger(__name__)


class ConsoleTransporter(Transporter):
    """Logs messages at INFO level.

    Args:
        channel: Channel name to serve.
    """

    def __init__(self, channel: str) -> None:
        self._channel = channel

    @property
    def channel(self) -> str:
        return self._channel

    async def send(self, context: DeliveryContext) -> None:
        logger.info(
            "[%s] to=%s provider=%s body=%s",
            context.transport.upper(),
            context.data,
            context.provider,
            context.body,
        )
