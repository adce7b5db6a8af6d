"""Capability-indexed registry of transporters.

Transporters register under the channel they declare. Dispatch hands a
rendered message to every transporter of the requested channel; delivery
is best-effort and failures stay inside the registry.
"""

import logging

from anonauth.services.issuance_types import DeliveryContext
from anonauth.transports.base import Transporter

logger = logging.getLogger(__name__)


class TransportRegistry:
    """Maps channel names to the transporters serving them."""

    def __init__(self) -> None:
        self._handlers: dict[str, list[Transporter]] = {}

    def register(self, transporter: Transporter) -> None:
        """Add a transporter under its declared channel."""
        self._handlers.setdefault(transporter.channel, []).append(transporter)
        logger.debug(
            "Registered transporter %s for channel %s",
            transporter.name,
            transporter.channel,
        )

    def handlers_for(self, transport: str) -> list[Transporter]:
        """Transporters that can handle *transport*, in registration order."""
        return [
            t for t in self._handlers.get(transport, []) if t.can_handle(transport)
        ]

    @property
    def channels(self) -> list[str]:
        """Channel names with at least one transporter."""
        return sorted(name for name, handlers in self._handlers.items() if handlers)

    async def dispatch(self, context: DeliveryContext) -> int:
        """Deliver a rendered message to every matching transporter.

        Never raises for delivery problems: a failing transporter is
        logged and the remaining ones still run.

        Args:
            context: Delivery context with the rendered body.

        Returns:
            Number of transporters that accepted the message.
        """
        handlers = self.handlers_for(context.transport)
        if not handlers:
            logger.warning("No transporter registered for %s", context.transport)
            return 0

        delivered = 0
        for transporter in handlers:
            try:
                await transporter.send(context)
            except Exception:
                logger.exception(
                    "Transporter %s failed to deliver via %s",
                    transporter.name,
                    context.transport,
                )
                continue
            delivered += 1
        return delivered
