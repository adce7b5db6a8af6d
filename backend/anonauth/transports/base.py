"""Abstract base class for user code transporters.

A transporter delivers one rendered message through one channel. It
declares the channel it serves; the registry selects transporters by that
declaration, so adding a channel never touches the issuance code.
"""

from abc import ABC, abstractmethod

from anonauth.services.issuance_types import DeliveryContext


class Transporter(ABC):
    """Delivers rendered user code messages over a single channel."""

    @property
    @abstractmethod
    def channel(self) -> str:
        """Transport channel name served (e.g. ``"sms"``)."""
        ...

    @property
    def name(self) -> str:
        """Identifier used in logs. Defaults to the class name."""
        return type(self).__name__

    def can_handle(self, transport: str) -> bool:
        """Whether this transporter serves *transport*."""
        return transport == self.channel

    @abstractmethod
    async def send(self, context: DeliveryContext) -> None:
        """Deliver ``context.body`` to ``context.data``.

        Implementations raise on failure; the registry logs and swallows.
        """
        ...
