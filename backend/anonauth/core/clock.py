"""Clock abstraction so issuance timestamps can be pinned in tests."""

from datetime import UTC, datetime, timedelta


class Clock:
    """System clock returning timezone-aware UTC timestamps."""

    def now_utc(self) -> datetime:
        """Return the current time in UTC."""
        return datetime.now(UTC)


class FixedClock(Clock):
    """Clock frozen at a given instant.

    Args:
        now: The instant to return. Must be timezone-aware.
    """

    def __init__(self, now: datetime) -> None:
        self._now = now

    def now_utc(self) -> datetime:
        return self._now

    def advance(self, seconds: float) -> None:
        """Move the frozen instant forward."""
        self._now = self._now + timedelta(seconds=seconds)
