"""Controllable clock for time-dependent tests."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta


class FakeClock:
    """Callable returning a fixed "now" that only moves when told to.

    Parameters
    ----------
    start: datetime | None
        Initial instant. Defaults to ``2024-01-01T00:00:00Z``.
    """

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 1, 1, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float = 0, **kwargs: float) -> datetime:
        """Move the clock forward and return the new instant."""

        self.now += timedelta(seconds=seconds, **kwargs)
        return self.now
