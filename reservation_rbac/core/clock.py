"""Clock collaborator.

Services never call ``datetime.now`` themselves; they ask the clock they were
built with. All instants are naive UTC because that is what the DateTime
columns round-trip on every backend we run against.
"""

from datetime import datetime, timezone
from typing import Optional


def to_utc_naive(value: datetime) -> datetime:
    """Normalize an aware datetime to naive UTC; naive values are taken as UTC."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class SystemClock:
    """Wall clock."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc).replace(tzinfo=None)


class FixedClock:
    """Clock frozen at a given instant, moved explicitly."""

    def __init__(self, instant: datetime):
        self.instant = to_utc_naive(instant)

    def now(self) -> datetime:
        return self.instant

    def advance(self, delta) -> None:
        self.instant = self.instant + delta

    def set(self, instant: datetime) -> None:
        self.instant = to_utc_naive(instant)


def resolve_now(clock, now: Optional[datetime]) -> datetime:
    """Use the caller's instant when given, else ask the clock."""
    return to_utc_naive(now) if now is not None else clock.now()
