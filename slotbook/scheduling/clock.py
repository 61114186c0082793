"""
Clock and timezone service.

Every "now" the engine uses comes from a ``SchedulingClock`` so that cutoff
and alignment math happens in one named zone, and tests can pin time.
Stored instants are naive UTC; helpers here convert in both directions.
"""

from datetime import datetime, timedelta, timezone
from typing import Callable
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from slotbook.core import config
from slotbook.scheduling.errors import TimezoneUnavailableError


def load_zone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise TimezoneUnavailableError(f'Scheduling timezone {name!r} is not available.') from exc


def to_storage(value: datetime, zone: ZoneInfo) -> datetime:
    """Normalize an instant to naive UTC. Naive input is read as wall time in ``zone``."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=zone)
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def from_storage(value: datetime) -> datetime:
    return value.replace(tzinfo=timezone.utc)


class SchedulingClock:
    def __init__(
        self,
        timezone_name: str = config.SCHEDULING_TIMEZONE,
        slot_minutes: int = config.SLOT_MINUTES,
        tolerance_ms: int = config.EXPIRY_TOLERANCE_MS,
        now_fn: Callable[[], datetime] | None = None,
    ):
        self.zone = load_zone(timezone_name)
        self.slot_minutes = slot_minutes
        self.tolerance = timedelta(milliseconds=tolerance_ms)
        self._now_fn = now_fn or (lambda: datetime.now(timezone.utc))

    def now(self) -> datetime:
        """Current instant expressed in the scheduling timezone."""
        return self._now_fn().astimezone(self.zone)

    def localize(self, value: datetime) -> datetime:
        """Express ``value`` in the scheduling zone; naive input is wall time there."""
        if value.tzinfo is None:
            return value.replace(tzinfo=self.zone)
        return value.astimezone(self.zone)

    def is_aligned(self, value: datetime) -> bool:
        local = self.localize(value)
        return (
            local.minute % self.slot_minutes == 0
            and local.second == 0
            and local.microsecond == 0
        )

    def last_quarter_boundary(self, now: datetime | None = None) -> datetime:
        now = self.now() if now is None else self.localize(now)
        minute = now.minute - (now.minute % self.slot_minutes)
        return now.replace(minute=minute, second=0, microsecond=0)

    def next_quarter_boundary(self, now: datetime | None = None) -> datetime:
        now = self.now() if now is None else self.localize(now)
        # add in UTC so a DST jump does not skew the result
        boundary = self.last_quarter_boundary(now).astimezone(timezone.utc)
        return (boundary + timedelta(minutes=self.slot_minutes)).astimezone(self.zone)

    def cutoff(self, now: datetime | None = None) -> datetime:
        """Instant at or before which a slot's end counts as expired."""
        return self.last_quarter_boundary(now) + self.tolerance

    def storage_now(self) -> datetime:
        return to_storage(self.now(), self.zone)

    def storage_cutoff(self, now: datetime | None = None) -> datetime:
        return to_storage(self.cutoff(now), self.zone)

    def to_storage(self, value: datetime) -> datetime:
        return to_storage(value, self.zone)


_default_clock: SchedulingClock | None = None


def get_clock() -> SchedulingClock:
    global _default_clock

    if _default_clock is None:
        _default_clock = SchedulingClock()
    return _default_clock
