from __future__ import annotations

from datetime import date, datetime, time, timedelta
from functools import lru_cache
from zoneinfo import ZoneInfo

from content_api.core.config import get_settings


class Clock:
    """Source of "now" in the business timezone.

    Every date comparison in the vacancy lifecycle goes through a clock so
    tests can pin the current day without touching the system time.
    """

    def __init__(self, tz: ZoneInfo) -> None:
        self.tz = tz

    def now(self) -> datetime:
        return datetime.now(self.tz)

    def today(self) -> date:
        return self.now().date()


class FixedClock(Clock):
    def __init__(self, now: datetime, tz: ZoneInfo | None = None) -> None:
        zone = tz or (now.tzinfo if isinstance(now.tzinfo, ZoneInfo) else ZoneInfo("UTC"))
        super().__init__(zone)
        self._now = now if now.tzinfo is not None else now.replace(tzinfo=zone)

    def now(self) -> datetime:
        return self._now

    def advance(self, delta: timedelta) -> None:
        self._now = self._now + delta

    def set(self, now: datetime) -> None:
        self._now = now if now.tzinfo is not None else now.replace(tzinfo=self.tz)


def start_of_day(now: datetime) -> datetime:
    return datetime.combine(now.date(), time.min, tzinfo=now.tzinfo)


def next_run_at(now: datetime, run_at: time) -> datetime:
    candidate = datetime.combine(now.date(), run_at, tzinfo=now.tzinfo)
    if candidate <= now:
        candidate = datetime.combine(now.date() + timedelta(days=1), run_at, tzinfo=now.tzinfo)
    return candidate


def parse_run_at(raw: str) -> time:
    hours, _, minutes = raw.strip().partition(":")
    return time(hour=int(hours), minute=int(minutes or 0))


@lru_cache
def get_clock() -> Clock:
    return Clock(ZoneInfo(get_settings().timezone))
