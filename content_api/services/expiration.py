from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any

from content_api.core.auth import SYSTEM_ACTOR
from content_api.core.clock import Clock, start_of_day

logger = logging.getLogger(__name__)


def is_expired(vacancy: dict[str, Any], today: date) -> bool:
    closed_date = vacancy.get("closed_date")
    return bool(vacancy.get("is_active")) and closed_date is not None and closed_date < today


def is_externally_visible(vacancy: dict[str, Any], today: date) -> bool:
    if not vacancy.get("is_active"):
        return False
    posted_date = vacancy.get("posted_date")
    if posted_date is None or posted_date > today:
        return False
    closed_date = vacancy.get("closed_date")
    return closed_date is None or closed_date >= today


class ExpirationSweeper:
    """Moves active vacancies whose closed_date has passed to inactive.

    The whole transition is one bulk update issued by the repository; rows are
    stamped with updated_by="System". The sweeper never reactivates rows, so
    running it again with the same clock changes nothing.
    """

    def __init__(self, repository: Any, clock: Clock) -> None:
        self.repository = repository
        self.clock = clock

    async def sweep(self, now: datetime | None = None) -> int:
        current = now or self.clock.now()
        cutoff = start_of_day(current).date()
        inactivated = await self.repository.inactivate_expired_vacancies(
            cutoff=cutoff,
            updated_at=current,
            actor=SYSTEM_ACTOR,
        )
        if inactivated:
            logger.info("inactivated expired vacancies count=%s cutoff=%s", inactivated, cutoff.isoformat())
        return inactivated

    async def guard(self) -> None:
        await self.sweep()
