from __future__ import annotations

from typing import Any

from fastapi import Depends

from content_api.core.auth import Actor
from content_api.core.clock import Clock, get_clock
from content_api.core.config import Settings, get_settings
from content_api.services.expiration import ExpirationSweeper
from content_api.services.repository import VacancyFilters, get_repository


class VacancyService:
    """Read and write paths for vacancies.

    Every read path runs the expiration sweep inline first, so a listing never
    reports a vacancy as active after its closed_date has passed.
    """

    def __init__(
        self,
        repository: Any,
        clock: Clock,
        *,
        sweeper: ExpirationSweeper | None = None,
        related_default_limit: int = 2,
    ) -> None:
        self.repository = repository
        self.clock = clock
        self.sweeper = sweeper or ExpirationSweeper(repository, clock)
        self.related_default_limit = related_default_limit

    async def list_vacancies(
        self,
        *,
        filters: VacancyFilters,
        sort_by: str = "id",
        sort_order: str = "desc",
        page: int = 1,
        per_page: int = 10,
    ) -> tuple[list[dict[str, Any]], int]:
        await self.sweeper.guard()
        return await self.repository.list_vacancies(
            filters=filters,
            sort_by=sort_by,
            sort_order=sort_order,
            limit=per_page,
            offset=(page - 1) * per_page,
        )

    async def list_all_vacancies(
        self,
        *,
        filters: VacancyFilters,
        sort_by: str = "id",
        sort_order: str = "desc",
    ) -> list[dict[str, Any]]:
        await self.sweeper.guard()
        rows, _ = await self.repository.list_vacancies(
            filters=filters,
            sort_by=sort_by,
            sort_order=sort_order,
            limit=None,
            offset=0,
        )
        return rows

    async def list_active_vacancies(self, *, filters: VacancyFilters) -> list[dict[str, Any]]:
        await self.sweeper.guard()
        return await self.repository.list_visible_vacancies(filters=filters, today=self.clock.today())

    async def get_vacancy(self, vacancy_id: int) -> dict[str, Any]:
        await self.sweeper.guard()
        return await self.repository.get_vacancy(vacancy_id)

    async def get_vacancy_detail(self, identifier: str) -> dict[str, Any]:
        """Resolve a public detail link: ASCII digits are an id, anything else a title slug."""
        await self.sweeper.guard()
        candidate = identifier.strip()
        if candidate.isascii() and candidate.isdigit():
            return await self.repository.get_vacancy(int(candidate))
        return await self.repository.find_vacancy_by_slug(candidate)

    async def list_related_vacancies(
        self,
        *,
        department_id: int,
        exclude_id: int | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        await self.sweeper.guard()
        return await self.repository.list_related_vacancies(
            department_id=department_id,
            exclude_id=exclude_id,
            today=self.clock.today(),
            limit=limit or self.related_default_limit,
        )

    async def create_vacancy(self, *, fields: dict[str, Any], actor: Actor) -> dict[str, Any]:
        return await self.repository.create_vacancy(fields=fields, actor=actor)

    async def update_vacancy(self, *, vacancy_id: int, fields: dict[str, Any], actor: Actor) -> dict[str, Any]:
        return await self.repository.update_vacancy(vacancy_id=vacancy_id, fields=fields, actor=actor)

    async def delete_vacancy(self, vacancy_id: int) -> None:
        await self.repository.delete_vacancy(vacancy_id)

    async def check_expired(self) -> int:
        return await self.sweeper.sweep()

    async def statistics(self) -> dict[str, Any]:
        await self.sweeper.guard()
        stats = await self.repository.vacancy_statistics()
        stats["latest_vacancies"] = [_latest_vacancy_summary(row) for row in stats["latest_vacancies"]]
        return stats


def _latest_vacancy_summary(row: dict[str, Any]) -> dict[str, Any]:
    department = row.get("department") or {}
    experience = row.get("experience") or {}
    return {
        "id": row["id"],
        "title_id": row["title_id"],
        "title_en": row["title_en"],
        "work_mode": row.get("work_mode"),
        "urgent": row["urgent"],
        "is_active": row["is_active"],
        "posted_date": row["posted_date"],
        "closed_date": row.get("closed_date"),
        "department_name": department.get("title_en") or "N/A",
        "experience_level": experience.get("title_en") or "N/A",
    }


def get_vacancy_service(
    repository=Depends(get_repository),
    clock: Clock = Depends(get_clock),
    settings: Settings = Depends(get_settings),
) -> VacancyService:
    return VacancyService(
        repository,
        clock,
        related_default_limit=settings.related_vacancies_default_limit,
    )
