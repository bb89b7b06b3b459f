from __future__ import annotations

import random
from datetime import date, datetime
from itertools import count
from typing import Any
from zoneinfo import ZoneInfo

from content_api.core.auth import Actor
from content_api.core.clock import Clock
from content_api.services.expiration import is_externally_visible
from content_api.services.repository import (
    LOOKUP_SORT_COLUMNS,
    LOOKUP_TABLES,
    VACANCY_SORT_COLUMNS,
    RepositoryNotFoundError,
    RepositoryReferenceError,
    RepositoryValidationError,
    VacancyFilters,
    resolve_lookup_table,
    slugify_title,
    vacancy_create_values,
    vacancy_update_values,
    validate_vacancy_dates,
)


class InMemoryRepository:
    """Process-local store with the same contract as PostgresRepository.

    Used for local runs without a database (storage_backend=memory) and by the
    test suite. Rows are copied on the way in and out so callers never share
    mutable state with the store. Timestamps come from the injected clock.
    """

    def __init__(self, rng: random.Random | None = None, clock: Clock | None = None) -> None:
        self.lookups: dict[str, dict[int, dict[str, Any]]] = {kind: {} for kind in LOOKUP_TABLES}
        self.vacancies: dict[int, dict[str, Any]] = {}
        self._lookup_ids = {kind: count(1) for kind in LOOKUP_TABLES}
        self._vacancy_ids = count(1)
        self._random = rng or random.Random()
        self._clock = clock or Clock(ZoneInfo("UTC"))

    async def close(self) -> None:
        return None

    async def ping(self) -> None:
        return None

    # Vacancies

    async def list_vacancies(
        self,
        *,
        filters: VacancyFilters,
        sort_by: str,
        sort_order: str,
        limit: int | None,
        offset: int,
    ) -> tuple[list[dict[str, Any]], int]:
        if sort_by not in VACANCY_SORT_COLUMNS:
            raise RepositoryValidationError(f"unsupported sort_by: {sort_by}", field="sort_by")

        rows = [row for row in self.vacancies.values() if self._matches(row, filters)]
        rows.sort(key=lambda row: row["id"], reverse=True)
        rows.sort(key=lambda row: _nullable_sort_key(row[sort_by]), reverse=sort_order != "asc")
        total = len(rows)
        if limit is not None:
            rows = rows[offset : offset + limit]
        return [self._vacancy_out(row) for row in rows], total

    async def list_visible_vacancies(self, *, filters: VacancyFilters, today: date) -> list[dict[str, Any]]:
        visible_filters = VacancyFilters(
            department_id=filters.department_id,
            employment_id=filters.employment_id,
            experience_id=filters.experience_id,
            is_urgent=filters.is_urgent,
        )
        rows = [
            row
            for row in self.vacancies.values()
            if self._matches(row, visible_filters) and is_externally_visible(row, today)
        ]
        rows.sort(
            key=lambda row: (
                not row["urgent"],
                row["closed_date"] is None,
                row["closed_date"] or date.min,
                -row["id"],
            )
        )
        return [self._vacancy_out(row) for row in rows]

    async def list_related_vacancies(
        self,
        *,
        department_id: int,
        exclude_id: int | None,
        today: date,
        limit: int,
    ) -> list[dict[str, Any]]:
        rows = [
            row
            for row in self.vacancies.values()
            if row["department_id"] == department_id
            and row["id"] != exclude_id
            and is_externally_visible(row, today)
        ]
        picked = self._random.sample(rows, k=min(limit, len(rows)))
        return [self._vacancy_out(row) for row in picked]

    async def get_vacancy(self, vacancy_id: int) -> dict[str, Any]:
        row = self.vacancies.get(vacancy_id)
        if row is None:
            raise RepositoryNotFoundError("Vacancy not found")
        return self._vacancy_out(row)

    async def find_vacancy_by_slug(self, slug: str) -> dict[str, Any]:
        candidate = slugify_title(slug)
        for vacancy_id in sorted(self.vacancies):
            row = self.vacancies[vacancy_id]
            if candidate in {slugify_title(row["title_id"]), slugify_title(row["title_en"])}:
                return self._vacancy_out(row)
        raise RepositoryNotFoundError("Vacancy not found")

    async def create_vacancy(self, *, fields: dict[str, Any], actor: Actor) -> dict[str, Any]:
        values = vacancy_create_values(fields)
        validate_vacancy_dates(values["posted_date"], values["closed_date"])
        self._ensure_vacancy_references(values)

        now = self._clock.now()
        vacancy_id = next(self._vacancy_ids)
        self.vacancies[vacancy_id] = {
            "id": vacancy_id,
            **values,
            "created_by": actor.employee_id,
            "updated_by": None,
            "created_at": now,
            "updated_at": now,
        }
        return self._vacancy_out(self.vacancies[vacancy_id])

    async def update_vacancy(self, *, vacancy_id: int, fields: dict[str, Any], actor: Actor) -> dict[str, Any]:
        row = self.vacancies.get(vacancy_id)
        if row is None:
            raise RepositoryNotFoundError("Vacancy not found")

        values = vacancy_update_values(row, fields)
        validate_vacancy_dates(values["posted_date"], values["closed_date"])
        self._ensure_vacancy_references(values)

        row.update(values)
        row["updated_by"] = actor.employee_id
        row["updated_at"] = self._clock.now()
        return self._vacancy_out(row)

    async def delete_vacancy(self, vacancy_id: int) -> None:
        if self.vacancies.pop(vacancy_id, None) is None:
            raise RepositoryNotFoundError("Vacancy not found")

    async def inactivate_expired_vacancies(self, *, cutoff: date, updated_at: datetime, actor: str) -> int:
        affected = 0
        for row in self.vacancies.values():
            if row["is_active"] and row["closed_date"] is not None and row["closed_date"] < cutoff:
                row["is_active"] = False
                row["updated_by"] = actor
                row["updated_at"] = updated_at
                affected += 1
        return affected

    async def vacancy_statistics(self) -> dict[str, Any]:
        rows = list(self.vacancies.values())
        latest = sorted(rows, key=lambda row: (row["created_at"], row["id"]), reverse=True)[:10]
        by_department = [
            {
                "id": department["id"],
                "title_en": department["title_en"],
                "vacancy_count": sum(
                    1 for row in rows if row["department_id"] == department["id"] and row["is_active"]
                ),
            }
            for department in sorted(self.lookups["department"].values(), key=lambda item: item["id"])
        ]
        return {
            "total_vacancies": len(rows),
            "active_vacancies": sum(1 for row in rows if row["is_active"]),
            "urgent_vacancies": sum(1 for row in rows if row["is_active"] and row["urgent"]),
            "total_departments": len(self.lookups["department"]),
            "total_employments": len(self.lookups["employment"]),
            "total_experiences": len(self.lookups["experience"]),
            "latest_vacancies": [self._vacancy_out(row) for row in latest],
            "vacancies_by_department": by_department,
        }

    # Lookup entities

    async def list_lookups(
        self,
        *,
        kind: str,
        search: str | None,
        sort_by: str,
        sort_order: str,
        limit: int | None,
        offset: int,
    ) -> tuple[list[dict[str, Any]], int]:
        table = resolve_lookup_table(kind)
        if sort_by not in LOOKUP_SORT_COLUMNS:
            raise RepositoryValidationError(f"unsupported sort_by: {sort_by}", field="sort_by")

        rows = list(self.lookups[table.kind].values())
        needle = (search or "").strip().lower()
        if needle:
            rows = [row for row in rows if needle in row["title_id"].lower() or needle in row["title_en"].lower()]
        rows.sort(key=lambda row: row["id"])
        rows.sort(key=lambda row: _nullable_sort_key(row[sort_by]), reverse=sort_order != "asc")
        total = len(rows)
        if limit is not None:
            rows = rows[offset : offset + limit]
        return [dict(row) for row in rows], total

    async def get_lookup(self, *, kind: str, lookup_id: int) -> dict[str, Any]:
        table = resolve_lookup_table(kind)
        row = self.lookups[table.kind].get(lookup_id)
        if row is None:
            raise RepositoryNotFoundError(f"{table.label} not found")
        return dict(row)

    async def create_lookup(self, *, kind: str, title_id: str, title_en: str, actor: Actor) -> dict[str, Any]:
        table = resolve_lookup_table(kind)
        now = self._clock.now()
        lookup_id = next(self._lookup_ids[table.kind])
        self.lookups[table.kind][lookup_id] = {
            "id": lookup_id,
            "title_id": title_id,
            "title_en": title_en,
            "created_by": actor.employee_id,
            "updated_by": None,
            "created_at": now,
            "updated_at": now,
        }
        return dict(self.lookups[table.kind][lookup_id])

    async def update_lookup(
        self,
        *,
        kind: str,
        lookup_id: int,
        title_id: str,
        title_en: str,
        actor: Actor,
    ) -> dict[str, Any]:
        table = resolve_lookup_table(kind)
        row = self.lookups[table.kind].get(lookup_id)
        if row is None:
            raise RepositoryNotFoundError(f"{table.label} not found")
        row.update(
            {
                "title_id": title_id,
                "title_en": title_en,
                "updated_by": actor.employee_id,
                "updated_at": self._clock.now(),
            }
        )
        return dict(row)

    async def delete_lookup(self, *, kind: str, lookup_id: int) -> None:
        table = resolve_lookup_table(kind)
        if lookup_id not in self.lookups[table.kind]:
            raise RepositoryNotFoundError(f"{table.label} not found")
        if any(row[table.vacancy_column] == lookup_id for row in self.vacancies.values()):
            raise RepositoryReferenceError(
                f"Cannot delete {table.kind} with associated vacancies. Remove the vacancies first."
            )
        del self.lookups[table.kind][lookup_id]

    # Internals

    def _ensure_vacancy_references(self, values: dict[str, Any]) -> None:
        for table in LOOKUP_TABLES.values():
            reference_id = values.get(table.vacancy_column)
            if reference_id is None:
                raise RepositoryValidationError(
                    f"The {table.vacancy_column} field is required.",
                    field=table.vacancy_column,
                )
            if reference_id not in self.lookups[table.kind]:
                raise RepositoryValidationError(
                    f"The selected {table.vacancy_column} is invalid.",
                    field=table.vacancy_column,
                )

    def _vacancy_out(self, row: dict[str, Any]) -> dict[str, Any]:
        out = dict(row)
        for table in LOOKUP_TABLES.values():
            lookup = self.lookups[table.kind].get(row[table.vacancy_column])
            out[table.kind] = (
                {"id": lookup["id"], "title_id": lookup["title_id"], "title_en": lookup["title_en"]}
                if lookup
                else None
            )
        return out

    @staticmethod
    def _matches(row: dict[str, Any], filters: VacancyFilters) -> bool:
        if filters.department_id is not None and row["department_id"] != filters.department_id:
            return False
        if filters.employment_id is not None and row["employment_id"] != filters.employment_id:
            return False
        if filters.experience_id is not None and row["experience_id"] != filters.experience_id:
            return False
        if filters.is_active is not None and row["is_active"] != filters.is_active:
            return False
        if filters.is_urgent is not None and row["urgent"] != filters.is_urgent:
            return False
        return True


def _nullable_sort_key(value: Any) -> tuple[bool, Any]:
    # Postgres ordering: nulls sort last ascending, first descending.
    return (value is None, value if value is not None else 0)
