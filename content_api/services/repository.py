from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from functools import lru_cache
from typing import Any

import asyncpg  # type: ignore[import-untyped]
from asyncpg import exceptions as pg_exc

from content_api.core.auth import Actor
from content_api.core.config import get_settings


class RepositoryError(Exception):
    """Base repository error."""


class RepositoryUnavailableError(RepositoryError):
    """Raised when the database is unavailable or not configured."""


class RepositoryNotFoundError(RepositoryError):
    """Raised when the requested entity does not exist."""


class RepositoryConflictError(RepositoryError):
    """Raised when an operation violates state rules."""


class RepositoryReferenceError(RepositoryConflictError):
    """Raised when deleting a lookup row that vacancies still reference."""


class RepositoryValidationError(RepositoryError):
    """Raised when payload validation fails before persistence."""

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


@dataclass(slots=True, frozen=True)
class VacancyFilters:
    department_id: int | None = None
    employment_id: int | None = None
    experience_id: int | None = None
    is_active: bool | None = None
    is_urgent: bool | None = None


@dataclass(slots=True, frozen=True)
class LookupTable:
    kind: str
    label: str
    table: str
    vacancy_column: str


LOOKUP_TABLES: dict[str, LookupTable] = {
    "department": LookupTable("department", "Department", "career_departments", "department_id"),
    "employment": LookupTable("employment", "Employment", "career_employments", "employment_id"),
    "experience": LookupTable("experience", "Experience", "career_experiences", "experience_id"),
}

VACANCY_WRITABLE_FIELDS = (
    "title_id",
    "title_en",
    "department_id",
    "employment_id",
    "experience_id",
    "work_mode",
    "description_id",
    "description_en",
    "requirement_id",
    "requirement_en",
    "responsibilities_id",
    "responsibilities_en",
    "posted_date",
    "closed_date",
    "urgent",
    "is_active",
)

_NOT_NULL_FLAGS = frozenset({"urgent", "is_active"})

VACANCY_SORT_COLUMNS = {
    "id": "v.id",
    "title_id": "v.title_id",
    "title_en": "v.title_en",
    "posted_date": "v.posted_date",
    "closed_date": "v.closed_date",
    "urgent": "v.urgent",
    "is_active": "v.is_active",
    "created_at": "v.created_at",
    "updated_at": "v.updated_at",
}

LOOKUP_SORT_COLUMNS = {
    "id": "id",
    "title_id": "title_id",
    "title_en": "title_en",
    "created_at": "created_at",
    "updated_at": "updated_at",
}

_VACANCY_SELECT_SQL = """
    select
      v.id,
      v.title_id,
      v.title_en,
      v.department_id,
      v.employment_id,
      v.experience_id,
      v.work_mode,
      v.description_id,
      v.description_en,
      v.requirement_id,
      v.requirement_en,
      v.responsibilities_id,
      v.responsibilities_en,
      v.posted_date,
      v.closed_date,
      v.urgent,
      v.is_active,
      v.created_by,
      v.updated_by,
      v.created_at,
      v.updated_at,
      d.title_id as department_title_id,
      d.title_en as department_title_en,
      e.title_id as employment_title_id,
      e.title_en as employment_title_en,
      x.title_id as experience_title_id,
      x.title_en as experience_title_en
    from career_vacancies v
    join career_departments d on d.id = v.department_id
    join career_employments e on e.id = v.employment_id
    join career_experiences x on x.id = v.experience_id
"""


def slugify_title(value: str) -> str:
    """Slug form used for public vacancy URLs: lower-cased, spaces to hyphens."""
    return value.lower().replace(" ", "-")


def vacancy_create_values(fields: dict[str, Any]) -> dict[str, Any]:
    values = {column: fields.get(column) for column in VACANCY_WRITABLE_FIELDS}
    if values["urgent"] is None:
        values["urgent"] = False
    if values["is_active"] is None:
        values["is_active"] = True
    return values


def vacancy_update_values(current: Any, fields: dict[str, Any]) -> dict[str, Any]:
    """Overlay the submitted fields on the stored row; columns not submitted keep their value."""
    values = {column: current[column] for column in VACANCY_WRITABLE_FIELDS}
    for column, value in fields.items():
        if column not in values:
            continue
        if value is None and column in _NOT_NULL_FLAGS:
            continue
        values[column] = value
    return values


def validate_vacancy_dates(posted_date: Any, closed_date: Any) -> None:
    if posted_date is None:
        raise RepositoryValidationError("The posted_date field is required.", field="posted_date")
    if closed_date is not None and closed_date < posted_date:
        raise RepositoryValidationError(
            "The closed_date must be a date after or equal to posted_date.",
            field="closed_date",
        )


def resolve_lookup_table(kind: str) -> LookupTable:
    try:
        return LOOKUP_TABLES[kind]
    except KeyError as exc:
        raise RepositoryValidationError(f"unknown lookup kind: {kind}", field="kind") from exc


class PostgresRepository:
    def __init__(self, database_url: str | None, min_pool_size: int, max_pool_size: int) -> None:
        self.database_url = database_url
        self.min_pool_size = min_pool_size
        self.max_pool_size = max_pool_size
        self._pool: asyncpg.Pool | None = None

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None

    async def ping(self) -> None:
        pool = await self._get_pool()
        try:
            await pool.fetchval("select 1")
        except (OSError, pg_exc.PostgresError) as exc:
            raise RepositoryUnavailableError(f"database unavailable: {exc}") from exc

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
        pool = await self._get_pool()
        params: list[Any] = []

        def bind(value: Any) -> str:
            params.append(value)
            return f"${len(params)}"

        conditions = self._vacancy_filter_conditions(filters, bind)
        where_sql = " and ".join(conditions) if conditions else "true"
        total = await pool.fetchval(f"select count(*) from career_vacancies v where {where_sql}", *params)

        sort_expr = VACANCY_SORT_COLUMNS.get(sort_by)
        if sort_expr is None:
            raise RepositoryValidationError(f"unsupported sort_by: {sort_by}", field="sort_by")
        direction = "asc" if sort_order == "asc" else "desc"
        order_by_sql = f"{sort_expr} {direction}"
        if sort_expr != "v.id":
            order_by_sql = f"{order_by_sql}, v.id desc"

        page_sql = ""
        if limit is not None:
            page_sql = f"limit {bind(limit)} offset {bind(offset)}"

        rows = await pool.fetch(
            f"""
            {_VACANCY_SELECT_SQL}
            where {where_sql}
            order by {order_by_sql}
            {page_sql}
            """,
            *params,
        )
        return [self._vacancy_row_to_dict(row) for row in rows], int(total or 0)

    async def list_visible_vacancies(self, *, filters: VacancyFilters, today: date) -> list[dict[str, Any]]:
        pool = await self._get_pool()
        params: list[Any] = []

        def bind(value: Any) -> str:
            params.append(value)
            return f"${len(params)}"

        visible_filters = VacancyFilters(
            department_id=filters.department_id,
            employment_id=filters.employment_id,
            experience_id=filters.experience_id,
            is_urgent=filters.is_urgent,
        )
        conditions = self._vacancy_filter_conditions(visible_filters, bind)
        conditions.append(self._visible_condition(bind(today)))

        rows = await pool.fetch(
            f"""
            {_VACANCY_SELECT_SQL}
            where {" and ".join(conditions)}
            order by v.urgent desc, v.closed_date asc nulls last, v.id desc
            """,
            *params,
        )
        return [self._vacancy_row_to_dict(row) for row in rows]

    async def list_related_vacancies(
        self,
        *,
        department_id: int,
        exclude_id: int | None,
        today: date,
        limit: int,
    ) -> list[dict[str, Any]]:
        pool = await self._get_pool()
        params: list[Any] = []

        def bind(value: Any) -> str:
            params.append(value)
            return f"${len(params)}"

        conditions = [f"v.department_id = {bind(department_id)}", self._visible_condition(bind(today))]
        if exclude_id is not None:
            conditions.append(f"v.id <> {bind(exclude_id)}")

        rows = await pool.fetch(
            f"""
            {_VACANCY_SELECT_SQL}
            where {" and ".join(conditions)}
            order by random()
            limit {bind(limit)}
            """,
            *params,
        )
        return [self._vacancy_row_to_dict(row) for row in rows]

    async def get_vacancy(self, vacancy_id: int) -> dict[str, Any]:
        pool = await self._get_pool()
        row = await self._fetch_vacancy_row(conn=pool, vacancy_id=vacancy_id)
        if not row:
            raise RepositoryNotFoundError("Vacancy not found")
        return self._vacancy_row_to_dict(row)

    async def find_vacancy_by_slug(self, slug: str) -> dict[str, Any]:
        pool = await self._get_pool()
        row = await pool.fetchrow(
            f"""
            {_VACANCY_SELECT_SQL}
            where lower(replace(v.title_id, ' ', '-')) = $1
               or lower(replace(v.title_en, ' ', '-')) = $1
            order by v.id asc
            limit 1
            """,
            slugify_title(slug),
        )
        if not row:
            raise RepositoryNotFoundError("Vacancy not found")
        return self._vacancy_row_to_dict(row)

    async def create_vacancy(self, *, fields: dict[str, Any], actor: Actor) -> dict[str, Any]:
        values = vacancy_create_values(fields)
        validate_vacancy_dates(values["posted_date"], values["closed_date"])

        pool = await self._get_pool()
        async with pool.acquire() as conn:
            async with conn.transaction():
                await self._ensure_vacancy_references(conn=conn, values=values)
                columns = list(VACANCY_WRITABLE_FIELDS)
                placeholders = [f"${index}" for index in range(1, len(columns) + 1)]
                try:
                    vacancy_id = await conn.fetchval(
                        f"""
                        insert into career_vacancies ({", ".join(columns)}, created_by)
                        values ({", ".join(placeholders)}, ${len(columns) + 1})
                        returning id
                        """,
                        *[values[column] for column in columns],
                        actor.employee_id,
                    )
                except pg_exc.ForeignKeyViolationError as exc:
                    raise RepositoryValidationError(
                        "The selected reference is invalid.",
                        field="department_id",
                    ) from exc
                except pg_exc.CheckViolationError as exc:
                    raise RepositoryValidationError(
                        "The closed_date must be a date after or equal to posted_date.",
                        field="closed_date",
                    ) from exc
                row = await self._fetch_vacancy_row(conn=conn, vacancy_id=vacancy_id)
        return self._vacancy_row_to_dict(row)

    async def update_vacancy(self, *, vacancy_id: int, fields: dict[str, Any], actor: Actor) -> dict[str, Any]:
        pool = await self._get_pool()
        async with pool.acquire() as conn:
            async with conn.transaction():
                current = await conn.fetchrow(
                    f"select {', '.join(VACANCY_WRITABLE_FIELDS)} from career_vacancies where id = $1 for update",
                    vacancy_id,
                )
                if current is None:
                    raise RepositoryNotFoundError("Vacancy not found")

                values = vacancy_update_values(current, fields)
                validate_vacancy_dates(values["posted_date"], values["closed_date"])
                await self._ensure_vacancy_references(conn=conn, values=values)

                columns = list(VACANCY_WRITABLE_FIELDS)
                assignments = [f"{column} = ${index}" for index, column in enumerate(columns, start=1)]
                try:
                    await conn.execute(
                        f"""
                        update career_vacancies
                        set {", ".join(assignments)},
                            updated_by = ${len(columns) + 1},
                            updated_at = now()
                        where id = ${len(columns) + 2}
                        """,
                        *[values[column] for column in columns],
                        actor.employee_id,
                        vacancy_id,
                    )
                except pg_exc.CheckViolationError as exc:
                    raise RepositoryValidationError(
                        "The closed_date must be a date after or equal to posted_date.",
                        field="closed_date",
                    ) from exc
                row = await self._fetch_vacancy_row(conn=conn, vacancy_id=vacancy_id)
        return self._vacancy_row_to_dict(row)

    async def delete_vacancy(self, vacancy_id: int) -> None:
        pool = await self._get_pool()
        deleted = await pool.fetchval("delete from career_vacancies where id = $1 returning id", vacancy_id)
        if deleted is None:
            raise RepositoryNotFoundError("Vacancy not found")

    async def inactivate_expired_vacancies(self, *, cutoff: date, updated_at: datetime, actor: str) -> int:
        pool = await self._get_pool()
        status = await pool.execute(
            """
            update career_vacancies
            set is_active = false,
                updated_by = $3,
                updated_at = $2
            where is_active = true
              and closed_date is not null
              and closed_date < $1
            """,
            cutoff,
            updated_at,
            actor,
        )
        return self._affected_rows(status)

    async def vacancy_statistics(self) -> dict[str, Any]:
        pool = await self._get_pool()
        counts = await pool.fetchrow(
            """
            select
              (select count(*) from career_vacancies) as total_vacancies,
              (select count(*) from career_vacancies where is_active = true) as active_vacancies,
              (select count(*) from career_vacancies where is_active = true and urgent = true) as urgent_vacancies,
              (select count(*) from career_departments) as total_departments,
              (select count(*) from career_employments) as total_employments,
              (select count(*) from career_experiences) as total_experiences
            """
        )
        latest_rows = await pool.fetch(
            f"""
            {_VACANCY_SELECT_SQL}
            order by v.created_at desc, v.id desc
            limit 10
            """
        )
        department_rows = await pool.fetch(
            """
            select
              d.id,
              d.title_en,
              count(v.id) filter (where v.is_active = true) as vacancy_count
            from career_departments d
            left join career_vacancies v on v.department_id = d.id
            group by d.id, d.title_en
            order by d.id asc
            """
        )
        return {
            "total_vacancies": int(counts["total_vacancies"]),
            "active_vacancies": int(counts["active_vacancies"]),
            "urgent_vacancies": int(counts["urgent_vacancies"]),
            "total_departments": int(counts["total_departments"]),
            "total_employments": int(counts["total_employments"]),
            "total_experiences": int(counts["total_experiences"]),
            "latest_vacancies": [self._vacancy_row_to_dict(row) for row in latest_rows],
            "vacancies_by_department": [
                {"id": row["id"], "title_en": row["title_en"], "vacancy_count": int(row["vacancy_count"])}
                for row in department_rows
            ],
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
        pool = await self._get_pool()
        params: list[Any] = []

        def bind(value: Any) -> str:
            params.append(value)
            return f"${len(params)}"

        conditions: list[str] = []
        normalized_search = self._coerce_text(search)
        if normalized_search:
            token = bind(f"%{normalized_search}%")
            conditions.append(f"(title_id ilike {token} or title_en ilike {token})")
        where_sql = " and ".join(conditions) if conditions else "true"
        total = await pool.fetchval(f"select count(*) from {table.table} where {where_sql}", *params)

        sort_expr = LOOKUP_SORT_COLUMNS.get(sort_by)
        if sort_expr is None:
            raise RepositoryValidationError(f"unsupported sort_by: {sort_by}", field="sort_by")
        direction = "asc" if sort_order == "asc" else "desc"
        page_sql = ""
        if limit is not None:
            page_sql = f"limit {bind(limit)} offset {bind(offset)}"

        rows = await pool.fetch(
            f"""
            select id, title_id, title_en, created_by, updated_by, created_at, updated_at
            from {table.table}
            where {where_sql}
            order by {sort_expr} {direction}, id asc
            {page_sql}
            """,
            *params,
        )
        return [self._lookup_row_to_dict(row) for row in rows], int(total or 0)

    async def get_lookup(self, *, kind: str, lookup_id: int) -> dict[str, Any]:
        table = resolve_lookup_table(kind)
        pool = await self._get_pool()
        row = await pool.fetchrow(
            f"""
            select id, title_id, title_en, created_by, updated_by, created_at, updated_at
            from {table.table}
            where id = $1
            """,
            lookup_id,
        )
        if not row:
            raise RepositoryNotFoundError(f"{table.label} not found")
        return self._lookup_row_to_dict(row)

    async def create_lookup(self, *, kind: str, title_id: str, title_en: str, actor: Actor) -> dict[str, Any]:
        table = resolve_lookup_table(kind)
        pool = await self._get_pool()
        row = await pool.fetchrow(
            f"""
            insert into {table.table} (title_id, title_en, created_by)
            values ($1, $2, $3)
            returning id, title_id, title_en, created_by, updated_by, created_at, updated_at
            """,
            title_id,
            title_en,
            actor.employee_id,
        )
        return self._lookup_row_to_dict(row)

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
        pool = await self._get_pool()
        row = await pool.fetchrow(
            f"""
            update {table.table}
            set title_id = $2,
                title_en = $3,
                updated_by = $4,
                updated_at = now()
            where id = $1
            returning id, title_id, title_en, created_by, updated_by, created_at, updated_at
            """,
            lookup_id,
            title_id,
            title_en,
            actor.employee_id,
        )
        if not row:
            raise RepositoryNotFoundError(f"{table.label} not found")
        return self._lookup_row_to_dict(row)

    async def delete_lookup(self, *, kind: str, lookup_id: int) -> None:
        table = resolve_lookup_table(kind)
        pool = await self._get_pool()
        async with pool.acquire() as conn:
            async with conn.transaction():
                existing = await conn.fetchval(f"select id from {table.table} where id = $1 for update", lookup_id)
                if existing is None:
                    raise RepositoryNotFoundError(f"{table.label} not found")

                in_use = await conn.fetchval(
                    f"select exists(select 1 from career_vacancies where {table.vacancy_column} = $1)",
                    lookup_id,
                )
                if in_use:
                    raise RepositoryReferenceError(self._in_use_message(table))

                try:
                    await conn.execute(f"delete from {table.table} where id = $1", lookup_id)
                except pg_exc.ForeignKeyViolationError as exc:
                    raise RepositoryReferenceError(self._in_use_message(table)) from exc

    # Internals

    async def _get_pool(self) -> asyncpg.Pool:
        if not self.database_url:
            raise RepositoryUnavailableError("CONTENT_API_DATABASE_URL is required")

        if self._pool is not None:
            return self._pool

        try:
            self._pool = await asyncpg.create_pool(
                dsn=self.database_url,
                min_size=self.min_pool_size,
                max_size=self.max_pool_size,
                command_timeout=15,
            )
            return self._pool
        except Exception as exc:  # pragma: no cover - depends on environment
            raise RepositoryUnavailableError(f"database unavailable: {exc}") from exc

    async def _fetch_vacancy_row(
        self,
        *,
        conn: asyncpg.Connection | asyncpg.Pool,
        vacancy_id: int,
    ) -> asyncpg.Record | None:
        return await conn.fetchrow(f"{_VACANCY_SELECT_SQL} where v.id = $1", vacancy_id)

    async def _ensure_vacancy_references(self, *, conn: asyncpg.Connection, values: dict[str, Any]) -> None:
        for table in LOOKUP_TABLES.values():
            reference_id = values.get(table.vacancy_column)
            if reference_id is None:
                raise RepositoryValidationError(
                    f"The {table.vacancy_column} field is required.",
                    field=table.vacancy_column,
                )
            exists = await conn.fetchval(
                f"select exists(select 1 from {table.table} where id = $1)",
                reference_id,
            )
            if not exists:
                raise RepositoryValidationError(
                    f"The selected {table.vacancy_column} is invalid.",
                    field=table.vacancy_column,
                )

    @staticmethod
    def _vacancy_filter_conditions(filters: VacancyFilters, bind: Any) -> list[str]:
        conditions: list[str] = []
        if filters.department_id is not None:
            conditions.append(f"v.department_id = {bind(filters.department_id)}")
        if filters.employment_id is not None:
            conditions.append(f"v.employment_id = {bind(filters.employment_id)}")
        if filters.experience_id is not None:
            conditions.append(f"v.experience_id = {bind(filters.experience_id)}")
        if filters.is_active is not None:
            conditions.append(f"v.is_active = {bind(filters.is_active)}")
        if filters.is_urgent is not None:
            conditions.append(f"v.urgent = {bind(filters.is_urgent)}")
        return conditions

    @staticmethod
    def _visible_condition(today_token: str) -> str:
        return (
            "v.is_active = true "
            f"and v.posted_date <= {today_token} "
            f"and (v.closed_date is null or v.closed_date >= {today_token})"
        )

    @staticmethod
    def _affected_rows(status: str) -> int:
        try:
            return int(status.rsplit(" ", maxsplit=1)[-1])
        except (AttributeError, ValueError):
            return 0

    @staticmethod
    def _in_use_message(table: LookupTable) -> str:
        return f"Cannot delete {table.kind} with associated vacancies. Remove the vacancies first."

    @staticmethod
    def _vacancy_row_to_dict(row: asyncpg.Record) -> dict[str, Any]:
        return {
            "id": row["id"],
            "title_id": row["title_id"],
            "title_en": row["title_en"],
            "department_id": row["department_id"],
            "employment_id": row["employment_id"],
            "experience_id": row["experience_id"],
            "work_mode": row["work_mode"],
            "description_id": row["description_id"],
            "description_en": row["description_en"],
            "requirement_id": row["requirement_id"],
            "requirement_en": row["requirement_en"],
            "responsibilities_id": row["responsibilities_id"],
            "responsibilities_en": row["responsibilities_en"],
            "posted_date": row["posted_date"],
            "closed_date": row["closed_date"],
            "urgent": bool(row["urgent"]),
            "is_active": bool(row["is_active"]),
            "created_by": row["created_by"],
            "updated_by": row["updated_by"],
            "created_at": row["created_at"],
            "updated_at": row["updated_at"],
            "department": {
                "id": row["department_id"],
                "title_id": row["department_title_id"],
                "title_en": row["department_title_en"],
            },
            "employment": {
                "id": row["employment_id"],
                "title_id": row["employment_title_id"],
                "title_en": row["employment_title_en"],
            },
            "experience": {
                "id": row["experience_id"],
                "title_id": row["experience_title_id"],
                "title_en": row["experience_title_en"],
            },
        }

    @staticmethod
    def _lookup_row_to_dict(row: asyncpg.Record) -> dict[str, Any]:
        return {
            "id": row["id"],
            "title_id": row["title_id"],
            "title_en": row["title_en"],
            "created_by": row["created_by"],
            "updated_by": row["updated_by"],
            "created_at": row["created_at"],
            "updated_at": row["updated_at"],
        }

    @staticmethod
    def _coerce_text(value: Any) -> str | None:
        if value is None:
            return None
        if isinstance(value, str):
            stripped = value.strip()
            return stripped or None
        return str(value)


@lru_cache
def get_repository() -> Any:
    settings = get_settings()
    if settings.storage_backend == "memory":
        from content_api.core.clock import get_clock
        from content_api.services.store import InMemoryRepository

        return InMemoryRepository(clock=get_clock())
    return PostgresRepository(
        database_url=settings.database_url,
        min_pool_size=settings.database_pool_min_size,
        max_pool_size=settings.database_pool_max_size,
    )
