from __future__ import annotations

import asyncio
from datetime import date, timedelta

import pytest

from content_api.core.auth import Actor
from content_api.services.repository import (
    RepositoryNotFoundError,
    RepositoryValidationError,
    VacancyFilters,
)
from content_api.services.vacancies import VacancyService

EDITOR = Actor(employee_id="EMP-0042", user_id=42)


def _service(repo, clock) -> VacancyService:
    return VacancyService(repo, clock)


def test_listing_heals_expired_rows_before_reading(repo, clock, make_vacancy) -> None:
    vacancy = make_vacancy(closed_date=date(2025, 1, 10))

    rows, total = asyncio.run(_service(repo, clock).list_vacancies(filters=VacancyFilters()))

    assert total == 1
    assert rows[0]["id"] == vacancy["id"]
    assert rows[0]["is_active"] is False
    assert rows[0]["updated_by"] == "System"


def test_listing_filters_sorts_and_paginates(repo, clock, make_vacancy, catalog) -> None:
    first = make_vacancy(title_en="Analyst", urgent=True)
    second = make_vacancy(title_en="Backend Engineer")
    make_vacancy(title_en="Accountant", department_id=catalog["other_department_id"])

    service = _service(repo, clock)
    rows, total = asyncio.run(
        service.list_vacancies(
            filters=VacancyFilters(department_id=catalog["department_id"]),
            sort_by="title_en",
            sort_order="asc",
            page=1,
            per_page=1,
        )
    )
    assert total == 2
    assert [row["id"] for row in rows] == [first["id"]]

    rows, _ = asyncio.run(service.list_vacancies(filters=VacancyFilters(is_urgent=False), page=1, per_page=10))
    assert second["id"] in [row["id"] for row in rows]
    assert first["id"] not in [row["id"] for row in rows]


def test_active_listing_orders_urgent_then_closing_soonest(repo, clock, make_vacancy) -> None:
    open_ended = make_vacancy(closed_date=None)
    closes_later = make_vacancy(closed_date=date(2025, 2, 28))
    closes_soon = make_vacancy(closed_date=date(2025, 1, 20))
    urgent = make_vacancy(closed_date=date(2025, 3, 1), urgent=True)
    make_vacancy(is_active=False)

    rows = asyncio.run(_service(repo, clock).list_active_vacancies(filters=VacancyFilters()))

    assert [row["id"] for row in rows] == [urgent["id"], closes_soon["id"], closes_later["id"], open_ended["id"]]


def test_future_posted_vacancy_appears_once_its_day_arrives(repo, clock, make_vacancy) -> None:
    vacancy = make_vacancy(posted_date=date(2025, 1, 16), closed_date=date(2025, 1, 31))
    service = _service(repo, clock)

    assert asyncio.run(service.list_active_vacancies(filters=VacancyFilters())) == []

    clock.advance(timedelta(days=1))
    rows = asyncio.run(service.list_active_vacancies(filters=VacancyFilters()))
    assert [row["id"] for row in rows] == [vacancy["id"]]


def test_closed_vacancy_drops_out_the_day_after_closing(repo, clock, make_vacancy) -> None:
    vacancy = make_vacancy(closed_date=date(2025, 1, 15))
    service = _service(repo, clock)

    rows = asyncio.run(service.list_active_vacancies(filters=VacancyFilters()))
    assert [row["id"] for row in rows] == [vacancy["id"]]

    clock.advance(timedelta(days=1))
    assert asyncio.run(service.list_active_vacancies(filters=VacancyFilters())) == []
    assert repo.vacancies[vacancy["id"]]["is_active"] is False


def test_detail_resolves_numeric_id_and_title_slug(repo, clock, make_vacancy) -> None:
    vacancy = make_vacancy(title_id="Insinyur Data Senior", title_en="Senior Data Engineer")
    service = _service(repo, clock)

    by_id = asyncio.run(service.get_vacancy_detail(str(vacancy["id"])))
    by_english_slug = asyncio.run(service.get_vacancy_detail("senior-data-engineer"))
    by_indonesian_slug = asyncio.run(service.get_vacancy_detail("insinyur-data-senior"))

    assert by_id["id"] == by_english_slug["id"] == by_indonesian_slug["id"] == vacancy["id"]
    assert by_id["department"]["title_en"] == "Engineering"

    with pytest.raises(RepositoryNotFoundError):
        asyncio.run(service.get_vacancy_detail("no-such-role"))
    with pytest.raises(RepositoryNotFoundError):
        asyncio.run(service.get_vacancy_detail("9999"))


def test_related_vacancies_stay_in_department_and_skip_current(repo, clock, make_vacancy, catalog) -> None:
    current = make_vacancy()
    siblings = [make_vacancy(title_en=f"Engineer {index}") for index in range(3)]
    make_vacancy(department_id=catalog["other_department_id"])
    make_vacancy(closed_date=date(2025, 1, 2))

    service = VacancyService(repo, clock, related_default_limit=2)
    rows = asyncio.run(
        service.list_related_vacancies(department_id=catalog["department_id"], exclude_id=current["id"])
    )

    assert len(rows) == 2
    assert {row["id"] for row in rows} <= {sibling["id"] for sibling in siblings}

    rows = asyncio.run(
        service.list_related_vacancies(department_id=catalog["department_id"], exclude_id=current["id"], limit=10)
    )
    assert {row["id"] for row in rows} == {sibling["id"] for sibling in siblings}


def test_create_rejects_closed_date_before_posted_date(repo, clock, catalog) -> None:
    fields = {
        "title_id": "Kasir",
        "title_en": "Cashier",
        "department_id": catalog["department_id"],
        "employment_id": catalog["employment_id"],
        "experience_id": catalog["experience_id"],
        "posted_date": date(2025, 1, 10),
        "closed_date": date(2025, 1, 9),
    }

    with pytest.raises(RepositoryValidationError) as exc_info:
        asyncio.run(_service(repo, clock).create_vacancy(fields=fields, actor=EDITOR))

    assert exc_info.value.field == "closed_date"
    assert repo.vacancies == {}


def test_create_rejects_unknown_reference(repo, clock, catalog) -> None:
    fields = {
        "title_id": "Kasir",
        "title_en": "Cashier",
        "department_id": 999,
        "employment_id": catalog["employment_id"],
        "experience_id": catalog["experience_id"],
        "posted_date": date(2025, 1, 10),
    }

    with pytest.raises(RepositoryValidationError) as exc_info:
        asyncio.run(_service(repo, clock).create_vacancy(fields=fields, actor=EDITOR))

    assert exc_info.value.field == "department_id"


def test_update_stamps_actor_and_keeps_creator(repo, clock, make_vacancy, catalog) -> None:
    vacancy = make_vacancy()
    fields = {key: vacancy[key] for key in ("title_id", "title_en", "posted_date", "closed_date", "work_mode")}
    fields.update(
        {
            "department_id": catalog["other_department_id"],
            "employment_id": catalog["employment_id"],
            "experience_id": catalog["experience_id"],
            "urgent": True,
        }
    )

    updated = asyncio.run(_service(repo, clock).update_vacancy(vacancy_id=vacancy["id"], fields=fields, actor=EDITOR))

    assert updated["urgent"] is True
    assert updated["department"]["title_en"] == "Finance"
    assert updated["created_by"] == "EMP-0001"
    assert updated["updated_by"] == "EMP-0042"


def test_check_expired_reports_count(repo, clock, make_vacancy) -> None:
    make_vacancy(closed_date=date(2025, 1, 1))
    make_vacancy(closed_date=date(2025, 1, 2))

    service = _service(repo, clock)
    assert asyncio.run(service.check_expired()) == 2
    assert asyncio.run(service.check_expired()) == 0


def test_statistics_counts_after_sweep(repo, clock, make_vacancy, catalog) -> None:
    make_vacancy(urgent=True)
    make_vacancy()
    make_vacancy(closed_date=date(2025, 1, 3))

    stats = asyncio.run(_service(repo, clock).statistics())

    assert stats["total_vacancies"] == 3
    assert stats["active_vacancies"] == 2
    assert stats["urgent_vacancies"] == 1
    assert stats["total_departments"] == 2
    assert stats["latest_vacancies"][0]["department_name"] == "Engineering"
    assert stats["latest_vacancies"][0]["experience_level"] == "Senior"
    counts = {item["id"]: item["vacancy_count"] for item in stats["vacancies_by_department"]}
    assert counts == {catalog["department_id"]: 2, catalog["other_department_id"]: 0}


def test_partial_update_keeps_stored_columns(repo, clock, make_vacancy) -> None:
    vacancy = make_vacancy(is_active=False, urgent=True, closed_date=date(2025, 3, 1))

    updated = asyncio.run(
        _service(repo, clock).update_vacancy(
            vacancy_id=vacancy["id"],
            fields={"title_en": "Lead Engineer", "urgent": None},
            actor=EDITOR,
        )
    )

    assert updated["title_en"] == "Lead Engineer"
    assert updated["title_id"] == "Insinyur Backend"
    assert updated["closed_date"] == date(2025, 3, 1)
    assert updated["is_active"] is False
    assert updated["urgent"] is True


def test_update_checks_dates_against_stored_posted_date(repo, clock, make_vacancy) -> None:
    vacancy = make_vacancy(posted_date=date(2025, 1, 10), closed_date=date(2025, 3, 1))

    with pytest.raises(RepositoryValidationError) as exc_info:
        asyncio.run(
            _service(repo, clock).update_vacancy(
                vacancy_id=vacancy["id"],
                fields={"closed_date": date(2025, 1, 9)},
                actor=EDITOR,
            )
        )

    assert exc_info.value.field == "closed_date"
    assert repo.vacancies[vacancy["id"]]["closed_date"] == date(2025, 3, 1)


def test_create_defaults_flags_when_left_out(repo, clock, catalog) -> None:
    fields = {
        "title_id": "Kasir",
        "title_en": "Cashier",
        "department_id": catalog["department_id"],
        "employment_id": catalog["employment_id"],
        "posted_date": date(2025, 1, 10),
        "urgent": None,
        "is_active": None,
    }

    created = asyncio.run(_service(repo, clock).create_vacancy(fields=fields, actor=EDITOR))

    assert created["urgent"] is False
    assert created["is_active"] is True


def test_timestamps_follow_the_injected_clock(repo, clock, make_vacancy) -> None:
    vacancy = make_vacancy()
    assert vacancy["created_at"] == clock.now()
    assert vacancy["updated_at"] == clock.now()

    clock.advance(timedelta(hours=3))
    updated = asyncio.run(
        _service(repo, clock).update_vacancy(vacancy_id=vacancy["id"], fields={"urgent": True}, actor=EDITOR)
    )

    assert updated["created_at"] == vacancy["created_at"]
    assert updated["updated_at"] == clock.now()


def test_statistics_lists_newest_vacancy_by_clock_first(repo, clock, make_vacancy) -> None:
    older = make_vacancy(title_en="Older Role")
    clock.advance(timedelta(minutes=5))
    newer = make_vacancy(title_en="Newer Role")

    stats = asyncio.run(_service(repo, clock).statistics())

    assert [item["id"] for item in stats["latest_vacancies"]] == [newer["id"], older["id"]]
