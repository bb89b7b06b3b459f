from __future__ import annotations

import asyncio
import os
import random
from datetime import date, datetime
from typing import Any, Callable
from zoneinfo import ZoneInfo

import pytest

os.environ.setdefault("CONTENT_API_STORAGE_BACKEND", "memory")
os.environ.setdefault("CONTENT_API_OTEL_ENABLED", "false")

import content_api.core.security as security  # noqa: E402
from content_api.core.auth import Actor  # noqa: E402
from content_api.core.clock import FixedClock, get_clock  # noqa: E402
from content_api.core.config import get_settings  # noqa: E402
from content_api.services.repository import get_repository  # noqa: E402
from content_api.services.store import InMemoryRepository  # noqa: E402

JAKARTA = ZoneInfo("Asia/Jakarta")
ADMIN = Actor(employee_id="EMP-0001", user_id=1)


def _run(coro: Any) -> Any:
    return asyncio.run(coro)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(datetime(2025, 1, 15, 9, 0, tzinfo=JAKARTA))


@pytest.fixture
def repo(clock: FixedClock) -> InMemoryRepository:
    return InMemoryRepository(rng=random.Random(7), clock=clock)


@pytest.fixture
def catalog(repo: InMemoryRepository) -> dict[str, int]:
    """One department, employment and experience, plus a second department."""

    async def seed() -> dict[str, int]:
        engineering = await repo.create_lookup(
            kind="department", title_id="Teknik", title_en="Engineering", actor=ADMIN
        )
        finance = await repo.create_lookup(kind="department", title_id="Keuangan", title_en="Finance", actor=ADMIN)
        full_time = await repo.create_lookup(
            kind="employment", title_id="Penuh Waktu", title_en="Full Time", actor=ADMIN
        )
        senior = await repo.create_lookup(kind="experience", title_id="Senior", title_en="Senior", actor=ADMIN)
        return {
            "department_id": engineering["id"],
            "other_department_id": finance["id"],
            "employment_id": full_time["id"],
            "experience_id": senior["id"],
        }

    return _run(seed())


@pytest.fixture
def make_vacancy(repo: InMemoryRepository, catalog: dict[str, int]) -> Callable[..., dict[str, Any]]:
    def factory(**overrides: Any) -> dict[str, Any]:
        fields: dict[str, Any] = {
            "title_id": "Insinyur Backend",
            "title_en": "Backend Engineer",
            "department_id": catalog["department_id"],
            "employment_id": catalog["employment_id"],
            "experience_id": catalog["experience_id"],
            "work_mode": "Hybrid",
            "posted_date": date(2025, 1, 1),
            "closed_date": None,
            "urgent": False,
            "is_active": True,
        }
        fields.update(overrides)
        return _run(repo.create_vacancy(fields=fields, actor=ADMIN))

    return factory


@pytest.fixture
def api_client(repo: InMemoryRepository, clock: FixedClock, monkeypatch: pytest.MonkeyPatch):
    from fastapi.testclient import TestClient

    from content_api.main import app

    monkeypatch.setenv("CONTENT_API_IDENTITY_BASE_URL", "https://identity.test")
    get_settings.cache_clear()
    app.dependency_overrides[get_repository] = lambda: repo
    app.dependency_overrides[get_clock] = lambda: clock

    with TestClient(app, raise_server_exceptions=False) as client:
        yield client

    app.dependency_overrides.clear()
    get_settings.cache_clear()
    get_repository.cache_clear()


@pytest.fixture
def identity_user(monkeypatch: pytest.MonkeyPatch) -> Callable[[dict[str, Any]], None]:
    def install(user: dict[str, Any]) -> None:
        async def _fake_fetch(**_: Any) -> dict[str, Any]:
            return user

        monkeypatch.setattr(security, "_fetch_identity_user", _fake_fetch)

    return install


@pytest.fixture
def auth_headers(identity_user: Callable[[dict[str, Any]], None]) -> dict[str, str]:
    identity_user({"id": 7, "employee_id": "EMP-0007", "name": "Dewi", "email": "dewi@example.test"})
    return {"Authorization": "Bearer token"}
