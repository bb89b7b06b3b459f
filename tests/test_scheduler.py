from __future__ import annotations

import asyncio
import logging
from datetime import date, datetime, time
from zoneinfo import ZoneInfo

import pytest

from content_api.core.clock import FixedClock, next_run_at, parse_run_at, start_of_day
from content_api.jobs import scheduler

JAKARTA = ZoneInfo("Asia/Jakarta")


def test_seconds_until_next_midnight() -> None:
    assert scheduler.seconds_until_next_run(datetime(2025, 1, 15, 23, 30, tzinfo=JAKARTA), "00:00") == 1800
    assert scheduler.seconds_until_next_run(datetime(2025, 1, 15, 0, 0, tzinfo=JAKARTA), "00:00") == 86400


def test_next_run_at_rolls_to_tomorrow_after_run_time() -> None:
    now = datetime(2025, 1, 15, 6, 0, tzinfo=JAKARTA)

    assert next_run_at(now, time(5, 30)) == datetime(2025, 1, 16, 5, 30, tzinfo=JAKARTA)
    assert next_run_at(now, time(7, 0)) == datetime(2025, 1, 15, 7, 0, tzinfo=JAKARTA)


def test_parse_run_at_and_start_of_day() -> None:
    assert parse_run_at("00:00") == time(0, 0)
    assert parse_run_at(" 2:15 ") == time(2, 15)
    assert start_of_day(datetime(2025, 1, 15, 13, 45, tzinfo=JAKARTA)) == datetime(2025, 1, 15, tzinfo=JAKARTA)


def test_run_once_sweeps_and_logs(repo, make_vacancy, caplog: pytest.LogCaptureFixture) -> None:
    expired = make_vacancy(closed_date=date(2025, 1, 1))
    clock = FixedClock(datetime(2025, 1, 15, 0, 0, tzinfo=JAKARTA))

    with caplog.at_level(logging.INFO, logger="content_api.jobs.scheduler"):
        inactivated = asyncio.run(scheduler.run_once(repository=repo, clock=clock))

    assert inactivated == 1
    assert repo.vacancies[expired["id"]]["is_active"] is False
    assert "Successfully inactivated 1 expired vacancies." in caplog.messages


def test_main_once_runs_single_sweep(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[str] = []

    async def fake_run_once() -> int:
        calls.append("once")
        return 0

    async def fake_run_scheduler() -> None:
        calls.append("loop")

    monkeypatch.setattr(scheduler, "run_once", fake_run_once)
    monkeypatch.setattr(scheduler, "run_scheduler", fake_run_scheduler)

    scheduler.main(["--once"])
    scheduler.main([])

    assert calls == ["once", "loop"]
