from __future__ import annotations

import argparse
import asyncio
import logging
from datetime import datetime

from opentelemetry import trace

from content_api.core.clock import Clock, get_clock, next_run_at, parse_run_at
from content_api.core.config import get_settings
from content_api.core.telemetry import (
    configure_logging,
    setup_scheduler_telemetry,
    shutdown_scheduler_telemetry,
)
from content_api.services.expiration import ExpirationSweeper
from content_api.services.repository import get_repository

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


def seconds_until_next_run(now: datetime, run_at: str) -> float:
    return (next_run_at(now, parse_run_at(run_at)) - now).total_seconds()


async def run_sweep(sweeper: ExpirationSweeper) -> int:
    with tracer.start_as_current_span("scheduler.expiration_sweep") as span:
        inactivated = await sweeper.sweep()
        span.set_attribute("vacancies.inactivated", inactivated)
    logger.info("Successfully inactivated %s expired vacancies.", inactivated)
    return inactivated


async def run_once(*, repository=None, clock: Clock | None = None) -> int:
    repository = repository or get_repository()
    try:
        return await run_sweep(ExpirationSweeper(repository, clock or get_clock()))
    finally:
        await repository.close()


async def run_scheduler() -> None:
    settings = get_settings()
    configure_logging()
    telemetry_runtime = setup_scheduler_telemetry(settings)
    clock = get_clock()
    repository = get_repository()
    sweeper = ExpirationSweeper(repository, clock)

    try:
        while True:
            delay = seconds_until_next_run(clock.now(), settings.expiration_run_at)
            logger.info("next expiration sweep in %.0fs", delay)
            await asyncio.sleep(delay)
            try:
                await run_sweep(sweeper)
            except Exception:  # pragma: no cover - keep the daily loop alive
                logger.exception("expiration sweep failed")
    finally:
        await repository.close()
        shutdown_scheduler_telemetry(telemetry_runtime)


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Inactivate vacancies whose closed_date has passed.")
    parser.add_argument("--once", action="store_true", help="run a single sweep and exit")
    args = parser.parse_args(argv)

    if args.once:
        configure_logging()
        asyncio.run(run_once())
        return
    asyncio.run(run_scheduler())


if __name__ == "__main__":
    main()
