"""APScheduler setup for running the forwarder daily from a long-lived process."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

from apscheduler.schedulers.blocking import BlockingScheduler

from src.scheduling.schedule import WeeklySchedule

if TYPE_CHECKING:
    from src.config.settings import Settings

logger = logging.getLogger(__name__)

DEFAULT_RUN_TIME = "09:00"


def _parse_run_time(time_str: str) -> tuple[int, int]:
    """Parse 'HH:MM' into (hour, minute). Falls back to (9, 0) on parse error."""
    try:
        hour_str, minute_str = time_str.strip().split(":")
        hour, minute = int(hour_str), int(minute_str)
    except (ValueError, AttributeError):
        logger.warning("Invalid run time %r; defaulting to %s", time_str, DEFAULT_RUN_TIME)
        return 9, 0
    if not (0 <= hour < 24 and 0 <= minute < 60):
        logger.warning("Run time %r out of range; defaulting to %s", time_str, DEFAULT_RUN_TIME)
        return 9, 0
    return hour, minute


def _earliest_run_time(settings: Settings) -> tuple[int, int] | None:
    """The weekly run-after time as (hour, minute); None for a monthly schedule."""
    if isinstance(settings.schedule, WeeklySchedule):
        cutoff = settings.schedule.run_after
        return cutoff.hour, cutoff.minute
    return None


def create_forwarder_scheduler(
    settings: Settings,
    run_time: str | None,
    report: Callable[[str], None],
) -> BlockingScheduler:
    """Return a BlockingScheduler that runs the forwarder once a day at `run_time`.

    `run_time` defaults to the weekly cutoff, or 09:00 for a monthly schedule.
    A time earlier than the weekly cutoff is moved up to the cutoff.

    The job never overlaps itself (max_instances=1) and missed runs collapse
    into one, so the single-writer assumption on the state file holds.  The
    forwarder's own schedule still decides whether each daily run sends.

    The caller is responsible for calling scheduler.start().
    """
    from src.jobs.forwarder import run_once

    def tick() -> None:
        report(run_once(settings))

    scheduler = BlockingScheduler(timezone=settings.timezone) if settings.timezone else BlockingScheduler()
    earliest = _earliest_run_time(settings)
    if run_time is None:
        hour, minute = earliest or _parse_run_time(DEFAULT_RUN_TIME)
    else:
        hour, minute = _parse_run_time(run_time)
    if earliest is not None and (hour, minute) < earliest:
        logger.warning(
            "Run time %02d:%02d is before the run-after time %02d:%02d; using %02d:%02d",
            hour, minute, *earliest, *earliest,
        )
        hour, minute = earliest
    scheduler.add_job(
        tick,
        "cron",
        hour=hour,
        minute=minute,
        id=settings.job_name,
        max_instances=1,
        coalesce=True,
    )
    logger.info("Forwarder %r scheduled daily at %02d:%02d", settings.job_name, hour, minute)
    return scheduler
