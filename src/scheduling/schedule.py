"""Run windows: which days (and times) the bot may send, and what a "period" is.

A monthly schedule allows one send per calendar month on the listed days of
the month.  A weekly schedule allows one send per calendar day on the listed
weekdays, once the clock has passed ``run_after``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, time

WEEKDAYS: tuple[str, ...] = (
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
)


def _in_zone_of(moment: datetime, reference: datetime) -> datetime:
    """Express `moment` in the timezone of `reference` so calendar fields line up."""
    if moment.tzinfo is None or reference.tzinfo is None:
        return moment
    return moment.astimezone(reference.tzinfo)


class Schedule(ABC):
    """Shared period arithmetic; subclasses define the window and period key."""

    @abstractmethod
    def is_due(self, now: datetime) -> bool:
        ...

    @abstractmethod
    def decline_reason(self, now: datetime) -> str:
        ...

    @abstractmethod
    def period_label(self, now: datetime) -> str:
        ...

    @abstractmethod
    def _period_key(self, moment: datetime) -> tuple[int, ...]:
        ...

    def same_period(self, previous: datetime, now: datetime) -> bool:
        return self._period_key(_in_zone_of(previous, now)) == self._period_key(now)

    def period_precedes(self, previous: datetime, now: datetime) -> bool:
        return self._period_key(_in_zone_of(previous, now)) < self._period_key(now)


@dataclass(frozen=True)
class MonthlySchedule(Schedule):
    """Send at most once per calendar month, on the given days of the month."""

    days_of_month: tuple[int, ...]

    def is_due(self, now: datetime) -> bool:
        return now.day in self.days_of_month

    def decline_reason(self, now: datetime) -> str:
        days = ", ".join(str(d) for d in self.days_of_month)
        return (
            f"No need to run - day of month is {now.day}, "
            f"only running on day {days} of each month"
        )

    def period_label(self, now: datetime) -> str:
        return now.strftime("%B %Y")

    def _period_key(self, moment: datetime) -> tuple[int, ...]:
        return (moment.year, moment.month)


@dataclass(frozen=True)
class WeeklySchedule(Schedule):
    """Send at most once per calendar day, on the given weekdays after a cutoff."""

    days_of_week: tuple[int, ...]  # 0 = Monday, as datetime.weekday()
    run_after: time

    def is_due(self, now: datetime) -> bool:
        return now.weekday() in self.days_of_week and now.time() >= self.run_after

    def decline_reason(self, now: datetime) -> str:
        if now.weekday() not in self.days_of_week:
            days = ", ".join(WEEKDAYS[d] for d in self.days_of_week)
            return (
                f"No need to run - day of week is {WEEKDAYS[now.weekday()]}, "
                f"only running on {days}"
            )
        return (
            f"No need to run - time is {now:%H:%M}, "
            f"only running after {self.run_after:%H:%M}"
        )

    def period_label(self, now: datetime) -> str:
        return f"{WEEKDAYS[now.weekday()]} {now.day} {now:%B %Y}"

    def _period_key(self, moment: datetime) -> tuple[int, ...]:
        return (moment.year, moment.month, moment.day)


# ── Parsing ──────────────────────────────────────────────────────────────────


def parse_days_of_month(value: str) -> tuple[int, ...]:
    """Parse '2, 11, 31' into (2, 11, 31). Raises ValueError on anything else."""
    days = tuple(int(part.strip()) for part in value.split(","))
    for day in days:
        if not 1 <= day <= 31:
            raise ValueError(f"{day} is not a day of the month")
    return days


def parse_days_of_week(value: str) -> tuple[int, ...]:
    """Parse 'monday, FRIDAY' into (0, 4). Raises ValueError on unknown names."""
    lookup = {name.lower(): index for index, name in enumerate(WEEKDAYS)}
    days: list[int] = []
    for part in value.split(","):
        name = part.strip().lower()
        if name not in lookup:
            raise ValueError(f"{part.strip()!r} is not a day of the week")
        days.append(lookup[name])
    return tuple(days)


def parse_run_after(value: str) -> time:
    """Parse 'HH:MM' into a time. Raises ValueError on malformed input."""
    hour_str, minute_str = value.strip().split(":")
    return time(int(hour_str), int(minute_str))
