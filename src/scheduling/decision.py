"""Scheduling decision engine — maps one run's inputs to exactly one outcome.

``decide`` is pure: it reads the clock value, schedule, persisted state and
the freshly fetched candidate, and never mutates any of them.  Rules are
checked in a fixed order:

1. not inside the run window          → NOT_SCHEDULED_TODAY
2. no state stored yet                → NO_EMAIL_SENT_THIS_PERIOD
3. last send is after ``now``         → INVALID_FUTURE_STATE
4. last send is in the current period → ALREADY_SENT_THIS_PERIOD
5. candidate matches the last send    → DUPLICATE_CONTENT
6. last send is in an earlier period  → NO_EMAIL_SENT_THIS_PERIOD
7. anything else                      → UNKNOWN

A future timestamp (3) is reported even when the mailbox lookup failed, and an operator resending within
the same period is told it was already sent rather than that it is a duplicate.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from src.gmail.types import Candidate
from src.scheduling.duplicates import DuplicateCheck, is_duplicate
from src.scheduling.schedule import Schedule
from src.storage.state import RunState


class Outcome(Enum):
    NOT_SCHEDULED_TODAY = "not_scheduled_today"
    INVALID_FUTURE_STATE = "invalid_future_state"
    ALREADY_SENT_THIS_PERIOD = "already_sent_this_period"
    DUPLICATE_CONTENT = "duplicate_content"
    NO_EMAIL_SENT_THIS_PERIOD = "no_email_sent_this_period"
    UNKNOWN = "unknown"


def decide(
    now: datetime,
    schedule: Schedule,
    run_state: RunState | None,
    candidate: Candidate | None,
    duplicate_check: DuplicateCheck = DuplicateCheck.SEPARATOR,
) -> Outcome:
    """Return the single outcome for this run."""
    if not schedule.is_due(now):
        return Outcome.NOT_SCHEDULED_TODAY
    if run_state is None:
        return Outcome.NO_EMAIL_SENT_THIS_PERIOD

    last_sent = run_state.last_email_sent
    if last_sent > now:
        return Outcome.INVALID_FUTURE_STATE
    if schedule.same_period(last_sent, now):
        return Outcome.ALREADY_SENT_THIS_PERIOD
    if candidate is not None and is_duplicate(
        candidate.text, run_state.email_contents, duplicate_check
    ):
        return Outcome.DUPLICATE_CONTENT
    if schedule.period_precedes(last_sent, now):
        return Outcome.NO_EMAIL_SENT_THIS_PERIOD
    return Outcome.UNKNOWN


def describe(outcome: Outcome, now: datetime, schedule: Schedule) -> str:
    """Human-readable status line for every outcome that ends the run early."""
    if outcome is Outcome.NOT_SCHEDULED_TODAY:
        return schedule.decline_reason(now)
    if outcome is Outcome.INVALID_FUTURE_STATE:
        return (
            "Exiting due to invalid state, "
            "previous email appears to have been sent in the future"
        )
    if outcome is Outcome.ALREADY_SENT_THIS_PERIOD:
        return f"Exiting, email has already been sent for {schedule.period_label(now)}"
    if outcome is Outcome.DUPLICATE_CONTENT:
        return "Exiting as this exact email has already been sent"
    if outcome is Outcome.NO_EMAIL_SENT_THIS_PERIOD:
        return "No email has been sent yet this period"
    return "Exiting due to unknown error"
