"""Tests for the decision engine — every outcome, ordering, and purity."""

from datetime import datetime, time, timedelta, timezone

import pytest

from src.gmail.types import Candidate
from src.scheduling.decision import Outcome, decide, describe
from src.scheduling.duplicates import HEADER_SEPARATOR, DuplicateCheck
from src.scheduling.schedule import MonthlySchedule, WeeklySchedule
from src.storage.state import RunState

UTC = timezone.utc
NOW = datetime(2018, 6, 1, 0, 0, tzinfo=UTC)
MONTHLY = MonthlySchedule((1,))


# ── Helpers ────────────────────────────────────────────────────────────────────


def state(last_sent: datetime, contents: str = "Last month's email data") -> RunState:
    return RunState(last_email_sent=last_sent, email_contents=contents)


def candidate(text: str = "New email data") -> Candidate:
    return Candidate(message_id="msg_1", raw=text.encode())


def one_month_before(moment: datetime) -> datetime:
    return moment.replace(month=moment.month - 1)


# ── Outcomes ───────────────────────────────────────────────────────────────────


class TestNotScheduled:
    @pytest.mark.parametrize("run_state", [None, state(NOW + timedelta(days=3))])
    def test_independent_of_state_and_candidate(self, run_state: RunState | None) -> None:
        schedule = MonthlySchedule((2, 11, 12, 31))
        assert decide(NOW, schedule, run_state, candidate()) is Outcome.NOT_SCHEDULED_TODAY

    def test_weekly_before_cutoff(self) -> None:
        schedule = WeeklySchedule((4,), time(9, 0))
        assert decide(NOW, schedule, None, None) is Outcome.NOT_SCHEDULED_TODAY


class TestInvalidFutureState:
    def test_one_second_in_future(self) -> None:
        run_state = state(NOW + timedelta(seconds=1))
        assert decide(NOW, MONTHLY, run_state, candidate()) is Outcome.INVALID_FUTURE_STATE

    def test_outranks_duplicate_content(self) -> None:
        run_state = state(NOW + timedelta(days=40), contents="Same")
        assert decide(NOW, MONTHLY, run_state, candidate("Same")) is Outcome.INVALID_FUTURE_STATE


class TestAlreadySentThisPeriod:
    def test_sent_earlier_this_month(self) -> None:
        now = datetime(2018, 6, 15, tzinfo=UTC)
        schedule = MonthlySchedule((15,))
        run_state = state(datetime(2018, 6, 1, tzinfo=UTC))
        assert decide(now, schedule, run_state, candidate()) is Outcome.ALREADY_SENT_THIS_PERIOD

    def test_sent_at_exactly_now(self) -> None:
        assert decide(NOW, MONTHLY, state(NOW), candidate()) is Outcome.ALREADY_SENT_THIS_PERIOD

    def test_checked_before_duplicate_content(self) -> None:
        now = datetime(2018, 6, 15, tzinfo=UTC)
        run_state = state(datetime(2018, 6, 1, tzinfo=UTC), contents="Same")
        outcome = decide(now, MonthlySchedule((15,)), run_state, candidate("Same"))
        assert outcome is Outcome.ALREADY_SENT_THIS_PERIOD

    def test_weekly_schedule_uses_days(self) -> None:
        schedule = WeeklySchedule((4,), time(9, 0))
        now = datetime(2018, 6, 1, 18, 0, tzinfo=UTC)
        run_state = state(datetime(2018, 6, 1, 9, 1, tzinfo=UTC))
        assert decide(now, schedule, run_state, candidate()) is Outcome.ALREADY_SENT_THIS_PERIOD


class TestDuplicateContent:
    def test_same_body_after_separator(self) -> None:
        stored = f"From: Bob\nTo: Jim\n{HEADER_SEPARATOR}\nAlready sent this one"
        fresh = f"From: Jim\nTo: Bob\n{HEADER_SEPARATOR}\nAlready sent this one"
        run_state = state(one_month_before(NOW), contents=stored)
        assert decide(NOW, MONTHLY, run_state, candidate(fresh)) is Outcome.DUPLICATE_CONTENT

    def test_exact_mode_treats_header_changes_as_new(self) -> None:
        stored = f"To: Jim\n{HEADER_SEPARATOR}\nBody"
        fresh = f"To: Bob\n{HEADER_SEPARATOR}\nBody"
        run_state = state(one_month_before(NOW), contents=stored)
        outcome = decide(NOW, MONTHLY, run_state, candidate(fresh), DuplicateCheck.EXACT)
        assert outcome is Outcome.NO_EMAIL_SENT_THIS_PERIOD

    def test_missing_candidate_skips_duplicate_check(self) -> None:
        run_state = state(one_month_before(NOW), contents="anything")
        assert decide(NOW, MONTHLY, run_state, None) is Outcome.NO_EMAIL_SENT_THIS_PERIOD


class TestNoEmailSentThisPeriod:
    def test_previous_month_with_new_content(self) -> None:
        run_state = state(one_month_before(NOW))
        assert decide(NOW, MONTHLY, run_state, candidate()) is Outcome.NO_EMAIL_SENT_THIS_PERIOD

    def test_first_run_without_state(self) -> None:
        assert decide(NOW, MONTHLY, None, candidate()) is Outcome.NO_EMAIL_SENT_THIS_PERIOD


class TestPurity:
    def test_same_inputs_same_outcome(self) -> None:
        run_state = state(one_month_before(NOW))
        first = decide(NOW, MONTHLY, run_state, candidate())
        second = decide(NOW, MONTHLY, run_state, candidate())
        assert first is second
        assert run_state == state(one_month_before(NOW))


# ── describe ───────────────────────────────────────────────────────────────────


class TestDescribe:
    def test_not_scheduled_uses_schedule_reason(self) -> None:
        message = describe(Outcome.NOT_SCHEDULED_TODAY, NOW, MonthlySchedule((2, 11, 12, 31)))
        assert message == (
            "No need to run - day of month is 1, only running on day 2, 11, 12, 31 of each month"
        )

    def test_invalid_future_state(self) -> None:
        assert describe(Outcome.INVALID_FUTURE_STATE, NOW, MONTHLY) == (
            "Exiting due to invalid state, previous email appears to have been sent in the future"
        )

    def test_already_sent_names_month(self) -> None:
        assert describe(Outcome.ALREADY_SENT_THIS_PERIOD, NOW, MONTHLY) == (
            "Exiting, email has already been sent for June 2018"
        )

    def test_duplicate(self) -> None:
        assert describe(Outcome.DUPLICATE_CONTENT, NOW, MONTHLY) == (
            "Exiting as this exact email has already been sent"
        )

    def test_unknown(self) -> None:
        assert describe(Outcome.UNKNOWN, NOW, MONTHLY) == "Exiting due to unknown error"
