"""Gmail forwarder job — decides whether this period's email is due, then sends and records it."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from src.config.settings import Settings
from src.core.failures import (
    CouldNotGetRawContent,
    CouldNotSearchMailbox,
    CouldNotSendEmail,
    FailureReason,
    NoMatchingEmail,
)
from src.core.result import Failure, Result, Success
from src.gmail.mime import original_subject, rewrite_headers
from src.gmail.types import Candidate, MessageRef
from src.jobs.templating import render
from src.scheduling.decision import Outcome, decide, describe
from src.storage.dropbox_store import DropboxStore
from src.storage.local_store import LocalFileStore
from src.storage.state import FileStore, RunState, StateStore

logger = logging.getLogger(__name__)

EMAIL_SENT = "New email has been sent"


# ── Mail interface ─────────────────────────────────────────────────────────────


@runtime_checkable
class MailClient(Protocol):
    """What the forwarder needs from a mailbox. GmailClient is the real one."""

    def find_latest(self, query: str) -> Result[CouldNotSearchMailbox, MessageRef | None]:
        ...

    def raw_content(self, ref: MessageRef) -> Result[CouldNotGetRawContent, bytes]:
        ...

    def send(self, raw: bytes) -> Result[CouldNotSendEmail, Any]:
        ...


# ── Job ────────────────────────────────────────────────────────────────────────


class GmailForwarder:
    """Forwards the latest email matching a query, at most once per period.

    One call to run() is one independent attempt: it either declines with a
    reason, or fetches → rewrites → sends → stores, stopping at the first
    failure.  A store failure after a successful send is reported but neither
    retried nor rolled back; the duplicate check stops the resend next time.

    Usage::

        with gmail_client(settings.gmail) as gmail:
            report = GmailForwarder(gmail, build_state_store(settings), settings).run(now)
    """

    def __init__(self, gmail: MailClient, state_store: StateStore, settings: Settings) -> None:
        self._gmail = gmail
        self._state_store = state_store
        self._settings = settings

    def run(self, now: datetime) -> str:
        """Run once for the instant `now` and return the human-readable report."""
        schedule = self._settings.schedule
        if not schedule.is_due(now):
            logger.info("Outside run window at %s", now.isoformat())
            return describe(Outcome.NOT_SCHEDULED_TODAY, now, schedule)

        loaded = self._state_store.load()
        if isinstance(loaded, Failure):
            return loaded.reason.message
        run_state = loaded.value

        outgoing = self._find_candidate().map(lambda candidate: self._rewrite(candidate, now))
        outcome = decide(
            now,
            schedule,
            run_state,
            outgoing.value_or(None),
            self._settings.duplicate_check,
        )
        logger.info("Decision at %s: %s", now.isoformat(), outcome.name)
        if outcome is not Outcome.NO_EMAIL_SENT_THIS_PERIOD:
            return describe(outcome, now, schedule)

        return (
            outgoing
            .flat_map(lambda candidate: self._send(candidate.raw))
            .map(lambda sent: self._persist(sent, now))
            .or_else(lambda reason: reason.message)
        )

    # ── Steps ──────────────────────────────────────────────────────────────────

    def _find_candidate(self) -> Result[FailureReason, Candidate]:
        """Latest match plus its raw bytes; an empty search is a named failure."""
        query = self._settings.query

        def require_match(ref: MessageRef | None) -> Result[NoMatchingEmail, MessageRef]:
            return Success(ref) if ref is not None else Failure(NoMatchingEmail(query))

        def fetch(ref: MessageRef) -> Result[CouldNotGetRawContent, Candidate]:
            return self._gmail.raw_content(ref).map(lambda raw: Candidate(ref.id, raw))

        return self._gmail.find_latest(query).flat_map(require_match).flat_map(fetch)

    def _rewrite(self, candidate: Candidate, now: datetime) -> Candidate:
        """The candidate as it would be sent; stored contents are always in this form."""
        s = self._settings
        subject = None
        if s.subject_template is not None:
            subject = render(
                s.subject_template,
                {
                    "subject": original_subject(candidate.raw),
                    "month": now.strftime("%B"),
                    "year": str(now.year),
                    "date": now.date().isoformat(),
                },
            )
        raw = rewrite_headers(
            candidate.raw,
            sender=(s.from_fullname, s.from_address),
            to=(s.to_fullname, s.to_address),
            bcc=list(s.bcc_addresses),
            subject=subject,
        )
        return Candidate(candidate.message_id, raw)

    def _send(self, raw: bytes) -> Result[CouldNotSendEmail, bytes]:
        return self._gmail.send(raw).map(lambda _response: raw)

    def _persist(self, sent: bytes, now: datetime) -> str:
        """Record what was sent; the send line stands regardless of the outcome."""
        state = RunState(last_email_sent=now, email_contents=sent.decode("utf-8", errors="replace"))
        stored = self._state_store.store(state).map(
            lambda _: f"Current state has been stored in {self._state_store.store_name}"
        )
        return "\n".join([EMAIL_SENT, stored.or_else(lambda reason: reason.message)])


# ── Wiring ─────────────────────────────────────────────────────────────────────


def build_state_store(settings: Settings) -> StateStore:
    """StateStore on the configured backend (Dropbox unless told otherwise)."""
    files: FileStore
    if settings.state_backend == "local":
        files = LocalFileStore(settings.local_state_dir)
    else:
        files = DropboxStore(settings.dropbox_access_token, settings.job_name)
    return StateStore(files, settings.state_path)


def run_once(settings: Settings, now: datetime | None = None) -> str:
    """Connect to Gmail and run the forwarder once. Returns the report."""
    from src.gmail.client import gmail_client

    moment = now or settings.now()
    with gmail_client(settings.gmail) as gmail:
        return GmailForwarder(gmail, build_state_store(settings), settings).run(moment)
