"""Gmail client — wraps the Gmail REST API behind a small typed, result-returning API."""

import base64
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any

from google.auth.exceptions import GoogleAuthError
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import Error as GoogleApiError

from src.config.settings import GmailCredentials
from src.core.failures import (
    CouldNotGetRawContent,
    CouldNotSearchMailbox,
    CouldNotSendEmail,
)
from src.core.result import Failure, Result, Success
from src.gmail.types import MessageRef

logger = logging.getLogger(__name__)

# Read the matching email and send the forwarded copy; nothing else.
GMAIL_SCOPES: list[str] = ["https://www.googleapis.com/auth/gmail.modify"]

_TOKEN_URI = "https://oauth2.googleapis.com/token"

# Errors raised by googleapiclient, google-auth token refresh, or the socket layer.
_GOOGLE_ERRORS = (GoogleApiError, GoogleAuthError, OSError)


class GmailClient:
    """Thin wrapper around ``users.messages`` for the authorised user ("me").

    Every public call returns a ``Success``/``Failure`` value instead of
    raising, so the forwarder can report whichever step failed.  Use the
    `gmail_client()` context manager to construct and tear down correctly.
    """

    def __init__(self, service: Any, user_id: str = "me", page_size: int = 20) -> None:
        self._service = service
        self._user_id = user_id
        self._page_size = page_size

    # ── Public API ─────────────────────────────────────────────────────────────

    def find_latest(self, query: str) -> Result[CouldNotSearchMailbox, MessageRef | None]:
        """Return the most recently received email matching `query`, or None.

        The list endpoint gives no ordering guarantee, so each hit's
        ``internalDate`` is fetched and the newest one wins.
        """
        try:
            response = self._messages().list(
                userId=self._user_id, q=query, maxResults=self._page_size
            ).execute()
            hits = response.get("messages", [])
            refs = [self._message_ref(hit) for hit in hits]
        except _GOOGLE_ERRORS as exc:
            logger.warning("Gmail search failed for %r: %s", query, exc)
            return Failure(CouldNotSearchMailbox(query))

        if not refs:
            logger.info("No messages match %r", query)
            return Success(None)

        latest = max(refs, key=lambda ref: ref.received_at)
        logger.info(
            "Found %d match(es) for %r; latest is %s (%s)",
            len(refs),
            query,
            latest.id,
            latest.received_at.isoformat(),
        )
        return Success(latest)

    def raw_content(self, ref: MessageRef) -> Result[CouldNotGetRawContent, bytes]:
        """Return the full RFC 822 bytes of a message."""
        try:
            message = self._messages().get(
                userId=self._user_id, id=ref.id, format="raw"
            ).execute()
        except _GOOGLE_ERRORS as exc:
            logger.warning("Could not fetch raw content of %s: %s", ref.id, exc)
            return Failure(CouldNotGetRawContent(ref.id))

        raw = message.get("raw")
        if not raw:
            logger.warning("Message %s came back without raw content", ref.id)
            return Failure(CouldNotGetRawContent(ref.id))
        return Success(_b64decode(raw))

    def send(self, raw: bytes) -> Result[CouldNotSendEmail, dict[str, Any]]:
        """Send an already-encoded RFC 822 message."""
        body = {"raw": base64.urlsafe_b64encode(raw).decode("ascii")}
        try:
            sent = self._messages().send(userId=self._user_id, body=body).execute()
        except _GOOGLE_ERRORS as exc:
            logger.warning("Gmail send failed: %s", exc)
            return Failure(CouldNotSendEmail(str(exc)))
        logger.info("Sent message %s", sent.get("id", "?"))
        return Success(sent)

    # ── Internal helpers ───────────────────────────────────────────────────────

    def _messages(self) -> Any:
        return self._service.users().messages()

    def _message_ref(self, hit: dict[str, Any]) -> MessageRef:
        """Look up a search hit's receive time (format=minimal: no body)."""
        meta = self._messages().get(
            userId=self._user_id, id=hit["id"], format="minimal"
        ).execute()
        return MessageRef(
            id=str(hit["id"]),
            thread_id=str(hit.get("threadId", "")),
            received_at=_from_epoch_millis(meta.get("internalDate", "0")),
        )


def _b64decode(data: str) -> bytes:
    """Decode Gmail's base64url payload, which arrives without padding."""
    return base64.urlsafe_b64decode(data + "=" * (-len(data) % 4))


def _from_epoch_millis(value: str | int) -> datetime:
    return datetime.fromtimestamp(int(value) / 1000, tz=timezone.utc)


@contextmanager
def gmail_client(credentials: GmailCredentials) -> Iterator[GmailClient]:
    """Context manager that yields a ready-to-use GmailClient.

    Builds OAuth user credentials from the stored refresh token; google-auth
    refreshes the access token on the first call.  Building the service uses
    the bundled discovery document, so no network call happens here.

    Example::

        with gmail_client(settings.gmail) as gmail:
            latest = gmail.find_latest("from:newsletter@example.com")
    """
    creds = Credentials(
        token=credentials.access_token,
        refresh_token=credentials.refresh_token,
        token_uri=_TOKEN_URI,
        client_id=credentials.client_id,
        client_secret=credentials.client_secret,
        scopes=GMAIL_SCOPES,
    )
    service = build("gmail", "v1", credentials=creds, cache_discovery=False)
    try:
        logger.info("Gmail API client ready")
        yield GmailClient(service)
    finally:
        service.close()
