"""Persisted run state — what was sent last, and when.

The state is a single small JSON document at a fixed path on a file store
(Dropbox in production)::

    {
      "lastEmailSent": "2018-05-01T09:00:00+01:00",
      "emailContents": "<full text of the last email sent>"
    }

It is read wholesale on every run and overwritten wholesale after every
successful send.  There is no locking: at most one run may be active at a
time, which the scheduler has to guarantee.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol, runtime_checkable

from src.core.failures import CouldNotReadState, CouldNotStoreState, InvalidStateFile
from src.core.result import Failure, Result, Success

logger = logging.getLogger(__name__)

DEFAULT_STATE_PATH = "/gmailer_state.json"

# Zoned timestamps may carry a region id suffix, e.g. "...+01:00[Europe/London]"
_ZONE_ID_SUFFIX = re.compile(r"\[[^\]]*\]$")


@dataclass(frozen=True)
class RunState:
    """The last successful send.

    ``email_contents`` is only ever compared against new candidates; it is
    never replayed.
    """

    last_email_sent: datetime
    email_contents: str

    def to_json(self) -> str:
        return json.dumps(
            {
                "lastEmailSent": self.last_email_sent.isoformat(),
                "emailContents": self.email_contents,
            },
            indent=2,
        )

    @classmethod
    def from_json(cls, text: str) -> RunState:
        """Parse a state document. Raises ValueError, KeyError or TypeError if malformed."""
        data = json.loads(text)
        contents = data["emailContents"]
        if not isinstance(contents, str):
            raise TypeError("emailContents must be a string")
        return cls(
            last_email_sent=_parse_timestamp(data["lastEmailSent"]),
            email_contents=contents,
        )


def _parse_timestamp(value: str) -> datetime:
    if not isinstance(value, str):
        raise TypeError("lastEmailSent must be an ISO-8601 string")
    moment = datetime.fromisoformat(_ZONE_ID_SUFFIX.sub("", value.strip()))
    if moment.tzinfo is None:
        raise ValueError(f"lastEmailSent {value!r} has no timezone offset")
    return moment


# ── Store interface ────────────────────────────────────────────────────────────


@runtime_checkable
class FileStore(Protocol):
    """A remote or local place to keep small text files, addressed by path."""

    name: str

    def read_text(self, path: str) -> Result[CouldNotReadState, str | None]:
        """Return the file's text, None if it does not exist, or a failure."""
        ...

    def write_text(self, path: str, text: str) -> Result[CouldNotStoreState, None]:
        """Overwrite (or create) the file at `path`."""
        ...


class StateStore:
    """Reads and writes RunState at a fixed path on a FileStore.

    Usage::

        state_store = StateStore(DropboxStore(token, "gmailer-bot"))
        current = state_store.load()          # Success(RunState | None)
        state_store.store(RunState(now, text))
    """

    def __init__(self, files: FileStore, path: str = DEFAULT_STATE_PATH) -> None:
        self._files = files
        self._path = path

    @property
    def path(self) -> str:
        return self._path

    @property
    def store_name(self) -> str:
        return self._files.name

    def load(self) -> Result[CouldNotReadState | InvalidStateFile, RunState | None]:
        """Return the stored state, or None if nothing has been sent yet."""
        return self._files.read_text(self._path).flat_map(self._parse)

    def store(self, state: RunState) -> Result[CouldNotStoreState, RunState]:
        """Overwrite the stored state with `state`."""
        return self._files.write_text(self._path, state.to_json()).map(lambda _: state)

    def _parse(self, text: str | None) -> Result[InvalidStateFile, RunState | None]:
        if text is None:
            logger.info("No state at %s on %s — treating as first run", self._path, self.store_name)
            return Success(None)
        try:
            return Success(RunState.from_json(text))
        except (ValueError, KeyError, TypeError) as exc:
            logger.warning("State file %s is malformed: %s", self._path, exc)
            return Failure(InvalidStateFile(self._path, str(exc)))
