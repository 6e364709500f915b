"""Data types shared across Gmail client modules."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class MessageRef:
    """A search hit as returned by users.messages.list, plus its receive time.

    ``received_at`` is Gmail's ``internalDate`` and is only used to pick the
    most recent of several matches.
    """

    id: str
    thread_id: str
    received_at: datetime


@dataclass(frozen=True)
class Candidate:
    """The most recent email matching the query, inspected but not yet sent."""

    message_id: str
    raw: bytes

    @property
    def text(self) -> str:
        """The raw RFC 822 bytes decoded for comparison with stored content."""
        return self.raw.decode("utf-8", errors="replace")
