"""Failure reasons carried inside ``Failure`` values.

Each reason renders to the single status line printed when a run stops on it.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


class FailureReason(ABC):
    """Base for every expected, reportable failure."""

    @property
    @abstractmethod
    def message(self) -> str:
        ...


@dataclass(frozen=True)
class CouldNotReadState(FailureReason):
    path: str
    store_name: str

    @property
    def message(self) -> str:
        return f"Error downloading file {self.path} from {self.store_name}"


@dataclass(frozen=True)
class InvalidStateFile(FailureReason):
    path: str
    detail: str

    @property
    def message(self) -> str:
        return f"Error - state file {self.path} is not valid: {self.detail}"


@dataclass(frozen=True)
class CouldNotSearchMailbox(FailureReason):
    query: str

    @property
    def message(self) -> str:
        return f"Error - could not search mailbox for query: '{self.query}'"


@dataclass(frozen=True)
class NoMatchingEmail(FailureReason):
    query: str

    @property
    def message(self) -> str:
        return f"No matching results for query: '{self.query}'"


@dataclass(frozen=True)
class CouldNotGetRawContent(FailureReason):
    message_id: str = ""

    @property
    def message(self) -> str:
        return "Error - could not get raw message content for email"


@dataclass(frozen=True)
class CouldNotSendEmail(FailureReason):
    detail: str = ""

    @property
    def message(self) -> str:
        return "Error - could not send email/s"


@dataclass(frozen=True)
class CouldNotStoreState(FailureReason):
    path: str
    store_name: str

    @property
    def message(self) -> str:
        return f"Error - could not store state in {self.store_name}"
