"""Two-variant outcome type used to thread expected failures through a run.

Business failures (nothing matched the query, Gmail refused the send, ...)
travel as ``Failure(reason)`` values rather than exceptions so the job can
chain its steps and report the first one that went wrong::

    report = (
        lookup
        .flat_map(rewrite)
        .flat_map(send)
        .map(persist)
        .or_else(lambda reason: reason.message)
    )
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, TypeVar, Union

T = TypeVar("T")
U = TypeVar("U")
E = TypeVar("E")


@dataclass(frozen=True)
class Success(Generic[T]):
    value: T

    @property
    def is_success(self) -> bool:
        return True

    def map(self, f: Callable[[T], U]) -> Success[U]:
        return Success(f(self.value))

    def flat_map(self, f: Callable[[T], Result[E, U]]) -> Result[E, U]:
        return f(self.value)

    def or_else(self, f: Callable[[object], T]) -> T:
        return self.value

    def value_or(self, default: object) -> T:
        return self.value


@dataclass(frozen=True)
class Failure(Generic[E]):
    reason: E

    @property
    def is_success(self) -> bool:
        return False

    def map(self, f: Callable[[object], object]) -> Failure[E]:
        return self

    def flat_map(self, f: Callable[[object], object]) -> Failure[E]:
        return self

    def or_else(self, f: Callable[[E], U]) -> U:
        return f(self.reason)

    def value_or(self, default: U) -> U:
        return default


Result = Union[Failure[E], Success[T]]
