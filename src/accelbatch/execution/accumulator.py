"""Shared run state: collected rows and recorded failures.

These two containers are the only mutable state shared between worker
ranges.  Both are append-only while a run is active and read once when
it settles.  Appends are lock-guarded so that page loaders running in
worker threads (see :mod:`accelbatch.execution.query`) can never tear
them.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class ResultAccumulator(Generic[T]):
    """Unordered multiset of rows produced by every range."""

    def __init__(self) -> None:
        self._items: list[T] = []
        self._lock = threading.Lock()

    def extend(self, items: Iterable[T]) -> int:
        """Append every item; returns how many were added."""
        batch = list(items)
        with self._lock:
            self._items.extend(batch)
        return len(batch)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def snapshot(self) -> list[T]:
        """Copy of everything collected so far."""
        with self._lock:
            return list(self._items)


@dataclass(frozen=True)
class FailureRecord:
    """One failed page fetch.

    Attributes:
        page_number: 1-based page number passed to the loader
        range_index: Index of the worker range in the plan
        error: The exception raised by the loader
    """

    page_number: int
    range_index: int
    error: BaseException

    @property
    def kind(self) -> type[BaseException]:
        return type(self.error)

    def to_dict(self) -> dict[str, Any]:
        return {
            "page_number": self.page_number,
            "range_index": self.range_index,
            "error_type": self.kind.__name__,
            "error": str(self.error),
        }


class FailureLog:
    """Append-only list of :class:`FailureRecord` shared by all ranges."""

    def __init__(self) -> None:
        self._records: list[FailureRecord] = []
        self._lock = threading.Lock()

    def record(self, page_number: int, range_index: int, error: BaseException) -> FailureRecord:
        entry = FailureRecord(page_number=page_number, range_index=range_index, error=error)
        with self._lock:
            self._records.append(entry)
        return entry

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def __iter__(self) -> Iterator[FailureRecord]:
        return iter(self.snapshot())

    def __bool__(self) -> bool:
        return len(self) > 0

    def snapshot(self) -> list[FailureRecord]:
        with self._lock:
            return list(self._records)
