"""Batch planner — page count and worker-range partition.

Pure arithmetic, no I/O::

    total_pages = ceil(total_items / batch_size)

    starts  = 0, k, 2k, ...  (< total_pages, k = sub_batches_per_worker)
    ranges  = [start_i, start_{i+1})   last one ends at total_pages

    total_items=10, batch_size=2, k=2
      → total_pages = 5
      → [0,2) [2,4) [4,5)

Ranges are zero-based page indices; the loader sees 1-based page
numbers (``index + 1``), exposed here as :attr:`PageRange.page_numbers`.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass

from accelbatch.execution.params import ExecutionParameters


@dataclass(frozen=True, order=True)
class PageRange:
    """Half-open span ``[start, end)`` of zero-based page indices."""

    start: int
    end: int

    def __len__(self) -> int:
        return self.end - self.start

    def __iter__(self) -> Iterator[int]:
        return iter(range(self.start, self.end))

    @property
    def page_numbers(self) -> range:
        """1-based page numbers as handed to the page loader."""
        return range(self.start + 1, self.end + 1)

    def __str__(self) -> str:
        return f"{self.start + 1} to {self.end}"


@dataclass(frozen=True)
class Plan:
    """Immutable execution plan derived from :class:`ExecutionParameters`."""

    params: ExecutionParameters
    total_pages: int
    ranges: tuple[PageRange, ...]

    @property
    def range_count(self) -> int:
        return len(self.ranges)


def count_pages(total_items: int, batch_size: int) -> int:
    """``ceil(total_items / batch_size)`` without floating point."""
    return -(-total_items // batch_size)


def partition(total_pages: int, chunk_size: int) -> tuple[PageRange, ...]:
    """Split ``[0, total_pages)`` into contiguous chunks of ``chunk_size``.

    The last chunk may be shorter but is never empty.
    """
    starts = list(range(0, total_pages, chunk_size))
    ends = starts[1:] + [total_pages]
    return tuple(PageRange(start, end) for start, end in zip(starts, ends))


def build_plan(params: ExecutionParameters) -> Plan:
    """Compute the :class:`Plan` for already-validated parameters."""
    total_pages = count_pages(params.total_items, params.batch_size)
    return Plan(
        params=params,
        total_pages=total_pages,
        ranges=partition(total_pages, params.sub_batches_per_worker),
    )
