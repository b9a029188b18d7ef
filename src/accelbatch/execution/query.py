"""Parallel query executor — page through a countable, sliceable source.

WHY
───
The most common page loader is "skip ``(page - 1) * batch_size`` rows,
take ``batch_size``" over something that can also report its total
count: a query object, a repository, a list.  This module packages that
loader so callers only hand over the source.

ARCHITECTURE
────────────
::

    run_query_parallel(source, params=None)
      ├── params omitted → count() + BatchSettings defaults
      ├── page n         → to_thread(source.fetch, (n-1)*batch_size, batch_size)
      └── ParallelBatchExecutor.run(...)

``fetch`` is synchronous (typical of DB-API cursors and ORM sessions)
and runs in a worker thread so pages overlap on the event loop.  The
source must tolerate concurrent ``fetch`` calls.

Example::

    rows = await run_query_parallel(SequenceSource(records))
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from typing import TYPE_CHECKING, Generic, Protocol, TypeVar, runtime_checkable

from accelbatch.core.logging import get_logger
from accelbatch.execution.engine import ParallelBatchExecutor
from accelbatch.execution.hooks import BatchLogger
from accelbatch.execution.params import ExecutionParameters
from accelbatch.execution.policy import ExceptionPolicy

if TYPE_CHECKING:
    from accelbatch.core.config import BatchSettings
    from accelbatch.execution.accumulator import FailureRecord

_log = get_logger(__name__)

T = TypeVar("T")
T_co = TypeVar("T_co", covariant=True)


@runtime_checkable
class PagedSource(Protocol[T_co]):
    """Anything that can count its rows and return an offset/limit slice."""

    def count(self) -> int: ...

    def fetch(self, offset: int, limit: int) -> Sequence[T_co]: ...


class SequenceSource(Generic[T]):
    """:class:`PagedSource` over an in-memory sequence."""

    def __init__(self, items: Sequence[T]) -> None:
        self._items = items

    def count(self) -> int:
        return len(self._items)

    def fetch(self, offset: int, limit: int) -> Sequence[T]:
        return self._items[offset : offset + limit]


def default_parameters(
    total_items: int, settings: BatchSettings | None = None
) -> ExecutionParameters:
    """Parameters used when the caller gives none: settings defaults
    (1000 rows per page, one worker range per CPU, one page per range).
    """
    return ExecutionParameters.from_settings(total_items, settings)


async def run_query_parallel(
    source: PagedSource[T] | Sequence[T],
    params: ExecutionParameters | None = None,
    *,
    policy: ExceptionPolicy | None = None,
    logger: BatchLogger | None = None,
    settings: BatchSettings | None = None,
    failures: list[FailureRecord] | None = None,
) -> list[T]:
    """Fetch every row of ``source`` in parallel pages.

    Args:
        source: A :class:`PagedSource` or a plain sequence.
        params: Explicit parameters; derived from ``source.count()`` and
            ``settings`` when omitted.
        policy: Exception policy for the run; ``exception_behavior`` from
            ``settings`` when omitted.
        logger: Optional progress sink.
        settings: Settings used for derived parameters and the default
            policy.
        failures: Optional list receiving every recorded page failure.

    Returns:
        All rows, in no particular order.  An empty source yields ``[]``
        without starting a run.
    """
    paged: PagedSource[T] = source if isinstance(source, PagedSource) else SequenceSource(source)

    if params is None:
        total = await asyncio.to_thread(paged.count)
        if total < 1:
            _log.debug("batch.query.empty_source")
            return []
        params = default_parameters(total, settings)

    batch_size = params.batch_size

    async def load_page(page_number: int) -> Sequence[T]:
        return await asyncio.to_thread(paged.fetch, (page_number - 1) * batch_size, batch_size)

    if policy is None:
        policy = ExceptionPolicy.from_settings(settings)

    executor: ParallelBatchExecutor[T] = ParallelBatchExecutor(params, policy=policy, logger=logger)
    try:
        return await executor.run(load_page)
    finally:
        if failures is not None:
            failures.extend(executor.failures)

