"""Parallel Batch Executor — bounded-concurrency paged retrieval.

WHY
───
Pulling a large result set one page at a time is slow; firing every
page at once floods the data source.  The executor splits the page
space into contiguous worker ranges, runs at most ``max_concurrency``
ranges at a time, fans out each range's pages together, and collects
rows as pages arrive.  One of two exception policies decides whether a
failed page aborts the run or is merely recorded.

ARCHITECTURE
────────────
::

    ExecutionParameters ──► build_plan() ──► Plan(ranges)
                                               │
    ParallelBatchExecutor.run(page_loader)     ▼
      ├── max_concurrency workers pull ranges from one shared iterator
      │     └── _run_range(range)
      │           ├── submit loader(n) for every page n in the range
      │           ├── CompletionStream → rows in completion order
      │           ├── rows     → ResultAccumulator (shared)
      │           └── failures → FailureLog        (shared)
      └── resolve
            IGNORE_ALL     → return rows
            STOP_ON_FIRST  → drop suppressed failures
                             none left → return rows
                             else      → raise AggregateFailure

    Engine:  PLANNING → SCHEDULING → DRAINING → SUCCEEDED | ABORTED
    Range:   PENDING  → RUNNING    → COMPLETED | FAILED

RESOURCE CONTRACT
─────────────────
Concurrency is bounded per range, not per page: up to
``max_concurrency * sub_batches_per_worker`` page fetches can be in
flight at once.  Nothing in flight is ever cancelled by the engine; a
range that stops early still awaits its leftover fetches.  Retries,
timeouts and hard cancellation belong in the page loader.

Related modules:
    planner.py     — Plan / PageRange arithmetic
    completion.py  — CompletionStream
    policy.py      — ExceptionPolicy
    hooks.py       — optional caller logger

Example::

    params = ExecutionParameters(
        total_items=10, batch_size=2, max_concurrency=2, sub_batches_per_worker=2,
    )
    executor = ParallelBatchExecutor(params, policy=ExceptionPolicy.stop_on_first())
    rows = await executor.run(fetch_page)       # fetch_page(page_number) -> list
"""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import Awaitable, Callable, Iterable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Generic, TypeVar

from accelbatch.core.errors import AggregateFailure, BatchCancelledError, PageFetchError
from accelbatch.core.logging import LogContext, get_logger
from accelbatch.execution.accumulator import FailureLog, FailureRecord, ResultAccumulator
from accelbatch.execution.completion import CompletionStream
from accelbatch.execution.hooks import BatchLogger, HookDispatcher
from accelbatch.execution.params import ExecutionParameters
from accelbatch.execution.planner import PageRange, Plan, build_plan
from accelbatch.execution.policy import ExceptionPolicy

logger = get_logger(__name__)

T = TypeVar("T")

PageLoader = Callable[[int], Awaitable[Iterable[T] | None]]


class EngineState(str, Enum):
    PLANNING = "planning"
    SCHEDULING = "scheduling"
    DRAINING = "draining"
    SUCCEEDED = "succeeded"
    ABORTED = "aborted"


class RangeState(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class RunSummary:
    """What happened during the most recent :meth:`ParallelBatchExecutor.run`."""

    run_id: str
    started_at: datetime
    completed_at: datetime | None = None
    state: EngineState = EngineState.SCHEDULING
    pages_fetched: int = 0
    items: int = 0
    failures: list[FailureRecord] = field(default_factory=list)
    cancelled: bool = False

    @property
    def duration_seconds(self) -> float | None:
        if self.completed_at is None:
            return None
        return (self.completed_at - self.started_at).total_seconds()

    def to_dict(self) -> dict[str, Any]:
        """Serialise for logging / API responses."""
        return {
            "run_id": self.run_id,
            "state": self.state.value,
            "pages_fetched": self.pages_fetched,
            "items": self.items,
            "failed": len(self.failures),
            "cancelled": self.cancelled,
            "duration_seconds": self.duration_seconds,
            "failures": [record.to_dict() for record in self.failures],
        }


class ParallelBatchExecutor(Generic[T]):
    """Runs a page loader over every page of a :class:`Plan`.

    Parameters
    ----------
    params : ExecutionParameters | Plan
        Run configuration, or an already computed plan.
    policy : ExceptionPolicy, optional
        Failure handling; defaults to the configured ``exception_behavior``
        (``IGNORE_ALL`` unless ``ACCELBATCH_EXCEPTION_BEHAVIOR`` says otherwise).
    logger : BatchLogger, optional
        Caller sink for progress messages.  Absent means silent.
    """

    def __init__(
        self,
        params: ExecutionParameters | Plan,
        policy: ExceptionPolicy | None = None,
        logger: BatchLogger | None = None,
    ) -> None:
        self._state = EngineState.PLANNING
        self._plan = params if isinstance(params, Plan) else build_plan(params)
        self._policy = policy if policy is not None else ExceptionPolicy.from_settings()
        self._hook = HookDispatcher(logger)
        self._failures = FailureLog()
        self._range_states = [RangeState.PENDING] * self._plan.range_count
        self._last_run: RunSummary | None = None

    # ── Inspection ───────────────────────────────────────────────────

    @property
    def plan(self) -> Plan:
        return self._plan

    @property
    def params(self) -> ExecutionParameters:
        return self._plan.params

    @property
    def policy(self) -> ExceptionPolicy:
        return self._policy

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def range_states(self) -> list[RangeState]:
        return list(self._range_states)

    @property
    def failures(self) -> list[FailureRecord]:
        """Every failure recorded by the last run, suppressed or not."""
        return self._failures.snapshot()

    @property
    def last_run(self) -> RunSummary | None:
        return self._last_run

    # ── Execution ────────────────────────────────────────────────────

    async def run(
        self,
        page_loader: PageLoader[T],
        cancel_event: asyncio.Event | None = None,
    ) -> list[T]:
        """Fetch every page and return all rows, in no particular order.

        Args:
            page_loader: Async callable ``(page_number) -> rows``; page
                numbers are 1-based.
            cancel_event: When set, no further range starts and the run
                raises :class:`BatchCancelledError` once running ranges
                settle.

        Raises:
            AggregateFailure: ``STOP_ON_FIRST`` run with unsuppressed failures.
            BatchCancelledError: ``cancel_event`` was set.
        """
        plan = self._plan
        params = plan.params
        policy = self._policy.freeze()
        results: ResultAccumulator[T] = ResultAccumulator()
        self._failures = FailureLog()
        self._range_states = [RangeState.PENDING] * plan.range_count
        self._state = EngineState.SCHEDULING
        summary = RunSummary(run_id=str(uuid.uuid4()), started_at=datetime.now(UTC))
        self._last_run = summary
        abort = asyncio.Event()

        def halted() -> bool:
            return abort.is_set() or (cancel_event is not None and cancel_event.is_set())

        async with LogContext(run_id=summary.run_id):
            logger.info(
                "batch.run.start",
                total_items=params.total_items,
                batch_size=params.batch_size,
                total_pages=plan.total_pages,
                ranges=plan.range_count,
                max_concurrency=params.max_concurrency,
                sub_batches_per_worker=params.sub_batches_per_worker,
                policy=policy.mode.value,
            )
            await self._hook.trace(
                "Initializing parallelism",
                f"Maximum workers: {params.max_concurrency}, "
                f"Pages per worker: {params.sub_batches_per_worker}",
            )
            await self._hook.trace(f"Total records: {params.total_items}")
            await self._hook.trace(f"Batch size: {params.batch_size}")
            await self._hook.trace(f"Total required iterations: {plan.total_pages}")

            queue = iter(enumerate(plan.ranges))

            async def worker() -> None:
                while not halted():
                    try:
                        index, page_range = next(queue)
                    except StopIteration:
                        break
                    fetched = await self._run_range(
                        index, page_range, page_loader, policy, results, abort
                    )
                    summary.pages_fetched += fetched
                if self._state is EngineState.SCHEDULING:
                    self._state = EngineState.DRAINING

            workers = [
                asyncio.ensure_future(worker())
                for _ in range(min(params.max_concurrency, plan.range_count))
            ]
            try:
                await asyncio.gather(*workers)
            except BaseException:
                self._state = EngineState.ABORTED
                raise
            finally:
                # a worker that died takes its siblings (and their fetches) down with it
                for task in workers:
                    task.cancel()
                await asyncio.gather(*workers, return_exceptions=True)

            return await self._resolve(summary, policy, results, cancel_event)

    async def _run_range(
        self,
        index: int,
        page_range: PageRange,
        page_loader: PageLoader[T],
        policy: ExceptionPolicy,
        results: ResultAccumulator[T],
        abort: asyncio.Event,
    ) -> int:
        """Fetch one range; returns the number of pages that delivered rows."""
        self._range_states[index] = RangeState.RUNNING
        failed = False
        fetched = 0
        total_pages = self._plan.total_pages

        async with LogContext(range_index=index):
            logger.debug(
                "batch.range.start",
                first_page=page_range.start + 1,
                last_page=page_range.end,
                pages=len(page_range),
            )
            await self._hook.trace(
                "Processing iteration range", f"{page_range} of {total_pages}"
            )

            stream = CompletionStream(
                _fetch(page_loader, page_number, index)
                for page_number in page_range.page_numbers
            )
            try:
                while not stream.exhausted:
                    try:
                        page_number, rows = await anext(stream)
                    except PageFetchError as e:
                        failed = True
                        self._record_failure(e, index)
                        if policy.stops_on_first:
                            # abort first; hook latency must not delay it
                            abort.set()
                            logger.warning("batch.run.stopping", page_number=e.page_number)
                            await self._hook.exception(e.cause or e)
                            break
                        await self._hook.exception(e.cause or e)
                        continue
                    added = results.extend(rows)
                    fetched += 1
                    await self._hook.trace(
                        "A query has finished", f"Page: {page_number}, rows: {added}"
                    )
            except BaseException:
                self._range_states[index] = RangeState.FAILED
                orphans = stream.pending
                for future in orphans:
                    future.cancel()
                await asyncio.gather(*orphans, return_exceptions=True)
                raise

            leftovers = stream.pending
            if leftovers:
                fetched += await self._drain(leftovers, index, results)
                failed = True

            self._range_states[index] = RangeState.FAILED if failed else RangeState.COMPLETED
            logger.debug(
                "batch.range.complete",
                state=self._range_states[index].value,
                pages_fetched=fetched,
            )
        return fetched

    async def _drain(
        self,
        leftovers: list[asyncio.Future[tuple[int, Iterable[T]]]],
        index: int,
        results: ResultAccumulator[T],
    ) -> int:
        """Await fetches a stopped range left in flight; never cancels them."""
        logger.debug("batch.range.draining", in_flight=len(leftovers))
        fetched = 0
        outcomes = await asyncio.gather(*leftovers, return_exceptions=True)
        for outcome in outcomes:
            if isinstance(outcome, PageFetchError):
                self._record_failure(outcome, index)
            elif isinstance(outcome, BaseException):
                logger.warning(
                    "batch.page.abandoned",
                    error=str(outcome),
                    error_type=type(outcome).__name__,
                )
            else:
                _, rows = outcome
                results.extend(rows)
                fetched += 1
        return fetched

    def _record_failure(self, error: PageFetchError, index: int) -> None:
        cause = error.cause if error.cause is not None else error
        self._failures.record(error.page_number, index, cause)
        logger.warning(
            "batch.page.failed",
            page_number=error.page_number,
            error=str(cause),
            error_type=type(cause).__name__,
        )

    async def _resolve(
        self,
        summary: RunSummary,
        policy: ExceptionPolicy,
        results: ResultAccumulator[T],
        cancel_event: asyncio.Event | None,
    ) -> list[T]:
        recorded = self._failures.snapshot()
        summary.failures = recorded
        summary.items = len(results)
        summary.completed_at = datetime.now(UTC)

        if cancel_event is not None and cancel_event.is_set():
            summary.cancelled = True
            self._finish(summary, EngineState.ABORTED)
            raise BatchCancelledError(
                f"Batch run cancelled after {summary.pages_fetched} of "
                f"{self._plan.total_pages} pages"
            ).with_context(run_id=summary.run_id, failure_count=len(recorded))

        if not policy.stops_on_first:
            self._finish(summary, EngineState.SUCCEEDED)
            return results.snapshot()

        remaining = policy.unsuppressed(recorded)
        if remaining:
            self._finish(summary, EngineState.ABORTED)
            await self._hook.error(
                "Batch run aborted", f"{len(remaining)} page fetch(es) failed"
            )
            raise AggregateFailure(remaining).with_context(run_id=summary.run_id)

        self._finish(summary, EngineState.SUCCEEDED)
        return results.snapshot()

    def _finish(self, summary: RunSummary, state: EngineState) -> None:
        self._state = state
        summary.state = state
        details = summary.to_dict()
        details.pop("failures")
        logger.info("batch.run.complete", **details)


async def _fetch(
    page_loader: PageLoader[T], page_number: int, range_index: int
) -> tuple[int, Iterable[T]]:
    try:
        rows = await page_loader(page_number)
        if isinstance(rows, (str, bytes, bytearray, Mapping)):
            raise TypeError(
                f"Page loader returned {type(rows).__name__}; expected a collection of rows"
            )
        items = list(rows) if rows is not None else []
    except Exception as e:
        raise PageFetchError(page_number, e, range_index=range_index) from e
    return page_number, items


async def run_batches(
    page_loader: PageLoader[T],
    *,
    total_items: int,
    batch_size: int,
    max_concurrency: int,
    sub_batches_per_worker: int = 1,
    policy: ExceptionPolicy | None = None,
    logger: BatchLogger | None = None,
    cancel_event: asyncio.Event | None = None,
    failures: list[FailureRecord] | None = None,
) -> list[T]:
    """One-shot functional form of :class:`ParallelBatchExecutor`.

    Pass a list as ``failures`` to receive every recorded page failure,
    including the ones ``IGNORE_ALL`` swallows.  It is filled even when
    the run raises.
    """
    params = ExecutionParameters(
        total_items=total_items,
        batch_size=batch_size,
        max_concurrency=max_concurrency,
        sub_batches_per_worker=sub_batches_per_worker,
    )
    executor: ParallelBatchExecutor[T] = ParallelBatchExecutor(params, policy=policy, logger=logger)
    return await _run_collecting(executor, page_loader, cancel_event, failures)


async def run_plan(
    plan: Plan,
    page_loader: PageLoader[T],
    *,
    policy: ExceptionPolicy | None = None,
    logger: BatchLogger | None = None,
    cancel_event: asyncio.Event | None = None,
    failures: list[FailureRecord] | None = None,
) -> list[T]:
    """Execute a precomputed :class:`Plan`; ``failures`` as in :func:`run_batches`."""
    executor: ParallelBatchExecutor[T] = ParallelBatchExecutor(plan, policy=policy, logger=logger)
    return await _run_collecting(executor, page_loader, cancel_event, failures)


async def _run_collecting(
    executor: ParallelBatchExecutor[T],
    page_loader: PageLoader[T],
    cancel_event: asyncio.Event | None,
    failures: list[FailureRecord] | None,
) -> list[T]:
    try:
        return await executor.run(page_loader, cancel_event=cancel_event)
    finally:
        if failures is not None:
            failures.extend(executor.failures)
