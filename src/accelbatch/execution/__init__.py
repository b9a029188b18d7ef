"""accelbatch execution — bounded-concurrency paged batch runs.

ARCHITECTURE
────────────
::

    ExecutionParameters ─► build_plan() ─► Plan(PageRange...)
                                              │
    ParallelBatchExecutor(plan, policy, logger).run(page_loader)
      ├── CompletionStream    ─ per-range fan-out, completion order
      ├── ResultAccumulator   ─ shared rows
      ├── FailureLog          ─ shared FailureRecords
      ├── ExceptionPolicy     ─ IGNORE_ALL / STOP_ON_FIRST + suppression
      └── HookDispatcher      ─ optional caller BatchLogger

    run_query_parallel(source) ─ offset/limit loader over a PagedSource

MODULE MAP (recommended reading order)
──────────────────────────────────────
  1. params.py       ─ ExecutionParameters (validated)
  2. planner.py      ─ page count + worker-range partition
  3. completion.py   ─ CompletionStream
  4. policy.py       ─ ExceptionPolicy / ExceptionBehavior
  5. accumulator.py  ─ ResultAccumulator, FailureLog, FailureRecord
  6. hooks.py        ─ BatchLogger protocol + adapters
  7. engine.py       ─ ParallelBatchExecutor, run_batches, run_plan
  8. query.py        ─ PagedSource, run_query_parallel
"""

from accelbatch.execution.accumulator import FailureLog, FailureRecord, ResultAccumulator
from accelbatch.execution.completion import CompletionStream, as_completed_stream
from accelbatch.execution.engine import (
    EngineState,
    PageLoader,
    ParallelBatchExecutor,
    RangeState,
    RunSummary,
    run_batches,
    run_plan,
)
from accelbatch.execution.hooks import (
    BatchLogger,
    ConsoleBatchLogger,
    HookDispatcher,
    StructlogBatchLogger,
    format_exception_details,
)
from accelbatch.execution.params import ExecutionParameters
from accelbatch.execution.planner import PageRange, Plan, build_plan, count_pages, partition
from accelbatch.execution.policy import ExceptionBehavior, ExceptionKind, ExceptionPolicy
from accelbatch.execution.query import (
    PagedSource,
    SequenceSource,
    default_parameters,
    run_query_parallel,
)

__all__ = [
    # params / plan
    "ExecutionParameters",
    "PageRange",
    "Plan",
    "build_plan",
    "count_pages",
    "partition",
    # streaming
    "CompletionStream",
    "as_completed_stream",
    # policy
    "ExceptionBehavior",
    "ExceptionKind",
    "ExceptionPolicy",
    # shared state
    "FailureLog",
    "FailureRecord",
    "ResultAccumulator",
    # hooks
    "BatchLogger",
    "ConsoleBatchLogger",
    "HookDispatcher",
    "StructlogBatchLogger",
    "format_exception_details",
    # engine
    "EngineState",
    "PageLoader",
    "ParallelBatchExecutor",
    "RangeState",
    "RunSummary",
    "run_batches",
    "run_plan",
    # query
    "PagedSource",
    "SequenceSource",
    "default_parameters",
    "run_query_parallel",
]
