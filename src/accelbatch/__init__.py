"""
accelbatch - bounded-concurrency batch execution for paged data retrieval.

Split a large item set into pages, run worker ranges of pages in
parallel, collect rows as they arrive, and decide per run whether one
failed page aborts everything or is only recorded.

Quick start::

    from accelbatch import ExceptionPolicy, run_batches

    rows = await run_batches(
        fetch_page,                 # async (page_number) -> list
        total_items=10_000,
        batch_size=500,
        max_concurrency=4,
        sub_batches_per_worker=2,
        policy=ExceptionPolicy.stop_on_first(),
    )
"""

__version__ = "0.1.0"

from accelbatch.core.errors import (
    AccelError,
    AggregateFailure,
    BatchCancelledError,
    ConfigurationError,
    ErrorCategory,
    InvalidConfigError,
    PageFetchError,
)
from accelbatch.execution import (
    BatchLogger,
    CompletionStream,
    ExceptionBehavior,
    ExceptionPolicy,
    ExecutionParameters,
    FailureRecord,
    PagedSource,
    ParallelBatchExecutor,
    Plan,
    SequenceSource,
    build_plan,
    run_batches,
    run_plan,
    run_query_parallel,
)

__all__ = [
    "__version__",
    "AccelError",
    "AggregateFailure",
    "BatchCancelledError",
    "ConfigurationError",
    "ErrorCategory",
    "InvalidConfigError",
    "PageFetchError",
    "BatchLogger",
    "CompletionStream",
    "ExceptionBehavior",
    "ExceptionPolicy",
    "ExecutionParameters",
    "FailureRecord",
    "PagedSource",
    "ParallelBatchExecutor",
    "Plan",
    "SequenceSource",
    "build_plan",
    "run_batches",
    "run_plan",
    "run_query_parallel",
]
