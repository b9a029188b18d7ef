"""
Structured error types for accelbatch.

Every failure the batch engine can surface is a typed error carrying a
category, retry hint, structured context and the chained cause. Callers
can branch on the class, route on the category, and log ``to_dict()``
without string parsing.

Manifesto:
    - **Typed Error Hierarchy:** Configuration, fetch and aggregate
      failures are distinct classes
    - **Fail Fast:** Bad parameters raise before any page is requested
    - **Nothing Dropped:** An aggregate failure carries every
      non-suppressed page failure, not only the first
    - **Error Chaining:** Loader exceptions are preserved as ``cause``

Architecture:
    ::

        ┌──────────────────────────────────────────────────────────────┐
        │                         AccelError                            │
        │  (category, retryable, context, cause)                       │
        ├──────────────────────────────────────────────────────────────┤
        │                                                               │
        │  ConfigError          PageFetchError      AggregateFailure    │
        │  (CONFIG)             (SOURCE)            (EXECUTION)         │
        │       │                                                       │
        │  InvalidConfigError                       BatchCancelledError │
        │  (= ConfigurationError)                   (EXECUTION)         │
        └──────────────────────────────────────────────────────────────┘

Examples:
    >>> error = InvalidConfigError("batch_size", 0)
    >>> error.category
    <ErrorCategory.CONFIG: 'CONFIG'>
    >>> error.context.metadata["key"]
    'batch_size'

    >>> categorize_error(ConnectionResetError())
    <ErrorCategory.NETWORK: 'NETWORK'>

Tags:
    error-handling, exception-hierarchy, aggregate-failure, accelbatch

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from accelbatch.execution.accumulator import FailureRecord


class ErrorCategory(str, Enum):
    """
    Standard error categories for classification and routing.

    Categories double as a closed vocabulary of exception kinds: an
    :class:`~accelbatch.execution.policy.ExceptionPolicy` can suppress a
    whole category instead of enumerating concrete exception classes.

    Attributes:
        NETWORK: Connection, timeout, DNS errors
        DATABASE: Connection pool, query timeout
        SOURCE: Upstream page source errors
        VALIDATION: Value and schema violations
        CONFIG: Missing or invalid settings
        EXECUTION: Batch run failures (aggregate, cancelled)
        INTERNAL: Bugs, unexpected state
        UNKNOWN: Uncategorized errors
    """

    NETWORK = "NETWORK"
    DATABASE = "DATABASE"
    SOURCE = "SOURCE"
    VALIDATION = "VALIDATION"
    CONFIG = "CONFIG"
    EXECUTION = "EXECUTION"
    INTERNAL = "INTERNAL"
    UNKNOWN = "UNKNOWN"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Attributes:
        run_id: Identifier of the batch run (set by the engine)
        page_number: 1-based page number at the loader boundary
        range_index: Index of the worker range that produced the error
        metadata: Additional key-value pairs
    """

    run_id: str | None = None
    page_number: int | None = None
    range_index: int | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result: dict[str, Any] = {}
        for key in ("run_id", "page_number", "range_index"):
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class AccelError(Exception):
    """
    Base exception for all accelbatch errors.

    Subclasses set ``default_category`` and ``default_retryable`` so that
    call sites only pass what differs from the defaults.

    Examples:
        >>> error = AccelError("boom")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.with_context(run_id="r-1").context.run_id
        'r-1'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> AccelError:
        """
        Add context to this error (fluent API).

        Known :class:`ErrorContext` fields are set directly, anything
        else lands in ``context.metadata``.
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Serialize for structured logging."""
        result: dict[str, Any] = {
            "error_type": type(self).__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        context = self.context.to_dict()
        if context:
            result["context"] = context
        if self.cause is not None:
            result["cause"] = f"{type(self.cause).__name__}: {self.cause}"
        return result

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigError(AccelError):
    """Invalid or missing configuration. Never retryable."""

    default_category = ErrorCategory.CONFIG
    default_retryable = False


class InvalidConfigError(ConfigError):
    """A configuration value is outside its allowed range."""

    def __init__(self, key: str, value: Any, message: str | None = None):
        super().__init__(message or f"Invalid value for {key}: {value!r}")
        self.key = key
        self.value = value
        self.context.metadata["key"] = key
        self.context.metadata["value"] = repr(value)


ConfigurationError = InvalidConfigError


# =============================================================================
# EXECUTION ERRORS
# =============================================================================


class PageFetchError(AccelError):
    """A page loader call failed.

    The original loader exception is kept as ``cause`` and the page it was
    fetching as ``page_number``.
    """

    default_category = ErrorCategory.SOURCE
    default_retryable = False

    def __init__(self, page_number: int, cause: BaseException, *, range_index: int | None = None):
        super().__init__(
            f"Page {page_number} failed: {type(cause).__name__}: {cause}",
            cause=cause,
            retryable=is_retryable(cause),
            context=ErrorContext(page_number=page_number, range_index=range_index),
        )
        self.page_number = page_number


class AggregateFailure(AccelError):
    """
    One or more page failures survived policy filtering.

    Raised only by a ``STOP_ON_FIRST`` run. The partially accumulated
    results are discarded; ``failures`` holds every remaining record.

    Example::

        try:
            await executor.run(loader)
        except AggregateFailure as exc:
            for record in exc.failures:
                print(record.page_number, record.error)
    """

    default_category = ErrorCategory.EXECUTION

    def __init__(self, failures: Iterable[FailureRecord], message: str | None = None):
        self.failures: tuple[FailureRecord, ...] = tuple(failures)
        first = self.failures[0].error if self.failures else None
        super().__init__(
            message or f"{len(self.failures)} page fetch(es) failed",
            cause=first,
        )
        self.context.metadata["failure_count"] = len(self.failures)

    @property
    def exceptions(self) -> tuple[BaseException, ...]:
        """The raw loader exceptions, in recording order."""
        return tuple(record.error for record in self.failures)

    @property
    def page_numbers(self) -> tuple[int, ...]:
        return tuple(record.page_number for record in self.failures)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["failures"] = [record.to_dict() for record in self.failures]
        return result


class BatchCancelledError(AccelError):
    """The caller's cancellation signal fired before the run finished."""

    default_category = ErrorCategory.EXECUTION


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def is_retryable(error: BaseException) -> bool:
    """Check if an error is retryable."""
    if isinstance(error, AccelError):
        return error.retryable
    return isinstance(error, (ConnectionError, TimeoutError, OSError))


def categorize_error(error: BaseException) -> ErrorCategory:
    """Get the category of an error."""
    if isinstance(error, AccelError):
        return error.category
    if isinstance(error, (ConnectionError, TimeoutError, OSError)):
        return ErrorCategory.NETWORK
    if isinstance(error, (ValueError, TypeError)):
        return ErrorCategory.VALIDATION
    if isinstance(error, (KeyError, AttributeError)):
        return ErrorCategory.CONFIG
    return ErrorCategory.UNKNOWN


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "AccelError",
    "ConfigError",
    "InvalidConfigError",
    "ConfigurationError",
    "PageFetchError",
    "AggregateFailure",
    "BatchCancelledError",
    "is_retryable",
    "categorize_error",
]
