"""Exception policy — what a page failure does to a batch run.

Two behaviors:

``IGNORE_ALL``
    Record the failure, log it, keep fetching.  The run always returns
    whatever rows arrived; failures stay readable on the executor.

``STOP_ON_FIRST``
    The failing range stops consuming and no new range starts.  Ranges
    already running finish on their own.  At the end every recorded
    failure whose kind is suppressed is dropped; if any remain the run
    raises :class:`~accelbatch.core.errors.AggregateFailure` and the
    partial rows are discarded.

Suppressed kinds are exception classes (matched with ``isinstance``, so
subclasses count) or :class:`~accelbatch.core.errors.ErrorCategory`
members (matched through :func:`~accelbatch.core.errors.categorize_error`).
A predicate ``suppress_if`` covers anything the two cannot express.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Union

from accelbatch.core.errors import ErrorCategory, InvalidConfigError, categorize_error

if TYPE_CHECKING:
    from accelbatch.core.config import BatchSettings
    from accelbatch.execution.accumulator import FailureRecord

ExceptionKind = Union[type[BaseException], ErrorCategory]


class ExceptionBehavior(str, Enum):
    """How a page failure affects the run."""

    IGNORE_ALL = "ignore_all"
    STOP_ON_FIRST = "stop_on_first"


@dataclass
class ExceptionPolicy:
    """Failure handling configuration for one run.

    Mutate (``suppress``) before handing the policy to an executor; the
    executor works from a frozen copy taken when the run starts.
    """

    mode: ExceptionBehavior = ExceptionBehavior.IGNORE_ALL
    suppressed_kinds: frozenset[ExceptionKind] = field(default_factory=frozenset)
    suppress_if: Callable[[BaseException], bool] | None = None
    _frozen: bool = field(default=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        self.mode = ExceptionBehavior(self.mode)
        self.suppressed_kinds = frozenset(self.suppressed_kinds)
        for kind in self.suppressed_kinds:
            _check_kind(kind)

    @classmethod
    def ignore_all(cls) -> ExceptionPolicy:
        return cls(mode=ExceptionBehavior.IGNORE_ALL)

    @classmethod
    def stop_on_first(cls, *suppressed: ExceptionKind) -> ExceptionPolicy:
        return cls(mode=ExceptionBehavior.STOP_ON_FIRST, suppressed_kinds=frozenset(suppressed))

    @classmethod
    def from_settings(cls, settings: BatchSettings | None = None) -> ExceptionPolicy:
        if settings is None:
            from accelbatch.core.config import get_settings

            settings = get_settings()
        return cls(mode=ExceptionBehavior(settings.exception_behavior))

    @property
    def stops_on_first(self) -> bool:
        return self.mode is ExceptionBehavior.STOP_ON_FIRST

    def suppress(self, *kinds: ExceptionKind) -> ExceptionPolicy:
        """Add kinds excluded from the final report. Returns ``self``."""
        if self._frozen:
            raise InvalidConfigError(
                "suppressed_kinds", kinds, "Policy is in use by a running batch"
            )
        for kind in kinds:
            _check_kind(kind)
        self.suppressed_kinds = self.suppressed_kinds | frozenset(kinds)
        return self

    def freeze(self) -> ExceptionPolicy:
        """Return an immutable snapshot for the duration of a run."""
        return ExceptionPolicy(
            mode=self.mode,
            suppressed_kinds=self.suppressed_kinds,
            suppress_if=self.suppress_if,
            _frozen=True,
        )

    def is_suppressed(self, error: BaseException) -> bool:
        for kind in self.suppressed_kinds:
            if isinstance(kind, ErrorCategory):
                if categorize_error(error) is kind:
                    return True
            elif isinstance(error, kind):
                return True
        return self.suppress_if is not None and bool(self.suppress_if(error))

    def unsuppressed(self, failures: Iterable[FailureRecord]) -> list[FailureRecord]:
        """Failures that still count after suppression."""
        return [record for record in failures if not self.is_suppressed(record.error)]


def _check_kind(kind: object) -> None:
    if isinstance(kind, ErrorCategory):
        return
    if isinstance(kind, type) and issubclass(kind, BaseException):
        return
    raise InvalidConfigError(
        "suppressed_kinds", kind, f"Not an exception class or ErrorCategory: {kind!r}"
    )
