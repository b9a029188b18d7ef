"""Execution parameters — the four knobs of a batch run.

``total_items`` and ``batch_size`` fix how many pages exist;
``max_concurrency`` caps how many worker ranges run at once;
``sub_batches_per_worker`` fixes how many pages one range fetches in a
single burst. Memory and connection usage scale with
``max_concurrency * sub_batches_per_worker``, so tune the two together.

Every field must be an integer ``>= 1``. Anything else raises
:class:`~accelbatch.core.errors.InvalidConfigError` at construction,
before a single page is requested.

Example::

    params = ExecutionParameters(
        total_items=10_000, batch_size=500, max_concurrency=4, sub_batches_per_worker=2,
    )
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import TYPE_CHECKING

from accelbatch.core.errors import InvalidConfigError

if TYPE_CHECKING:
    from accelbatch.core.config import BatchSettings


@dataclass(frozen=True)
class ExecutionParameters:
    """Validated, immutable configuration of one batch run."""

    total_items: int
    batch_size: int
    max_concurrency: int
    sub_batches_per_worker: int

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidConfigError(
                    f.name, value, f"{f.name} must be an integer, got {type(value).__name__}"
                )
            if value < 1:
                raise InvalidConfigError(
                    f.name, value, f"{f.name} must be greater than 0, got {value}"
                )

    @classmethod
    def from_settings(
        cls,
        total_items: int,
        settings: BatchSettings | None = None,
        **overrides: int,
    ) -> ExecutionParameters:
        """Build parameters for ``total_items`` from :class:`BatchSettings`.

        Keyword ``overrides`` replace individual settings values.
        """
        if settings is None:
            from accelbatch.core.config import get_settings

            settings = get_settings()
        values = {
            "batch_size": settings.batch_size,
            "max_concurrency": settings.max_concurrency,
            "sub_batches_per_worker": settings.sub_batches_per_worker,
        }
        unknown = set(overrides) - set(values)
        if unknown:
            raise InvalidConfigError(
                "overrides", sorted(unknown), f"Unknown parameter(s): {', '.join(sorted(unknown))}"
            )
        values.update(overrides)
        return cls(total_items=total_items, **values)
