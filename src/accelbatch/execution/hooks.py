"""Observability hook — the caller's optional progress logger.

WHY
───
Applications embedding the engine often already have their own sink for
progress messages (a UI console, an audit table, a job log).  The
engine reports to that sink through a tiny async protocol with five
severities, each taking a short ``message`` and free-form ``details``.

ARCHITECTURE
────────────
::

    BatchLogger (Protocol)        trace / debug / information / warning / error
      ├── StructlogBatchLogger    → structlog (the library's own logging)
      └── ConsoleBatchLogger      → numbered, timestamped text lines

    HookDispatcher(logger | None)
      ├── no logger        → every call returns immediately
      └── sink raises      → structlog warning, outcome unaffected

The engine talks only to :class:`HookDispatcher`, so a missing or broken
logger can never change control flow or the result of a run.
"""

from __future__ import annotations

import sys
import threading
import traceback
from datetime import datetime
from typing import Any, Protocol, TextIO, runtime_checkable

from accelbatch.core.logging import get_logger

logger = get_logger(__name__)


@runtime_checkable
class BatchLogger(Protocol):
    """Async sink for engine progress messages."""

    async def trace(self, message: str, details: str) -> None: ...

    async def debug(self, message: str, details: str) -> None: ...

    async def information(self, message: str, details: str) -> None: ...

    async def warning(self, message: str, details: str) -> None: ...

    async def error(self, message: str, details: str) -> None: ...


class StructlogBatchLogger:
    """Forwards hook messages to a structlog logger.

    structlog has no trace level; trace messages go to ``debug`` tagged
    ``severity="trace"``.
    """

    def __init__(self, bound: Any | None = None, **context: Any) -> None:
        base = bound if bound is not None else get_logger("accelbatch.hook")
        self._log = base.bind(**context) if context else base

    async def trace(self, message: str, details: str) -> None:
        self._log.debug(message, details=details, severity="trace")

    async def debug(self, message: str, details: str) -> None:
        self._log.debug(message, details=details)

    async def information(self, message: str, details: str) -> None:
        self._log.info(message, details=details)

    async def warning(self, message: str, details: str) -> None:
        self._log.warning(message, details=details)

    async def error(self, message: str, details: str) -> None:
        self._log.error(message, details=details)


class ConsoleBatchLogger:
    """Plain-text sink writing one numbered line per message.

    Output format::

        Trace(000001): 19/10/2026 14:03:11.402 ::: Message: ... / Details: ...
    """

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream
        self._lock = threading.Lock()
        self._index = 0

    def _write(self, level: str, message: str, details: str) -> None:
        stream = self._stream or sys.stdout
        with self._lock:
            self._index += 1
            stamp = datetime.now().strftime("%d/%m/%Y %H:%M:%S.%f")[:-3]
            stream.write(
                f"{level}({self._index:06d}): {stamp} ::: Message: {message} / Details: {details}\n"
            )

    @property
    def lines_written(self) -> int:
        return self._index

    async def trace(self, message: str, details: str) -> None:
        self._write("Trace", message, details)

    async def debug(self, message: str, details: str) -> None:
        self._write("Debug", message, details)

    async def information(self, message: str, details: str) -> None:
        self._write("Information", message, details)

    async def warning(self, message: str, details: str) -> None:
        self._write("Warning", message, details)

    async def error(self, message: str, details: str) -> None:
        self._write("Error", message, details)


def format_exception_details(error: BaseException) -> tuple[str, str]:
    """Split an exception into ``(message, details)`` for a hook.

    The message joins the error's text with its cause's text; details
    hold the formatted traceback of both.
    """
    inner = error.__cause__ or error.__context__
    message = str(error) or type(error).__name__
    trace = "".join(traceback.format_tb(error.__traceback__))
    if inner is not None:
        message = f"{message} / {inner}"
        trace = f"{trace} / {''.join(traceback.format_tb(inner.__traceback__))}"
    return message, trace


class HookDispatcher:
    """Null-safe, failure-proof front for an optional :class:`BatchLogger`."""

    def __init__(self, sink: BatchLogger | None = None) -> None:
        self._sink = sink

    @property
    def enabled(self) -> bool:
        return self._sink is not None

    async def _emit(self, severity: str, message: str, details: str) -> None:
        if self._sink is None:
            return
        try:
            await getattr(self._sink, severity)(message, details)
        except Exception as e:
            logger.warning(
                "batch.hook.failed",
                severity=severity,
                hook_message=message,
                error=str(e),
                error_type=type(e).__name__,
            )

    async def trace(self, message: str, details: str = "") -> None:
        await self._emit("trace", message, details)

    async def debug(self, message: str, details: str = "") -> None:
        await self._emit("debug", message, details)

    async def information(self, message: str, details: str = "") -> None:
        await self._emit("information", message, details)

    async def warning(self, message: str, details: str = "") -> None:
        await self._emit("warning", message, details)

    async def error(self, message: str, details: str = "") -> None:
        await self._emit("error", message, details)

    async def exception(self, error: BaseException) -> None:
        if self._sink is None:
            return
        message, details = format_exception_details(error)
        await self._emit("error", message, details)
