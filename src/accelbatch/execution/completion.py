"""Completion Stream — yield async results in the order they finish.

WHY
───
A worker range fires all of its page fetches at once.  Waiting on them
in submission order would stall behind the slowest early page; the
engine instead wants each page's rows the moment that page arrives.

ARCHITECTURE
────────────
::

    submitted:   f0 ──────────────┐        (slow)
                 f1 ────┐         │
                 f2 ────────┐     │
                        ▼   ▼     ▼
    done-callbacks claim  slot[0] slot[1] slot[2]   (next(counter))
                        f1      f2      f0
                         ▲
    consumer awaits slot[0], slot[1], slot[2] in index order
    and unwraps the future stored there → f1, f2, f0

Slots are awaited in index order while their *content* is fixed by
arrival order, so a plain ordered pull delivers first-finished-first.
The slot counter is advanced only from done-callbacks, which asyncio
runs on the event-loop thread one at a time: ``next(counter)`` is the
single atomic step of the whole engine and needs no lock.

Every operation is delivered exactly once.  A failed operation raises
its own exception from ``__anext__`` at the point its result would have
been returned; the stream can still be pulled afterwards for the rest.

Related modules:
    engine.py  — drains one stream per worker range

Example::

    async for rows in CompletionStream(loader(n) for n in range(1, 6)):
        collected.extend(rows)
"""

from __future__ import annotations

import asyncio
import itertools
from collections.abc import AsyncIterator, Awaitable, Iterable
from typing import Generic, TypeVar

T = TypeVar("T")


class CompletionStream(Generic[T]):
    """Single-use async iterator over a fixed set of awaitables.

    Must be constructed inside a running event loop: coroutines are
    scheduled as tasks immediately.
    """

    def __init__(self, operations: Iterable[Awaitable[T]]) -> None:
        loop = asyncio.get_running_loop()
        self._futures: list[asyncio.Future[T]] = [
            asyncio.ensure_future(op) for op in operations
        ]
        self._slots: list[asyncio.Future[asyncio.Future[T]]] = [
            loop.create_future() for _ in self._futures
        ]
        self._slot_counter = itertools.count()
        self._delivered = 0
        self._undelivered: set[asyncio.Future[T]] = set(self._futures)
        for future in self._futures:
            future.add_done_callback(self._claim_slot)

    def _claim_slot(self, finished: asyncio.Future[T]) -> None:
        slot = self._slots[next(self._slot_counter)]
        if not slot.done():
            slot.set_result(finished)

    def __len__(self) -> int:
        return len(self._futures)

    def __aiter__(self) -> CompletionStream[T]:
        return self

    async def __anext__(self) -> T:
        if self._delivered >= len(self._slots):
            raise StopAsyncIteration
        finished = await asyncio.shield(self._slots[self._delivered])
        self._delivered += 1
        self._undelivered.discard(finished)
        return finished.result()

    @property
    def delivered(self) -> int:
        """How many results (or failures) have been handed out."""
        return self._delivered

    @property
    def exhausted(self) -> bool:
        return self._delivered >= len(self._slots)

    @property
    def pending(self) -> list[asyncio.Future[T]]:
        """Operations not yet delivered, in submission order.

        They may already be done; a consumer that stops early uses this
        to await the leftovers instead of abandoning them.
        """
        return [f for f in self._futures if f in self._undelivered]


async def as_completed_stream(operations: Iterable[Awaitable[T]]) -> AsyncIterator[T]:
    """Async-generator form of :class:`CompletionStream`."""
    async for result in CompletionStream(operations):
        yield result
