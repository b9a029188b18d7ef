"""Tests for CompletionStream — completion-ordered, exactly-once delivery."""

from __future__ import annotations

import asyncio

import pytest

from accelbatch.execution.completion import CompletionStream, as_completed_stream


# ── Helpers ──────────────────────────────────────────────────────────────


async def _after(delay: float, value):
    await asyncio.sleep(delay)
    return value


async def _fail_after(delay: float, error: BaseException):
    await asyncio.sleep(delay)
    raise error


async def _drain(stream: CompletionStream) -> tuple[list, list]:
    values, errors = [], []
    while not stream.exhausted:
        try:
            values.append(await anext(stream))
        except Exception as e:
            errors.append(e)
    return values, errors


# ── Ordering ─────────────────────────────────────────────────────────────


class TestOrdering:
    @pytest.mark.asyncio
    async def test_yields_in_completion_order(self):
        stream = CompletionStream(
            [_after(0.06, "slow"), _after(0.0, "fast"), _after(0.03, "mid")]
        )
        assert [v async for v in stream] == ["fast", "mid", "slow"]

    @pytest.mark.asyncio
    async def test_already_done_futures(self):
        loop = asyncio.get_running_loop()
        futures = [loop.create_future() for _ in range(3)]
        for i, f in enumerate(futures):
            f.set_result(i)
        assert sorted([v async for v in CompletionStream(futures)]) == [0, 1, 2]

    @pytest.mark.asyncio
    async def test_async_generator_form(self):
        results = [v async for v in as_completed_stream([_after(0.02, 1), _after(0.0, 2)])]
        assert results == [2, 1]


# ── Cardinality ──────────────────────────────────────────────────────────


class TestCardinality:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("n", [0, 1, 7, 50])
    async def test_exactly_n_results(self, n):
        stream = CompletionStream(_after((i % 5) * 0.002, i) for i in range(n))
        assert len(stream) == n
        results = [v async for v in stream]
        assert sorted(results) == list(range(n))

    @pytest.mark.asyncio
    async def test_single_use(self):
        stream = CompletionStream([_after(0, "x")])
        assert [v async for v in stream] == ["x"]
        assert [v async for v in stream] == []
        with pytest.raises(StopAsyncIteration):
            await anext(stream)

    @pytest.mark.asyncio
    async def test_delivered_counter(self):
        stream = CompletionStream([_after(0, 1), _after(0, 2)])
        assert stream.delivered == 0
        await anext(stream)
        assert stream.delivered == 1
        assert not stream.exhausted
        await anext(stream)
        assert stream.exhausted


# ── Failures ─────────────────────────────────────────────────────────────


class TestFailures:
    @pytest.mark.asyncio
    async def test_failure_raised_at_its_position(self):
        stream = CompletionStream(
            [_after(0.04, "late"), _fail_after(0.02, ValueError("boom")), _after(0.0, "early")]
        )
        assert await anext(stream) == "early"
        with pytest.raises(ValueError, match="boom"):
            await anext(stream)
        assert await anext(stream) == "late"
        assert stream.exhausted

    @pytest.mark.asyncio
    async def test_every_failure_delivered_once(self):
        stream = CompletionStream(
            [_fail_after(0.0, KeyError("a")), _after(0.01, 1), _fail_after(0.02, KeyError("b"))]
        )
        values, errors = await _drain(stream)
        assert values == [1]
        assert len(errors) == 2
        assert all(isinstance(e, KeyError) for e in errors)


# ── Pending ──────────────────────────────────────────────────────────────


class TestPending:
    @pytest.mark.asyncio
    async def test_pending_lists_undelivered(self):
        stream = CompletionStream([_after(0.0, "a"), _after(0.05, "b"), _after(0.05, "c")])
        assert len(stream.pending) == 3
        await anext(stream)
        leftovers = stream.pending
        assert len(leftovers) == 2
        assert sorted(await asyncio.gather(*leftovers)) == ["b", "c"]

    @pytest.mark.asyncio
    async def test_consumer_cancellation_does_not_lose_slot(self):
        stream = CompletionStream([_after(0.05, "x")])
        waiter = asyncio.ensure_future(anext(stream))
        await asyncio.sleep(0.01)
        waiter.cancel()
        with pytest.raises(asyncio.CancelledError):
            await waiter
        assert await anext(stream) == "x"

    def test_requires_running_loop(self):
        with pytest.raises(RuntimeError):
            CompletionStream([])
