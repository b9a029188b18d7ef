"""Tests for the shared run state containers."""

from __future__ import annotations

import threading

from accelbatch.execution.accumulator import FailureLog, FailureRecord, ResultAccumulator


class TestResultAccumulator:
    def test_extend_and_snapshot(self):
        acc = ResultAccumulator()
        assert acc.extend([1, 2]) == 2
        assert acc.extend(iter([3])) == 1
        assert len(acc) == 3
        assert acc.snapshot() == [1, 2, 3]

    def test_snapshot_is_a_copy(self):
        acc = ResultAccumulator()
        acc.extend([1])
        snap = acc.snapshot()
        snap.append(99)
        assert acc.snapshot() == [1]

    def test_concurrent_appends_from_threads(self):
        acc = ResultAccumulator()

        def _append(offset: int) -> None:
            for i in range(500):
                acc.extend([offset + i])

        threads = [threading.Thread(target=_append, args=(n * 1000,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(acc) == 4000
        assert len(set(acc.snapshot())) == 4000


class TestFailureLog:
    def test_record(self):
        log = FailureLog()
        assert not log
        entry = log.record(3, 1, ValueError("x"))
        assert isinstance(entry, FailureRecord)
        assert len(log) == 1
        assert list(log) == [entry]
        assert log

    def test_record_to_dict(self):
        entry = FailureRecord(page_number=4, range_index=2, error=KeyError("k"))
        assert entry.kind is KeyError
        assert entry.to_dict() == {
            "page_number": 4,
            "range_index": 2,
            "error_type": "KeyError",
            "error": "'k'",
        }
