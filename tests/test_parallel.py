import asyncio
import threading
import time

import pytest

from ledgernet.builder.parallel import run_in_parallel
from ledgernet.exceptions import AggregateError


class TestRunInParallel:
    """Tests for the fan-out/fan-in helper every stage runs on."""

    def test_every_unit_runs_once(self):
        seen = []
        lock = threading.Lock()

        def work(index, item):
            with lock:
                seen.append((index, item))

        results = asyncio.run(run_in_parallel("collect", ["a", "b", "c", "d"], work))

        assert sorted(seen) == [(0, "a"), (1, "b"), (2, "c"), (3, "d")]
        assert [r.index for r in results] == [0, 1, 2, 3]
        assert all(r.ok for r in results)

    def test_zero_units_returns_immediately(self):
        def work(index, item):
            pytest.fail("work must not be called")

        assert asyncio.run(run_in_parallel("nothing", [], work)) == []

    def test_units_run_concurrently(self):
        """All units must be in flight at the same time, not one after another."""
        barrier = threading.Barrier(3, timeout=5)

        def work(index, item):
            barrier.wait()

        asyncio.run(run_in_parallel("barrier", [1, 2, 3], work))

    def test_failures_are_aggregated_with_indices(self):
        def work(index, item):
            if index in (1, 3):
                raise RuntimeError(f"boom {index}")

        with pytest.raises(AggregateError) as exc_info:
            asyncio.run(run_in_parallel("starting things", range(5), work))

        error = exc_info.value
        assert error.failed_indices == [1, 3]
        assert error.succeeded == 3
        assert error.total == 5
        assert "starting things: 3/5 succeeded" in str(error)
        assert "[1] RuntimeError: boom 1" in str(error)
        assert "[3] RuntimeError: boom 3" in str(error)

    def test_failure_does_not_cancel_siblings(self):
        finished = []
        lock = threading.Lock()

        def work(index, item):
            if index == 0:
                raise ValueError("first fails fast")
            time.sleep(0.05)
            with lock:
                finished.append(index)

        with pytest.raises(AggregateError) as exc_info:
            asyncio.run(run_in_parallel("slow", range(4), work))

        assert sorted(finished) == [1, 2, 3]
        assert exc_info.value.failed_indices == [0]
