"""Tests for fan-out, deadlines and in-flight de-duplication."""

from __future__ import annotations

import threading
import time

import pytest

from rdfscout.concurrency import fan_out, run_with_timeout
from rdfscout.exceptions import QueryTimeoutError, UpstreamQueryError
from rdfscout.inflight import InFlightRegistry


class TestFanOut:
    def test_keeps_input_order(self):
        def slow_square(n):
            time.sleep(0.01 * (5 - n))
            return n * n

        assert fan_out(slow_square, range(5), max_workers=5) == [0, 1, 4, 9, 16]

    def test_runs_concurrently(self):
        barrier = threading.Barrier(3, timeout=5)

        def wait(_):
            barrier.wait()
            return True

        assert fan_out(wait, range(3), max_workers=3) == [True, True, True]

    def test_first_error_is_raised(self):
        def fail_on_odd(n):
            if n % 2:
                raise UpstreamQueryError(f"item {n}")
            return n

        with pytest.raises(UpstreamQueryError, match="item 1"):
            fan_out(fail_on_odd, range(4))

    def test_return_exceptions(self):
        def fail_on_odd(n):
            if n % 2:
                raise UpstreamQueryError(f"item {n}")
            return n

        results = fan_out(fail_on_odd, range(3), return_exceptions=True)
        assert results[0] == 0
        assert isinstance(results[1], UpstreamQueryError)
        assert results[2] == 2

    def test_nested_fan_out(self):
        inner = lambda n: sum(fan_out(lambda m: m, range(n), max_workers=2))  # noqa: E731
        assert fan_out(inner, [3, 4, 5], max_workers=2) == [3, 6, 10]

    def test_empty(self):
        assert fan_out(lambda n: n, []) == []


class TestRunWithTimeout:
    def test_no_timeout(self):
        assert run_with_timeout(lambda: 42, None) == 42

    def test_deadline(self):
        release = threading.Event()
        with pytest.raises(QueryTimeoutError, match="slow thing timed out"):
            run_with_timeout(lambda: release.wait(5), 0.05, "slow thing")
        release.set()

    def test_error_propagates(self):
        def boom():
            raise UpstreamQueryError("boom")

        with pytest.raises(UpstreamQueryError, match="boom"):
            run_with_timeout(boom, 5)


class TestInFlightRegistry:
    def test_concurrent_callers_share_one_run(self):
        registry = InFlightRegistry()
        calls = []
        release = threading.Event()

        def discover():
            calls.append(1)
            release.wait(5)
            return {"gene": "x"}

        results = []
        threads = [
            threading.Thread(target=lambda: results.append(registry.run("ep", discover)))
            for _ in range(4)
        ]
        threads[0].start()
        deadline = time.monotonic() + 5
        while "ep" not in registry and time.monotonic() < deadline:
            time.sleep(0.001)
        for t in threads[1:]:
            t.start()
        time.sleep(0.05)
        release.set()
        for t in threads:
            t.join(5)

        assert calls == [1]
        assert results == [{"gene": "x"}] * 4
        assert len(registry) == 0

    def test_entry_cleared_after_failure(self):
        registry = InFlightRegistry()

        def fail():
            raise UpstreamQueryError("down")

        with pytest.raises(UpstreamQueryError):
            registry.run("ep", fail)
        assert "ep" not in registry
        assert registry.run("ep", lambda: "fresh") == "fresh"

    def test_different_keys_run_separately(self):
        registry = InFlightRegistry()
        assert registry.run("a", lambda: 1) == 1
        assert registry.run("b", lambda: 2) == 2

    def test_timeout(self):
        registry = InFlightRegistry()
        release = threading.Event()
        with pytest.raises(QueryTimeoutError) as info:
            registry.run("ep", lambda: release.wait(5), timeout=0.05)
        assert info.value.endpoint == "ep"
        release.set()
