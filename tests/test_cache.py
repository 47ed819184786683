"""Tests for crossinfo.cache."""

from __future__ import annotations

import psutil

from conftest import FakeClock, FakeProbe
from crossinfo.cache import RefreshGate, SnapshotCache
from crossinfo.probe import Category

# ── RefreshGate ────────────────────────────────────────────────────────────


class TestRefreshGate:
    def test_never_fetched_is_stale(self) -> None:
        assert RefreshGate(1.0).is_stale(0.0) is True

    def test_within_interval_is_fresh(self) -> None:
        gate = RefreshGate(1.0)
        gate.mark(10.0)
        assert gate.is_stale(10.5) is False
        assert gate.is_stale(11.0) is False  # must strictly exceed the interval

    def test_after_interval_is_stale(self) -> None:
        gate = RefreshGate(1.0)
        gate.mark(10.0)
        assert gate.is_stale(11.01) is True


# ── SnapshotCache ──────────────────────────────────────────────────────────


class TestSnapshotCache:
    def test_first_get_probes(self, probe: FakeProbe, clock: FakeClock) -> None:
        cache = SnapshotCache(probe, 1.0, clock)
        assert cache.get(Category.MEMORY) is probe.values[Category.MEMORY]
        assert probe.calls[Category.MEMORY] == 1

    def test_gets_within_interval_are_identical(self, probe: FakeProbe, clock: FakeClock) -> None:
        cache = SnapshotCache(probe, 1.0, clock)
        first = cache.get(Category.CPU)
        clock.advance(0.4)
        probe.values[Category.CPU] = []
        second = cache.get(Category.CPU)
        assert second is first
        assert probe.calls[Category.CPU] == 1

    def test_refetch_after_interval(self, probe: FakeProbe, clock: FakeClock) -> None:
        cache = SnapshotCache(probe, 1.0, clock)
        cache.get(Category.CPU)
        clock.advance(1.5)
        probe.values[Category.CPU] = []
        assert cache.get(Category.CPU) == []
        assert probe.calls[Category.CPU] == 2

    def test_fetch_timestamps_non_decreasing(self, probe: FakeProbe, clock: FakeClock) -> None:
        cache = SnapshotCache(probe, 1.0, clock)
        stamps = []
        for _ in range(5):
            cache.get(Category.MEMORY)
            stamps.append(cache.fetched_at(Category.MEMORY))
            clock.advance(0.6)
        assert stamps == sorted(stamps)

    def test_categories_are_independent(self, probe: FakeProbe, clock: FakeClock) -> None:
        cache = SnapshotCache(probe, 1.0, clock)
        cache.get(Category.CPU)
        clock.advance(0.5)
        cache.get(Category.MEMORY)
        clock.advance(0.7)  # CPU stale, memory not
        cache.refresh([Category.CPU, Category.MEMORY])
        assert probe.calls[Category.CPU] == 2
        assert probe.calls[Category.MEMORY] == 1

    def test_unsupported_is_none(self, clock: FakeClock) -> None:
        cache = SnapshotCache(FakeProbe(), 1.0, clock)
        assert cache.get(Category.BATTERIES) is None
        assert cache.has_fetched(Category.BATTERIES) is True

    def test_supported_but_empty(self, clock: FakeClock) -> None:
        cache = SnapshotCache(FakeProbe({Category.BATTERIES: []}), 1.0, clock)
        assert cache.get(Category.BATTERIES) == []

    def test_peek_never_probes(self, probe: FakeProbe, clock: FakeClock) -> None:
        cache = SnapshotCache(probe, 1.0, clock)
        assert cache.peek(Category.CPU) is None
        assert cache.has_fetched(Category.CPU) is False
        assert probe.calls[Category.CPU] == 0

    def test_failure_collapses_to_no_data(self, probe: FakeProbe, clock: FakeClock) -> None:
        cache = SnapshotCache(probe, 1.0, clock)
        cache.get(Category.PROCESSES)
        clock.advance(1.5)
        probe.errors[Category.PROCESSES] = psutil.AccessDenied()
        assert cache.get(Category.PROCESSES) is None
        assert cache.peek(Category.PROCESSES) is None

    def test_failure_retried_at_normal_cadence(self, probe: FakeProbe, clock: FakeClock) -> None:
        cache = SnapshotCache(probe, 1.0, clock)
        probe.errors[Category.DISKS] = OSError("boom")
        cache.get(Category.DISKS)
        cache.get(Category.DISKS)
        assert probe.calls[Category.DISKS] == 1

        del probe.errors[Category.DISKS]
        probe.values[Category.DISKS] = []
        clock.advance(1.5)
        assert cache.get(Category.DISKS) == []

    def test_unexpected_exception_collapses_to_no_data(self, probe: FakeProbe, clock: FakeClock) -> None:
        cache = SnapshotCache(probe, 1.0, clock)
        probe.errors[Category.COMPONENTS] = ValueError("bad sensor reading")
        assert cache.get(Category.COMPONENTS) is None
        assert cache.has_fetched(Category.COMPONENTS) is True
        assert cache.peek(Category.COMPONENTS) is None

    def test_unexpected_exception_retried_at_normal_cadence(
        self, probe: FakeProbe, clock: FakeClock
    ) -> None:
        cache = SnapshotCache(probe, 1.0, clock)
        probe.errors[Category.COMPONENTS] = ValueError("bad sensor reading")
        cache.get(Category.COMPONENTS)
        cache.get(Category.COMPONENTS)
        assert probe.calls[Category.COMPONENTS] == 1

        del probe.errors[Category.COMPONENTS]
        clock.advance(1.5)
        assert cache.get(Category.COMPONENTS) == probe.values[Category.COMPONENTS]
