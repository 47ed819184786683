"""Shared test doubles."""

from __future__ import annotations

from collections import Counter
from typing import Any

import pytest

from crossinfo.probe import (
    Category,
    ComponentInfo,
    CpuInfo,
    MemoryInfo,
    ProcessInfo,
)
from crossinfo.state import InputEvent


class FakeClock:
    def __init__(self, now: float = 100.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeProbe:
    """Probe double: canned values per category, call counting, scripted failures."""

    def __init__(self, values: dict[Category, Any] | None = None) -> None:
        self.values: dict[Category, Any] = dict(values or {})
        self.errors: dict[Category, BaseException] = {}
        self.calls: Counter[Category] = Counter()
        self.kill_result = True
        self.killed: list[int] = []

    def query(self, category: Category) -> Any:
        self.calls[category] += 1
        if category in self.errors:
            raise self.errors[category]
        return self.values.get(category)

    def kill_process(self, pid: int) -> bool:
        self.killed.append(pid)
        return self.kill_result


class FakeRenderer:
    """Records drawn frames and replays a scripted list of events (None = no input)."""

    def __init__(self, events: list[InputEvent | None] | None = None) -> None:
        self.events = list(events or [])
        self.frames: list[Any] = []

    def draw(self, frame: Any) -> None:
        self.frames.append(frame)

    def poll(self) -> InputEvent | None:
        if self.events:
            return self.events.pop(0)
        return None


def make_process(pid: int, name: str, cpu: float = 0.0, mem: int = 0, swap: int = 0,
                 runtime: float = 0.0, parent: int | None = None) -> ProcessInfo:
    return ProcessInfo(
        pid=pid,
        name=name,
        path=f"/usr/bin/{name}",
        cpu_usage=cpu,
        memory_usage=mem,
        swap_usage=swap,
        run_time_seconds=runtime,
        parent=parent,
    )


CORES = [
    CpuInfo(model="cpu0", manufacturer="ACME", frequency_ghz=3.2, usage=10.0),
    CpuInfo(model="cpu1", manufacturer="ACME", frequency_ghz=3.2, usage=55.0),
]
MEMORY = MemoryInfo(
    total_memory=16_000_000_000,
    used_memory=8_000_000_000,
    total_swap=2_000_000_000,
    used_swap=500_000_000,
)
COMPONENTS = [
    ComponentInfo(name="CPU0", temperature=40.0, critical_temperature=90.0),
    ComponentInfo(name="CPU1", temperature=85.0, critical_temperature=None),
]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def probe() -> FakeProbe:
    return FakeProbe(
        {
            Category.CPU: CORES,
            Category.MEMORY: MEMORY,
            Category.COMPONENTS: COMPONENTS,
            Category.PROCESSES: [
                make_process(1, "init", cpu=0.5, mem=1_000_000),
                make_process(42, "editor", cpu=12.0, mem=250_000_000, parent=1),
            ],
        }
    )
