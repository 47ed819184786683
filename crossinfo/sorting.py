"""Ordering for the process and component lists."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Any, TypeVar

from crossinfo.probe import ComponentInfo, ProcessInfo

T = TypeVar("T")


class Direction(Enum):
    ASCENDING = "ascending"
    DESCENDING = "descending"


class ProcessField(Enum):
    """Sort keys for the process list."""

    CPU = "cpu"
    MEMORY = "memory"
    SWAP = "swap"
    RUNTIME = "runtime"


class ComponentField(Enum):
    """Sort keys for the component list."""

    TEMPERATURE = "temperature"
    CRITICAL = "critical"


_PROCESS_KEYS: dict[ProcessField, Callable[[ProcessInfo], float]] = {
    ProcessField.CPU: lambda p: p.cpu_usage,
    ProcessField.MEMORY: lambda p: p.memory_usage,
    ProcessField.SWAP: lambda p: p.swap_usage,
    ProcessField.RUNTIME: lambda p: p.run_time_seconds,
}

_COMPONENT_KEYS: dict[ComponentField, Callable[[ComponentInfo], float]] = {
    ComponentField.TEMPERATURE: lambda c: c.temperature,
    # A missing critical temperature sorts as 0
    ComponentField.CRITICAL: lambda c: (
        c.critical_temperature if c.critical_temperature is not None else 0.0
    ),
}


@dataclass(slots=True, frozen=True)
class SortSpec:
    field: Any  # ProcessField | ComponentField
    direction: Direction

    @property
    def descending(self) -> bool:
        return self.direction is Direction.DESCENDING


DEFAULT_PROCESS_SORT = SortSpec(ProcessField.CPU, Direction.DESCENDING)
DEFAULT_COMPONENT_SORT = SortSpec(ComponentField.TEMPERATURE, Direction.DESCENDING)


def sort_by(items: Iterable[T], key: Callable[[T], Any], direction: Direction) -> list[T]:
    """Stable sort: items with equal keys keep their input order in either direction."""
    return sorted(items, key=key, reverse=direction is Direction.DESCENDING)


def sort_processes(processes: Iterable[ProcessInfo], spec: SortSpec) -> list[ProcessInfo]:
    return sort_by(processes, _PROCESS_KEYS[spec.field], spec.direction)


def sort_components(components: Iterable[ComponentInfo], spec: SortSpec) -> list[ComponentInfo]:
    return sort_by(components, _COMPONENT_KEYS[spec.field], spec.direction)
