"""Snapshot cache — decides when the render thread re-queries the probe."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

import psutil

from crossinfo.probe import Category

logger = logging.getLogger(__name__)

INTERVAL = 1.0  # seconds; fixed refresh cadence for every render-thread category


class ProbeLike(Protocol):
    def query(self, category: Category) -> Any: ...

    def kill_process(self, pid: int) -> bool: ...


@dataclass
class RefreshGate:
    """Staleness check for one category."""

    interval: float = INTERVAL
    last_fetched_at: float | None = None

    def is_stale(self, now: float) -> bool:
        if self.last_fetched_at is None:
            return True
        return now - self.last_fetched_at > self.interval

    def mark(self, now: float) -> None:
        self.last_fetched_at = now


@dataclass
class _Entry:
    gate: RefreshGate
    value: Any = None


class SnapshotCache:
    """Latest probe result per category, refreshed at most once per interval.

    ``get`` probes a category synchronously when it has never been fetched
    or its gate is stale, and serves the stored value otherwise. ``peek``
    never probes; frame construction uses it.

    A failed probe call collapses the category to ``None`` ("no data") until
    its next scheduled refresh; the failure is logged, never raised.
    """

    def __init__(
        self,
        probe: ProbeLike,
        interval: float = INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._probe = probe
        self._interval = interval
        self._clock = clock
        self._entries: dict[Category, _Entry] = {}

    def _entry(self, category: Category) -> _Entry:
        entry = self._entries.get(category)
        if entry is None:
            entry = _Entry(gate=RefreshGate(self._interval))
            self._entries[category] = entry
        return entry

    def get(self, category: Category) -> Any:
        """Latest value for *category*, probing first if it is stale."""
        entry = self._entry(category)
        now = self._clock()
        if not entry.gate.is_stale(now):
            return entry.value

        entry.gate.mark(now)
        try:
            value = self._probe.query(category)
        except (psutil.Error, OSError) as e:
            logger.debug("probe for %s failed: %s", category.value, e)
            entry.value = None
            return None
        except Exception:
            logger.exception("probe for %s raised unexpectedly", category.value)
            entry.value = None
            return None

        entry.value = value
        return value

    def peek(self, category: Category) -> Any:
        """Stored value for *category* without touching the probe."""
        entry = self._entries.get(category)
        return entry.value if entry is not None else None

    def has_fetched(self, category: Category) -> bool:
        """Whether *category* has been probed at least once (successfully or not)."""
        return self.fetched_at(category) is not None

    def fetched_at(self, category: Category) -> float | None:
        entry = self._entries.get(category)
        return entry.gate.last_fetched_at if entry is not None else None

    def refresh(self, categories: list[Category]) -> None:
        """Bring each of *categories* up to date if its interval elapsed."""
        for category in categories:
            self.get(category)
