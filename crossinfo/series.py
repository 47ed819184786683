"""Time-series buffers for the dashboard charts."""

from __future__ import annotations

import math
from dataclasses import dataclass

Sample = tuple[float, float]  # (elapsed seconds, value)


@dataclass(slots=True, frozen=True)
class MetricKey:
    """Identity of one chart line.

    CPU cores are keyed by model + manufacturer rather than by position,
    since the probe does not promise a stable core order.
    """

    kind: str
    model: str
    manufacturer: str = ""


RAM_KEY = MetricKey("memory", "RAM used")
SWAP_KEY = MetricKey("memory", "SWAP used")


class TimeSeriesRecorder:
    """Append-only per-key series, debounced by *interval* seconds.

    A key's first sample is always kept; later ones only once more than
    *interval* seconds have passed since the key's previous sample. Series
    are never trimmed and grow for the life of the process.
    """

    def __init__(self, interval: float = 1.0) -> None:
        self._interval = interval
        self._series: dict[MetricKey, list[Sample]] = {}

    @property
    def interval(self) -> float:
        return self._interval

    def record(self, key: MetricKey, elapsed: float, value: float) -> bool:
        """Append ``(elapsed, value)`` to *key*'s series if it is due. Returns True if kept."""
        series = self._series.setdefault(key, [])
        if series and elapsed - series[-1][0] <= self._interval:
            return False
        series.append((elapsed, value))
        return True

    def series(self, key: MetricKey) -> list[Sample]:
        return list(self._series.get(key, ()))

    def keys(self) -> list[MetricKey]:
        return list(self._series)

    def __len__(self) -> int:
        return len(self._series)


def axis_scale(total: float) -> float:
    """Human-friendly chart ceiling for a capacity in bytes.

    Divides by 1000 until the value no longer exceeds 1000, then floors it:
    16_384_000_000 bytes → 16.0. Computed once at startup and never
    revisited, even if the reported capacity later changes.
    """
    value = float(total)
    while value > 1000.0:
        value /= 1000.0
    return float(math.floor(value))


def scaled_usage(used: int, total: int, scale: float) -> float:
    """Fraction ``used/total`` expressed on an ``axis_scale`` axis (0 when total is 0)."""
    if total == 0:
        return 0.0
    return used / total * scale
