"""Interactive terminal dashboard — crossinfo's render loop.

One thread draws, polls input and probes the fast categories; a single
background thread probes the network. Each loop iteration:

1. builds a frame from the current state and cached telemetry and draws it,
2. polls for at most one input event without waiting,
3. feeds that event to the interaction state,
4. refreshes the categories that are due and records chart samples.

Usage:
    crossinfo
"""

from __future__ import annotations

import curses
import locale
import logging
import sys
import time
from collections.abc import Callable
from typing import Any, Protocol

from crossinfo.cache import INTERVAL, ProbeLike, SnapshotCache
from crossinfo.config import configure_logging, load_config
from crossinfo.frame import TAB_CATEGORIES, Frame, Telemetry, build_frame
from crossinfo.network import NetworkSlot, NetworkWorker
from crossinfo.probe import Category, CpuInfo, MemoryInfo, Probe
from crossinfo.render import CursesRenderer
from crossinfo.series import RAM_KEY, SWAP_KEY, TimeSeriesRecorder, axis_scale, scaled_usage
from crossinfo.state import InputEvent, InteractionState, Outcome, Screen

logger = logging.getLogger(__name__)


class Renderer(Protocol):
    def draw(self, frame: Frame) -> None: ...

    def poll(self) -> InputEvent | None: ...


class Dashboard:
    """Owns all UI state and drives the render loop.

    Args:
        renderer: Draws frames and yields input events.
        probe: Platform probe shared with the network worker.
        config: Loaded configuration (only ``tick_sleep`` is read here).
        clock: Monotonic time source.
        sleep: Used for the optional ``tick_sleep`` pause.
    """

    def __init__(
        self,
        renderer: Renderer,
        probe: ProbeLike,
        config: dict[str, Any] | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        cfg = config or {}
        self.renderer = renderer
        self.probe = probe
        self.state = InteractionState()
        self.cache = SnapshotCache(probe, INTERVAL, clock)
        self.recorder = TimeSeriesRecorder(INTERVAL)
        self.worker = NetworkWorker(probe, NetworkSlot())
        self.ram_scale: float | None = None
        self.swap_scale: float | None = None
        self._clock = clock
        self._sleep = sleep
        # 0 keeps the loop unpaced
        self._tick_sleep = max(0.0, float(cfg.get("tick_sleep", 0.0)))
        self._started_at = clock()

    # ── Lifecycle ─────────────────────────────────────────────────────────

    def start(self) -> None:
        """Start the network worker and take the first CPU/memory readings."""
        self.worker.start()
        self.cache.get(Category.CPU)
        memory: MemoryInfo | None = self.cache.get(Category.MEMORY)
        if memory is not None:
            self._derive_scales(memory)

    def stop(self) -> None:
        """Signal the network worker and wait for it to exit."""
        self.worker.stop()

    def run(self) -> None:
        """Loop until the user quits. The network worker is always joined."""
        self.start()
        try:
            while self.tick() is not Outcome.QUIT:
                if self._tick_sleep:
                    self._sleep(self._tick_sleep)
        finally:
            self.stop()

    # ── One iteration ─────────────────────────────────────────────────────

    def elapsed(self) -> float:
        return self._clock() - self._started_at

    def telemetry(self) -> Telemetry:
        return Telemetry(
            cache=self.cache,
            recorder=self.recorder,
            network=self.worker.slot,
            elapsed=self.elapsed(),
            ram_scale=self.ram_scale,
            swap_scale=self.swap_scale,
        )

    def tick(self) -> Outcome:
        frame, view = build_frame(self.state, self.telemetry())
        if self.state.cursor.selected_line > max(view.line_count - 1, 0):
            # the collection shrank under the cursor
            self.state.cursor.clamp(view.line_count)
            frame, view = build_frame(self.state, self.telemetry())
        self.renderer.draw(frame)

        outcome = Outcome.CONTINUE
        event = self.renderer.poll()
        if event is not None:
            outcome = self.state.handle(event, view, self.probe)
            if outcome is Outcome.QUIT:
                logger.debug("quit requested")
                return outcome
            if outcome is Outcome.DASHBOARD_ENTERED:
                # charts start at zero once the welcome screen is gone
                self._started_at = self._clock()

        if self.state.screen is Screen.DASHBOARD:
            self.refresh()
        return outcome

    def refresh(self) -> None:
        """Refresh CPU, memory and the active tab's category if due, then record samples."""
        categories = [Category.CPU, Category.MEMORY]
        tab_category = TAB_CATEGORIES.get(self.state.cursor.tab)
        if tab_category is not None and tab_category not in categories:
            categories.append(tab_category)
        self.cache.refresh(categories)
        self.record()

    def record(self) -> None:
        elapsed = self.elapsed()
        cores: list[CpuInfo] | None = self.cache.peek(Category.CPU)
        for core in cores or []:
            self.recorder.record(core.key, elapsed, core.usage)

        memory: MemoryInfo | None = self.cache.peek(Category.MEMORY)
        if memory is None:
            return
        ram_scale, swap_scale = self._derive_scales(memory)
        self.recorder.record(
            RAM_KEY, elapsed, scaled_usage(memory.used_memory, memory.total_memory, ram_scale)
        )
        self.recorder.record(
            SWAP_KEY, elapsed, scaled_usage(memory.used_swap, memory.total_swap, swap_scale)
        )

    def _derive_scales(self, memory: MemoryInfo) -> tuple[float, float]:
        """Chart ceilings, fixed by the first memory reading for the whole run."""
        if self.ram_scale is None or self.swap_scale is None:
            self.ram_scale = axis_scale(memory.total_memory)
            self.swap_scale = axis_scale(memory.total_swap)
            logger.debug("chart scales: ram=%s swap=%s", self.ram_scale, self.swap_scale)
        return self.ram_scale, self.swap_scale


# ── CLI entry point ────────────────────────────────────────────────────────


def main() -> None:
    config = load_config()
    configure_logging(config)

    if not (sys.stdin.isatty() and sys.stdout.isatty()):
        print("crossinfo: an interactive terminal is required", file=sys.stderr)
        raise SystemExit(1)

    locale.setlocale(locale.LC_ALL, "")
    entered = False

    def _run(stdscr: Any) -> None:
        nonlocal entered
        renderer = CursesRenderer(stdscr, config.get("bar_thresholds"))
        renderer.setup()
        entered = True
        Dashboard(renderer, Probe(config.get("connectivity")), config).run()

    try:
        curses.wrapper(_run)
    except curses.error as e:
        if entered:
            raise
        print(f"crossinfo: cannot enter interactive terminal mode: {e}", file=sys.stderr)
        raise SystemExit(1) from e
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
