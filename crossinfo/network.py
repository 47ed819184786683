"""Background network probing.

Network queries include a live connectivity check whose latency is not
bounded by the render loop, so they run on their own thread. The thread
publishes into a lock-guarded slot that the render loop reads without
ever waiting for the worker to make progress.
"""

from __future__ import annotations

import logging
import threading
from typing import Any

import psutil

from crossinfo.cache import ProbeLike
from crossinfo.probe import Category, NetworkInfo

logger = logging.getLogger(__name__)


class NetworkSlot:
    """Latest published network snapshot, shared between two threads.

    ``None`` means nothing has been published yet ("loading").
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._value: NetworkInfo | None = None
        self._generation = 0

    def publish(self, value: NetworkInfo | None) -> None:
        with self._lock:
            self._value = value
            self._generation += 1

    def read(self) -> NetworkInfo | None:
        with self._lock:
            return self._value

    @property
    def generation(self) -> int:
        """Number of publishes so far."""
        with self._lock:
            return self._generation


class NetworkWorker:
    """Probes the network category in a loop until told to stop.

    There is no pause between iterations: a new probe starts as soon as the
    previous one returns. Stopping is cooperative and only checked between
    iterations, so ``stop`` waits out any probe already in flight.
    """

    def __init__(self, probe: ProbeLike, slot: NetworkSlot) -> None:
        self._probe = probe
        self._slot = slot
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def slot(self) -> NetworkSlot:
        return self._slot

    @property
    def is_running(self) -> bool:
        """Check if the worker thread is alive."""
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the worker thread."""
        if self.is_running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run,
            daemon=True,
            name="NetworkWorker",
        )
        self._thread.start()

    def stop(self, timeout: float | None = None) -> bool:
        """Signal the worker to stop and join it.

        Args:
            timeout: Seconds to wait for the thread; None blocks until it exits.

        Returns:
            True once the thread is no longer running.
        """
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            if self._thread.is_alive():
                logger.warning("network worker still running after %s s", timeout)
                return False
            self._thread = None
        return True

    def _run(self) -> None:
        while not self._stop_event.is_set():
            try:
                info: Any = self._probe.query(Category.NETWORK)
            except (psutil.Error, OSError) as e:
                logger.debug("network probe failed: %s", e)
                continue
            except Exception:
                logger.exception("network probe raised unexpectedly")
                continue
            self._slot.publish(info)
        logger.debug("network worker stopped")
