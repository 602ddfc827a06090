"""Periodic driver for reconciler ticks.

``ReconcilerLoop`` runs ``Reconciler.tick`` on a daemon thread every
``interval`` seconds.  Waiting uses ``threading.Event.wait`` so ``stop``
returns promptly instead of sleeping out the interval.  The loop has a
single thread, so its own ticks never overlap; ticks requested from
elsewhere are arbitrated by the reconciler's tick lock.

Classes
-------
- ReconcilerLoop  — start/stop timer thread around a Reconciler
"""
from __future__ import annotations

import logging
import threading

from warp_task_tracker.sync.reconciler import ChangeReport, Reconciler

logger = logging.getLogger(__name__)

DEFAULT_SCAN_INTERVAL: float = 5.0


class ReconcilerLoop:
    """Run reconciler ticks on a fixed interval.

    Parameters
    ----------
    reconciler:
        The reconciler to drive.
    interval:
        Seconds between the end of one tick and the start of the next.
    immediate:
        When True (default) the first tick runs as soon as the loop starts.
    """

    def __init__(
        self,
        reconciler: Reconciler,
        interval: float = DEFAULT_SCAN_INTERVAL,
        immediate: bool = True,
    ) -> None:
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval!r}.")
        self._reconciler = reconciler
        self._interval = interval
        self._immediate = immediate
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self._state_lock = threading.Lock()

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def is_running(self) -> bool:
        thread = self._thread
        return thread is not None and thread.is_alive()

    def start(self) -> None:
        """Start the timer thread.  Calling it while running is a no-op."""
        with self._state_lock:
            if self.is_running:
                return
            self._stop.clear()
            self._thread = threading.Thread(
                target=self._run, name="reconciler-loop", daemon=True
            )
            self._thread.start()
        logger.debug("ReconcilerLoop: started (interval=%.1fs)", self._interval)

    def stop(self, timeout: float | None = None) -> None:
        """Signal the thread to exit and wait for the current tick to finish."""
        with self._state_lock:
            thread = self._thread
            self._stop.set()
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout if timeout is not None else self._interval + 1.0)
        with self._state_lock:
            if self._thread is thread and (thread is None or not thread.is_alive()):
                self._thread = None
        logger.debug("ReconcilerLoop: stopped")

    def run_once(self) -> ChangeReport | None:
        """Run a single tick on the calling thread."""
        return self._reconciler.tick()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the loop is stopped; returns True if it was."""
        return self._stop.wait(timeout)

    def _run(self) -> None:
        if self._immediate:
            self._safe_tick()
        while not self._stop.wait(self._interval):
            self._safe_tick()

    def _safe_tick(self) -> None:
        try:
            self._reconciler.tick()
        except Exception:  # noqa: BLE001
            logger.exception("Reconciler tick failed")

    def __enter__(self) -> ReconcilerLoop:
        self.start()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        self.stop()
