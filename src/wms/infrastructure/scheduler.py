"""Background loop that drives the stock sync batcher."""

from __future__ import annotations

import logging
import threading

from wms.application.stock_sync_batcher import StockSyncBatcher

logger = logging.getLogger(__name__)


class StockSyncScheduler:
    """Calls ``batcher.run_once()`` every ``interval_seconds`` until stopped.

    A failing cycle is logged and the loop carries on; the queue rows it
    claimed are recovered by the next cycle's stale-claim sweep.
    """

    def __init__(self, batcher: StockSyncBatcher, interval_seconds: float = 60) -> None:
        self._batcher = batcher
        self._interval = interval_seconds
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    def tick(self) -> None:
        try:
            self._batcher.run_once()
        except Exception:
            logger.exception("Stock sync cycle failed")

    def start(self) -> None:
        if self.is_running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run_loop, name="stock-sync", daemon=True)
        self._thread.start()
        logger.info("Stock sync scheduler started (every %ss)", self._interval)

    def stop(self, timeout: float = 30.0) -> None:
        self._stop_event.set()
        if self._thread is not None and self._thread.is_alive():
            self._thread.join(timeout=timeout)
        logger.info("Stock sync scheduler stopped")

    def run_forever(self) -> None:
        """Run in the calling thread until ``stop()`` or Ctrl-C."""
        try:
            self._run_loop()
        except KeyboardInterrupt:
            logger.info("Stock sync interrupted")

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _run_loop(self) -> None:
        while not self._stop_event.is_set():
            self.tick()
            self._stop_event.wait(timeout=self._interval)
