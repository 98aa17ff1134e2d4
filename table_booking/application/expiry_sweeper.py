# table_booking/application/expiry_sweeper.py

import logging
import threading

from table_booking.application.reservation_engine import ReservationEngine
from table_booking.infrastructure.config import EXPIRY_SWEEP_INTERVAL_SECONDS


logger = logging.getLogger(__name__)


class ExpirySweeper:
    """
    Background thread that releases lapsed seat locks at a fixed interval.

    A failed pass is logged and retried on the next tick; nothing raised by
    the engine ever stops the loop.
    """

    def __init__(
        self,
        engine: ReservationEngine,
        interval_seconds: float = EXPIRY_SWEEP_INTERVAL_SECONDS,
    ):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")

        self.engine = engine
        self.interval_seconds = interval_seconds
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return

        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run,
            name="expiry-sweeper",
            daemon=True,
        )
        self._thread.start()
        logger.info("Expiry sweeper started (interval %.1fs)", self.interval_seconds)

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info("Expiry sweeper stopped")

    def run_once(self) -> int:
        try:
            return self.engine.expire_stale_reservations()
        except Exception:
            logger.exception("Expiry sweep pass failed; retrying in %.1fs", self.interval_seconds)
            return 0

    def _run(self) -> None:
        while not self._stop.wait(self.interval_seconds):
            self.run_once()
