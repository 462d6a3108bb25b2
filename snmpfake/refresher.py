import logging
import threading
from typing import Optional

from snmpfake.sensor import SimulatedSensor

logger = logging.getLogger(__name__)


class Refresher:
    """Background thread that refreshes a sensor every ``interval`` seconds.

    Fixed delay between refreshes: wait, refresh, wait again. ``stop()`` wakes
    an in-flight wait immediately and no further refresh is started.
    """

    def __init__(self, sensor: SimulatedSensor, interval: float, name: str = 'refresher') -> None:
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self.sensor = sensor
        self.interval = interval
        self._stop_event = threading.Event()
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)

    def _run(self) -> None:
        logger.info(f"Refreshing {self.sensor.config.oid_str} every {self.interval}s")
        while not self._stop_event.wait(self.interval):
            self.sensor.refresh()
        logger.info("Refresher stopped")

    def start(self) -> None:
        self._thread.start()

    def stop(self) -> None:
        self._stop_event.set()

    def join(self, timeout: Optional[float] = None) -> None:
        self._thread.join(timeout)

    @property
    def running(self) -> bool:
        return self._thread.is_alive()

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()
