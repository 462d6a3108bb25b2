"""
SimulatedSensor: owns the reading served over SNMP.

One writer (the refresher) replaces the value; any number of readers (SNMP
responders, the status API) fetch it. Both sides go through the same lock.
"""
import logging
import random
import threading
from typing import Callable, Optional

from snmpfake.app_config import SensorConfig
from snmpfake.excursion import ExcursionGate
from snmpfake.generator import generate_reading

logger = logging.getLogger(__name__)


class SimulatedSensor:
    """Thread-safe holder of the current simulated temperature."""

    def __init__(self, config: SensorConfig,
                 gate: Optional[Callable[[], bool]] = None,
                 rng: Optional[random.Random] = None) -> None:
        self.config = config
        self.gate = gate if gate is not None else ExcursionGate(config.magic_file)
        self.rng = rng
        self._lock = threading.Lock()
        self._refresh_count = 0
        # First value is computed like any refresh but is not reported as a change
        self._excursion_active = self.gate()
        self._value = self._generate(self._excursion_active)
        logger.debug(f"Initial reading {self._value} (excursion={self._excursion_active})")

    def _generate(self, excursion_active: bool) -> str:
        return generate_reading(self.config.min_bound, self.config.max_bound,
                                excursion_active, self.rng)

    def refresh(self) -> str:
        """Re-check the magic file, draw a new reading and publish it."""
        excursion_active = self.gate()
        value = self._generate(excursion_active)
        with self._lock:
            previous = self._excursion_active
            self._value = value
            self._excursion_active = excursion_active
            self._refresh_count += 1
        if excursion_active != previous:
            logger.info(f"Excursion mode {'enabled' if excursion_active else 'disabled'} "
                        f"by {getattr(self.gate, 'path', 'gate')}")
        logger.debug(f"New reading {value} for {self.config.oid_str}")
        return value

    def current_reading(self) -> str:
        with self._lock:
            return self._value

    @property
    def excursion_active(self) -> bool:
        with self._lock:
            return self._excursion_active

    @property
    def refresh_count(self) -> int:
        with self._lock:
            return self._refresh_count

    def snapshot(self) -> tuple[str, bool, int]:
        """Value, excursion flag and refresh count read under one lock."""
        with self._lock:
            return self._value, self._excursion_active, self._refresh_count
