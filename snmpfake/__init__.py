"""SNMPFake: SNMP agent serving a simulated temperature reading."""

from snmpfake.app_config import AppConfig, ConfigError, SensorConfig
from snmpfake.excursion import ExcursionGate
from snmpfake.generator import generate_reading
from snmpfake.refresher import Refresher
from snmpfake.sensor import SimulatedSensor
from snmpfake.snmp_agent import SNMPAgent

__all__ = ['AppConfig', 'ConfigError', 'SensorConfig', 'ExcursionGate', 'generate_reading',
           'Refresher', 'SimulatedSensor', 'SNMPAgent']
