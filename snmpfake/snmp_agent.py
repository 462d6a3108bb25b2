#!/usr/bin/env python3
"""
SNMPAgent: pysnmp agent serving one read-only scalar backed by a SimulatedSensor.

Query it with:
    snmpget -v2c -c public 127.0.0.1:1610 1.1.1.1.1
"""
import argparse
import asyncio
import logging
import signal
import sys
import threading
from types import FrameType
from typing import Any, List, Optional

from pysnmp.carrier.asyncio.dgram import udp
from pysnmp.entity import engine, config
from pysnmp.entity.rfc3413 import cmdrsp, context
from pyasn1.type.univ import OctetString

from snmpfake.app_config import (
    AgentSettings, AppConfig, ConfigError,
    load_agent_settings, load_api_settings, load_sensor_config,
)
from snmpfake.app_logger import AppLogger
from snmpfake.refresher import Refresher
from snmpfake.sensor import SimulatedSensor

MIB_MODULE = '__SNMPFAKE-MIB'

# Community 'public' may read everything under 1.3
READ_VIEW_SUBTREE = (1, 3)

# Whole iso tree; used when the served OID is outside 1.3
ISO_SUBTREE = (1,)

# DisplayString size limit of sysDescr
SYS_DESCR_MAX_LEN = 255

# SNMPv1 and SNMPv2c
SECURITY_MODELS = (1, 2)


def ensure_event_loop() -> asyncio.AbstractEventLoop:
    """pysnmp transports bind to the current event loop; make sure there is one."""
    try:
        loop = asyncio.get_event_loop()
    except RuntimeError:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
    return loop


class SNMPAgent:
    """SNMP agent exposing the sensor reading at a single OID."""

    def __init__(self, settings: AgentSettings, sensor: SimulatedSensor,
                 refresher: Optional[Refresher] = None) -> None:
        self.logger = logging.getLogger(__name__)
        self.settings = settings
        self.host = settings.host
        self.port = settings.port
        self.sensor = sensor
        self.oid = sensor.config.oid
        self.refresher = refresher or Refresher(
            sensor, sensor.config.refresh_interval, name=f"{settings.agent_id}-refresher")
        self._stopped = False

        self.snmpEngine = engine.SnmpEngine()
        self.mibBuilder = self.snmpEngine.get_mib_builder()
        (self.MibScalar,
         self.MibScalarInstance) = self.mibBuilder.import_symbols(
            'SNMPv2-SMI',
            'MibScalar',
            'MibScalarInstance'
        )

        self._setup_transport()
        self._setup_community()
        self._setup_responders()
        self._register_sensor_object()
        self._set_system_description()

    def _setup_transport(self) -> None:
        """Configure UDP transport."""
        ensure_event_loop()
        config.add_transport(
            self.snmpEngine,
            udp.DOMAIN_NAME,
            udp.UdpTransport().open_server_mode((self.host, self.port))
        )

    def read_subtrees(self) -> List[tuple[int, ...]]:
        """Subtrees the community may read.

        The default OID (1.1.1.1.1) lives outside 1.3. GETNEXT checks access on
        the scalar and on the requested name, not only on the returned instance,
        so the view is widened to the whole iso tree rather than to the OID alone.
        """
        if self.oid[:len(READ_VIEW_SUBTREE)] == READ_VIEW_SUBTREE:
            return [READ_VIEW_SUBTREE]
        return [ISO_SUBTREE]

    def _setup_community(self) -> None:
        """Configure the read-only SNMPv1/v2c community."""
        security_name = f"{self.settings.agent_id}-area"
        config.add_v1_system(self.snmpEngine, security_name, self.settings.community)
        for security_model in SECURITY_MODELS:
            for subtree in self.read_subtrees():
                config.add_vacm_user(
                    self.snmpEngine, security_model, security_name, 'noAuthNoPriv', subtree
                )

    def _setup_responders(self) -> None:
        """Register read-only command responders (no SET)."""
        self.snmpContext = context.SnmpContext(self.snmpEngine)
        cmdrsp.GetCommandResponder(self.snmpEngine, self.snmpContext)
        cmdrsp.NextCommandResponder(self.snmpEngine, self.snmpContext)
        cmdrsp.BulkCommandResponder(self.snmpEngine, self.snmpContext)

    def _register_sensor_object(self) -> None:
        """Export the scalar whose instance OID is exactly the configured OID."""
        sensor = self.sensor
        MibScalarInstanceBase = self.MibScalarInstance

        class SensorReadingInstance(MibScalarInstanceBase):  # type: ignore[valid-type,misc]
            """MibScalarInstance that returns the sensor's current reading on each GET."""
            def getValue(self, name: Any, **context: Any) -> Any:
                return self.getSyntax().clone(sensor.current_reading())

        type_name, inst_id = self.oid[:-1], self.oid[-1:]
        self.scalar = self.MibScalar(type_name, OctetString()).setMaxAccess('read-only')
        # readTest answers noSuchInstance while the syntax holds no value
        self.scalar_instance = SensorReadingInstance(
            type_name, inst_id, OctetString(sensor.current_reading()))
        self.mibBuilder.export_symbols(
            MIB_MODULE,
            sensorReading=self.scalar,
            sensorReadingInstance=self.scalar_instance,
        )
        self.logger.info(f"Registered {self.sensor.config.oid_str} (OctetString, read-only)")

    def _set_system_description(self) -> None:
        """Report the agent id as sysDescr.0 instead of the pysnmp version banner."""
        (sysDescr,) = self.mibBuilder.import_symbols('__SNMPv2-MIB', 'sysDescr')
        sysDescr.syntax = sysDescr.syntax.clone(self.settings.agent_id[:SYS_DESCR_MAX_LEN])

    def _install_shutdown_hook(self) -> None:
        if threading.current_thread() is not threading.main_thread():
            return

        def _on_sigterm(signum: int, frame: Optional[FrameType]) -> None:
            raise KeyboardInterrupt

        signal.signal(signal.SIGTERM, _on_sigterm)

    def run(self) -> None:
        """Start the refresher and serve SNMP requests until interrupted (blocking)."""
        self._install_shutdown_hook()
        self.refresher.start()
        self.logger.info(
            f"Agent {self.settings.agent_id} started on {self.host}:{self.port}, "
            f"community '{self.settings.community}', OID {self.sensor.config.oid_str}"
        )

        # Register an imaginary never-ending job to keep I/O dispatcher running forever
        self.snmpEngine.transport_dispatcher.job_started(1)
        try:
            self.snmpEngine.open_dispatcher()
        except KeyboardInterrupt:
            self.logger.info('Shutting down agent')
        finally:
            self.stop()

    def stop(self) -> None:
        """Stop the refresher and close the dispatcher. Safe to call twice."""
        if self._stopped:
            return
        self._stopped = True
        self.refresher.stop()
        if self.refresher.running:
            self.refresher.join(timeout=5)
        if self.snmpEngine.transport_dispatcher is not None:
            self.snmpEngine.close_dispatcher()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Fake SNMP agent serving a simulated temperature")
    parser.add_argument("-c", "--config", default="agent_config.yaml", help="Path to the YAML config")
    parser.add_argument("-l", "--log-level", help="Override logger.level from the config")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    try:
        app_config = AppConfig(args.config)
    except FileNotFoundError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
    try:
        AppLogger.configure(app_config, args.log_level)
    except ConfigError as e:
        print(f"ERROR: Invalid configuration in {args.config}: {e}", file=sys.stderr)
        return 1
    logger = AppLogger.get(__name__)

    try:
        agent_settings = load_agent_settings(app_config)
        sensor_config = load_sensor_config(app_config)
        api_settings = load_api_settings(app_config)
    except ConfigError as e:
        logger.error(f"Invalid configuration in {args.config}: {e}")
        return 1

    try:
        sensor = SimulatedSensor(sensor_config)
        agent = SNMPAgent(agent_settings, sensor)
        if api_settings.enabled:
            from snmpfake.api import create_app, start_api_server
            start_api_server(create_app(sensor, agent_settings.agent_id), api_settings)
        agent.run()
    except Exception as e:
        logger.error(f"Agent failed: {type(e).__name__}: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
