from dynaconf import Dynaconf


import math
import os
import re
from dataclasses import dataclass
from decimal import Decimal
from threading import Lock
from typing import Any, Mapping, Optional, Protocol, Tuple

from snmpfake.generator import effective_max


ENVVAR_PREFIX = 'SNMPFAKE'

_OID_RE = re.compile(r'^\.?\d+(\.\d+)+$')


class ConfigError(Exception):
    """Raised when the agent configuration is unusable."""
    def __init__(self, message: str, key: Optional[str] = None) -> None:
        super().__init__(message)
        self.key = key


class ConfigSource(Protocol):
    def get(self, key: str, default: Any = None) -> Any: ...


class AppConfig:
    _instance = None
    _lock = Lock()

    def __new__(cls, config_path: str = 'agent_config.yaml') -> 'AppConfig':
        with cls._lock:
            if cls._instance is None:
                cls._instance = super().__new__(cls)
                cls._instance._init_config(config_path)
            return cls._instance

    def _init_config(self, config_path: str) -> None:
        if not hasattr(self, 'settings'):
            if not os.path.exists(config_path):
                raise FileNotFoundError(f"Config file {config_path} not found")
            self.config_path = config_path
            self.settings = Dynaconf(
                settings_files=[config_path],
                environments=False,
                envvar_prefix=ENVVAR_PREFIX,
            )

    def get(self, key: str, default: object = None) -> object:
        return self.settings.get(key, default)

    @classmethod
    def reset(cls) -> None:
        """Forget the loaded instance so the next AppConfig() reads from disk again."""
        with cls._lock:
            cls._instance = None


@dataclass(frozen=True)
class AgentSettings:
    host: str = '127.0.0.1'
    port: int = 161
    agent_id: str = 'SNMPFake'
    community: str = 'public'


@dataclass(frozen=True)
class SensorConfig:
    min_bound: float
    max_bound: float
    oid: Tuple[int, ...]
    refresh_interval: int = 60
    magic_file: str = '/tmp/magicfile.txt'

    @property
    def oid_str(self) -> str:
        return '.'.join(str(arc) for arc in self.oid)


@dataclass(frozen=True)
class ApiSettings:
    enabled: bool = False
    host: str = '127.0.0.1'
    port: int = 8161


def _section(app_config: ConfigSource, name: str) -> Mapping[str, Any]:
    value = app_config.get(name, {})
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ConfigError(f"Section '{name}' must be a mapping, got {type(value).__name__}", key=name)
    return value


def _as_number(value: Any, key: str) -> float:
    if isinstance(value, bool):
        raise ConfigError(f"{key} must be a number, got {value!r}", key=key)
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{key} must be a number, got {value!r}", key=key) from None
    if not math.isfinite(number):
        raise ConfigError(f"{key} must be a finite number, got {value!r}", key=key)
    return number


def _as_bound(value: Any, key: str) -> float:
    """A finite number with at most one decimal digit, the resolution readings are served at."""
    bound = _as_number(value, key)
    if Decimal(repr(bound)).as_tuple().exponent < -1:
        raise ConfigError(f"{key} must be a multiple of 0.1, got {value!r}", key=key)
    return bound


def _as_int(value: Any, key: str) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"{key} must be an integer, got {value!r}", key=key)
    if isinstance(value, int):
        return value
    if isinstance(value, str) and re.fullmatch(r'\s*[+-]?\d+\s*', value):
        return int(value)
    raise ConfigError(f"{key} must be an integer, got {value!r}", key=key)


def _as_bool(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ('true', 'yes', 'on', '1'):
        return True
    if isinstance(value, str) and value.strip().lower() in ('false', 'no', 'off', '0', ''):
        return False
    raise ConfigError(f"{key} must be a boolean, got {value!r}", key=key)


def _as_port(value: Any, key: str) -> int:
    port = _as_int(value, key)
    if not 1 <= port <= 65535:
        raise ConfigError(f"{key} must be between 1 and 65535, got {port}", key=key)
    return port


def parse_oid(value: Any, key: str = 'sensor.oid') -> Tuple[int, ...]:
    """Turn a dotted OID string such as '1.3.6.1.4.1' (or '.1.3.6.1.4.1') into a tuple.

    The served object hangs off the iso (1) tree, so the first arc must be 1.
    """
    text = str(value).strip()
    if not _OID_RE.match(text):
        raise ConfigError(f"{key} must be a dotted numeric OID, got {value!r}", key=key)
    oid = tuple(int(arc) for arc in text.lstrip('.').split('.'))
    if oid[0] != 1:
        raise ConfigError(f"{key} must start with 1 (iso), got {value!r}", key=key)
    return oid


def load_agent_settings(app_config: ConfigSource) -> AgentSettings:
    section = _section(app_config, 'agent')
    return AgentSettings(
        host=str(section.get('host', AgentSettings.host)),
        port=_as_port(section.get('port', AgentSettings.port), 'agent.port'),
        agent_id=str(section.get('agent_id', AgentSettings.agent_id)),
        community=str(section.get('community', AgentSettings.community)),
    )


def load_sensor_config(app_config: ConfigSource) -> SensorConfig:
    """Build and validate the sensor configuration.

    Defaults mirror the historical properties file, including its inverted
    bounds (lower 20, upper 10). Those are rejected here rather than silently
    producing a reversed range, so a config must set a valid range explicitly.
    """
    section = _section(app_config, 'sensor')
    min_bound = _as_bound(section.get('lower_bound', 20), 'sensor.lower_bound')
    max_bound = _as_bound(section.get('upper_bound', 10), 'sensor.upper_bound')
    if min_bound >= max_bound:
        raise ConfigError(
            f"sensor.lower_bound ({min_bound:g}) must be lower than "
            f"sensor.upper_bound ({max_bound:g})",
            key='sensor.lower_bound',
        )
    if not math.isfinite(effective_max(min_bound, max_bound, True)):
        raise ConfigError(
            f"sensor range {min_bound:g}..{max_bound:g} is too wide: the excursion "
            f"ceiling upper + (upper - lower) overflows",
            key='sensor.upper_bound',
        )
    interval = _as_int(section.get('refresh_delay', 60), 'sensor.refresh_delay')
    if interval <= 0:
        raise ConfigError(f"sensor.refresh_delay must be positive, got {interval}", key='sensor.refresh_delay')
    magic_file = section.get('magic_file', '/tmp/magicfile.txt')
    if not magic_file:
        raise ConfigError("sensor.magic_file must not be empty", key='sensor.magic_file')
    return SensorConfig(
        min_bound=min_bound,
        max_bound=max_bound,
        oid=parse_oid(section.get('oid', '1.1.1.1.1')),
        refresh_interval=interval,
        magic_file=str(magic_file),
    )


def load_api_settings(app_config: ConfigSource) -> ApiSettings:
    section = _section(app_config, 'rest_api')
    return ApiSettings(
        enabled=_as_bool(section.get('enabled', False), 'rest_api.enabled'),
        host=str(section.get('host', ApiSettings.host)),
        port=_as_port(section.get('port', ApiSettings.port), 'rest_api.port'),
    )
