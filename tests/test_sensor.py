"""Tests for SimulatedSensor: refresh/read consistency and thread safety."""
import random
import re
import threading
from pathlib import Path
from typing import List

from pytest_mock import MockerFixture

from snmpfake.app_config import SensorConfig
from snmpfake.excursion import ExcursionGate
from snmpfake.sensor import SimulatedSensor

ONE_DECIMAL = re.compile(r'^-?\d+\.\d$')


def test_initial_reading_is_in_range(sensor_config: SensorConfig, rng: random.Random) -> None:
    sensor = SimulatedSensor(sensor_config, rng=rng)
    reading = sensor.current_reading()
    assert ONE_DECIMAL.match(reading)
    assert 0 <= float(reading) < 100
    assert sensor.refresh_count == 0


def test_default_gate_uses_magic_file(sensor_config: SensorConfig) -> None:
    sensor = SimulatedSensor(sensor_config)
    assert isinstance(sensor.gate, ExcursionGate)
    assert sensor.gate.path == sensor_config.magic_file


def test_initial_reading_consults_gate_once(sensor_config: SensorConfig, mocker: MockerFixture) -> None:
    gate = mocker.Mock(return_value=False)
    SimulatedSensor(sensor_config, gate=gate)
    gate.assert_called_once_with()


def test_refresh_then_read_returns_new_value(sensor_config: SensorConfig, rng: random.Random) -> None:
    sensor = SimulatedSensor(sensor_config, rng=rng)
    for _ in range(50):
        value = sensor.refresh()
        assert sensor.current_reading() == value
    assert sensor.refresh_count == 50


def test_reading_does_not_mutate(sensor_config: SensorConfig, rng: random.Random) -> None:
    sensor = SimulatedSensor(sensor_config, rng=rng)
    first = sensor.current_reading()
    assert [sensor.current_reading() for _ in range(10)] == [first] * 10


def test_refresh_reevaluates_gate_each_time(sensor_config: SensorConfig, rng: random.Random,
                                            mocker: MockerFixture) -> None:
    gate = mocker.Mock(side_effect=[False, True, False, True])
    sensor = SimulatedSensor(sensor_config, gate=gate, rng=rng)
    assert sensor.excursion_active is False
    sensor.refresh()
    assert sensor.excursion_active is True
    sensor.refresh()
    assert sensor.excursion_active is False
    sensor.refresh()
    assert gate.call_count == 4


def test_magic_file_flip_takes_effect_on_next_refresh(sensor_config: SensorConfig, rng: random.Random) -> None:
    sensor = SimulatedSensor(sensor_config, rng=rng)
    magic = Path(sensor_config.magic_file)

    normal = [float(sensor.refresh()) for _ in range(500)]
    assert max(normal) < 100

    magic.write_text('1\n')
    widened = [float(sensor.refresh()) for _ in range(500)]
    assert sensor.excursion_active is True
    assert max(widened) < 200
    assert any(r >= 100 for r in widened)

    magic.write_text('0\n')
    sensor.refresh()
    assert sensor.excursion_active is False


def test_excursion_toggle_is_logged(sensor_config: SensorConfig, mocker: MockerFixture) -> None:
    gate = mocker.Mock(side_effect=[False, True, True])
    sensor = SimulatedSensor(sensor_config, gate=gate)
    mock_info = mocker.patch('snmpfake.sensor.logger.info')
    sensor.refresh()
    sensor.refresh()
    mock_info.assert_called_once()
    assert 'enabled' in mock_info.call_args[0][0]


def test_snapshot_is_consistent(sensor_config: SensorConfig, rng: random.Random) -> None:
    sensor = SimulatedSensor(sensor_config, rng=rng)
    value = sensor.refresh()
    assert sensor.snapshot() == (value, False, 1)


def test_concurrent_readers_never_see_partial_values(sensor_config: SensorConfig) -> None:
    sensor = SimulatedSensor(sensor_config, rng=random.Random(3))
    stop = threading.Event()
    bad: List[str] = []
    reads = [0]
    reads_lock = threading.Lock()

    def writer() -> None:
        while not stop.is_set():
            sensor.refresh()

    def reader() -> None:
        count = 0
        while not stop.is_set():
            value = sensor.current_reading()
            if not ONE_DECIMAL.match(value) or not 0 <= float(value) < 100:
                bad.append(value)
            count += 1
        with reads_lock:
            reads[0] += count

    threads = [threading.Thread(target=writer)] + [threading.Thread(target=reader) for _ in range(8)]
    for t in threads:
        t.start()
    stop.wait(0.5)
    stop.set()
    for t in threads:
        t.join(timeout=5)

    assert not bad
    assert reads[0] > 0
    assert sensor.refresh_count > 0


def test_reader_sees_latest_completed_refresh(sensor_config: SensorConfig) -> None:
    sensor = SimulatedSensor(sensor_config, rng=random.Random(11))
    published: List[str] = []

    def writer() -> None:
        for _ in range(2000):
            published.append(sensor.refresh())

    t = threading.Thread(target=writer)
    t.start()
    t.join()
    assert sensor.current_reading() == published[-1]
