import os
import sys
import random
from typing import Iterator

import pytest

# Add parent directory to path to import snmpfake without installing it
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from snmpfake.app_config import AppConfig, SensorConfig


@pytest.fixture
def sensor_config(tmp_path: object) -> SensorConfig:
    """0..100 range with a magic file path that does not exist yet."""
    return SensorConfig(
        min_bound=0,
        max_bound=100,
        oid=(1, 1, 1, 1, 1),
        refresh_interval=60,
        magic_file=os.path.join(str(tmp_path), 'magicfile.txt'),
    )


@pytest.fixture
def rng() -> random.Random:
    return random.Random(20210301)


@pytest.fixture(autouse=True)
def fresh_app_config() -> Iterator[None]:
    AppConfig.reset()
    yield
    AppConfig.reset()
