from __future__ import annotations

import os

# Keep the app on simulated devices and out of the filesystem during tests
os.environ.setdefault("SENSOR_MODE", "sim")
os.environ.setdefault("THEME_ACTUATOR", "sim")
os.environ.setdefault("LOG_FILE", "")

import threading
import time
from typing import Iterable, Union

import pytest

from ambient_switcher.sensors.base import Sensor


class ScriptedSensor(Sensor):
    """Returns (or raises) the scripted values in order, then repeats the last one."""

    def __init__(self, script: Iterable[Union[int, Exception]], sensor_id: str = "scripted"):
        self._script = list(script)
        self._sensor_id = sensor_id
        self.reads = 0

    @property
    def sensor_id(self) -> str:
        return self._sensor_id

    def _read_counts(self) -> int:
        index = min(self.reads, len(self._script) - 1)
        self.reads += 1
        item = self._script[index]
        if isinstance(item, Exception):
            raise item
        return item


class BlockingSensor(Sensor):
    """Blocks inside the read until released."""

    def __init__(self, value: int):
        self.value = value
        self.entered = threading.Event()
        self.release = threading.Event()

    @property
    def sensor_id(self) -> str:
        return "blocking"

    def _read_counts(self) -> int:
        self.entered.set()
        self.release.wait(timeout=5)
        return self.value


@pytest.fixture
def scripted_sensor():
    return ScriptedSensor


@pytest.fixture
def blocking_sensor():
    sensor = BlockingSensor(value=100)
    yield sensor
    sensor.release.set()


class CountingSensor(Sensor):
    """Slow sensor that records how many reads overlap."""

    def __init__(self, value: int, delay_s: float = 0.3):
        self.value = value
        self.delay_s = delay_s
        self.reads = 0
        self.active = 0
        self.max_active = 0
        self._lock = threading.Lock()

    @property
    def sensor_id(self) -> str:
        return "counting"

    def _read_counts(self) -> int:
        with self._lock:
            self.reads += 1
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            time.sleep(self.delay_s)
            return self.value
        finally:
            with self._lock:
                self.active -= 1


@pytest.fixture
def counting_sensor():
    return CountingSensor(value=100)
