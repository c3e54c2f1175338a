from __future__ import annotations

import math
import random
import time
from dataclasses import dataclass
from threading import Lock

from .base import Sensor
from .errors import SensorReadFailed, SensorUnavailable


@dataclass
class PatternConfig:
    type: str = "sine"     # sine|step|ramp|random
    baseline: int = 400_000
    amplitude: int = 390_000
    period_s: float = 600
    noise: int = 500

    step_low: int = 50_000
    step_high: int = 800_000
    step_period_s: float = 120

    ramp_min: int = 0
    ramp_max: int = 1_000_000
    ramp_period_s: float = 600



def pattern_counts(cfg: PatternConfig, t: float) -> int:
    """Device counts produced by the pattern at wall-clock time t."""
    if cfg.type == "sine":
        v = cfg.baseline + cfg.amplitude * math.sin(2.0 * math.pi * (t % cfg.period_s) / cfg.period_s)
    elif cfg.type == "step":
        # high for the first half of each period
        v = cfg.step_high if (t % cfg.step_period_s) * 2 < cfg.step_period_s else cfg.step_low
    elif cfg.type == "ramp":
        v = cfg.ramp_min + (cfg.ramp_max - cfg.ramp_min) * (t % cfg.ramp_period_s) / cfg.ramp_period_s
    elif cfg.type == "random":
        v = random.uniform(cfg.baseline - cfg.amplitude, cfg.baseline + cfg.amplitude)
    else:
        v = cfg.baseline

    if cfg.noise > 0:
        v += random.uniform(-cfg.noise, cfg.noise)
    return max(0, int(v))


class SimulatedLuxSensor(Sensor):
    """In-process stand-in for the light sensor.

    Values are device counts, so with normalization enabled a manual value
    of 800000 classifies as 80000 (sun).
    """

    def __init__(self, sensor_id: str = "lux_sim", manual_raw: int = 800_000):
        self._sensor_id = sensor_id
        self._lock = Lock()
        self._enabled = True
        self._mode = "manual"   # manual|pattern
        self._manual_raw = int(manual_raw)
        self._pattern = PatternConfig()
        self._fail_next = 0

    @property
    def sensor_id(self) -> str:
        return self._sensor_id

    def enable(self) -> None:
        with self._lock:
            self._enabled = True

    def disable(self) -> None:
        with self._lock:
            self._enabled = False

    def fail_next(self, count: int = 1) -> None:
        with self._lock:
            self._fail_next = max(0, int(count))

    def set_manual(self, raw: int) -> None:
        with self._lock:
            self._mode = "manual"
            self._manual_raw = int(raw)

    def set_pattern(self, cfg: PatternConfig) -> None:
        with self._lock:
            self._mode = "pattern"
            self._pattern = cfg

    def status(self) -> dict:
        with self._lock:
            return {
                "enabled": self._enabled,
                "mode": self._mode,
                "manual_raw": self._manual_raw,
                "fail_next": self._fail_next,
                "pattern": self._pattern.__dict__,
            }

    def _read_counts(self) -> int:
        with self._lock:
            if not self._enabled:
                raise SensorUnavailable("Simulated sensor disabled")

            if self._fail_next > 0:
                self._fail_next -= 1
                raise SensorReadFailed("Simulated read failure")

            if self._mode == "manual":
                return self._manual_raw

            cfg = self._pattern

        return pattern_counts(cfg, time.time())
