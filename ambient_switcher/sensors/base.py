from __future__ import annotations

from abc import ABC, abstractmethod

from .errors import SensorReadFailed

NORMALIZE_DIVISOR = 10


class Sensor(ABC):
    """Domain-facing sensor abstraction.

    Backends implement ``_read_counts`` as one blocking open/read/release
    cycle. Callers serialize access; concurrent reads are not supported.
    """

    @property
    @abstractmethod
    def sensor_id(self) -> str:
        ...

    @property
    def unit(self) -> str:
        return "lux"

    @abstractmethod
    def _read_counts(self) -> int:
        """Return the raw device value. Raise SensorError on failure."""
        ...

    def read_raw(self, normalize: bool = True) -> int:
        value = self._read_counts()
        if value < 0:
            raise SensorReadFailed(f"{self.sensor_id}: negative reading {value}")
        if normalize:
            value //= NORMALIZE_DIVISOR
        return value
