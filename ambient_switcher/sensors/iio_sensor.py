from __future__ import annotations

import glob
import logging
from pathlib import Path
from typing import Optional

from .base import Sensor
from .errors import SensorReadFailed, SensorUnavailable

logger = logging.getLogger(__name__)


class IIOSensor(Sensor):
    """Linux industrial I/O ambient light sensor read through sysfs."""

    CHANNELS = ("in_illuminance_raw", "in_illuminance_input")

    def __init__(self, device_glob: str = "/sys/bus/iio/devices/iio:device*", sensor_id: str = "iio"):
        self._device_glob = device_glob
        self._sensor_id = sensor_id
        self._channel: Optional[Path] = None

    @property
    def sensor_id(self) -> str:
        return self._sensor_id

    def _find_channel(self) -> Path:
        if self._channel is not None and self._channel.exists():
            return self._channel

        for device in sorted(glob.glob(self._device_glob)):
            for name in self.CHANNELS:
                path = Path(device) / name
                if path.exists():
                    logger.info("Using IIO light channel %s", path)
                    self._channel = path
                    return path

        self._channel = None
        raise SensorUnavailable(f"No IIO illuminance channel under {self._device_glob}")

    def _scale(self, channel: Path) -> float:
        scale_path = channel.parent / "in_illuminance_scale"
        if not scale_path.exists():
            return 1.0
        try:
            return float(scale_path.read_text().strip())
        except (OSError, ValueError):
            logger.warning("Ignoring unreadable scale file %s", scale_path)
            return 1.0

    def _read_counts(self) -> int:
        channel = self._find_channel()
        try:
            with channel.open("r") as fh:
                text = fh.read().strip()
            value = float(text)
        except FileNotFoundError as e:
            self._channel = None
            raise SensorUnavailable(f"IIO channel disappeared: {channel}") from e
        except (OSError, ValueError) as e:
            raise SensorReadFailed(f"Can't read {channel}: {e}") from e

        return int(value * self._scale(channel))
