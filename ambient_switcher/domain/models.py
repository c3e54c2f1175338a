from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class IlluminationBand(Enum):
    """Discrete ambient light level derived from a raw sensor value."""

    NIGHT = "night"
    SHADOW = "shadow"
    SUN = "sun"

    @property
    def lower(self) -> int:
        return BAND_RANGES[self][0]

    @property
    def upper(self) -> int:
        return BAND_RANGES[self][1]

    @property
    def signal_name(self) -> str:
        return f"{self.value}-occurred"

    def contains(self, value: int) -> bool:
        lower, upper = BAND_RANGES[self]
        return lower <= value <= upper


# Inclusive on both ends, contiguous over [0, 160000]
BAND_RANGES: dict[IlluminationBand, tuple[int, int]] = {
    IlluminationBand.NIGHT: (0, 8000),
    IlluminationBand.SHADOW: (8001, 64999),
    IlluminationBand.SUN: (65000, 160000),
}


class Theme(Enum):
    LIGHT = "light"
    DARK = "dark"


class ThemeMode(Enum):
    LIGHT = "light"
    DARK = "dark"
    AUTO = "auto"


@dataclass(frozen=True)
class ChangeEvent:
    band: IlluminationBand
    previous: Optional[IlluminationBand] = None
    raw: Optional[int] = None
    ts_utc: Optional[datetime] = None
