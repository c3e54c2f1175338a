from __future__ import annotations
from typing import Optional

from .models import IlluminationBand

# First match wins if ranges are ever reconfigured to overlap.
EVALUATION_ORDER = (
    IlluminationBand.NIGHT,
    IlluminationBand.SHADOW,
    IlluminationBand.SUN,
)

MIN_CLASSIFIED = EVALUATION_ORDER[0].lower
MAX_CLASSIFIED = EVALUATION_ORDER[-1].upper


def classify(value: int) -> Optional[IlluminationBand]:
    """Map a raw reading to its band, or None when outside every range."""
    for band in EVALUATION_ORDER:
        if band.contains(value):
            return band
    return None
