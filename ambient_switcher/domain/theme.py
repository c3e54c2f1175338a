from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Optional

from .models import IlluminationBand, Theme, ThemeMode

logger = logging.getLogger(__name__)


_BAND_THEMES = {
    IlluminationBand.NIGHT: Theme.DARK,
    IlluminationBand.SHADOW: Theme.DARK,
    IlluminationBand.SUN: Theme.LIGHT,
}


def theme_for_band(band: IlluminationBand) -> Theme:
    return _BAND_THEMES[band]


@dataclass
class ThemeControllerState:
    mode: ThemeMode = ThemeMode.AUTO
    last_band: Optional[IlluminationBand] = None
    last_theme: Optional[Theme] = None


class ThemeController:
    """Decides which theme to apply for a band under the selected mode.

    In AUTO mode every band change maps to a theme. The forced modes
    (LIGHT, DARK) ignore band changes; their theme is returned once from
    set_mode so the caller can apply it immediately.
    """

    def __init__(self, mode: ThemeMode = ThemeMode.AUTO) -> None:
        self.state = ThemeControllerState(mode=mode)

    @property
    def mode(self) -> ThemeMode:
        return self.state.mode

    def set_mode(self, mode: ThemeMode, current_band: Optional[IlluminationBand] = None) -> Optional[Theme]:
        self.state.mode = mode
        logger.info("Theme mode set to %s", mode.value)

        if mode is ThemeMode.LIGHT:
            return Theme.LIGHT
        if mode is ThemeMode.DARK:
            return Theme.DARK
        if current_band is not None:
            return theme_for_band(current_band)
        return None

    def decide(self, band: IlluminationBand) -> Optional[Theme]:
        self.state.last_band = band
        if self.state.mode is not ThemeMode.AUTO:
            logger.debug("Band %s ignored, theme mode is %s", band.value, self.state.mode.value)
            return None

        theme = theme_for_band(band)
        self.state.last_theme = theme
        return theme
