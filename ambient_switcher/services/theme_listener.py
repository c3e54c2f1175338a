from __future__ import annotations
import logging
from typing import Optional

from ..domain.interfaces import ThemeActuator
from ..domain.models import ChangeEvent, IlluminationBand, Theme, ThemeMode
from ..domain.theme import ThemeController

logger = logging.getLogger(__name__)


class ThemeListener:
    """Notifier listener that applies the theme for each band change."""

    def __init__(self, controller: ThemeController, actuator: ThemeActuator) -> None:
        self._controller = controller
        self._actuator = actuator

    @property
    def controller(self) -> ThemeController:
        return self._controller

    @property
    def actuator(self) -> ThemeActuator:
        return self._actuator

    async def __call__(self, event: ChangeEvent) -> None:
        theme = self._controller.decide(event.band)
        if theme is None:
            return
        await self.apply(theme, f"band {event.band.value}")

    async def set_mode(self, mode: ThemeMode, current_band: Optional[IlluminationBand] = None) -> Optional[Theme]:
        theme = self._controller.set_mode(mode, current_band)
        if theme is not None:
            await self.apply(theme, f"mode {mode.value}")
        return theme

    async def apply(self, theme: Theme, reason: str) -> bool:
        """Switch the theme unless it is already active. Returns True if switched."""
        current = await self._actuator.get_state()
        if current is theme:
            logger.debug("Theme already %s, nothing to do (%s)", theme.value, reason)
            return False
        await self._actuator.set_state(theme, reason)
        return True
