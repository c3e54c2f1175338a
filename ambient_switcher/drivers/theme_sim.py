from __future__ import annotations
import logging

from ..domain.models import Theme

logger = logging.getLogger(__name__)


class SimulatedThemeActuator:
    actuator_id = "theme_sim"

    def __init__(self, initial: Theme = Theme.LIGHT) -> None:
        self._state = initial
        self.switches = 0

    async def get_state(self) -> Theme:
        return self._state

    async def set_state(self, theme: Theme, reason: str) -> None:
        self._state = theme
        self.switches += 1
        logger.info("THEME set_state=%s reason=%s", theme.value, reason)
