from __future__ import annotations

import asyncio
import logging

from ..domain.models import Theme

logger = logging.getLogger(__name__)


_APPEARANCE_SCRIPT = """
tell application "System Events"
    tell appearance preferences
        set dark mode to {dark}
    end tell
end tell
"""


class MacOSThemeActuator:
    """Toggles macOS dark mode through System Events.

    Needs the Automation permission for System Events; when it is missing
    osascript exits non-zero and the failure is logged.
    """

    actuator_id = "macos_appearance"

    def __init__(self, timeout: float = 10.0) -> None:
        self._timeout = timeout
        self._last_known_state: Theme = Theme.LIGHT

    async def _run(self, *argv: str) -> tuple[int, bytes, bytes]:
        proc = await asyncio.create_subprocess_exec(
            *argv,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            out, err = await asyncio.wait_for(proc.communicate(), timeout=self._timeout)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            raise
        return proc.returncode, out, err

    async def get_state(self) -> Theme:
        try:
            # Exits non-zero when the key is absent, i.e. light appearance
            _, out, _ = await self._run("defaults", "read", "-g", "AppleInterfaceStyle")
            self._last_known_state = Theme.DARK if out.strip() == b"Dark" else Theme.LIGHT
        except (OSError, asyncio.TimeoutError):
            logger.warning(
                "Reading appearance failed, returning last known theme: %s",
                self._last_known_state.value,
                exc_info=True,
            )
        return self._last_known_state

    async def set_state(self, theme: Theme, reason: str) -> None:
        source = _APPEARANCE_SCRIPT.format(dark="true" if theme is Theme.DARK else "false")
        logger.info("Switching UI dark mode to %s (reason=%s)", theme.value, reason)
        try:
            rc, _, err = await self._run("osascript", "-e", source)
        except (OSError, asyncio.TimeoutError):
            logger.error("Could not run osascript to switch theme", exc_info=True)
            return

        if rc != 0:
            logger.error("osascript failed (rc=%s): %s", rc, err.decode(errors="replace").strip())
            return
        self._last_known_state = theme
