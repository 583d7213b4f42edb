# Browser Launcher — best-effort "open this URL" per platform.
# Created: 2026-10-18

from __future__ import annotations

import logging
import platform
import subprocess

from ytup.auth.errors import LaunchError

logger = logging.getLogger(__name__)

OPENERS: dict[str, list[str]] = {
    "Linux": ["xdg-open"],
    "FreeBSD": ["xdg-open"],
    "OpenBSD": ["xdg-open"],
    "Darwin": ["open"],
    "Windows": ["rundll32", "url.dll,FileProtocolHandler"],
}


class BrowserLauncher:
    """Open URLs in the desktop browser.

    Only spawning is checked; the opener's exit status is ignored.
    """

    def __init__(self, enabled: bool = True):
        self.enabled = enabled
        self._system = platform.system()

    def command_for(self, url: str) -> list[str]:
        opener = OPENERS.get(self._system)
        if opener is None:
            raise LaunchError(f"Cannot open URL on this platform ({self._system or 'unknown'})")
        return [*opener, url]

    def open(self, url: str) -> None:
        """Spawn the platform opener. Raises LaunchError if that is impossible."""
        if not self.enabled:
            raise LaunchError("Browser launch disabled")

        cmd = self.command_for(url)
        try:
            subprocess.Popen(
                cmd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
        except OSError as exc:
            raise LaunchError(f"Failed to run {cmd[0]}: {exc}") from exc
        logger.debug("Spawned %s", cmd[0])
