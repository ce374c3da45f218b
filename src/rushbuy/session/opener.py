"""
Hands a file or URL to the desktop so a human can act on it
"""
import logging
import platform
import subprocess
from typing import List, Optional, Protocol


class Opener(Protocol):
    def open(self, target: str) -> None:
        ...


class SystemOpener:
    """Opens targets with the platform's default viewer.

    Only starts the viewer, never waits for it. Raises OSError when no
    viewer could be started.
    """

    LINUX_VIEWERS = ("xdg-open", "eog", "gnome-open")

    def __init__(self, system: Optional[str] = None):
        self.system = system or platform.system()
        self.logger = logging.getLogger(__name__)

    def _commands(self, target: str) -> List[List[str]]:
        if self.system == "Windows":
            return [["cmd", "/c", "start", "", target]]
        if self.system == "Linux":
            return [[viewer, target] for viewer in self.LINUX_VIEWERS]
        return [["open", target]]

    def open(self, target: str) -> None:
        last_error = None
        for command in self._commands(target):
            try:
                subprocess.Popen(command, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
                self.logger.debug(f"Opened {target} with {command[0]}")
                return
            except OSError as e:
                last_error = e
        raise OSError(f"could not open {target}: {last_error}")


class LogOpener:
    """For headless runs: just tell the user where to look"""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def open(self, target: str) -> None:
        self.logger.warning(f"Open this manually: {target}")
