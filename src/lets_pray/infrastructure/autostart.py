"""Launch-at-login through an XDG autostart entry."""

import logging
import os
import sys
from pathlib import Path

from lets_pray.services.ports import AutostartPort

logger = logging.getLogger(__name__)

DESKTOP_ENTRY = """[Desktop Entry]
Type=Application
Name=Lets Pray
Comment=Prayer time reminders
Exec={command}
X-GNOME-Autostart-enabled=true
"""


def _default_autostart_dir() -> Path:
    config_home = os.getenv("XDG_CONFIG_HOME")
    base = Path(config_home) if config_home else Path.home() / ".config"
    return base / "autostart"


class XdgAutostart(AutostartPort):
    """Writes or removes ~/.config/autostart/lets-pray.desktop."""

    def __init__(self, directory: Path | None = None, command: str | None = None) -> None:
        self._path = (directory or _default_autostart_dir()) / "lets-pray.desktop"
        self._command = command or f"{sys.executable} -m lets_pray.cli serve"

    @property
    def path(self) -> Path:
        return self._path

    def apply(self, enabled: bool) -> None:
        if enabled:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(DESKTOP_ENTRY.format(command=self._command), encoding="utf-8")
            logger.info(f"Autostart enabled: {self._path}")
        elif self._path.exists():
            self._path.unlink()
            logger.info(f"Autostart disabled: {self._path}")
