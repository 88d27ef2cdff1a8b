"""Desktop-entry based autostart for the application."""

from __future__ import annotations

import os
from pathlib import Path


def autostart_contents(app_name: str, exec_command: str) -> str:
    """Return the desktop entry text that starts the application."""
    return (
        "[Desktop Entry]\n"
        "Type=Application\n"
        f"Name={app_name}\n"
        f"Exec={exec_command}\n"
        f"Icon={app_name}\n"
    )


class AutoStartHandler:
    """Enables or disables autostart by writing a desktop entry into ``autostart_dir``."""

    def __init__(self, app_name: str, exec_command: str, autostart_dir: os.PathLike | str) -> None:
        self.app_name = app_name
        self.exec_command = exec_command
        self.autostart_dir = Path(autostart_dir)

    @property
    def autostart_path(self) -> Path:
        """The desktop entry file used for autostart."""
        return self.autostart_dir / f"{self.app_name}.desktop"

    def set_autostart(self, enable: bool) -> None:
        """Write or remove the autostart entry. File system failures raise OSError."""
        path = self.autostart_path
        if path.exists():
            path.unlink()

        if enable:
            self.autostart_dir.mkdir(parents=True, exist_ok=True)
            path.write_bytes(autostart_contents(self.app_name, self.exec_command).encode("utf-8"))

    def is_autostart_enabled(self) -> bool:
        """Whether the autostart entry exists with the expected contents."""
        path = self.autostart_path
        if not path.exists():
            return False
        return path.read_bytes() == autostart_contents(self.app_name, self.exec_command).encode("utf-8")