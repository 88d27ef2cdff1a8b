"""Tracks the Steam UI mode from the web helper log."""

from __future__ import annotations

import enum
import logging
import os
import re
from datetime import datetime
from pathlib import Path
from typing import Optional

from moondeckbuddy.logtracker import SteamLogTracker

_log = logging.getLogger(__name__)

_INITIAL_RE = re.compile(r"SP\s(?:(Desktop)|(BPM))_")
_DEFAULT_RE = re.compile(r"SP\s(?:(Desktop)|(BPM))_.+?WasHidden\s(?:(0)|(1))")
_DESKTOP_GROUP = 1
_WAS_HIDDEN_GROUP = 4


class SteamUiMode(enum.Enum):
    """The mode the Steam client UI is in."""

    UNKNOWN = "Unknown"
    DESKTOP = "Desktop"
    BIG_PICTURE = "BigPicture"


def _has_captured(match: re.Match, group: int) -> bool:
    return group <= match.re.groups and match.group(group) is not None


class SteamWebHelperLogTracker(SteamLogTracker):
    """Reads ``webhelper.txt`` to find out whether Steam shows Desktop or Big Picture."""

    def __init__(self, logs_dir: os.PathLike | str, first_entry_time_filter: Optional[datetime]) -> None:
        logs_dir = Path(logs_dir)
        super().__init__(logs_dir / "webhelper.txt", logs_dir / "webhelper.previous.txt", first_entry_time_filter)
        self._ui_mode = SteamUiMode.UNKNOWN

    @property
    def ui_mode(self) -> SteamUiMode:
        """The last UI mode seen in the log."""
        return self._ui_mode

    def on_log_changed(self, new_lines: list[str]) -> None:
        new_mode = self._ui_mode
        for line in new_lines:
            regex = _INITIAL_RE if new_mode is SteamUiMode.UNKNOWN else _DEFAULT_RE
            match = regex.search(line)
            if match is None:
                continue

            was_hidden = _has_captured(match, _WAS_HIDDEN_GROUP)
            if _has_captured(match, _DESKTOP_GROUP):
                # A hidden Desktop window means nothing unless BPM becomes visible.
                if not was_hidden:
                    new_mode = SteamUiMode.DESKTOP
            else:
                new_mode = SteamUiMode.DESKTOP if was_hidden else SteamUiMode.BIG_PICTURE

        if new_mode is not self._ui_mode:
            _log.info("Steam UI mode change: %s -> %s", self._ui_mode.value, new_mode.value)
            self._ui_mode = new_mode