"""Tracks shader compilation jobs from the Steam shader log."""

from __future__ import annotations

import logging
import os
import re
from datetime import datetime
from pathlib import Path
from typing import Optional

from moondeckbuddy.logtracker import SteamLogTracker, app_id_from_string

_log = logging.getLogger(__name__)

_JOB_RE = re.compile(
    r"(?:Starting processing job for app (\d+))|(?:Destroyed compile job (\d+))", re.ASCII
)


class SteamShaderLogTracker(SteamLogTracker):
    """Reads ``shader_log.txt`` to learn which apps are compiling shaders."""

    def __init__(self, logs_dir: os.PathLike | str, first_entry_time_filter: Optional[datetime]) -> None:
        logs_dir = Path(logs_dir)
        super().__init__(
            logs_dir / "shader_log.txt", logs_dir / "shader_log.previous.txt", first_entry_time_filter
        )
        self._compiling: set[int] = set()

    def is_app_compiling_shaders(self, app_id: int) -> bool:
        """Whether a shader compile job is active for the app."""
        return app_id in self._compiling

    def on_log_changed(self, new_lines: list[str]) -> None:
        new_states: dict[int, bool] = {}
        for line in new_lines:
            match = _JOB_RE.search(line)
            if match is None:
                continue
            started = match.group(1) is not None
            app_id = app_id_from_string(match.group(1) if started else match.group(2))
            if app_id == 0:
                _log.warning("Failed to get AppID from %s", line)
                continue
            new_states[app_id] = started

        for app_id in sorted(new_states):
            if new_states[app_id]:
                if app_id not in self._compiling:
                    self._compiling.add(app_id)
                    _log.info("Compiling shaders for AppID: %d", app_id)
            elif app_id in self._compiling:
                self._compiling.discard(app_id)
                _log.info("Stopped compiling shaders for AppID: %d", app_id)