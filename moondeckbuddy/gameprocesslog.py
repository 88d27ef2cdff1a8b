"""Tracks running game processes from the Steam game process log."""

from __future__ import annotations

import logging
import os
import re
from datetime import datetime
from pathlib import Path
from typing import Optional

from moondeckbuddy.logtracker import SteamLogTracker, app_id_from_string

_log = logging.getLogger(__name__)

_ADD_RE = re.compile(r"AppID (\d+) adding PID (\d+)", re.ASCII)
_REMOVE_RE = re.compile(
    r"(?:Game (\d+) going away.* PID (\d+))|(?:AppID (\d+) no longer.* PID (\d+))", re.ASCII
)
_UINT32_MAX = 2**32 - 1


def _parse_pid(text: str) -> int:
    value = int(text)
    return value if value <= _UINT32_MAX else 0


class SteamGameProcessLogTracker(SteamLogTracker):
    """Reads ``gameprocess_log.txt`` to learn which apps have live processes."""

    def __init__(self, logs_dir: os.PathLike | str, first_entry_time_filter: Optional[datetime]) -> None:
        logs_dir = Path(logs_dir)
        super().__init__(
            logs_dir / "gameprocess_log.txt", logs_dir / "gameprocess_log.previous.txt", first_entry_time_filter
        )
        self._app_id_to_process_ids: dict[int, set[int]] = {}

    def is_any_process_running(self, app_id: int) -> bool:
        """Whether the log reports at least one live process for the app."""
        return app_id in self._app_id_to_process_ids

    def on_log_changed(self, new_lines: list[str]) -> None:
        added: set[int] = set()
        removed: set[int] = set()

        for line in new_lines:
            match = _ADD_RE.search(line)
            if match is not None:
                self._add(line, match.group(1), match.group(2), added, removed)
                continue

            match = _REMOVE_RE.search(line)
            if match is not None:
                app_text = match.group(1) if match.group(1) is not None else match.group(3)
                pid_text = match.group(2) if match.group(2) is not None else match.group(4)
                self._remove(line, app_text, pid_text, added, removed)

        for app_id in sorted(added):
            _log.info("Running processes added for AppID: %d", app_id)
        for app_id in sorted(removed):
            _log.info("Running processes removed for AppID: %d", app_id)

    def _add(self, line: str, app_text: str, pid_text: str, added: set[int], removed: set[int]) -> None:
        app_id = app_id_from_string(app_text)
        if app_id == 0:
            _log.warning("Failed to get AppID from %s", line)
            return
        pid = _parse_pid(pid_text)
        if pid == 0:
            _log.warning("Failed to get PID from %s", line)
            return

        pids = self._app_id_to_process_ids.get(app_id)
        if pids is None:
            pids = self._app_id_to_process_ids[app_id] = set()
            if app_id not in removed:
                added.add(app_id)
            removed.discard(app_id)
        pids.add(pid)

    def _remove(self, line: str, app_text: str, pid_text: str, added: set[int], removed: set[int]) -> None:
        app_id = app_id_from_string(app_text)
        if app_id == 0:
            _log.warning("Failed to get AppID from %s", line)
            return
        pid = _parse_pid(pid_text)
        if pid == 0:
            _log.warning("Failed to get PID from %s", line)
            return

        pids = self._app_id_to_process_ids.get(app_id)
        if pids is None:
            _log.warning("Trying to remove PID %d from %d but AppID is not tracked!", pid, app_id)
            return

        pids.discard(pid)
        if not pids:
            del self._app_id_to_process_ids[app_id]
            if app_id not in added:
                removed.add(app_id)
            added.discard(app_id)