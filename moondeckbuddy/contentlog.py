"""Tracks app install, update and run states from the Steam content log."""

from __future__ import annotations

import enum
import logging
import os
import re
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional

from moondeckbuddy.logtracker import SteamLogTracker, app_id_from_string

_log = logging.getLogger(__name__)

_STATE_CHANGE_RE = re.compile(r"AppID\s(\d+)\sstate\schanged\s:\s(.*),", re.ASCII)


class ContentAppState(enum.Enum):
    """The state of an app as far as the content log tells."""

    STOPPED = "Stopped"
    RUNNING = "Running"
    UPDATING = "Updating"


class AppStateChange(enum.Enum):
    """State flags as they are written in the content log."""

    UPDATE_REQUIRED = "Update Required"
    UPDATE_QUEUED = "Update Queued"
    UPDATE_RUNNING = "Update Running"
    UPDATE_STARTED = "Update Started"
    UPDATE_OPTIONAL = "Update Optional"
    FULLY_INSTALLED = "Fully Installed"
    APP_RUNNING = "App Running"
    FILES_MISSING = "Files Missing"
    UNINSTALLING = "Uninstalling"
    UNINSTALLED = "Uninstalled"
    COMPONENT_IN_USE = "Component In Use"
    TERMINATING = "Terminating"
    PREFETCHING_INFO = "Prefetching Info"


_CHANGE_TO_STATE = {
    AppStateChange.UPDATE_RUNNING: ContentAppState.UPDATING,
    AppStateChange.UPDATE_STARTED: ContentAppState.UPDATING,
    AppStateChange.APP_RUNNING: ContentAppState.RUNNING,
}


def _resolve_state(changes: Iterable[AppStateChange]) -> ContentAppState:
    new_state = ContentAppState.STOPPED
    for change in changes:
        state = _CHANGE_TO_STATE.get(change, ContentAppState.STOPPED)
        if state is not ContentAppState.STOPPED:
            new_state = state
            if new_state is ContentAppState.RUNNING:
                break
    return new_state


class SteamContentLogTracker(SteamLogTracker):
    """Reads ``content_log.txt`` to learn which apps are running or updating."""

    def __init__(self, logs_dir: os.PathLike | str, first_entry_time_filter: Optional[datetime]) -> None:
        logs_dir = Path(logs_dir)
        super().__init__(
            logs_dir / "content_log.txt", logs_dir / "content_log.previous.txt", first_entry_time_filter
        )
        self._app_states: dict[int, ContentAppState] = {}

    def get_app_state(self, app_id: int) -> ContentAppState:
        """Return the tracked state of an app, STOPPED if it is not tracked."""
        return self._app_states.get(app_id, ContentAppState.STOPPED)

    def on_log_changed(self, new_lines: list[str]) -> None:
        change_states: dict[int, list[AppStateChange]] = {}
        for line in new_lines:
            match = _STATE_CHANGE_RE.search(line)
            if match is None:
                continue

            app_id = app_id_from_string(match.group(1))
            if app_id == 0:
                _log.warning("Failed to get AppID from %s", line)
                continue

            mapped = []
            for state in match.group(2).split(","):
                try:
                    mapped.append(AppStateChange(state))
                except ValueError:
                    _log.warning("Unmapped state for AppID %d found: %s", app_id, state)
            change_states[app_id] = mapped

        for app_id in sorted(change_states):
            _log.debug("New state changes for AppID %d detected: %s", app_id, change_states[app_id])
            self._apply(app_id, _resolve_state(change_states[app_id]))

    def _apply(self, app_id: int, app_state: ContentAppState) -> None:
        current = self._app_states.get(app_id)
        if current is None:
            if app_state is ContentAppState.STOPPED:
                return
            current = ContentAppState.STOPPED
        elif current is app_state:
            return

        _log.info("New app state for AppID %d detected: %s -> %s", app_id, current.value, app_state.value)
        if app_state is ContentAppState.STOPPED:
            del self._app_states[app_id]
        else:
            self._app_states[app_id] = app_state