"""Determines and watches the run state of a Steam app."""

from __future__ import annotations

import enum
import logging
from typing import Optional

from moondeckbuddy.contentlog import ContentAppState
from moondeckbuddy.processtracker import SteamProcessTracker

_log = logging.getLogger(__name__)

_STOP_DELAY_CHECKS = 5


class AppState(enum.Enum):
    """The state of a Steam app as reported to clients."""

    STOPPED = "Stopped"
    RUNNING = "Running"
    UPDATING = "Updating"


def get_app_state(
    process_tracker: SteamProcessTracker, app_id: int, prev_state: AppState = AppState.STOPPED
) -> Optional[AppState]:
    """Combine the Steam logs into an app state; None if Steam is not tracked."""
    log_trackers = process_tracker.log_trackers
    if log_trackers is None:
        return None

    content_state = log_trackers.content_log.get_app_state(app_id)
    if content_state is ContentAppState.UPDATING or log_trackers.shader_log.is_app_compiling_shaders(app_id):
        return AppState.UPDATING
    if content_state is ContentAppState.RUNNING:
        return AppState.RUNNING
    if log_trackers.gameprocess_log.is_any_process_running(app_id):
        # Keep the state from richer logs unless this is the only data available.
        return AppState.RUNNING if prev_state is AppState.STOPPED else prev_state
    return AppState.STOPPED


class SteamAppWatcher:
    """Follows the state of one app; a stop is only accepted after several checks."""

    def __init__(self, process_tracker: SteamProcessTracker, app_id: int) -> None:
        self._process_tracker = process_tracker
        self._app_id = app_id
        self._current_state = AppState.STOPPED
        self._delay_counter = 0
        _log.info("Started watching AppID: %d", app_id)
        self.check_state()

    @property
    def app_id(self) -> int:
        """The watched app id."""
        return self._app_id

    @property
    def app_state(self) -> AppState:
        """The current state of the watched app."""
        return self._current_state

    def check_state(self) -> None:
        """Re-evaluate the app state from the Steam logs."""
        new_state = get_app_state(self._process_tracker, self._app_id, self._current_state) or AppState.STOPPED
        if new_state is self._current_state:
            return

        if new_state is AppState.STOPPED and self._delay_counter < _STOP_DELAY_CHECKS:
            self._delay_counter += 1
            return

        _log.info(
            "[TRACKING] New app state for AppID %d detected: %s -> %s",
            self._app_id,
            self._current_state.value,
            new_state.value,
        )
        self._current_state = new_state
        self._delay_counter = 0