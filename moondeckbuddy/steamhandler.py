"""Launching, closing and inspecting Steam and its apps."""

from __future__ import annotations

import logging
import struct
from typing import Callable, Mapping, Optional, Sequence

from moondeckbuddy.appwatcher import AppState, SteamAppWatcher, get_app_state
from moondeckbuddy.processtracker import SteamProcessTracker
from moondeckbuddy.webhelperlog import SteamUiMode

_log = logging.getLogger(__name__)

Launcher = Callable[[str, Sequence[str], Mapping[str, str]], bool]
EnvProvider = Callable[[], Mapping[str, str]]

_APP_ID_KEY = b"\x02appid"
_APP_NAME_KEY = b"\x01appname"
_NON_STEAM_GAME_FLAG = 0x02000000


def _find_insensitive(data: bytes, needle: bytes, start: int) -> int:
    """Find ``needle`` ignoring ASCII case; a needle cut off by the end of data still matches."""
    lowered = needle.lower()
    position = start
    while True:
        position = data.find(needle[:1], position)
        if position == -1:
            return -1
        window = data[position : position + len(needle)]
        if window.lower() == lowered[: len(window)]:
            return position
        position += 1


def scrape_shortcuts_vdf(contents: bytes) -> Optional[dict[int, str]]:
    """Map game ids to names from a binary ``shortcuts.vdf``; None if it is malformed."""
    app_ids: list[int] = []
    position = 0
    while (position := _find_insensitive(contents, _APP_ID_KEY, position)) != -1:
        position += len(_APP_ID_KEY) + 1
        if position + 4 > len(contents):
            _log.warning("Out of range error while scraping shortcuts.vdf for appid!")
            return None
        app_ids.append(struct.unpack_from("<I", contents, position)[0])

    app_names: list[str] = []
    position = 0
    while (position := _find_insensitive(contents, _APP_NAME_KEY, position)) != -1:
        position += len(_APP_NAME_KEY) + 1
        end = contents.find(b"\x00", position)
        if end == -1:
            _log.warning("Out of range error while scraping shortcuts.vdf for appname!")
            return None
        app_names.append(contents[position:end].decode("utf-8", errors="replace"))

    if len(app_ids) != len(app_names):
        _log.warning("Failed to scrape shortcuts.vdf - app name and id list size mismatch!")
        return None

    data: dict[int, str] = {}
    for app_id, app_name in zip(app_ids, app_names):
        data[(app_id << 32) | _NON_STEAM_GAME_FLAG] = app_name
    return dict(sorted(data.items()))


def user_dir_id(user_id: int) -> str:
    """Return the userdata directory name (SteamID3 account id) for a 64-bit Steam id."""
    id_number = user_id & 0x1
    account_number = (user_id & 0xFFFFFFFE) >> 1
    return str(account_number * 2 + id_number)


def _no_environment() -> Mapping[str, str]:
    return {}


class SteamHandler:
    """High level Steam control: launching Steam and games, closing Steam, reading shortcuts.

    ``launcher(executable, arguments, environment)`` starts a detached program and
    returns whether it started. Callables in ``steam_closed`` are invoked when the
    Steam process goes away.
    """

    def __init__(
        self,
        steam_exec_path: str,
        process_tracker: SteamProcessTracker,
        launcher: Launcher,
        env_provider: Optional[EnvProvider] = None,
    ) -> None:
        self.steam_exec_path = steam_exec_path
        self._process_tracker = process_tracker
        self._launcher = launcher
        self._env_provider = env_provider or _no_environment
        self._app_watcher: Optional[SteamAppWatcher] = None
        self.steam_closed: list[Callable[[], None]] = []
        process_tracker.process_state_changed.append(self.handle_process_state_changed)

    def _environment(self, purpose: str) -> dict[str, str]:
        env = dict(self._env_provider())
        if env:
            _log.info("Using %d environment variables from Stream for %s: %s", len(env), purpose, list(env))
        else:
            _log.debug("No environment variables available from Stream - launching with system environment")
        return env

    def launch_steam(self, big_picture_mode: bool) -> bool:
        """Start Steam, or switch it to Big Picture when asked and not already there."""
        exec_path = self.steam_exec_path
        if not exec_path:
            _log.warning("Steam EXEC path is not available yet!")
            return False

        self._process_tracker.check_state()
        if not self._process_tracker.is_running() or (
            big_picture_mode and self.get_steam_ui_mode() is not SteamUiMode.BIG_PICTURE
        ):
            env = self._environment("Steam launch")
            args = ["steam://open/bigpicture"] if big_picture_mode else []
            if not self._launcher(exec_path, args, env):
                _log.warning("Failed to launch Steam!")
                return False
        return True

    def get_steam_ui_mode(self) -> SteamUiMode:
        """The current Steam UI mode, UNKNOWN if Steam is not tracked."""
        log_trackers = self._process_tracker.log_trackers
        if log_trackers is not None:
            return log_trackers.web_helper.ui_mode
        return SteamUiMode.UNKNOWN

    def close(self) -> bool:
        """Shut Steam down, gracefully if possible."""
        self._process_tracker.check_state()
        if not self._process_tracker.is_running():
            return True

        self.clear_session_data()

        exec_path = self.steam_exec_path
        if exec_path:
            if self._launcher(exec_path, ["-shutdown"], {}):
                return True
            _log.warning("Failed to start Steam shutdown sequence! Using others means to close steam...")
        else:
            _log.warning("Steam EXEC path is not available yet, using other means of closing!")

        self._process_tracker.close()
        return True

    def get_app_data(self, app_id: Optional[int] = None) -> Optional[tuple[int, AppState]]:
        """State of the given app, or of the tracked session app when no id is given."""
        if app_id is not None:
            app_state = get_app_state(self._process_tracker, app_id)
            if app_state is not None:
                return app_id, app_state
        elif self._app_watcher is not None:
            return self._app_watcher.app_id, self._app_watcher.app_state
        return None

    def launch_app(self, app_id: int) -> bool:
        """Launch a Steam app and start tracking it."""
        exec_path = self.steam_exec_path
        if not exec_path:
            _log.warning("Steam EXEC path is not available yet!")
            return False

        if app_id == 0:
            _log.warning("Will not launch app with 0 ID!")
            return False

        app_data = self.get_app_data()
        if app_data is not None and app_data[0] != app_id:
            _log.warning("Buddy is already tracking app id: %d", app_data[0])
            return False

        self._process_tracker.check_state()
        if self.get_steam_ui_mode() is SteamUiMode.UNKNOWN:
            _log.warning("Steam is not running or has not reached a stable state yet!")
            return False

        state = get_app_state(self._process_tracker, app_id) or AppState.STOPPED
        if state is AppState.STOPPED:
            env = self._environment("game launch")
            if not self._launcher(exec_path, [f"steam://rungameid/{app_id}"], env):
                _log.warning("Failed to perform app launch for AppID: %d", app_id)
                return False

        self._app_watcher = SteamAppWatcher(self._process_tracker, app_id)
        return True

    def clear_session_data(self) -> None:
        """Stop tracking the session app."""
        _log.info("Clearing session data...")
        self._app_watcher = None

    def get_non_steam_app_data(self, user_id: int) -> Optional[dict[int, str]]:
        """Read the non-Steam shortcuts of a user; None when unavailable."""
        steam_dir = self._process_tracker.steam_dir
        if steam_dir is None:
            _log.warning("Steam directory is not available yet!")
            return None

        shortcuts_file = steam_dir / "userdata" / user_dir_id(user_id) / "config" / "shortcuts.vdf"
        _log.info("Mapped user id to shortcuts file: %d -> %s", user_id, shortcuts_file.as_posix())

        if not shortcuts_file.exists():
            _log.warning("file %s does not exist!", shortcuts_file.as_posix())
            return None
        try:
            contents = shortcuts_file.read_bytes()
        except OSError:
            _log.warning("file %s could not be opened!", shortcuts_file.as_posix())
            return None

        shortcuts = scrape_shortcuts_vdf(contents)
        if shortcuts is not None:
            if shortcuts:
                entries = "".join(f"\n  {key} -> {name}" for key, name in shortcuts.items())
                _log.info("Found %d non-Steam shortcut(-s):%s", len(shortcuts), entries)
            else:
                _log.info("Found no non-Steam shortcuts.")
        return shortcuts

    def handle_process_state_changed(self) -> None:
        """React to Steam starting or stopping."""
        if self._process_tracker.is_running():
            _log.info(
                "Steam is running! PID: %d | START_TIME: %s",
                self._process_tracker.pid,
                self._process_tracker.start_time,
            )
            return

        _log.info("Steam is no longer running!")
        self._app_watcher = None
        for listener in list(self.steam_closed):
            listener()