"""Finds the running Steam process and follows its log files."""

from __future__ import annotations

import abc
import logging
import os
import re
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from moondeckbuddy.contentlog import SteamContentLogTracker
from moondeckbuddy.gameprocesslog import SteamGameProcessLogTracker
from moondeckbuddy.shaderlog import SteamShaderLogTracker
from moondeckbuddy.webhelperlog import SteamWebHelperLogTracker

_log = logging.getLogger(__name__)

_STEAM_EXEC_RE = re.compile(
    r"(?:.+?steam\.exe$)"  # Windows
    r"|"
    r"(?:.*?steam.+?steam$)",  # Linux
    re.IGNORECASE,
)
_REQUIRED_DIRS = ("logs", "userdata", "steamui")
_SEARCH_LEVELS = 3


class ProcessHandler(abc.ABC):
    """Operating-system access to processes."""

    @abc.abstractmethod
    def get_pids(self) -> list[int]:
        """Return the ids of all running processes."""

    @abc.abstractmethod
    def get_exec_path(self, pid: int) -> str:
        """Return the executable path of a process, or an empty string."""

    @abc.abstractmethod
    def get_start_time(self, pid: int) -> Optional[datetime]:
        """Return when a process started, or None if unknown."""

    @abc.abstractmethod
    def close(self, pid: int) -> None:
        """Ask a process and its children to exit."""

    @abc.abstractmethod
    def terminate(self, pid: int) -> None:
        """Kill a process and its children."""


def find_steam_dir(exec_path: os.PathLike | str) -> Optional[Path]:
    """Find the Steam root at or up to two levels above ``exec_path``."""
    current = Path(exec_path)
    for _ in range(_SEARCH_LEVELS):
        if all((current / name).exists() for name in _REQUIRED_DIRS):
            return current.resolve()
        parent = current.parent
        if parent == current or not parent.is_dir():
            break
        current = parent
    return None


def is_steam_executable(exec_path: str) -> bool:
    """Whether an executable path looks like the Steam client."""
    return _STEAM_EXEC_RE.search(exec_path) is not None


@dataclass
class LogTrackers:
    """The set of Steam log trackers for one Steam process."""

    web_helper: SteamWebHelperLogTracker
    content_log: SteamContentLogTracker
    gameprocess_log: SteamGameProcessLogTracker
    shader_log: SteamShaderLogTracker

    def check_all(self) -> None:
        """Read new lines from every tracked log."""
        self.web_helper.check_log()
        self.content_log.check_log()
        self.gameprocess_log.check_log()
        self.shader_log.check_log()


def _make_log_trackers(logs_dir: Path, start_time: datetime) -> LogTrackers:
    return LogTrackers(
        web_helper=SteamWebHelperLogTracker(logs_dir, start_time),
        content_log=SteamContentLogTracker(logs_dir, start_time),
        gameprocess_log=SteamGameProcessLogTracker(logs_dir, start_time),
        shader_log=SteamShaderLogTracker(logs_dir, start_time),
    )


class SteamProcessTracker:
    """Keeps track of which process is Steam and reads its logs.

    Call ``check_state`` and ``check_logs`` periodically. Callables in
    ``process_state_changed`` are invoked whenever Steam appears or goes away.
    """

    def __init__(self, native_handler: ProcessHandler) -> None:
        self._native_handler = native_handler
        self.process_state_changed: list[Callable[[], None]] = []
        self._reset()

    def _reset(self) -> None:
        self._pid = 0
        self._start_time: Optional[datetime] = None
        self._log_trackers: Optional[LogTrackers] = None
        self._steam_dir: Optional[Path] = None

    def _emit(self) -> None:
        for listener in list(self.process_state_changed):
            listener()

    @property
    def pid(self) -> int:
        """The Steam process id, 0 when Steam is not running."""
        return self._pid

    @property
    def start_time(self) -> Optional[datetime]:
        """When the tracked Steam process started."""
        return self._start_time

    @property
    def log_trackers(self) -> Optional[LogTrackers]:
        """The log trackers for the running Steam process, if any."""
        return self._log_trackers

    @property
    def steam_dir(self) -> Optional[Path]:
        """The Steam installation directory of the running process, if any."""
        return self._steam_dir

    def is_running(self) -> bool:
        """Whether a Steam process is being tracked."""
        return self._pid != 0

    def close(self) -> None:
        """Ask the Steam process to exit."""
        self.check_state()
        if self.is_running():
            self._native_handler.close(self._pid)

    def terminate(self) -> None:
        """Kill the Steam process."""
        self.check_state()
        if self.is_running():
            self._native_handler.terminate(self._pid)

    def check_state(self) -> None:
        """Verify the tracked process still lives, or look for a new one."""
        if self.is_running():
            if self._native_handler.get_start_time(self._pid) == self._start_time:
                return
            self._reset()
            self._emit()

        for pid in self._native_handler.get_pids():
            exec_path = self._native_handler.get_exec_path(pid)
            if not exec_path or not is_steam_executable(exec_path):
                continue
            _log.info("Found a matching Steam process. PATH: %s | PID: %d", exec_path, pid)

            steam_dir = find_steam_dir(exec_path)
            if steam_dir is None:
                _log.info("Could not resolve steam directory for running Steam process, PID: %d", pid)
                continue

            logs_dir = steam_dir / "logs"
            if not logs_dir.exists():
                _log.info("Could not resolve steam logs directory for running Steam process, PID: %d", pid)
                continue

            start_time = self._native_handler.get_start_time(pid)
            if start_time is None:
                _log.warning("Could not resolve start time for running Steam process! PID: %d", pid)
                break

            self._pid = pid
            self._start_time = start_time
            self._steam_dir = steam_dir
            self._log_trackers = _make_log_trackers(logs_dir, start_time)
            self.check_logs()
            self._emit()
            break

    def check_logs(self) -> None:
        """Read new lines from the Steam logs, if Steam is tracked."""
        if self._log_trackers is not None:
            self._log_trackers.check_all()