"""Process access on Linux through the ``/proc`` file system."""

from __future__ import annotations

import logging
import os
import re
import signal
from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional, Sequence

from moondeckbuddy.processtracker import ProcessHandler

_log = logging.getLogger(__name__)

_PID_RE = re.compile(r"[0-9]+")
_UINT32_MAX = 2**32 - 1
# Positions in /proc/<pid>/stat counted from the field after the command name.
_PPID_FIELD = 1
_START_TIME_FIELD = 19


def get_related_pids(pid: int, all_pids: Sequence[int], parent_pids: Sequence[int]) -> list[int]:
    """Return ``pid`` followed by all of its descendants, breadth first."""
    if len(all_pids) != len(parent_pids):
        raise ValueError("every process needs exactly one parent entry")

    related = [pid]
    for related_pid in related:
        for process_pid, parent_pid in zip(all_pids, parent_pids):
            if parent_pid != related_pid or process_pid == related_pid:
                continue
            related.append(process_pid)
    return related


class NativeProcessHandler(ProcessHandler):
    """Lists, inspects and signals processes using a procfs directory."""

    def __init__(self, proc_dir: os.PathLike | str = "/proc") -> None:
        self.proc_dir = Path(proc_dir)
        self._boot_time: Optional[int] = None

    def get_pids(self) -> list[int]:
        """Return the ids of all processes listed in the proc directory."""
        try:
            entries = sorted(
                (entry for entry in self.proc_dir.iterdir() if entry.is_dir()),
                key=lambda entry: entry.name.lower(),
            )
        except OSError:
            _log.warning("Failed to list %s", self.proc_dir)
            return []

        pids = []
        for entry in entries:
            if _PID_RE.fullmatch(entry.name) and int(entry.name) <= _UINT32_MAX:
                pids.append(int(entry.name))
        return pids

    def get_parent_pid(self, pid: int) -> int:
        """Return the parent id of a process, 0 when it cannot be read."""
        fields = self._stat_fields(pid)
        if fields is None or len(fields) <= _PPID_FIELD:
            return 0
        try:
            parent = int(fields[_PPID_FIELD])
        except ValueError:
            return 0
        return parent if parent >= 0 else 0

    def get_exec_path(self, pid: int) -> str:
        """Return the canonical executable path of a process, or an empty string."""
        try:
            target = os.readlink(self.proc_dir / str(pid) / "exe")
            return str(Path(target).resolve(strict=True))
        except (OSError, RuntimeError):
            return ""

    def get_start_time(self, pid: int) -> Optional[datetime]:
        """Return when a process started, or None if that cannot be read."""
        fields = self._stat_fields(pid)
        if fields is None or len(fields) <= _START_TIME_FIELD:
            return None
        try:
            ticks = int(fields[_START_TIME_FIELD])
        except ValueError:
            return None

        boot_time = self._get_boot_time()
        if boot_time is None:
            return None

        seconds_since_boot = ticks / os.sysconf("SC_CLK_TCK")
        milliseconds = round(seconds_since_boot * 1000.0)
        return datetime.fromtimestamp(boot_time) + timedelta(milliseconds=milliseconds)

    def close(self, pid: int) -> None:
        """Send SIGTERM to a process and all of its descendants."""
        self._signal_related(pid, signal.SIGTERM, "close")

    def terminate(self, pid: int) -> None:
        """Send SIGKILL to a process and all of its descendants."""
        self._signal_related(pid, signal.SIGKILL, "terminate")

    def _signal_related(self, pid: int, sig: signal.Signals, action: str) -> None:
        all_pids = self.get_pids()
        parent_pids = [self.get_parent_pid(process) for process in all_pids]
        for related_pid in get_related_pids(pid, all_pids, parent_pids):
            try:
                os.kill(related_pid, sig)
            except ProcessLookupError:
                pass
            except OSError as error:
                _log.warning("Failed to %s process %d - %s", action, related_pid, error)

    def _stat_fields(self, pid: int) -> Optional[list[str]]:
        try:
            text = (self.proc_dir / str(pid) / "stat").read_text(errors="replace")
        except OSError:
            return None
        head, closing, rest = text.rpartition(")")
        if not closing or "(" not in head:
            return None
        return rest.split()

    def _get_boot_time(self) -> Optional[int]:
        if self._boot_time is None:
            try:
                lines = (self.proc_dir / "stat").read_text().splitlines()
            except OSError as error:
                _log.warning("Failed to read boot time: %s", error)
                return None
            for line in lines:
                parts = line.split()
                if len(parts) == 2 and parts[0] == "btime" and parts[1].isdigit():
                    self._boot_time = int(parts[1])
                    break
            else:
                _log.warning("Boot time is missing from %s", self.proc_dir / "stat")
                return None
        return self._boot_time