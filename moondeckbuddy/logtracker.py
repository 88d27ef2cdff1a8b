"""Incremental reader for Steam log files that rotate into a backup file."""

from __future__ import annotations

import abc
import enum
import logging
import os
import re
from datetime import datetime
from pathlib import Path
from typing import BinaryIO, Optional

_log = logging.getLogger(__name__)

_UINT64_MAX = 2**64 - 1
_UNSIGNED_RE = re.compile(r"\+?[0-9]+")


class TimeFormat(enum.Enum):
    """Timestamp layouts found at the start of Steam log lines."""

    YYYY_MM_DD_hh_mm_ss = "YYYY_MM_DD_hh_mm_ss"


_TIME_PATTERNS = {
    TimeFormat.YYYY_MM_DD_hh_mm_ss: re.compile(
        r"^\[(\d{4})-(\d{2})-(\d{2})\s(\d{2}):(\d{2}):(\d{2})\]", re.ASCII
    ),
}


def parse_log_time(line: str, time_format: TimeFormat = TimeFormat.YYYY_MM_DD_hh_mm_ss) -> Optional[datetime]:
    """Return the timestamp that prefixes a log line, or None if there is no valid one."""
    match = _TIME_PATTERNS[time_format].match(line)
    if match is None:
        return None
    try:
        return datetime(*(int(group) for group in match.groups()))
    except ValueError:
        return None


def app_id_from_string(app_id: str) -> int:
    """Parse an unsigned 64-bit app id; 0 means the text was not a valid id."""
    text = app_id.strip()
    if not _UNSIGNED_RE.fullmatch(text):
        return 0
    value = int(text)
    return value if value <= _UINT64_MAX else 0


def _is_before(line: str, moment: Optional[datetime], time_format: TimeFormat) -> bool:
    logtime = parse_log_time(line, time_format)
    if logtime is None or moment is None:
        return False
    return logtime < moment


def _is_at_or_after(line: str, moment: Optional[datetime], time_format: TimeFormat) -> bool:
    logtime = parse_log_time(line, time_format)
    if logtime is None:
        return False
    if moment is None:
        return True
    return logtime >= moment


def _filter_lines(
    lines: list[str], moment: Optional[datetime], time_format: TimeFormat
) -> tuple[list[str], Optional[datetime]]:
    """Drop everything before the first entry at or after ``moment``.

    Returns the remaining lines and the filter still to apply (None once satisfied).
    """
    start = next(
        (index + 1 for index, line in reversed(list(enumerate(lines))) if _is_before(line, moment, time_format)),
        0,
    )
    first = next(
        (index for index, line in enumerate(lines[start:], start) if _is_at_or_after(line, moment, time_format)),
        None,
    )
    if first is None:
        return [], moment
    return lines[first:], None


def _read_lines(file: BinaryIO, offset: int) -> tuple[list[str], int]:
    """Read non-empty lines from ``offset`` to the end; return them and the end position."""
    file.seek(offset)
    data = file.read()
    decoded = (raw.rstrip(b"\r").decode("utf-8", errors="replace") for raw in data.split(b"\n"))
    return [line for line in decoded if line], offset + len(data)


def _open_for_reading(path: Path) -> Optional[BinaryIO]:
    if not path.exists():
        _log.debug("file %s does not exist yet.", path)
        return None
    try:
        return path.open("rb")
    except OSError:
        _log.warning("file %s could not be opened!", path)
        return None


class SteamLogTracker(abc.ABC):
    """Follows a log file and its rotated backup, handing new lines to ``on_log_changed``."""

    def __init__(
        self,
        main_filename: os.PathLike | str,
        backup_filename: os.PathLike | str,
        first_entry_time_filter: Optional[datetime],
        time_format: TimeFormat = TimeFormat.YYYY_MM_DD_hh_mm_ss,
    ) -> None:
        self.main_filename = Path(main_filename)
        self.backup_filename = Path(backup_filename)
        self.time_format = time_format
        self._first_entry_time_filter = first_entry_time_filter
        self._last_prev_size = 0
        self._last_read_pos = 0
        self._initialized = False

    def check_log(self) -> None:
        """Read whatever was written since the previous check."""
        main_file = _open_for_reading(self.main_filename)
        if main_file is None:
            return

        with main_file:
            current_size = os.fstat(main_file.fileno()).st_size

            if not self._initialized:
                self._initial_read(main_file, current_size)
                return

            if current_size > self._last_prev_size:
                _log.debug("file %s was appended.", self.main_filename)
                lines, self._last_read_pos = self._read_remaining(main_file, self._last_read_pos)
                self._last_prev_size = current_size
                self.on_log_changed(lines)
                return

            if current_size < self._last_prev_size:
                _log.debug("file %s was switched with %s", self.main_filename, self.backup_filename)
                backup_file = _open_for_reading(self.backup_filename)
                if backup_file is None:
                    return
                with backup_file:
                    lines, _ = self._read_remaining(backup_file, self._last_read_pos)
                main_lines, self._last_read_pos = self._read_remaining(main_file, 0)
                self._last_prev_size = current_size
                self.on_log_changed(lines + main_lines)
                return

        _log.debug("file %s did not change.", self.main_filename)

    @abc.abstractmethod
    def on_log_changed(self, new_lines: list[str]) -> None:
        """Handle lines that appeared in the log since the last check."""

    def _initial_read(self, main_file: BinaryIO, current_size: int) -> None:
        _log.info("performing initial log read for files %s and %s", self.main_filename, self.backup_filename)

        lines: list[str] = []
        backup_file = _open_for_reading(self.backup_filename)
        if backup_file is None:
            if self.backup_filename.exists():
                return
            _log.info("skipping file %s for initial read, because it does not exist.", self.backup_filename)
        else:
            with backup_file:
                lines.extend(_read_lines(backup_file, 0)[0])

        main_lines, self._last_read_pos = _read_lines(main_file, 0)
        lines.extend(main_lines)
        self._last_prev_size = current_size

        lines, self._first_entry_time_filter = _filter_lines(lines, self._first_entry_time_filter, self.time_format)
        self.on_log_changed(lines)
        self._initialized = True

    def _read_remaining(self, file: BinaryIO, offset: int) -> tuple[list[str], int]:
        raw_lines, position = _read_lines(file, offset)
        lines = []
        for line in raw_lines:
            if self._first_entry_time_filter is not None:
                if not _is_at_or_after(line, self._first_entry_time_filter, self.time_format):
                    continue
                self._first_entry_time_filter = None
            lines.append(line)
        return lines, position