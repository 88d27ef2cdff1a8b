"""Delayed shutdown, restart, suspend and hibernation of the PC."""

from __future__ import annotations

import enum
import logging
import threading
from typing import Callable, Optional, Protocol

_log = logging.getLogger(__name__)

Scheduler = Callable[[float, Callable[[], None]], None]

_STATE_RESET_SECONDS = 5


class PcState(enum.Enum):
    """What the PC is doing as far as power state goes."""

    NORMAL = "Normal"
    RESTARTING = "Restarting"
    SHUTTING_DOWN = "ShuttingDown"
    SUSPENDING = "Suspending"
    TRANSIENT = "Transient"


class _NativePcStateHandler(Protocol):
    def can_shutdown_pc(self) -> bool: ...
    def can_restart_pc(self) -> bool: ...
    def can_suspend_pc(self) -> bool: ...
    def can_hibernate_pc(self) -> bool: ...
    def shutdown_pc(self) -> bool: ...
    def restart_pc(self) -> bool: ...
    def suspend_pc(self) -> bool: ...
    def hibernate_pc(self) -> bool: ...


def _thread_scheduler(delay_in_seconds: float, callback: Callable[[], None]) -> None:
    timer = threading.Timer(delay_in_seconds, callback)
    timer.daemon = True
    timer.start()


class PcStateHandler:
    """Schedules a power state change after a grace period.

    ``scheduler(delay_in_seconds, callback)`` runs ``callback`` once after the delay;
    by default a daemon timer thread is used.
    """

    def __init__(self, native_handler: _NativePcStateHandler, scheduler: Optional[Scheduler] = None) -> None:
        self._native_handler = native_handler
        self._scheduler = scheduler or _thread_scheduler
        self._state = PcState.NORMAL

    @property
    def state(self) -> PcState:
        """The current power state."""
        return self._state

    def shutdown_pc(self, grace_period_in_sec: int) -> bool:
        """Schedule a shutdown; False if one cannot be started now."""
        return self._change_state(
            grace_period_in_sec,
            "shut down",
            "shutdown",
            self._native_handler.can_shutdown_pc,
            self._native_handler.shutdown_pc,
            PcState.SHUTTING_DOWN,
        )

    def restart_pc(self, grace_period_in_sec: int) -> bool:
        """Schedule a restart; False if one cannot be started now."""
        return self._change_state(
            grace_period_in_sec,
            "restarted",
            "restart",
            self._native_handler.can_restart_pc,
            self._native_handler.restart_pc,
            PcState.RESTARTING,
        )

    def suspend_pc(self, grace_period_in_sec: int) -> bool:
        """Schedule a suspend; False if one cannot be started now."""
        return self._change_state(
            grace_period_in_sec,
            "suspended",
            "suspend",
            self._native_handler.can_suspend_pc,
            self._native_handler.suspend_pc,
            PcState.SUSPENDING,
        )

    def hibernate_pc(self, grace_period_in_sec: int) -> bool:
        """Schedule hibernation; False if it cannot be started now."""
        return self._change_state(
            grace_period_in_sec,
            "hibernated",
            "hibernate",
            self._native_handler.can_hibernate_pc,
            self._native_handler.hibernate_pc,
            PcState.SUSPENDING,
        )

    def _change_state(
        self,
        grace_period_in_sec: int,
        cant_do_entry: str,
        failed_to_do_entry: str,
        can_do: Callable[[], bool],
        do: Callable[[], bool],
        new_state: PcState,
    ) -> bool:
        if self._state is not PcState.NORMAL:
            _log.debug("PC is already changing state. Aborting request.")
            return False

        if not can_do():
            _log.warning("PC cannot be %s!", cant_do_entry)
            return False

        def reset() -> None:
            _log.info("Resetting PC state back to normal.")
            self._state = PcState.NORMAL

        def perform() -> None:
            _log.info("Setting PC state to transient.")
            self._state = PcState.TRANSIENT
            self._scheduler(_STATE_RESET_SECONDS, reset)
            if not do():
                _log.warning("Failed to %s PC!", failed_to_do_entry)
                self._state = PcState.NORMAL

        self._state = new_state
        self._scheduler(grace_period_in_sec, perform)
        return True