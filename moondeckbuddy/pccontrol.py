"""Single entry point for controlling the PC, Steam and the stream."""

from __future__ import annotations

import enum
import logging
from typing import Callable, Optional

from moondeckbuddy.appwatcher import AppState
from moondeckbuddy.pcstate import PcState
from moondeckbuddy.webhelperlog import SteamUiMode

_log = logging.getLogger(__name__)

TrayMessageListener = Callable[[str, str, int], None]


class StreamState(enum.Enum):
    """The state of the game stream."""

    NOT_STREAMING = "NotStreaming"
    STREAMING = "Streaming"
    STREAM_ENDING = "StreamEnding"


class PcControl:
    """Combines the Steam, power state, stream and autostart handlers.

    Callables in ``show_tray_message`` get ``(title, message, duration_ms)``.
    ``handle_stream_state_change`` is to be called whenever the stream state changes.
    """

    def __init__(
        self,
        steam_handler,
        pc_state_handler,
        stream_state_handler,
        autostart_handler,
        app_name: str,
        prefer_hibernation: bool = False,
        close_steam_before_sleep: bool = True,
    ) -> None:
        self._steam_handler = steam_handler
        self._pc_state_handler = pc_state_handler
        self._stream_state_handler = stream_state_handler
        self._autostart_handler = autostart_handler
        self.app_name = app_name
        self.prefer_hibernation = prefer_hibernation
        self.close_steam_before_sleep = close_steam_before_sleep
        self.show_tray_message: list[TrayMessageListener] = []
        steam_handler.steam_closed.append(self.handle_steam_closed)

    def _notify(self, title: str, message: str, delay_in_seconds: int) -> None:
        for listener in list(self.show_tray_message):
            listener(title, message, delay_in_seconds * 1000)

    def launch_steam(self, big_picture_mode: bool) -> bool:
        """Start Steam, optionally in Big Picture mode."""
        return self._steam_handler.launch_steam(big_picture_mode)

    def get_steam_ui_mode(self) -> SteamUiMode:
        """The current Steam UI mode."""
        return self._steam_handler.get_steam_ui_mode()

    def close_steam(self) -> bool:
        """Shut Steam down."""
        return self._steam_handler.close()

    def launch_steam_app(self, app_id: int) -> bool:
        """Launch a Steam app and track it."""
        return self._steam_handler.launch_app(app_id)

    def get_app_data(self, app_id: Optional[int] = None) -> Optional[tuple[int, AppState]]:
        """State of an app, or of the tracked app when no id is given."""
        return self._steam_handler.get_app_data(app_id)

    def clear_app_data(self) -> bool:
        """Forget the tracked app."""
        self._steam_handler.clear_session_data()
        return True

    def get_non_steam_app_data(self, user_id: int) -> Optional[dict[int, str]]:
        """Non-Steam shortcuts of a user."""
        return self._steam_handler.get_non_steam_app_data(user_id)

    def shutdown_pc(self, delay_in_seconds: int) -> bool:
        """Schedule a shutdown, closing Steam and ending the stream."""
        if not self._pc_state_handler.shutdown_pc(delay_in_seconds):
            return False
        self.close_steam()
        self.end_stream()
        self._notify("Shutdown in progress", self.app_name + " is putting you to sleep :)", delay_in_seconds)
        return True

    def restart_pc(self, delay_in_seconds: int) -> bool:
        """Schedule a restart, closing Steam and ending the stream."""
        if not self._pc_state_handler.restart_pc(delay_in_seconds):
            return False
        self.close_steam()
        self.end_stream()
        self._notify("Restart in progress", self.app_name + " is giving you new life :?", delay_in_seconds)
        return True

    def suspend_or_hibernate_pc(self, delay_in_seconds: int) -> bool:
        """Schedule a suspend, or hibernation if that is preferred."""
        hibernation = self.prefer_hibernation
        if hibernation:
            result = self._pc_state_handler.hibernate_pc(delay_in_seconds)
        else:
            result = self._pc_state_handler.suspend_pc(delay_in_seconds)
        if not result:
            return False

        if self.close_steam_before_sleep:
            self.close_steam()
        self.end_stream()

        if hibernation:
            title = "Hibernation in progress"
            message = self.app_name + " is about to put you into hard sleep :O"
        else:
            title = "Suspend in progress"
            message = self.app_name + " is about to suspend you real hard :P"
        self._notify(title, message, delay_in_seconds)
        return True

    def end_stream(self) -> bool:
        """Ask the stream to end."""
        return self._stream_state_handler.end_stream()

    def get_stream_state(self) -> StreamState:
        """The current stream state."""
        return self._stream_state_handler.current_state

    def get_pc_state(self) -> PcState:
        """The current power state."""
        return self._pc_state_handler.state

    def set_autostart(self, enable: bool) -> None:
        """Enable or disable autostart."""
        self._autostart_handler.set_autostart(enable)

    def is_autostart_enabled(self) -> bool:
        """Whether autostart is enabled."""
        return self._autostart_handler.is_autostart_enabled()

    def handle_steam_closed(self) -> None:
        """End the stream once Steam has gone away."""
        self.end_stream()

    def handle_stream_state_change(self) -> None:
        """React to a change of the stream state."""
        state = self._stream_state_handler.current_state
        if state is StreamState.NOT_STREAMING:
            _log.info("Stream has ended.")
        elif state is StreamState.STREAMING:
            _log.info("Stream started.")
        elif state is StreamState.STREAM_ENDING:
            _log.info("Stream is ending.")
            self._steam_handler.clear_session_data()