import pytest

from moondeckbuddy.appwatcher import AppState
from moondeckbuddy.autostart import AutoStartHandler
from moondeckbuddy.pccontrol import PcControl, StreamState
from moondeckbuddy.pcstate import PcState
from moondeckbuddy.webhelperlog import SteamUiMode


class FakeSteam:
    def __init__(self):
        self.steam_closed = []
        self.calls = []

    def launch_steam(self, big_picture_mode):
        self.calls.append(("launch_steam", big_picture_mode))
        return True

    def get_steam_ui_mode(self):
        return SteamUiMode.DESKTOP

    def close(self):
        self.calls.append(("close",))
        return True

    def launch_app(self, app_id):
        self.calls.append(("launch_app", app_id))
        return app_id != 0

    def get_app_data(self, app_id):
        return (app_id or 42, AppState.RUNNING)

    def clear_session_data(self):
        self.calls.append(("clear",))

    def get_non_steam_app_data(self, user_id):
        return {user_id: "name"}


class FakePcState:
    def __init__(self, result=True):
        self.result = result
        self.state = PcState.NORMAL
        self.calls = []

    def _call(self, name, delay):
        self.calls.append((name, delay))
        return self.result

    def shutdown_pc(self, delay):
        return self._call("shutdown", delay)

    def restart_pc(self, delay):
        return self._call("restart", delay)

    def suspend_pc(self, delay):
        return self._call("suspend", delay)

    def hibernate_pc(self, delay):
        return self._call("hibernate", delay)


class FakeStream:
    def __init__(self):
        self.current_state = StreamState.NOT_STREAMING
        self.ended = 0

    def end_stream(self):
        self.ended += 1
        return True


def _make(tmp_path, pc_result=True, **kwargs):
    steam, pc_state, stream = FakeSteam(), FakePcState(pc_result), FakeStream()
    autostart = AutoStartHandler("Buddy", "buddy-exec", tmp_path)
    control = PcControl(steam, pc_state, stream, autostart, "Buddy", **kwargs)
    messages = []
    control.show_tray_message.append(lambda *args: messages.append(args))
    return control, steam, pc_state, stream, messages


def test_shutdown_closes_steam_and_ends_stream(tmp_path):
    control, steam, pc_state, stream, messages = _make(tmp_path)
    assert control.shutdown_pc(3) is True
    assert pc_state.calls == [("shutdown", 3)]
    assert ("close",) in steam.calls
    assert stream.ended == 1
    assert messages == [("Shutdown in progress", "Buddy is putting you to sleep :)", 3000)]


def test_restart_message(tmp_path):
    control, steam, _, stream, messages = _make(tmp_path)
    assert control.restart_pc(2) is True
    assert messages[0][0] == "Restart in progress"
    assert messages[0][1] == "Buddy is giving you new life :?"
    assert stream.ended == 1


@pytest.mark.parametrize("method", ["shutdown_pc", "restart_pc", "suspend_or_hibernate_pc"])
def test_rejected_state_change_does_nothing(tmp_path, method):
    control, steam, _, stream, messages = _make(tmp_path, pc_result=False)
    assert getattr(control, method)(1) is False
    assert steam.calls == []
    assert stream.ended == 0
    assert messages == []


def test_suspend_without_closing_steam(tmp_path):
    control, steam, pc_state, stream, messages = _make(tmp_path, close_steam_before_sleep=False)
    assert control.suspend_or_hibernate_pc(4) is True
    assert pc_state.calls == [("suspend", 4)]
    assert ("close",) not in steam.calls
    assert stream.ended == 1
    assert messages[0][0] == "Suspend in progress"
    assert messages[0][1] == "Buddy is about to suspend you real hard :P"


def test_hibernate_when_preferred(tmp_path):
    control, steam, pc_state, _, messages = _make(tmp_path, prefer_hibernation=True)
    assert control.suspend_or_hibernate_pc(5) is True
    assert pc_state.calls == [("hibernate", 5)]
    assert ("close",) in steam.calls
    assert messages[0][0] == "Hibernation in progress"
    assert messages[0][1] == "Buddy is about to put you into hard sleep :O"


def test_steam_closed_ends_stream(tmp_path):
    control, steam, _, stream, _ = _make(tmp_path)
    for listener in steam.steam_closed:
        listener()
    assert stream.ended == 1


def test_stream_ending_clears_session(tmp_path):
    control, steam, _, stream, _ = _make(tmp_path)
    stream.current_state = StreamState.STREAMING
    control.handle_stream_state_change()
    assert steam.calls == []
    stream.current_state = StreamState.STREAM_ENDING
    control.handle_stream_state_change()
    assert steam.calls == [("clear",)]
    assert control.get_stream_state() is StreamState.STREAM_ENDING


def test_delegation(tmp_path):
    control, steam, pc_state, _, _ = _make(tmp_path)
    assert control.launch_steam(True) is True
    assert control.launch_steam_app(7) is True
    assert steam.calls[:2] == [("launch_steam", True), ("launch_app", 7)]
    assert control.get_steam_ui_mode() is SteamUiMode.DESKTOP
    assert control.get_app_data(9) == (9, AppState.RUNNING)
    assert control.get_non_steam_app_data(5) == {5: "name"}
    assert control.clear_app_data() is True
    assert control.get_pc_state() is PcState.NORMAL
    pc_state.state = PcState.TRANSIENT
    assert control.get_pc_state() is PcState.TRANSIENT


def test_autostart_round_trip(tmp_path):
    control, *_ = _make(tmp_path)
    assert control.is_autostart_enabled() is False
    control.set_autostart(True)
    assert control.is_autostart_enabled() is True
    control.set_autostart(False)
    assert control.is_autostart_enabled() is False