from types import SimpleNamespace

from moondeckbuddy.appwatcher import AppState, SteamAppWatcher, get_app_state
from moondeckbuddy.contentlog import SteamContentLogTracker
from moondeckbuddy.gameprocesslog import SteamGameProcessLogTracker
from moondeckbuddy.processtracker import LogTrackers
from moondeckbuddy.shaderlog import SteamShaderLogTracker
from moondeckbuddy.webhelperlog import SteamWebHelperLogTracker


def make_tracker(tmp_path):
    trackers = LogTrackers(
        web_helper=SteamWebHelperLogTracker(tmp_path, None),
        content_log=SteamContentLogTracker(tmp_path, None),
        gameprocess_log=SteamGameProcessLogTracker(tmp_path, None),
        shader_log=SteamShaderLogTracker(tmp_path, None),
    )
    return SimpleNamespace(log_trackers=trackers)


def test_no_log_trackers_gives_none():
    assert get_app_state(SimpleNamespace(log_trackers=None), 440) is None


def test_untracked_app_is_stopped(tmp_path):
    assert get_app_state(make_tracker(tmp_path), 440) is AppState.STOPPED


def test_content_running(tmp_path):
    tracker = make_tracker(tmp_path)
    tracker.log_trackers.content_log.on_log_changed(["AppID 440 state changed : App Running,"])
    assert get_app_state(tracker, 440) is AppState.RUNNING


def test_shader_compile_means_updating(tmp_path):
    tracker = make_tracker(tmp_path)
    tracker.log_trackers.content_log.on_log_changed(["AppID 440 state changed : App Running,"])
    tracker.log_trackers.shader_log.on_log_changed(["Starting processing job for app 440"])
    assert get_app_state(tracker, 440) is AppState.UPDATING


def test_game_process_keeps_previous_state(tmp_path):
    tracker = make_tracker(tmp_path)
    tracker.log_trackers.gameprocess_log.on_log_changed(["AppID 440 adding PID 1234"])
    assert get_app_state(tracker, 440) is AppState.RUNNING
    assert get_app_state(tracker, 440, AppState.UPDATING) is AppState.UPDATING


def test_watcher_picks_up_running_immediately(tmp_path):
    tracker = make_tracker(tmp_path)
    tracker.log_trackers.gameprocess_log.on_log_changed(["AppID 440 adding PID 1234"])
    watcher = SteamAppWatcher(tracker, 440)
    assert watcher.app_id == 440
    assert watcher.app_state is AppState.RUNNING


def test_watcher_delays_stop(tmp_path):
    tracker = make_tracker(tmp_path)
    tracker.log_trackers.gameprocess_log.on_log_changed(["AppID 440 adding PID 1234"])
    watcher = SteamAppWatcher(tracker, 440)
    tracker.log_trackers.gameprocess_log.on_log_changed(["Game 440 going away, PID 1234"])

    states = []
    for _ in range(5):
        watcher.check_state()
        states.append(watcher.app_state)
    assert states == [AppState.RUNNING] * 5

    watcher.check_state()
    assert watcher.app_state is AppState.STOPPED


def test_watcher_without_steam_is_stopped():
    watcher = SteamAppWatcher(SimpleNamespace(log_trackers=None), 440)
    watcher.check_state()
    assert watcher.app_state is AppState.STOPPED