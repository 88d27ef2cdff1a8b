import json
from http import HTTPStatus

import pytest

from moondeckbuddy.appwatcher import AppState
from moondeckbuddy.pccontrol import StreamState
from moondeckbuddy.pcstate import PcState
from moondeckbuddy.routing import Request, Response, Router, is_valid_mac
from moondeckbuddy.webhelperlog import SteamUiMode


class FakePairing:
    def __init__(self):
        self.paired = {"p1"}
        self.pairing = {"p2"}
        self.started = []
        self.aborted = []

    def is_paired(self, client_id):
        return client_id in self.paired

    def is_pairing(self, client_id):
        return client_id in self.pairing

    def start_pairing(self, client_id, hashed_id):
        self.started.append((client_id, hashed_id))
        return True

    def abort_pairing(self, client_id):
        self.aborted.append(client_id)
        return False


class FakePc:
    def __init__(self):
        self.calls = []
        self.shortcuts = {123: "Game"}
        self.app_data = (42, AppState.RUNNING)

    def get_pc_state(self):
        return PcState.NORMAL

    def restart_pc(self, delay):
        self.calls.append(("restart", delay))
        return True

    def shutdown_pc(self, delay):
        self.calls.append(("shutdown", delay))
        return True

    def suspend_or_hibernate_pc(self, delay):
        self.calls.append(("suspend", delay))
        return False

    def get_steam_ui_mode(self):
        return SteamUiMode.BIG_PICTURE

    def get_non_steam_app_data(self, user_id):
        self.calls.append(("shortcuts", user_id))
        return self.shortcuts

    def launch_steam(self, big_picture_mode):
        self.calls.append(("launch", big_picture_mode))
        return True

    def launch_steam_app(self, app_id):
        self.calls.append(("launch_app", app_id))
        return True

    def close_steam(self):
        return True

    def get_stream_state(self):
        return StreamState.STREAMING

    def get_app_data(self, app_id):
        return self.app_data

    def clear_app_data(self):
        return True

    def end_stream(self):
        return False


class FakeApps:
    def __init__(self, names):
        self.names = names

    def load(self):
        return self.names


def make_router(authorized=True, override="", names=("Desktop", "Steam")):
    pairing = FakePairing()
    pc = FakePc()
    router = Router(7, lambda request: authorized, pairing, pc, FakeApps(names), override)
    return router, pairing, pc


def body(data):
    return json.dumps(data).encode()


def test_api_version():
    router, _, _ = make_router(authorized=False)
    response = router.handle(Request("GET", "/apiVersion"))
    assert response.status == HTTPStatus.OK
    assert response.body == {"version": 7}


@pytest.mark.parametrize("client_id, state", [("p1", "Paired"), ("p2", "Pairing"), ("other", "NotPaired")])
def test_pairing_state(client_id, state):
    router, _, _ = make_router()
    assert router.handle(Request("GET", f"/pairingState/{client_id}")).body == {"state": state}


def test_pair_success():
    router, pairing, _ = make_router(authorized=False)
    response = router.handle(Request("POST", "/pair", body({"id": "abc", "hashed_id": "h"})))
    assert response.body == {"result": True}
    assert pairing.started == [("abc", "h")]


@pytest.mark.parametrize("raw", [b"", b"{}", b"[1]", b"not json", body({"id": "abc"}), body({"id": 1, "hashed_id": "h"})])
def test_pair_bad_request(raw):
    router, pairing, _ = make_router()
    assert router.handle(Request("POST", "/pair", raw)).status == HTTPStatus.BAD_REQUEST
    assert pairing.started == []


def test_abort_pairing():
    router, pairing, _ = make_router()
    assert router.handle(Request("POST", "/abortPairing", body({"id": "abc"}))).body == {"result": False}
    assert pairing.aborted == ["abc"]
    assert router.handle(Request("POST", "/abortPairing", body({"x": 1}))).status == HTTPStatus.BAD_REQUEST


@pytest.mark.parametrize(
    "method, path",
    [
        ("GET", "/pcState"),
        ("POST", "/changePcState"),
        ("GET", "/hostInfo"),
        ("GET", "/steamUiMode"),
        ("GET", "/nonSteamAppData"),
        ("POST", "/launchSteam"),
        ("POST", "/launchSteamApp"),
        ("POST", "/closeSteam"),
        ("GET", "/streamState"),
        ("GET", "/streamedAppData"),
        ("POST", "/clearStreamedAppData"),
        ("POST", "/endStream"),
        ("GET", "/gameStreamAppNames"),
    ],
)
def test_protected_routes_require_authorization(method, path):
    router, _, _ = make_router(authorized=False)
    assert router.handle(Request(method, path)).status == HTTPStatus.UNAUTHORIZED


def test_pc_state_and_stream_state():
    router, _, _ = make_router()
    assert router.handle(Request("GET", "/pcState")).body == {"state": "Normal"}
    assert router.handle(Request("GET", "/streamState")).body == {"state": "Streaming"}
    assert router.handle(Request("GET", "/steamUiMode")).body == {"mode": "BigPicture"}


@pytest.mark.parametrize(
    "state, expected_call, result",
    [("Restart", "restart", True), ("Shutdown", "shutdown", True), ("Suspend", "suspend", False)],
)
def test_change_pc_state_dispatch(state, expected_call, result):
    router, _, pc = make_router()
    response = router.handle(Request("POST", "/changePcState", body({"state": state, "delay": 10})))
    assert response.body == {"result": result}
    assert pc.calls == [(expected_call, 10)]


@pytest.mark.parametrize(
    "payload",
    [
        {"state": "Restart", "delay": 0},
        {"state": "Restart", "delay": 31},
        {"state": "Restart", "delay": 2.5},
        {"state": "Restart", "delay": True},
        {"state": "Reboot", "delay": 5},
        {"state": "Restart"},
    ],
)
def test_change_pc_state_bad_request(payload):
    router, _, pc = make_router()
    assert router.handle(Request("POST", "/changePcState", body(payload))).status == HTTPStatus.BAD_REQUEST
    assert pc.calls == []


def test_change_pc_state_delay_bounds_accepted():
    router, _, pc = make_router()
    router.handle(Request("POST", "/changePcState", body({"state": "Shutdown", "delay": 1})))
    router.handle(Request("POST", "/changePcState", body({"state": "Shutdown", "delay": 30})))
    assert pc.calls == [("shutdown", 1), ("shutdown", 30)]


def test_host_info_with_override_normalises_separator():
    router, _, _ = make_router(override="AA-BB-CC-DD-EE-FF")
    response = router.handle(Request("GET", "/hostInfo"))
    assert response.body["mac"] == "AA:BB:CC:DD:EE:FF"
    assert response.body["os"] in {"Windows", "Linux", "Other"}


def test_host_info_invalid_override():
    router, _, _ = make_router(override="AA:BB-CC:DD:EE:FF")
    assert router.handle(Request("GET", "/hostInfo")).status == HTTPStatus.INTERNAL_SERVER_ERROR


def test_host_info_without_mac():
    router, _, _ = make_router()
    response = router.handle(Request("GET", "/hostInfo", local_address="not-an-address"))
    assert response.status == HTTPStatus.INTERNAL_SERVER_ERROR


@pytest.mark.parametrize(
    "mac, valid",
    [
        ("aa:bb:cc:dd:ee:ff", True),
        ("AA-BB-CC-DD-EE-FF", True),
        ("AA:BB-CC:DD:EE:FF", False),
        ("AA:BB:CC:DD:EE", False),
        ("GG:BB:CC:DD:EE:FF", False),
        ("", False),
    ],
)
def test_is_valid_mac(mac, valid):
    assert is_valid_mac(mac) is valid


def test_non_steam_app_data():
    router, _, pc = make_router()
    response = router.handle(Request("GET", "/nonSteamAppData", body({"user_id": "76"})))
    assert response.body == {"data": [{"app_id": "123", "app_name": "Game"}]}
    assert pc.calls == [("shortcuts", 76)]


def test_non_steam_app_data_missing():
    router, _, pc = make_router()
    pc.shortcuts = None
    assert router.handle(Request("GET", "/nonSteamAppData", body({"user_id": "1"}))).body == {"data": None}


@pytest.mark.parametrize("user_id", ["abc", "-1", "", 5])
def test_non_steam_app_data_bad_user(user_id):
    router, _, _ = make_router()
    response = router.handle(Request("GET", "/nonSteamAppData", body({"user_id": user_id})))
    assert response.status == HTTPStatus.BAD_REQUEST


def test_launch_steam():
    router, _, pc = make_router()
    assert router.handle(Request("POST", "/launchSteam", body({"big_picture_mode": False}))).body == {"result": True}
    assert pc.calls == [("launch", False)]
    bad = router.handle(Request("POST", "/launchSteam", body({"big_picture_mode": "yes"})))
    assert bad.status == HTTPStatus.BAD_REQUEST


def test_launch_steam_app():
    router, _, pc = make_router()
    assert router.handle(Request("POST", "/launchSteamApp", body({"app_id": "620"}))).body == {"result": True}
    assert pc.calls == [("launch_app", 620)]
    bad = router.handle(Request("POST", "/launchSteamApp", body({"app_id": 620})))
    assert bad.status == HTTPStatus.BAD_REQUEST


def test_streamed_app_data():
    router, _, pc = make_router()
    assert router.handle(Request("GET", "/streamedAppData")).body == {
        "data": {"app_id": "42", "app_state": "Running"}
    }
    pc.app_data = None
    assert router.handle(Request("GET", "/streamedAppData")).body == {"data": None}


def test_simple_result_routes():
    router, _, _ = make_router()
    assert router.handle(Request("POST", "/closeSteam")).body == {"result": True}
    assert router.handle(Request("POST", "/clearStreamedAppData")).body == {"result": True}
    assert router.handle(Request("POST", "/endStream")).body == {"result": False}


def test_game_stream_app_names():
    router, _, _ = make_router(names=["A", "B"])
    assert router.handle(Request("GET", "/gameStreamAppNames")).body == {"appNames": ["A", "B"]}
    router, _, _ = make_router(names=None)
    assert router.handle(Request("GET", "/gameStreamAppNames")).body == {"appNames": None}


@pytest.mark.parametrize("method, path", [("GET", "/unknown"), ("POST", "/apiVersion"), ("GET", "/pair")])
def test_unknown_routes(method, path):
    router, _, _ = make_router()
    assert router.handle(Request(method, path)).status == HTTPStatus.NOT_FOUND


def test_response_data_round_trip():
    response = Response(body={"result": True})
    assert json.loads(response.data) == {"result": True}
    assert Response(status=HTTPStatus.BAD_REQUEST).data == b""