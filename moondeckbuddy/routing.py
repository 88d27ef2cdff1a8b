"""HTTP routes that expose PC, Steam and stream control to the client."""

from __future__ import annotations

import enum
import json
import logging
import re
import sys
from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Any, Callable, Iterable, Mapping, Optional, Protocol
from urllib.parse import unquote

from moondeckbuddy.networkinfo import get_mac_address

_log = logging.getLogger(__name__)

_MAC_RE = re.compile(r"[0-9A-Fa-f]{2}([-:])(?:[0-9A-Fa-f]{2}\1){4}[0-9A-Fa-f]{2}")
_UNSIGNED_RE = re.compile(r"\s*\+?([0-9]+)\s*")
_UINT64_MAX = 2**64 - 1
_PAIRING_STATE_RE = re.compile(r"/pairingState/([^/]+)")
_MIN_DELAY = 1
_MAX_DELAY = 30


class _PairingState(enum.Enum):
    PAIRED = "Paired"
    PAIRING = "Pairing"
    NOT_PAIRED = "NotPaired"


class _ChangePcState(enum.Enum):
    RESTART = "Restart"
    SHUTDOWN = "Shutdown"
    SUSPEND = "Suspend"


class _PairingManager(Protocol):
    def is_paired(self, client_id: str) -> bool: ...
    def is_pairing(self, client_id: str) -> bool: ...
    def start_pairing(self, client_id: str, hashed_id: str) -> bool: ...
    def abort_pairing(self, client_id: str) -> bool: ...


class _SunshineApps(Protocol):
    def load(self) -> Optional[Iterable[str]]: ...


@dataclass
class Request:
    """An incoming HTTP request."""

    method: str
    path: str
    body: bytes = b""
    local_address: str = ""
    headers: Mapping[str, str] = field(default_factory=dict)


@dataclass
class Response:
    """An HTTP response with an optional JSON body."""

    status: HTTPStatus = HTTPStatus.OK
    body: Optional[dict[str, Any]] = None

    @property
    def data(self) -> bytes:
        """The body encoded as compact JSON, empty when there is no body."""
        if self.body is None:
            return b""
        return json.dumps(self.body, separators=(",", ":")).encode("utf-8")


def is_valid_mac(mac: str) -> bool:
    """Whether ``mac`` is six hex pairs joined consistently by ':' or '-'."""
    return _MAC_RE.fullmatch(mac) is not None


def _os_type() -> str:
    if sys.platform.startswith("win"):
        return "Windows"
    if sys.platform.startswith("linux"):
        return "Linux"
    return "Other"


def _reject_constant(name: str) -> Any:
    raise ValueError(f"invalid JSON constant {name}")


def _request_json_object(request: Request) -> dict[str, Any]:
    """Decode the body as a JSON object; an empty dict stands for anything unusable."""
    try:
        data = json.loads(request.body.decode("utf-8"), parse_constant=_reject_constant)
    except (UnicodeDecodeError, ValueError) as error:
        _log.warning("Failed to decode JSON data! Reason: %s | Body: %r", error, request.body)
        return {}
    if not isinstance(data, dict):
        return {}
    return data


def _get_string(json_object: Mapping[str, Any], key: str) -> Optional[str]:
    value = json_object.get(key)
    return value if isinstance(value, str) else None


def _get_bool(json_object: Mapping[str, Any], key: str) -> Optional[bool]:
    value = json_object.get(key)
    return value if isinstance(value, bool) else None


def _get_uint(json_object: Mapping[str, Any], key: str, minimum: int, maximum: int) -> Optional[int]:
    value = json_object.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if isinstance(value, float):
        if not value.is_integer():
            return None
        value = int(value)
    return value if minimum <= value <= maximum else None


def _get_change_state(json_object: Mapping[str, Any], key: str) -> Optional[_ChangePcState]:
    value = _get_string(json_object, key)
    if value is None:
        return None
    try:
        return _ChangePcState(value)
    except ValueError:
        return None


def _parse_u64(text: Optional[str]) -> Optional[int]:
    if text is None:
        return None
    match = _UNSIGNED_RE.fullmatch(text)
    if match is None:
        return None
    value = int(match.group(1))
    return value if value <= _UINT64_MAX else None


def _result(value: bool) -> Response:
    return Response(body={"result": value})


_BAD_REQUEST = HTTPStatus.BAD_REQUEST


class Router:
    """Dispatches requests to the pairing manager, PC control and Sunshine apps.

    ``is_authorized(request)`` decides whether a request may use protected routes.
    """

    def __init__(
        self,
        api_version: int,
        is_authorized: Callable[[Request], bool],
        pairing_manager: _PairingManager,
        pc_control,
        sunshine_apps: _SunshineApps,
        mac_address_override: str = "",
    ) -> None:
        self.api_version = api_version
        self._is_authorized = is_authorized
        self._pairing_manager = pairing_manager
        self._pc_control = pc_control
        self._sunshine_apps = sunshine_apps
        self.mac_address_override = mac_address_override

        handler = Callable[[Request], Response]
        public: dict[tuple[str, str], handler] = {
            ("GET", "/apiVersion"): self._api_version,
            ("POST", "/pair"): self._pair,
            ("POST", "/abortPairing"): self._abort_pairing,
        }
        protected: dict[tuple[str, str], handler] = {
            ("GET", "/pcState"): self._pc_state,
            ("POST", "/changePcState"): self._change_pc_state,
            ("GET", "/hostInfo"): self._host_info,
            ("GET", "/steamUiMode"): self._steam_ui_mode,
            ("GET", "/nonSteamAppData"): self._non_steam_app_data,
            ("POST", "/launchSteam"): self._launch_steam,
            ("POST", "/launchSteamApp"): self._launch_steam_app,
            ("POST", "/closeSteam"): self._close_steam,
            ("GET", "/streamState"): self._stream_state,
            ("GET", "/streamedAppData"): self._streamed_app_data,
            ("POST", "/clearStreamedAppData"): self._clear_streamed_app_data,
            ("POST", "/endStream"): self._end_stream,
            ("GET", "/gameStreamAppNames"): self._game_stream_app_names,
        }
        self._routes: dict[tuple[str, str], tuple[handler, bool]] = {
            **{key: (value, False) for key, value in public.items()},
            **{key: (value, True) for key, value in protected.items()},
        }

    def handle(self, request: Request) -> Response:
        """Answer a request; unknown routes get 404."""
        response = self._dispatch(request)
        _log.debug(
            "\nRequest: %s %s | %r\nResponse: %d | %r",
            request.method,
            request.path,
            request.body,
            response.status,
            response.data,
        )
        return response

    def _dispatch(self, request: Request) -> Response:
        method = request.method.upper()
        path = request.path.split("?", 1)[0]

        if method == "GET":
            match = _PAIRING_STATE_RE.fullmatch(path)
            if match is not None:
                return self._pairing_state(unquote(match.group(1)))

        route = self._routes.get((method, path))
        if route is None:
            return Response(status=HTTPStatus.NOT_FOUND)

        handler, needs_auth = route
        if needs_auth and not self._is_authorized(request):
            return Response(status=HTTPStatus.UNAUTHORIZED)
        return handler(request)

    def _api_version(self, _request: Request) -> Response:
        return Response(body={"version": self.api_version})

    def _pairing_state(self, client_id: str) -> Response:
        if self._pairing_manager.is_paired(client_id):
            state = _PairingState.PAIRED
        elif self._pairing_manager.is_pairing(client_id):
            state = _PairingState.PAIRING
        else:
            state = _PairingState.NOT_PAIRED
        return Response(body={"state": state.value})

    def _pair(self, request: Request) -> Response:
        data = _request_json_object(request)
        client_id = _get_string(data, "id")
        hashed_id = _get_string(data, "hashed_id")
        if not data or client_id is None or hashed_id is None:
            return Response(status=_BAD_REQUEST)
        return _result(self._pairing_manager.start_pairing(client_id, hashed_id))

    def _abort_pairing(self, request: Request) -> Response:
        data = _request_json_object(request)
        client_id = _get_string(data, "id")
        if not data or client_id is None:
            return Response(status=_BAD_REQUEST)
        return _result(self._pairing_manager.abort_pairing(client_id))

    def _pc_state(self, _request: Request) -> Response:
        return Response(body={"state": self._pc_control.get_pc_state().value})

    def _change_pc_state(self, request: Request) -> Response:
        data = _request_json_object(request)
        state = _get_change_state(data, "state")
        delay = _get_uint(data, "delay", _MIN_DELAY, _MAX_DELAY)
        if not data or state is None or delay is None:
            return Response(status=_BAD_REQUEST)

        actions = {
            _ChangePcState.RESTART: self._pc_control.restart_pc,
            _ChangePcState.SHUTDOWN: self._pc_control.shutdown_pc,
            _ChangePcState.SUSPEND: self._pc_control.suspend_or_hibernate_pc,
        }
        return _result(actions[state](delay))

    def _host_info(self, request: Request) -> Response:
        mac = self.mac_address_override or get_mac_address(request.local_address)
        if not mac:
            _log.warning("could not retrieve MAC address!")
            return Response(status=HTTPStatus.INTERNAL_SERVER_ERROR)
        if not is_valid_mac(mac):
            _log.warning("MAC address is invalid: %s", mac)
            return Response(status=HTTPStatus.INTERNAL_SERVER_ERROR)
        return Response(body={"mac": mac.replace("-", ":"), "os": _os_type()})

    def _steam_ui_mode(self, _request: Request) -> Response:
        return Response(body={"mode": self._pc_control.get_steam_ui_mode().value})

    def _non_steam_app_data(self, request: Request) -> Response:
        data = _request_json_object(request)
        user_id = _parse_u64(_get_string(data, "user_id"))
        if not data or user_id is None:
            return Response(status=_BAD_REQUEST)

        apps = self._pc_control.get_non_steam_app_data(user_id)
        if apps is None:
            return Response(body={"data": None})
        return Response(
            body={"data": [{"app_id": str(app_id), "app_name": name} for app_id, name in sorted(apps.items())]}
        )

    def _launch_steam(self, request: Request) -> Response:
        data = _request_json_object(request)
        big_picture_mode = _get_bool(data, "big_picture_mode")
        if not data or big_picture_mode is None:
            return Response(status=_BAD_REQUEST)
        return _result(self._pc_control.launch_steam(big_picture_mode))

    def _launch_steam_app(self, request: Request) -> Response:
        data = _request_json_object(request)
        app_id = _parse_u64(_get_string(data, "app_id"))
        if not data or app_id is None:
            return Response(status=_BAD_REQUEST)
        return _result(self._pc_control.launch_steam_app(app_id))

    def _close_steam(self, _request: Request) -> Response:
        return _result(self._pc_control.close_steam())

    def _stream_state(self, _request: Request) -> Response:
        return Response(body={"state": self._pc_control.get_stream_state().value})

    def _streamed_app_data(self, _request: Request) -> Response:
        app_data = self._pc_control.get_app_data(None)
        if app_data is None:
            return Response(body={"data": None})
        app_id, app_state = app_data
        return Response(body={"data": {"app_id": str(app_id), "app_state": app_state.value}})

    def _clear_streamed_app_data(self, _request: Request) -> Response:
        return _result(self._pc_control.clear_app_data())

    def _end_stream(self, _request: Request) -> Response:
        return _result(self._pc_control.end_stream())

    def _game_stream_app_names(self, _request: Request) -> Response:
        names = self._sunshine_apps.load()
        if names is None:
            return Response(body={"appNames": None})
        return Response(body={"appNames": list(names)})