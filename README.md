# moondeckbuddy

A companion library for controlling a gaming PC and its Steam client from a
handheld. It finds the running Steam process, follows Steam's log files to
work out what the client and its games are doing, schedules power state
changes, and maps API requests to responses through a small router.

## What it does

- **Steam log tracking** – incremental readers for Steam's rotating log
  files. Each tracker reads the main file and its `.previous.txt` backup,
  skips entries written before a given start time and then only hands new
  lines to `on_log_changed`. The base class is
  `moondeckbuddy.logtracker.SteamLogTracker` (call `check_log()`
  periodically); `parse_log_time` and `app_id_from_string` are its helpers.
  - `moondeckbuddy.webhelperlog.SteamWebHelperLogTracker` reads
    `webhelper.txt`; its `ui_mode` is a `SteamUiMode` (`UNKNOWN`, `DESKTOP`,
    `BIG_PICTURE`).
  - `moondeckbuddy.contentlog.SteamContentLogTracker` reads
    `content_log.txt`; `get_app_state(app_id)` returns a `ContentAppState`
    (`STOPPED`, `RUNNING`, `UPDATING`).
  - `moondeckbuddy.gameprocesslog.SteamGameProcessLogTracker` reads
    `gameprocess_log.txt`; `is_any_process_running(app_id)`.
  - `moondeckbuddy.shaderlog.SteamShaderLogTracker` reads `shader_log.txt`;
    `is_app_compiling_shaders(app_id)`.
- **Process tracking** – `moondeckbuddy.processtracker.SteamProcessTracker`
  looks for the Steam executable among running processes (`is_steam_executable`),
  resolves the Steam directory (`find_steam_dir`) and owns one `LogTrackers`
  set per Steam session. Listeners in `process_state_changed` are called when
  Steam appears or goes away. It talks to the system through a
  `ProcessHandler`; `moondeckbuddy.procfs.NativeProcessHandler` implements
  that interface by reading a procfs directory (`/proc` by default) and
  sends SIGTERM (`close`) or SIGKILL (`terminate`) to a process and all its
  descendants (`get_related_pids`).
- **App watching** – `moondeckbuddy.appwatcher.get_app_state` combines the
  log trackers into one `AppState`; `SteamAppWatcher` follows a single app
  and only accepts a stop after it has been seen for several consecutive
  `check_state()` calls.
- **Steam control** – `moondeckbuddy.steamhandler.SteamHandler` launches
  Steam (optionally in Big Picture), launches apps by ID and tracks them,
  closes Steam, and reads a user's non-Steam shortcuts from
  `userdata/<id>/config/shortcuts.vdf`. Programs are started through a
  `launcher(executable, arguments, environment)` callable you provide.
  `scrape_shortcuts_vdf` and `user_dir_id` are usable on their own.
- **PC power state** – `moondeckbuddy.pcstate.PcStateHandler` schedules a
  shutdown, restart, suspend or hibernation after a grace period and reports
  a `PcState`. By default it schedules with daemon timer threads; a custom
  `scheduler(delay_in_seconds, callback)` can be passed instead.
- **PC control** – `moondeckbuddy.pccontrol.PcControl` ties the Steam
  handler, power state handler, stream state handler and autostart handler
  together; listeners in `show_tray_message` receive
  `(title, message, duration_ms)` when a power change is started.
- **Autostart** – `moondeckbuddy.autostart.AutoStartHandler` writes or removes
  a `<app_name>.desktop` entry in a given autostart directory;
  `autostart_contents` returns the entry text.
- **Networking** – `moondeckbuddy.networkinfo.get_mac_address` uses `psutil`
  to find the MAC address of the running interface that holds a local IP
  address.
- **Request routing** – `moondeckbuddy.routing.Router.handle` turns a
  `Request` into a `Response` for the API endpoints: `/apiVersion`,
  `/pairingState/<id>`, `/pair`, `/abortPairing`, `/pcState`,
  `/changePcState`, `/hostInfo`, `/steamUiMode`, `/nonSteamAppData`,
  `/launchSteam`, `/launchSteamApp`, `/closeSteam`, `/streamState`,
  `/streamedAppData`, `/clearStreamedAppData`, `/endStream` and
  `/gameStreamAppNames`. Unknown routes answer 404; protected routes answer
  401 unless your `is_authorized(request)` accepts the request.
  `is_valid_mac` checks a MAC address string.

## Example

Find a running Steam client and read its UI mode:

```python
from moondeckbuddy.procfs import NativeProcessHandler
from moondeckbuddy.processtracker import SteamProcessTracker

tracker = SteamProcessTracker(NativeProcessHandler("/proc"))
tracker.check_state()

if tracker.is_running():
    tracker.check_logs()
    print(tracker.log_trackers.web_helper.ui_mode)
```

Read non-Steam shortcuts from raw `shortcuts.vdf` bytes:

```python
from pathlib import Path
from moondeckbuddy.steamhandler import scrape_shortcuts_vdf

shortcuts = scrape_shortcuts_vdf(Path("shortcuts.vdf").read_bytes())
```

Validate a MAC address before reporting it to a client:

```python
from moondeckbuddy.routing import is_valid_mac

assert is_valid_mac("00:11:22:33:44:55")
```

## What this package does not do

- It has no command and starts no service. Nothing polls on its own: call
  `check_state()`, `check_logs()` and `SteamAppWatcher.check_state()`
  yourself at the interval you want.
- It does not listen on a network socket or handle TLS. `Router` only maps
  `Request` objects to `Response` objects; serving them is up to you.
- It keeps no store of paired clients and has no pairing logic; the router
  expects a pairing manager object with `is_paired`, `is_pairing`,
  `start_pairing` and `abort_pairing`.
- It does not read the list of game stream apps; the router expects an
  object whose `load()` returns the app names or None.
- It does not talk to the system's power manager; `PcStateHandler` expects a
  native handler offering `can_*_pc` and `*_pc` methods for shutdown,
  restart, suspend and hibernate.
- It does not track the stream itself; `PcControl` expects a stream state
  handler with `end_stream()` and `current_state`.
- It has no tray icon, settings file or log file of its own.

## Requirements

Python 3.10 or later on Linux. `psutil` is used for network interface
lookups; process information is read from `/proc`.

## Running the tests

Install the `test` extra and run `pytest` from the project root.