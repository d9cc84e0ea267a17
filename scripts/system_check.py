#!/usr/bin/env python3
"""Environment validation script for the plugin host launcher.

Performs every runtime check the launcher depends on:

1. Python 3.10 or newer.
2. ``psutil`` importable and able to enumerate processes.
3. ``keyboard`` importable (global hotkey hook).
4. Foreground queries for this platform that can see the focused app.
5. The helper binary present at the configured location.
6. The activation channel able to bind its ZeroMQ publisher endpoint.

Exit status:
    0 → every check passed.
    1 → one or more checks failed (human-readable explanation printed).

Usage::

    python scripts/system_check.py

A successful run prints a concise summary similar to::

    ✔ Python 3.11.9 OK
    ✔ psutil 5.9.8 sees 312 processes
    ✔ keyboard 0.13.5 import OK
    ✔ Foreground app: Finder (com.apple.finder), pid 123
    ✔ Helper found at /Applications/Launcher.app/Contents/Library/LoginItems/PluginHost.app
    ✔ Activation channel bound on tcp://127.0.0.1:47811

"""
from __future__ import annotations

import sys
from pathlib import Path
from typing import Final

# Allow running from a source checkout without installation.
ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

GREEN: Final[str] = "\033[92m"
RED: Final[str] = "\033[91m"
RESET: Final[str] = "\033[0m"
CHECK: Final[str] = "✔"
CROSS: Final[str] = "✖"


class CheckError(RuntimeError):
    """Raised when an individual system check fails."""


def _print_ok(msg: str) -> None:
    try:
        print(f"{GREEN}{CHECK} {msg}{RESET}")
    except UnicodeEncodeError:
        # Terminals without the tick character (Windows cp1252 consoles)
        print(f"[OK] {msg}")


def _print_fail(msg: str) -> None:
    try:
        print(f"{RED}{CROSS} {msg}{RESET}")
    except UnicodeEncodeError:
        print(f"[FAIL] {msg}")


def _require_python(minimum: tuple[int, int]) -> None:
    if sys.version_info[:2] < minimum:
        raise CheckError(
            f"Python {minimum[0]}.{minimum[1]}+ is required, but running {sys.version.split()[0]}"
        )
    _print_ok(f"Python {sys.version.split()[0]} OK")


def _require_psutil() -> None:
    try:
        import psutil
    except ImportError as exc:  # pragma: no cover
        raise CheckError("psutil is not installed – run `pip install -e .`") from exc

    count = len(psutil.pids())
    _print_ok(f"psutil {psutil.__version__} sees {count} processes")


def _require_keyboard() -> None:
    try:
        import keyboard  # noqa: F401
    except ImportError as exc:
        raise CheckError("keyboard is not installed – global hotkey unavailable") from exc
    except Exception as exc:  # noqa: BLE001 – e.g. missing root on Linux
        raise CheckError(f"keyboard failed to initialise: {exc}") from exc

    _print_ok(f"keyboard {getattr(keyboard, 'version', '?')} import OK")


def _require_foreground_query() -> None:
    from LauncherCore.desktop import NullDesktop, default_desktop

    desktop = default_desktop()
    if isinstance(desktop, NullDesktop):
        raise CheckError(f"No foreground query support on {sys.platform} – show/hide detection disabled")

    context = desktop.frontmost_context()
    if context.process_id < 0:
        raise CheckError("Foreground query returned no application (is pyobjc-framework-Cocoa installed?)")
    _print_ok(f"Foreground app: {context.app_name} ({context.bundle_id}), pid {context.process_id}")


def _require_helper() -> None:
    from LauncherCore.config_manager import ConfigManager
    from LauncherCore.errors import HelperNotInstalled
    from LauncherCore.resource_manager import resolve_helper_path

    config = ConfigManager()
    try:
        path = resolve_helper_path(config.get("helper_relative_path") or None)
    except HelperNotInstalled as exc:
        raise CheckError(str(exc)) from exc
    _print_ok(f"Helper found at {path}")


def _require_channel_endpoint() -> None:
    import zmq

    from ipc.channel import DEFAULT_ENDPOINT
    from LauncherCore.config_manager import ConfigManager

    endpoint = str(ConfigManager().get("channel_endpoint") or DEFAULT_ENDPOINT)
    sock = zmq.Context.instance().socket(zmq.PUB)
    try:
        sock.bind(endpoint)
    except zmq.ZMQError as exc:
        raise CheckError(f"Activation channel endpoint {endpoint} unavailable: {exc}") from exc
    finally:
        sock.close(linger=0)
    _print_ok(f"Activation channel bound on {endpoint} (pyzmq {zmq.pyzmq_version()})")


def main() -> None:  # noqa: D401 – simple glue function
    failures: list[str] = []

    checks = [
        lambda: _require_python((3, 10)),
        _require_psutil,
        _require_keyboard,
        _require_foreground_query,
        _require_helper,
        _require_channel_endpoint,
    ]

    for check in checks:
        try:
            check()
        except CheckError as err:
            _print_fail(str(err))
            failures.append(str(err))
        except Exception as exc:  # noqa: BLE001 – catch-all for unexpected issues
            _print_fail(f"Unexpected error: {exc}")
            failures.append(str(exc))

    if failures:
        print("\nOne or more checks failed. Please resolve the issues above and re-run the script.")
        sys.exit(1)

    try:
        print("\nAll system checks passed! ✨")
    except UnicodeEncodeError:
        print("\nAll system checks passed!")
    sys.exit(0)


if __name__ == "__main__":
    main()
