from __future__ import annotations

"""Foreground-application queries for the supported desktops.

A *desktop* answers questions about the OS window manager and performs
actions on running applications:

* ``frontmost_pid()`` – pid of the application that currently owns focus.
* ``frontmost_context()`` – the same application as a
  :class:`ipc.messages.SourceContext` (name, identity, pid).
* ``is_active(pid)`` – whether *pid* is the foreground application.
* ``activate(pid)`` – bring the given process's windows to the foreground.
* ``find_applications(identity)`` – running applications registered under
  a bundle identifier (macOS only; elsewhere the process table is enough).
* ``open_application(path, ...)`` – ask the OS launch service to start an
  application bundle and report the outcome asynchronously.

Every answer is a best-effort snapshot; callers must not assume it stays
valid after the call returns.  :func:`default_desktop` picks the
implementation for the running platform.
"""

import logging
import sys
from typing import Callable, List, Optional, Tuple

import psutil

from ipc.messages import SourceContext

__all__ = [
    "Desktop",
    "WindowsDesktop",
    "MacDesktop",
    "NullDesktop",
    "default_desktop",
]

_log = logging.getLogger(__name__)

#: ``on_done(pid, error_description)`` – exactly one of the two is meaningful.
OpenCallback = Callable[[Optional[int], Optional[str]], None]


class Desktop:
    """Interface shared by all platform desktops."""

    def frontmost_pid(self) -> Optional[int]:
        raise NotImplementedError

    def frontmost_context(self) -> SourceContext:
        pid = self.frontmost_pid()
        if pid is None:
            return SourceContext()
        return _context_from_pid(pid)

    def is_active(self, pid: int) -> bool:
        return self.frontmost_pid() == pid

    def activate(self, pid: int) -> bool:
        raise NotImplementedError

    def find_applications(self, identity: str) -> List[Tuple[int, str, str]]:
        """Return ``(pid, name, path)`` for applications registered as *identity*."""
        return []

    def open_application(self, path, *, activate: bool, on_done: OpenCallback) -> None:
        raise NotImplementedError(f"No application launch service on {sys.platform}")


def _context_from_pid(pid: int) -> SourceContext:
    """Describe *pid* via psutil, falling back to the defaults when it vanished."""
    try:
        proc = psutil.Process(pid)
        name = proc.name()
        try:
            exe = proc.exe()
        except (psutil.AccessDenied, psutil.ZombieProcess):
            exe = ""
    except (psutil.NoSuchProcess, psutil.AccessDenied):
        return SourceContext(process_id=pid)

    display_name = name[:-4] if name.lower().endswith(".exe") else name
    return SourceContext(app_name=display_name or "Unknown", bundle_id=exe or name, process_id=pid)


# ---------------------------------------------------------------------------
# Windows – user32 via ctypes
# ---------------------------------------------------------------------------
class WindowsDesktop(Desktop):
    """Foreground queries through ``user32`` (no pywin32 dependency)."""

    _SW_RESTORE = 9

    def __init__(self) -> None:
        import ctypes  # local import keeps non-Windows imports side-effect free
        from ctypes import wintypes

        self._ctypes = ctypes
        self._wintypes = wintypes
        self._user32 = ctypes.WinDLL("user32", use_last_error=True)  # type: ignore[attr-defined]

        self._user32.GetForegroundWindow.restype = wintypes.HWND
        self._user32.GetWindowThreadProcessId.argtypes = [
            wintypes.HWND,
            ctypes.POINTER(wintypes.DWORD),
        ]
        self._user32.GetWindowThreadProcessId.restype = wintypes.DWORD
        self._user32.IsWindowVisible.argtypes = [wintypes.HWND]
        self._user32.IsIconic.argtypes = [wintypes.HWND]
        self._user32.ShowWindow.argtypes = [wintypes.HWND, ctypes.c_int]
        self._user32.SetForegroundWindow.argtypes = [wintypes.HWND]
        self._user32.SetForegroundWindow.restype = wintypes.BOOL

    def _pid_of(self, hwnd) -> Optional[int]:
        pid = self._wintypes.DWORD()
        self._user32.GetWindowThreadProcessId(hwnd, self._ctypes.byref(pid))
        return int(pid.value) if pid.value else None

    def frontmost_pid(self) -> Optional[int]:
        hwnd = self._user32.GetForegroundWindow()
        if not hwnd:
            return None
        return self._pid_of(hwnd)

    def _top_level_windows(self, pid: int) -> list:
        ctypes = self._ctypes
        wintypes = self._wintypes
        found: list = []

        enum_proc_type = ctypes.WINFUNCTYPE(wintypes.BOOL, wintypes.HWND, wintypes.LPARAM)

        def _collect(hwnd, _lparam):
            if self._user32.IsWindowVisible(hwnd) and self._pid_of(hwnd) == pid:
                found.append(hwnd)
            return True

        self._user32.EnumWindows(enum_proc_type(_collect), 0)
        return found

    def activate(self, pid: int) -> bool:
        windows = self._top_level_windows(pid)
        if not windows:
            _log.debug("No visible top-level window for pid %s", pid)
            return False

        hwnd = windows[0]
        if self._user32.IsIconic(hwnd):
            self._user32.ShowWindow(hwnd, self._SW_RESTORE)
        if not self._user32.SetForegroundWindow(hwnd):
            _log.debug("SetForegroundWindow refused for pid %s", pid)
            return False
        return True


# ---------------------------------------------------------------------------
# macOS – AppKit through PyObjC
# ---------------------------------------------------------------------------
class MacDesktop(Desktop):
    """Query and drive running applications with ``NSWorkspace``.

    *AppKit* is imported on construction so the module stays importable on
    every platform.
    """

    # NSApplicationActivateAllWindows | NSApplicationActivateIgnoringOtherApps
    _ACTIVATE_OPTIONS = 1 | 2

    def __init__(self) -> None:
        import AppKit  # pylint: disable=import-outside-toplevel

        self._appkit = AppKit
        self._workspace = AppKit.NSWorkspace.sharedWorkspace()

    def _running_application(self, pid: int):
        return self._appkit.NSRunningApplication.runningApplicationWithProcessIdentifier_(int(pid))

    def frontmost_pid(self) -> Optional[int]:
        app = self._workspace.frontmostApplication()
        if app is None:
            return None
        return int(app.processIdentifier())

    def frontmost_context(self) -> SourceContext:
        app = self._workspace.frontmostApplication()
        if app is None:
            return SourceContext()
        return SourceContext(
            app_name=str(app.localizedName() or "Unknown"),
            bundle_id=str(app.bundleIdentifier() or ""),
            process_id=int(app.processIdentifier()),
        )

    def is_active(self, pid: int) -> bool:
        app = self._running_application(pid)
        return bool(app is not None and app.isActive())

    def activate(self, pid: int) -> bool:
        app = self._running_application(pid)
        if app is None or app.isTerminated():
            _log.debug("No running application for pid %s", pid)
            return False
        return bool(app.activateWithOptions_(self._ACTIVATE_OPTIONS))

    def find_applications(self, identity: str) -> List[Tuple[int, str, str]]:
        apps = self._appkit.NSRunningApplication.runningApplicationsWithBundleIdentifier_(identity) or []
        found = []
        for app in apps:
            if app.isTerminated():
                continue
            url = app.bundleURL()
            found.append(
                (
                    int(app.processIdentifier()),
                    str(app.localizedName() or identity),
                    str(url.path()) if url is not None else "",
                )
            )
        return found

    def open_application(self, path, *, activate: bool, on_done: OpenCallback) -> None:
        url = self._appkit.NSURL.fileURLWithPath_(str(path))
        configuration = self._appkit.NSWorkspaceOpenConfiguration.configuration()
        configuration.setActivates_(bool(activate))
        configuration.setAddsToRecentItems_(False)

        def _completion(app, error) -> None:
            # Called on a private dispatch queue, not on the event loop.
            if error is not None:
                on_done(None, str(error.localizedDescription()))
                return
            on_done(int(app.processIdentifier()) if app is not None else None, None)

        self._workspace.openApplicationAtURL_configuration_completionHandler_(url, configuration, _completion)


# ---------------------------------------------------------------------------
# Fallback
# ---------------------------------------------------------------------------
class NullDesktop(Desktop):
    """Desktop for platforms without a supported window manager API."""

    def frontmost_pid(self) -> Optional[int]:
        return None

    def activate(self, pid: int) -> bool:
        _log.debug("Foreground activation unsupported on %s (pid %s)", sys.platform, pid)
        return False


def default_desktop() -> Desktop:
    """Return the desktop matching :data:`sys.platform`."""
    if sys.platform == "win32":
        return WindowsDesktop()
    if sys.platform == "darwin":
        try:
            return MacDesktop()
        except ImportError as exc:
            _log.warning("AppKit unavailable (%s) – helper focus detection disabled", exc)
            return NullDesktop()
    _log.info("No foreground query support on %s – helper focus detection disabled", sys.platform)
    return NullDesktop()
