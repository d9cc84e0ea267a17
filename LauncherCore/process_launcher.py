from __future__ import annotations

"""Start the helper binary as a deferred event-loop work item.

:meth:`ProcessLauncher.launch` returns immediately; the actual spawn runs on
the event loop and its outcome is delivered to a callback as a
:class:`LaunchResult`.

Plain executables are started with :class:`subprocess.Popen`.  On macOS an
application bundle is handed to the desktop's launch service
(``NSWorkspace``), whose completion handler reports either the started
application or the OS's refusal.
"""

import asyncio
import logging
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional

from LauncherCore.errors import HelperNotInstalled, LaunchError, LaunchRejected
from LauncherCore.process_registry import ProcessHandle

__all__ = ["LaunchResult", "ProcessLauncher"]

LaunchCallback = Callable[["LaunchResult"], None]


@dataclass
class LaunchResult:
    """Structured result handed to the launch callback."""

    ok: bool
    """True when the OS accepted the process."""

    handle: Optional[ProcessHandle] = None
    """Handle of the started process – *None* when *ok* is False or the
    launch service did not report the application."""

    error: Optional[LaunchError] = None


class ProcessLauncher:
    """Spawn the helper on the event loop.

    Parameters
    ----------
    loop
        Event loop the launch and its callback run on; launches never run on
        the caller's stack.
    desktop
        :class:`LauncherCore.desktop.Desktop` used to open ``.app`` bundles
        on macOS.
    popen
        Injected for tests.
    platform
        Overrides :data:`sys.platform` (tests).
    """

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        *,
        desktop=None,
        popen: Callable[..., subprocess.Popen] = subprocess.Popen,
        platform: str | None = None,
    ) -> None:
        self._log = logging.getLogger(self.__class__.__name__)
        self._loop = loop
        self._desktop = desktop
        self._popen = popen
        self._platform = platform or sys.platform
        self._children: List[subprocess.Popen] = []

    def launch(
        self,
        path: str | Path,
        *,
        activate_on_launch: bool = True,
        callback: LaunchCallback,
    ) -> None:
        """Schedule a launch of *path*; *callback* receives the result."""
        self._loop.call_soon(self._launch_now, Path(path), activate_on_launch, callback)

    # ------------------------------------------------------------------
    # Implementation details
    # ------------------------------------------------------------------
    def _launch_now(self, path: Path, activate_on_launch: bool, callback: LaunchCallback) -> None:
        self._reap()
        if not path.exists():
            self._fail(HelperNotInstalled(path), callback)
            return

        if self._platform == "darwin" and path.suffix == ".app":
            self._open_bundle(path, activate_on_launch, callback)
            return

        try:
            handle = self._spawn(path)
        except LaunchError as exc:
            self._fail(exc, callback)
            return
        callback(LaunchResult(ok=True, handle=handle))

    def _spawn(self, path: Path) -> ProcessHandle:
        cmd = [str(path)]
        self._log.info("Launching helper: %s", cmd)
        try:
            proc = self._popen(
                cmd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                close_fds=True,
            )
        except OSError as exc:
            raise LaunchRejected(str(exc)) from exc

        self._children.append(proc)
        return ProcessHandle(pid=proc.pid, name=path.name, exe=str(path))

    def _open_bundle(self, path: Path, activate_on_launch: bool, callback: LaunchCallback) -> None:
        if self._desktop is None:
            self._fail(LaunchRejected("no application launch service available"), callback)
            return

        def _on_done(pid: Optional[int], error: Optional[str]) -> None:
            self._loop.call_soon_threadsafe(self._finish_open, path, pid, error, callback)

        self._log.info("Opening helper bundle: %s (activate=%s)", path, activate_on_launch)
        try:
            self._desktop.open_application(path, activate=activate_on_launch, on_done=_on_done)
        except Exception as exc:  # pylint: disable=broad-except
            self._fail(LaunchRejected(str(exc)), callback)

    def _finish_open(
        self,
        path: Path,
        pid: Optional[int],
        error: Optional[str],
        callback: LaunchCallback,
    ) -> None:
        if error is not None:
            self._fail(LaunchRejected(error), callback)
            return
        handle = ProcessHandle(pid=pid, name=path.stem, exe=str(path)) if pid else None
        callback(LaunchResult(ok=True, handle=handle))

    def _fail(self, error: LaunchError, callback: LaunchCallback) -> None:
        self._log.error("Failed to launch helper: %s", error)
        callback(LaunchResult(ok=False, error=error))

    def _reap(self) -> None:
        """Collect exit status of children that already terminated."""
        self._children = [proc for proc in self._children if proc.poll() is None]
