from __future__ import annotations

"""OS process-table queries for the helper process.

The registry never caches: every call re-reads the process table through
:mod:`psutil` (and the foreground state through a
:class:`LauncherCore.desktop.Desktop`).  A helper that is not running
is the expected ``None`` case, not an error.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import psutil

__all__ = ["ProcessHandle", "ProcessRegistry", "matches_identity"]


@dataclass(frozen=True)
class ProcessHandle:
    """Snapshot of a running process – may be stale as soon as it is returned."""

    pid: int
    name: str
    exe: str = ""


def _normalise(name: str) -> str:
    name = name.casefold()
    if name.endswith(".exe"):
        name = name[:-4]
    return name


def matches_identity(identity: str, name: str, exe: str = "") -> bool:
    """Return *True* when a process *name* / *exe* pair names *identity*.

    The comparison is case-insensitive and ignores a trailing ``.exe`` so the
    same identity string works on every platform.
    """
    wanted = _normalise(identity)
    if name and _normalise(name) == wanted:
        return True
    if exe:
        stem = exe.replace("\\", "/").rsplit("/", 1)[-1]
        return _normalise(stem) == wanted
    return False


class ProcessRegistry:
    """Find the helper process and inspect / drive its foreground state."""

    def __init__(self, desktop) -> None:
        self._log = logging.getLogger(self.__class__.__name__)
        self._desktop = desktop

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def find_running(self, identity: str) -> Optional[ProcessHandle]:
        """Return the lowest-pid live process matching *identity*, else *None*.

        Applications the desktop knows under *identity* (a macOS bundle
        identifier) count as matches alongside process-table name matches.
        """
        matches = {}
        try:
            for pid, name, path in self._desktop.find_applications(identity):
                matches[pid] = ProcessHandle(pid=pid, name=name, exe=path)
        except Exception as exc:  # pylint: disable=broad-except
            self._log.warning("Application lookup for %s failed: %s", identity, exc)

        for proc in psutil.process_iter(["pid", "name", "exe", "status"]):
            info = proc.info
            if info.get("status") == psutil.STATUS_ZOMBIE:
                continue
            name = info.get("name") or ""
            exe = info.get("exe") or ""
            pid = int(info["pid"])
            if pid not in matches and matches_identity(identity, name, exe):
                matches[pid] = ProcessHandle(pid=pid, name=name, exe=exe)

        if not matches:
            return None
        return matches[min(matches)]

    def is_foreground_active(self, handle: ProcessHandle) -> bool:
        """Return *True* iff *handle* is the OS foreground process right now."""
        try:
            return bool(self._desktop.is_active(handle.pid))
        except Exception as exc:  # pylint: disable=broad-except
            self._log.warning("Foreground query failed – assuming background: %s", exc)
            return False

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------
    def activate(self, handle: ProcessHandle) -> bool:
        """Bring *handle* to the foreground.  Returns *False* when refused."""
        try:
            activated = bool(self._desktop.activate(handle.pid))
        except Exception as exc:  # pylint: disable=broad-except
            self._log.warning("Activating pid %s failed: %s", handle.pid, exc)
            return False
        self._log.debug("Activate pid %s → %s", handle.pid, activated)
        return activated

    def terminate(self, handle: ProcessHandle) -> bool:
        """Ask the OS to terminate *handle*.  A vanished process is a no-op."""
        try:
            psutil.Process(handle.pid).terminate()
        except psutil.NoSuchProcess:
            self._log.debug("Process %s already gone", handle.pid)
            return False
        except psutil.AccessDenied as exc:
            self._log.warning("Not allowed to terminate pid %s: %s", handle.pid, exc)
            return False
        self._log.info("Terminated helper process %s (pid %s)", handle.name, handle.pid)
        return True
