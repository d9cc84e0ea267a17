import inspect
import sys
from pathlib import Path

import psutil
import pytest

# Ensure repo root is on sys.path when running via `python -m pytest` from subdir
ROOT_DIR = Path(inspect.getfile(inspect.currentframe())).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from LauncherCore.desktop import Desktop  # noqa: E402
from LauncherCore.process_registry import ProcessHandle, ProcessRegistry, matches_identity  # noqa: E402


class _FakeProc:  # pylint: disable=too-few-public-methods
    def __init__(self, pid, name, exe="", status=psutil.STATUS_RUNNING):
        self.info = {"pid": pid, "name": name, "exe": exe, "status": status}


class _FakeDesktop(Desktop):
    def __init__(self, frontmost=None, *, fail=False, applications=()):
        self.frontmost = frontmost
        self.activated = []
        self.applications = list(applications)
        self._fail = fail

    def frontmost_pid(self):
        if self._fail:
            raise OSError("window server unavailable")
        return self.frontmost

    def activate(self, pid):
        if self._fail:
            raise OSError("window server unavailable")
        self.activated.append(pid)
        return True

    def find_applications(self, identity):
        if self._fail:
            raise OSError("window server unavailable")
        return [(pid, name, path) for pid, name, path, bundle_id in self.applications if bundle_id == identity]


@pytest.fixture()
def process_table(monkeypatch):
    """Replace psutil.process_iter with a mutable in-memory table."""
    table = []

    def _fake_iter(attrs=None):  # noqa: ARG001 – signature match
        return iter(list(table))

    monkeypatch.setattr(psutil, "process_iter", _fake_iter)
    return table


@pytest.mark.parametrize(
    "name, exe, expected",
    [
        ("PluginHost", "", True),
        ("pluginhost.EXE", "", True),
        ("", r"C:\Apps\PluginHost.exe", True),
        ("python3", "/usr/bin/python3", False),
        ("PluginHostUpdater", "", False),
    ],
)
def test_matches_identity(name, exe, expected):
    assert matches_identity("PluginHost", name, exe) is expected


def test_find_running_absent_returns_none(process_table):
    process_table.append(_FakeProc(10, "Finder"))

    assert ProcessRegistry(_FakeDesktop()).find_running("PluginHost") is None


def test_find_running_picks_lowest_pid(process_table):
    process_table.extend(
        [
            _FakeProc(900, "PluginHost", "/opt/PluginHost"),
            _FakeProc(300, "PluginHost", "/opt/PluginHost"),
            _FakeProc(100, "Finder"),
        ]
    )

    handle = ProcessRegistry(_FakeDesktop()).find_running("PluginHost")

    assert handle == ProcessHandle(pid=300, name="PluginHost", exe="/opt/PluginHost")


def test_find_running_skips_zombies(process_table):
    process_table.append(_FakeProc(42, "PluginHost", status=psutil.STATUS_ZOMBIE))

    assert ProcessRegistry(_FakeDesktop()).find_running("PluginHost") is None


def test_find_running_matches_bundle_identifier(process_table):
    """On macOS the helper is found by bundle id even though its process name differs."""
    process_table.append(_FakeProc(900, "PluginHost", "/Apps/PluginHost.app/Contents/MacOS/PluginHost"))
    desktop = _FakeDesktop(
        applications=[(900, "PluginHost", "/Apps/PluginHost.app", "im.rime.plugin.host")],
    )

    handle = ProcessRegistry(desktop).find_running("im.rime.plugin.host")

    assert handle == ProcessHandle(pid=900, name="PluginHost", exe="/Apps/PluginHost.app")


def test_find_running_merges_desktop_and_process_table(process_table):
    process_table.append(_FakeProc(300, "PluginHost"))
    desktop = _FakeDesktop(applications=[(450, "PluginHost", "", "PluginHost")])

    assert ProcessRegistry(desktop).find_running("PluginHost").pid == 300


def test_application_lookup_failure_falls_back_to_process_table(process_table):
    process_table.append(_FakeProc(55, "PluginHost"))

    assert ProcessRegistry(_FakeDesktop(fail=True)).find_running("PluginHost").pid == 55


def test_find_running_never_caches(process_table):
    registry = ProcessRegistry(_FakeDesktop())
    assert registry.find_running("PluginHost") is None

    process_table.append(_FakeProc(55, "PluginHost"))

    assert registry.find_running("PluginHost").pid == 55


def test_is_foreground_active():
    handle = ProcessHandle(pid=55, name="PluginHost")

    assert ProcessRegistry(_FakeDesktop(frontmost=55)).is_foreground_active(handle) is True
    assert ProcessRegistry(_FakeDesktop(frontmost=7)).is_foreground_active(handle) is False
    assert ProcessRegistry(_FakeDesktop(frontmost=None)).is_foreground_active(handle) is False


def test_foreground_query_failure_reads_as_background():
    handle = ProcessHandle(pid=55, name="PluginHost")

    assert ProcessRegistry(_FakeDesktop(fail=True)).is_foreground_active(handle) is False


def test_activate_delegates_to_desktop():
    desktop = _FakeDesktop()

    assert ProcessRegistry(desktop).activate(ProcessHandle(pid=55, name="PluginHost")) is True
    assert desktop.activated == [55]


def test_activate_failure_returns_false():
    assert ProcessRegistry(_FakeDesktop(fail=True)).activate(ProcessHandle(pid=55, name="PluginHost")) is False


def test_terminate_running_process(monkeypatch):
    terminated = []

    class _Proc:  # pylint: disable=too-few-public-methods
        def __init__(self, pid):
            self.pid = pid

        def terminate(self):
            terminated.append(self.pid)

    monkeypatch.setattr(psutil, "Process", _Proc)

    assert ProcessRegistry(_FakeDesktop()).terminate(ProcessHandle(pid=55, name="PluginHost")) is True
    assert terminated == [55]


def test_terminate_vanished_process(monkeypatch):
    def _gone(pid):
        raise psutil.NoSuchProcess(pid)

    monkeypatch.setattr(psutil, "Process", _gone)

    assert ProcessRegistry(_FakeDesktop()).terminate(ProcessHandle(pid=55, name="PluginHost")) is False
