import os
import sys
from pathlib import Path

import pytest

# Ensure repo root is on sys.path when running via `python -m pytest` from subdir
import inspect
ROOT_DIR = Path(inspect.getfile(inspect.currentframe())).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from LauncherCore.errors import HelperNotInstalled  # noqa: E402
from LauncherCore.resource_manager import (  # noqa: E402
    _determine_base_path,
    default_helper_identity,
    default_helper_subpath,
    resolve_helper_path,
    resource_path,
)


@pytest.fixture()
def temporary_dir(tmp_path):
    """Return the temporary directory provided by pytest as *Path*."""
    return tmp_path


@pytest.fixture()
def frozen_bundle(monkeypatch, temporary_dir):
    """Simulate a PyInstaller environment rooted at *temporary_dir*."""
    monkeypatch.setattr(sys, "frozen", True, raising=False)
    monkeypatch.setattr(sys, "_MEIPASS", str(temporary_dir), raising=False)
    return temporary_dir


def test_dev_mode_path_resolution():
    """When *not* frozen, ``resource_path`` should resolve inside repo root."""
    # GIVEN we are in development mode (no special flags set)
    assert not getattr(sys, "frozen", False), "Test assumes interpreter is not frozen!"

    base = _determine_base_path()
    # THEN base path should be the repository root directory
    assert (base / "LauncherCore").is_dir(), "Expected package folder under repo root"

    # AND resource_path("") should return the same base path
    assert resource_path("") == base


def test_frozen_mode_path_resolution(frozen_bundle):
    """In frozen mode, helper should use *sys._MEIPASS* to build paths."""
    dummy_abs_path = Path(frozen_bundle) / "dummy.txt"
    dummy_abs_path.write_text("dummy", encoding="utf-8")

    resolved_path = resource_path("dummy.txt")

    assert resolved_path == dummy_abs_path.resolve()
    assert resolved_path.read_text(encoding="utf-8") == "dummy"


@pytest.mark.parametrize(
    "platform, expected",
    [
        ("win32", "helpers/PluginHost/PluginHost.exe"),
        ("darwin", "Contents/Library/LoginItems/PluginHost.app"),
        ("linux", "helpers/PluginHost/PluginHost"),
    ],
)
def test_default_helper_subpath(platform, expected):
    assert default_helper_subpath(platform) == expected


@pytest.mark.parametrize(
    "platform, expected",
    [("darwin", "im.rime.plugin.host"), ("win32", "PluginHost"), ("linux", "PluginHost")],
)
def test_default_helper_identity(platform, expected):
    assert default_helper_identity(platform) == expected


def test_resolve_helper_path_existing(frozen_bundle):
    """An existing helper resolves to an absolute path inside the bundle."""
    helper = frozen_bundle / "bin" / "PluginHost"
    helper.parent.mkdir()
    helper.write_text("", encoding="utf-8")

    resolved = resolve_helper_path("bin/PluginHost")

    assert resolved == helper.resolve()
    assert resolved.is_absolute()


def test_resolve_helper_path_missing(frozen_bundle):
    """A missing helper raises HelperNotInstalled carrying the path."""
    with pytest.raises(HelperNotInstalled) as excinfo:
        resolve_helper_path("bin/PluginHost")

    assert excinfo.value.code == "not_found"
    assert Path(excinfo.value.path) == (frozen_bundle / "bin" / "PluginHost").resolve()
    # Resolution is read-only.
    assert not (frozen_bundle / "bin").exists()
