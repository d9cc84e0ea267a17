"""Resource helper utilities.

This module centralises the logic for locating files that ship *next to* the
launcher – most importantly the helper binary.  In the normal development
environment (running the source checkout directly) they live on disk relative
to the repository root.  Once the application is packaged with
**PyInstaller** the installation root is the unpacked bundle exposed via the
:pydataattr:`sys._MEIPASS` attribute.

>>> resource_path("helpers/PluginHost/PluginHost.exe")
PosixPath('/abs/path/to/helpers/PluginHost/PluginHost.exe')

:func:`resolve_helper_path` adds the existence check required before any
launch attempt and raises :class:`LauncherCore.errors.HelperNotInstalled`
when the helper is missing.
"""
from __future__ import annotations

import sys
import os
from pathlib import Path
from typing import Union, AnyStr

from LauncherCore.errors import HelperNotInstalled

__all__ = ["resource_path", "default_helper_subpath", "default_helper_identity", "resolve_helper_path"]

_PathLike = Union[str, Path, 'os.PathLike[AnyStr]']  # noqa: UP035 – Python < 3.12 compatibility

#: Helper location relative to the installation root, per platform.
_HELPER_SUBPATHS = {
    "win32": "helpers/PluginHost/PluginHost.exe",
    "darwin": "Contents/Library/LoginItems/PluginHost.app",
}
_DEFAULT_HELPER_SUBPATH = "helpers/PluginHost/PluginHost"

#: macOS keys running applications by bundle identifier, elsewhere by
#: executable name.
_HELPER_IDENTITIES = {
    "darwin": "im.rime.plugin.host",
}
_DEFAULT_HELPER_IDENTITY = "PluginHost"


def _determine_base_path() -> Path:
    """Return the directory that forms the installation root.

    * In **frozen** mode (PyInstaller, cx_Freeze, etc.) we rely on the private
      :pydataattr:`sys._MEIPASS` path exposed by the bootloader.
    * Otherwise we assume we are running from an editable source checkout and
      take the parent directory of the *LauncherCore* package.
    """
    if getattr(sys, "frozen", False) and hasattr(sys, "_MEIPASS"):
        # noinspection PyProtectedMember
        return Path(sys._MEIPASS)  # type: ignore[arg-type] – provided by bootloader

    return Path(__file__).resolve().parent.parent


def resource_path(relative_path: _PathLike) -> Path:
    """Resolve *relative_path* against the installation root.

    The returned :class:`~pathlib.Path` is **always absolute**.  An empty
    string returns the root directory itself.
    """

    base_path = _determine_base_path()
    return (base_path / Path(relative_path)).resolve()


def default_helper_subpath(platform: str | None = None) -> str:
    """Return the platform's default helper location below the install root."""
    return _HELPER_SUBPATHS.get(platform or sys.platform, _DEFAULT_HELPER_SUBPATH)


def default_helper_identity(platform: str | None = None) -> str:
    return _HELPER_IDENTITIES.get(platform or sys.platform, _DEFAULT_HELPER_IDENTITY)


def resolve_helper_path(relative_path: _PathLike | None = None) -> Path:
    """Return the absolute helper path or raise :class:`HelperNotInstalled`.

    Pure apart from the ``exists()`` check: nothing is created or started.
    """
    path = resource_path(relative_path or default_helper_subpath())
    if not path.exists():
        raise HelperNotInstalled(path)
    return path
