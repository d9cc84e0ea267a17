from __future__ import annotations

"""User-facing error surface for the launcher.

On Windows the **windows-toasts** package displays native toast
notifications.  On macOS errors are shown as a modal warning ``NSAlert``
through PyObjC.  When neither backend is usable (WinRT missing, AppKit not
installed, other platforms) the manager degrades gracefully by logging the
message at the level matching its severity instead of raising.

The coordinator only supplies the text and a severity; presentation is
entirely decided here.
"""

import logging
import sys
from typing import Optional

# ---------------------------------------------------------------------------
# Optional Windows-specific dependency
# ---------------------------------------------------------------------------
try:
    # Importing may succeed on non-Windows but runtime calls could still fail.
    from windows_toasts import Toast, WindowsToaster  # type: ignore

    _WINRT_IMPORT_SUCCESS = True
except Exception as exc:  # pragma: no cover – not an error, we fall back
    logging.getLogger(__name__).info("Windows toast notifications unavailable: %s", exc)
    Toast = None  # type: ignore[assignment]
    WindowsToaster = None  # type: ignore[assignment]
    _WINRT_IMPORT_SUCCESS = False

__all__ = ["NotificationManager"]

_SEVERITY_LEVELS = {
    "info": logging.INFO,
    "warning": logging.WARNING,
    "critical": logging.ERROR,
}


class _StubToast:  # pylint: disable=too-few-public-methods
    """Attribute-compatible stand-in used when *Toast* could not be imported."""

    def __init__(self) -> None:
        self.text_fields: list = []


class NotificationManager:  # pylint: disable=too-few-public-methods
    """Runtime helper responsible for user-visible alerts."""

    #: Title shown on every launcher error
    _ERROR_TITLE = "AI Plugin Error"

    def __init__(
        self,
        app_name: str = "Plugin Host Launcher",
        *,
        show_notifications: bool | None = None,
        platform: str | None = None,
    ) -> None:
        """Create a new *NotificationManager*.

        Parameters
        ----------
        app_name
            Friendly application name displayed by Windows.
        show_notifications
            Master on/off switch.  When *False*, no attempt is made to display
            UI toasts or alerts even if a backend is installed.
        platform
            Overrides :data:`sys.platform` (tests).
        """

        self._log = logging.getLogger(self.__class__.__name__)
        self._app_name = app_name
        self._platform = platform or sys.platform
        self._alerts_enabled = show_notifications is not False

        self._toaster: Optional["WindowsToaster"]
        if _WINRT_IMPORT_SUCCESS and show_notifications is not False:
            try:
                # WindowsToaster may still raise if underlying WinRT APIs are
                # inaccessible (e.g., running under Wine or Linux CI).
                self._toaster = WindowsToaster(app_name)  # type: ignore[arg-type]
            except Exception as exc:  # pragma: no cover – runtime environment
                self._log.info("Disabling toast support – runtime error: %s", exc)
                self._toaster = None
        else:
            self._toaster = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def show_error(self, message: str, *, severity: str = "warning", error: Exception | None = None) -> None:
        """Alert the user that a helper launch failed.

        *error* is only used for the log record; the user sees *message*.
        """
        level = _SEVERITY_LEVELS.get(severity, logging.WARNING)
        self._log.log(level, "%s: %s", self._ERROR_TITLE, message, exc_info=error)
        if self._platform == "darwin":
            self._show_alert(self._ERROR_TITLE, message)
        else:
            self._show_toast(self._ERROR_TITLE, message)

    def show_status(self, message: str) -> None:
        """Informational toast, e.g. when the global hotkey is unavailable."""
        self._log.info("%s", message)
        self._show_toast(self._app_name, message)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _show_toast(self, title: str, message: str) -> None:
        if not self._toaster:
            self._log.debug("Toast suppressed (not supported). Body: %s", message)
            return

        toast = _StubToast() if Toast is None else Toast()  # type: ignore[call-arg]
        toast.text_fields = [title, message]

        try:
            self._toaster.show_toast(toast)  # type: ignore[arg-type]
            self._log.debug("Toast shown successfully")
        except Exception as exc:  # pragma: no cover – runtime path
            # Do *not* raise – silently degrade to logfile only.
            self._log.warning("Failed to display toast: %s", exc)

    def _show_alert(self, title: str, message: str) -> None:
        if not self._alerts_enabled:
            self._log.debug("Alert suppressed (notifications disabled). Body: %s", message)
            return
        try:
            import AppKit  # pylint: disable=import-outside-toplevel
        except ImportError as exc:
            self._log.info("AppKit unavailable – alert suppressed: %s", exc)
            return

        try:
            AppKit.NSApplication.sharedApplication()
            alert = AppKit.NSAlert.alloc().init()
            alert.setMessageText_(title)
            alert.setInformativeText_(message)
            alert.setAlertStyle_(AppKit.NSAlertStyleWarning)
            alert.addButtonWithTitle_("OK")
            alert.runModal()
        except Exception as exc:  # pragma: no cover – runtime path
            self._log.warning("Failed to display alert: %s", exc)
