from __future__ import annotations

"""Global hotkey registration wrapper.

This module provides a thin layer around the *keyboard* package to:

1. Register the global hotkey defined in
   :class:`LauncherCore.config_manager.ConfigManager` (key ``hotkey``).
2. Expose *start* / *stop* helpers for predictable lifecycle management and
   the installed handle for teardown bookkeeping.
3. Support *reload()* so a SIGHUP config reload re-registers a changed
   hotkey string without restarting the launcher.
4. Report whether each fired event was *handled*: the activation callback
   returns *False* when it declined the event (e.g. mid-composition).

Registration failures are logged rather than raised so the launcher keeps
running when the keyboard hook cannot be installed (CI, headless sessions,
missing permissions).

The implementation avoids importing *keyboard* at module level so unit tests
can stub the library before the first import.
"""

import logging
from typing import Callable, Optional

__all__ = ["HotkeyManager"]

DEFAULT_HOTKEY = "ctrl+shift+space"


class HotkeyManager:  # pylint: disable=too-few-public-methods
    """Register and manage a single global hotkey.

    Parameters
    ----------
    config_manager
        Instance of :class:`LauncherCore.config_manager.ConfigManager` (or
        any duck-typed alternative exposing *get()* / *reload()*).
    on_activate
        Callback invoked when the hotkey fires.  Returns *True* when the
        event was handled; *None* counts as handled.
    suppress
        If *True*, the combination is blocked system-wide (see
        keyboard.add_hotkey docs).  Defaults to *False* so the keys still
        reach other consumers whenever the launcher declines the event.
    """

    def __init__(
        self,
        config_manager,
        on_activate: Callable[[], Optional[bool]],
        *,
        suppress: bool = False,
    ) -> None:
        self._config = config_manager
        self._callback = on_activate
        self._suppress = suppress

        self._hotkey_handle: Optional[object] = None
        self._current_hotkey: Optional[str] = None

    # ------------------------------------------------------------------
    # Public helpers
    # ------------------------------------------------------------------
    @property
    def handle(self) -> Optional[object]:
        """Handle returned by the keyboard library, *None* when not registered."""
        return self._hotkey_handle

    @property
    def hotkey(self) -> Optional[str]:
        return self._current_hotkey

    def start(self) -> bool:  # noqa: D401 – imperative API
        """Register the global hotkey.

        Returns *True* when registration succeeds, *False* otherwise.
        """

        if self._hotkey_handle is not None:
            logging.debug("HotkeyManager already running – start() ignored")
            return True

        hotkey = str(self._config.get("hotkey", DEFAULT_HOTKEY))
        try:
            import keyboard  # local import keeps startup fast & mock-friendly

            self._hotkey_handle = keyboard.add_hotkey(
                hotkey,
                self.trigger,
                suppress=self._suppress,
            )
            self._current_hotkey = hotkey
            logging.info("Registered global hotkey: %s", hotkey)
            return True
        except Exception as exc:  # pylint: disable=broad-except
            # Unsupported platform, missing permission, duplicate binding …
            logging.warning("Failed to register hotkey '%s': %s", hotkey, exc)
            self._hotkey_handle = None
            self._current_hotkey = None
            return False

    def stop(self) -> None:  # noqa: D401 – imperative API
        """Unregister the hotkey if currently active."""
        if self._hotkey_handle is None:
            return
        try:
            import keyboard  # import here to match *start()* locality

            keyboard.remove_hotkey(self._hotkey_handle)
            logging.info("Unregistered global hotkey: %s", self._current_hotkey)
        except Exception as exc:  # pylint: disable=broad-except
            logging.debug("Ignoring error while removing hotkey: %s", exc)
        finally:
            self._hotkey_handle = None
            self._current_hotkey = None

    def reload(self) -> bool:  # noqa: D401 – imperative API
        """Reload configuration and update the hotkey if it changed.

        Returns *True* if the reload succeeds (or if no change was required).
        Returns *False* if registration of the *new* hotkey failed (the old
        one will have been unregistered in that case).
        """

        self._config.reload()

        new_hotkey = str(self._config.get("hotkey", DEFAULT_HOTKEY))
        if new_hotkey == self._current_hotkey:
            logging.debug("Hotkey unchanged (%s) – reload() no-op", new_hotkey)
            return True

        self.stop()
        return self.start()

    def trigger(self) -> bool:
        """Deliver one fired event to the callback and return *handled*."""
        handled = self._callback()
        handled = True if handled is None else bool(handled)
        if not handled:
            logging.debug("Hotkey %s not handled – passing it on", self._current_hotkey)
        return handled
