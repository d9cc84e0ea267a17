"""Hotkey gate that stays out of the way of an in-progress text composition.

While the input method is composing, the same physical keys may belong to
character input, so a fired hotkey is swallowed and reported *not handled*
to the event source.  The guard does not own the flag; it queries a
capability supplied by the input-method side.
"""
from __future__ import annotations

import logging
import threading
from typing import Callable

__all__ = ["CompositionState", "TriggerGuard"]


class CompositionState:
    """Thread-safe "composition in progress" flag."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def set_composing(self, composing: bool) -> None:
        if composing:
            self._event.set()
        else:
            self._event.clear()

    def is_composing(self) -> bool:
        return self._event.is_set()


class TriggerGuard:
    """Decide whether a fired hotkey may reach the coordinator."""

    def __init__(self, is_composing: Callable[[], bool]) -> None:
        self._log = logging.getLogger(self.__class__.__name__)
        self._is_composing = is_composing

    def should_suppress(self) -> bool:
        try:
            return bool(self._is_composing())
        except Exception as exc:  # pylint: disable=broad-except
            self._log.warning("Composition state unavailable – suppressing trigger: %s", exc)
            return True

    def fire(self, on_trigger: Callable[[], None]) -> bool:
        """Run *on_trigger* unless suppressed.  Returns the *handled* flag."""
        if self.should_suppress():
            self._log.debug("Composition in progress – hotkey not handled")
            return False
        on_trigger()
        return True
