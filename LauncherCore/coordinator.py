from __future__ import annotations

"""Cross-process activation coordinator.

On every trigger the coordinator decides whether the helper process must be
*launched*, *shown* or *hidden*, and ships the source-application context to
it over the activation channel.

The helper owns its real visibility state.  The coordinator only knows what
the OS reported about the helper's foreground flag at the moment of its last
registry query, and it always issues the command that flips that flag.  The
foreground read therefore has to happen **before** the helper is activated,
since activating it changes the answer.

Delayed publishes give the helper time to finish its own activation or
start-up before the message arrives.  A publish that lands after the helper
changed state again is tolerated silently; the helper is the authority on
its final state.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, List

from ipc.messages import Message, SetSourceContext, SourceContext, TogglePluginHostWindow
from LauncherCore.errors import HelperNotInstalled, LaunchError, LaunchRejected
from LauncherCore.process_launcher import LaunchResult

__all__ = [
    "CoordinatorState",
    "Coordinator",
    "MODE_TOGGLE",
    "MODE_ENSURE",
]

MODE_TOGGLE = "toggle"
MODE_ENSURE = "ensure"

#: Wait for the helper's start-up / subscribe sequence after a launch.
DEFAULT_LAUNCH_SETTLE_DELAY = 0.5
#: Wait for an already running helper to process its own activation.
DEFAULT_ACTIVATION_SETTLE_DELAY = 0.1


@dataclass
class CoordinatorState:
    """Per-process coordinator context, created once and passed to every call."""

    helper_observed_running: bool = False
    """Diagnostic cache only – decisions always re-query the registry."""

    hotkey_handle: Any = None
    subscriptions: List[Any] = field(default_factory=list)


class Coordinator:  # pylint: disable=too-many-instance-attributes
    """Launch / show / hide decisions for the helper process."""

    def __init__(
        self,
        *,
        helper_identity: str,
        resolve_helper_path: Callable[[], Path],
        registry,
        launcher,
        channel,
        loop,
        desktop,
        alerts,
        launch_settle_delay: float = DEFAULT_LAUNCH_SETTLE_DELAY,
        activation_settle_delay: float = DEFAULT_ACTIVATION_SETTLE_DELAY,
    ) -> None:
        self._log = logging.getLogger(self.__class__.__name__)
        self._identity = helper_identity
        self._resolve_helper_path = resolve_helper_path
        self._registry = registry
        self._launcher = launcher
        self._channel = channel
        self._loop = loop
        self._desktop = desktop
        self._alerts = alerts
        self._launch_settle_delay = float(launch_settle_delay)
        self._activation_settle_delay = float(activation_settle_delay)

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------
    def ensure_helper_running(self, state: CoordinatorState) -> None:
        """Launch the helper if absent; otherwise leave toggling to the helper."""
        if self._registry.find_running(self._identity) is not None:
            self._log.info("Helper %s already running – letting it handle the hotkey", self._identity)
            state.helper_observed_running = True
            return

        # Capture before the launch moves focus to the helper.
        source = self._capture_source()
        self._log.info("Helper %s not running – launching", self._identity)
        self._launch(state, source)

    def toggle_helper_window(self, state: CoordinatorState) -> None:
        """Show, hide or first-launch the helper for one trigger."""
        source = self._capture_source()
        self._log.info(
            "Triggered from %s (%s), pid %s",
            source.app_name,
            source.bundle_id,
            source.process_id,
        )

        handle = self._registry.find_running(self._identity)
        if handle is None:
            self._log.info("Helper %s not running – launching", self._identity)
            self._launch(state, source)
            return

        # Read the foreground flag first: activating the helper would change it.
        is_active = self._registry.is_foreground_active(handle)
        self._log.debug("Helper pid %s foreground=%s", handle.pid, is_active)

        if is_active:
            self._log.info("Helper window in foreground – requesting hide")
            self._publish(TogglePluginHostWindow(source=source, should_hide=True))
        else:
            self._log.info("Helper window hidden or in background – activating and showing")
            self._registry.activate(handle)
            self._loop.call_later(
                self._activation_settle_delay,
                self._publish,
                TogglePluginHostWindow(source=source, should_hide=False),
            )

        state.helper_observed_running = True

    def terminate_helper(self, state: CoordinatorState) -> None:
        """Terminate a helper this process has started or observed."""
        if not state.helper_observed_running:
            return

        handle = self._registry.find_running(self._identity)
        if handle is None:
            self._log.debug("Helper %s no longer running – nothing to terminate", self._identity)
        else:
            self._log.info("Terminating helper %s (pid %s)", self._identity, handle.pid)
            self._registry.terminate(handle)
        state.helper_observed_running = False

    def handle_trigger(self, state: CoordinatorState, mode: str = MODE_TOGGLE) -> None:
        """Route a hotkey trigger according to the configured *mode*."""
        if mode == MODE_ENSURE:
            self.ensure_helper_running(state)
            return
        if mode != MODE_TOGGLE:
            self._log.warning("Unknown hotkey mode %r – falling back to %r", mode, MODE_TOGGLE)
        self.toggle_helper_window(state)

    # ------------------------------------------------------------------
    # Launch branch
    # ------------------------------------------------------------------
    def _launch(self, state: CoordinatorState, source: SourceContext) -> None:
        try:
            path = self._resolve_helper_path()
        except HelperNotInstalled as exc:
            self._log.error("Helper app does not exist: %s", exc)
            self._report_failure(exc)
            return

        self._log.info("Helper app path: %s", path)

        def _on_launched(result: LaunchResult) -> None:
            self._on_launched(state, source, result)

        self._launcher.launch(path, activate_on_launch=True, callback=_on_launched)

    def _on_launched(self, state: CoordinatorState, source: SourceContext, result: LaunchResult) -> None:
        if not result.ok:
            self._report_failure(result.error)
            return

        self._log.info("Helper app launched successfully")
        state.helper_observed_running = True

        # Some launch paths do not foreground the new process reliably.
        handle = result.handle or self._registry.find_running(self._identity)
        if handle is not None:
            self._registry.activate(handle)

        self._loop.call_later(
            self._launch_settle_delay,
            self._publish,
            SetSourceContext(source=source),
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _capture_source(self) -> SourceContext:
        try:
            return self._desktop.frontmost_context()
        except Exception as exc:  # pylint: disable=broad-except
            self._log.warning("Unable to determine source application: %s", exc)
            return SourceContext()

    def _publish(self, message: Message) -> None:
        if not self._channel.publish(message):
            self._log.warning("%s was not delivered to the channel", message.TOPIC)

    def _report_failure(self, error: LaunchError | None) -> None:
        if isinstance(error, HelperNotInstalled):
            text = "Helper app not installed"
        elif isinstance(error, LaunchRejected):
            text = f"Failed to launch helper app: {error.diagnostic}"
        else:
            text = f"Failed to launch helper app: {error}"
        self._alerts.show_error(text, severity="warning", error=error)
