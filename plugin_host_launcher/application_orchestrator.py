# Orchestrator wiring every launcher component inside the primary process.
#
#   * builds the asyncio event loop, registry, launcher, activation channel and the
#     coordinator from the JSON configuration
#   * routes the global hotkey through the composition guard onto the main
#     event loop
#   * owns the coordinator state for the process lifetime and tears it down
#     once: hotkey unregistered, subscriptions cancelled, helper terminated
#   * global sys.excepthook and the loop exception handler → logs/crash.log
#   * SIGINT / SIGTERM → shutdown, SIGHUP → configuration reload
#
# Desktop integration (hotkey hook, toasts and alerts, foreground queries) is best-effort:
# failures are logged and the launcher keeps running without that feature.

from __future__ import annotations

import asyncio
import logging
import signal
import sys
import traceback
from pathlib import Path
from types import TracebackType
from typing import Any, Type

from ipc.channel import DEFAULT_ENDPOINT, ActivationChannel
from ipc.messages import Message, SetSourceContext, TogglePluginHostWindow
from LauncherCore.config_manager import ConfigManager
from LauncherCore.coordinator import MODE_ENSURE, MODE_TOGGLE, Coordinator, CoordinatorState
from LauncherCore.desktop import default_desktop
from LauncherCore.hotkey_manager import HotkeyManager
from LauncherCore.notification_manager import NotificationManager
from LauncherCore.process_launcher import ProcessLauncher
from LauncherCore.process_registry import ProcessRegistry
from LauncherCore.resource_manager import default_helper_identity, resolve_helper_path
from LauncherCore.trigger_guard import CompositionState, TriggerGuard
from plugin_host_launcher.logging_config import setup_logging

__all__ = [
    "ApplicationOrchestrator",
    "main",
]


class ApplicationOrchestrator:  # pylint: disable=too-many-instance-attributes
    """High-level *application orchestrator* tying all components together."""

    _CRASH_LOG_PATH = Path("logs/crash.log")
    _HOTKEY_UNAVAILABLE = "Global hotkey unavailable – the helper cannot be opened from the keyboard"

    # ---------------------------------------------------------------------
    # Construction helpers
    # ---------------------------------------------------------------------
    def __init__(
        self,
        *,
        config: ConfigManager | None = None,
        desktop=None,
        mode: str | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
        auto_start: bool = False,
    ):
        self._log = logging.getLogger(self.__class__.__name__)
        self._is_running: bool = False

        self.config = config or ConfigManager()
        self._mode_override = mode
        self.mode: str = mode or str(self.config.get("hotkey_mode", MODE_TOGGLE))

        # Core singletons -------------------------------------------------
        self.loop = loop or asyncio.new_event_loop()
        self.composition = CompositionState()
        self.guard = TriggerGuard(self.composition.is_composing)
        self.desktop = desktop or default_desktop()
        self.registry = ProcessRegistry(self.desktop)
        self.launcher = ProcessLauncher(self.loop, desktop=self.desktop)
        self.channel = ActivationChannel(
            str(self.config.get("channel_endpoint", DEFAULT_ENDPOINT)),
            loop=self.loop,
        )
        self.notification_manager = NotificationManager(
            show_notifications=self.config.get("show_notifications", True),
        )

        self.state = CoordinatorState()
        self.coordinator = Coordinator(
            helper_identity=str(self.config.get("helper_identity") or default_helper_identity()),
            resolve_helper_path=self._resolve_helper_path,
            registry=self.registry,
            launcher=self.launcher,
            channel=self.channel,
            loop=self.loop,
            desktop=self.desktop,
            alerts=self.notification_manager,
            launch_settle_delay=float(self.config.get("launch_settle_delay_sec", 0.5)),
            activation_settle_delay=float(self.config.get("activation_settle_delay_sec", 0.1)),
        )
        self.hotkey_manager = HotkeyManager(self.config, on_activate=self._on_hotkey)

        # Install global unhandled-exception hook *before* anything starts so
        # we never miss a traceback.
        self._install_excepthook()
        self.loop.set_exception_handler(self._handle_loop_exception)

        # Handle SIGINT / SIGTERM for graceful Ctrl-C & service shutdown.
        try:
            signal.signal(signal.SIGINT, self._handle_signal)
            if hasattr(signal, "SIGTERM"):
                signal.signal(signal.SIGTERM, self._handle_signal)
            if hasattr(signal, "SIGHUP"):
                signal.signal(signal.SIGHUP, self._handle_reload_signal)
        except ValueError:  # not on the main thread – leave handlers alone
            pass

        if auto_start:
            self.start()

    # ------------------------------------------------------------------
    # Lifecycle management
    # ------------------------------------------------------------------
    def start(self) -> None:  # noqa: D401 – imperative API
        """Register the global hotkey (idempotent)."""
        if self._is_running:
            return

        self._log.info("Launcher starting (mode=%s) …", self.mode)

        if self.hotkey_manager.start():
            self.state.hotkey_handle = self.hotkey_manager.handle
        else:
            self.notification_manager.show_status(self._HOTKEY_UNAVAILABLE)

        self._is_running = True
        self._log.info("Launcher started (hotkey=%s)", self.hotkey_manager.hotkey)

    def monitor(self) -> None:
        """Log every activation message seen on the channel (diagnostics)."""
        for topic in (SetSourceContext.TOPIC, TogglePluginHostWindow.TOPIC):
            self.state.subscriptions.append(self.channel.subscribe(topic, self._log_message))
        self._log.info("Monitoring activation channel")

    def run(self) -> None:
        """Start and block on the event loop until :meth:`shutdown`."""
        self.start()
        self.loop.run_forever()

    # .................................................................
    def shutdown(self) -> None:  # noqa: D401 – imperative API
        """Release every OS-level handle exactly once."""
        if not self._is_running:
            return

        self._log.info("Shutting down …")

        self.hotkey_manager.stop()
        self.state.hotkey_handle = None

        for subscription in self.state.subscriptions:
            subscription.cancel()
        self.state.subscriptions.clear()
        self.channel.close()

        if self.config.get("terminate_helper_on_exit", True):
            self.coordinator.terminate_helper(self.state)

        self.loop.stop()
        self._is_running = False
        self._log.info("Shutdown complete")

    # ------------------------------------------------------------------
    # Trigger path
    # ------------------------------------------------------------------
    def set_composing(self, composing: bool) -> None:
        """Entry-point for the input method's composition panel."""
        self.composition.set_composing(composing)

    def _on_hotkey(self) -> bool:
        """Runs on the keyboard hook thread – only enqueues work."""
        return self.guard.fire(lambda: self.loop.call_soon_threadsafe(self._dispatch_trigger))

    def _dispatch_trigger(self) -> None:
        self.coordinator.handle_trigger(self.state, self.mode)

    def _resolve_helper_path(self) -> Path:
        return resolve_helper_path(self.config.get("helper_relative_path") or None)

    def _log_message(self, message: Message) -> None:
        self._log.info("Received %s: %s", message.TOPIC, message.to_payload())

    # ------------------------------------------------------------------
    # Configuration reload
    # ------------------------------------------------------------------
    def reload_config(self) -> bool:
        """Re-read the JSON config and re-register the hotkey if it changed.

        A mode given on the command line keeps precedence over the file.
        Returns *False* when the new hotkey could not be registered.
        """
        registered = self.hotkey_manager.reload()
        self.state.hotkey_handle = self.hotkey_manager.handle
        self.mode = self._mode_override or str(self.config.get("hotkey_mode", MODE_TOGGLE))
        self._log.info("Configuration reloaded (hotkey=%s, mode=%s)", self.hotkey_manager.hotkey, self.mode)
        if not registered:
            self.notification_manager.show_status(self._HOTKEY_UNAVAILABLE)
        return registered

    # ------------------------------------------------------------------
    # Exception / signal handling
    # ------------------------------------------------------------------
    def _install_excepthook(self) -> None:
        """Register *self._handle_exception* as the global sys.excepthook."""
        sys.excepthook = self._handle_exception  # type: ignore[assignment]

    # noinspection PyUnusedLocal
    def _handle_exception(
        self,
        exc_type: Type[BaseException] | None,
        exc_value: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Write uncaught exceptions to *logs/crash.log* and console."""
        logging.critical("Uncaught exception", exc_info=(exc_type, exc_value, exc_tb))

        try:
            self._CRASH_LOG_PATH.parent.mkdir(parents=True, exist_ok=True)
            with self._CRASH_LOG_PATH.open("a", encoding="utf-8") as fh:
                traceback.print_exception(exc_type, exc_value, exc_tb, file=fh)
        except OSError:  # pragma: no cover – disk errors best-effort
            pass

    def _handle_loop_exception(self, _loop: asyncio.AbstractEventLoop, context: dict) -> None:
        """Route exceptions escaping event-loop callbacks to the crash log."""
        exc = context.get("exception")
        if exc is None:
            self._log.error("Event loop error: %s", context.get("message"))
            return
        self._handle_exception(type(exc), exc, exc.__traceback__)

    # .................................................................
    def _handle_signal(self, signum: int, _frame: Any) -> None:  # noqa: D401 – signal handler
        self._log.info("Signal %s received – initiating shutdown.", signum)
        self.shutdown()

    def _handle_reload_signal(self, signum: int, _frame: Any) -> None:  # noqa: D401 – signal handler
        self._log.info("Signal %s received – reloading configuration.", signum)
        self.loop.call_soon_threadsafe(self.reload_config)


# ---------------------------------------------------------------------------
# *console-script* entry-point
# ---------------------------------------------------------------------------

def main(argv: list[str] | None = None) -> None:  # noqa: D401 – script entry
    """Console entry‐point – parses minimal CLI flags then runs the launcher."""

    import argparse  # local import to avoid startup cost when imported as lib

    parser = argparse.ArgumentParser(description="Plugin host launcher")
    parser.add_argument(
        "--mode",
        choices=(MODE_TOGGLE, MODE_ENSURE),
        help="toggle: show/hide the helper on every hotkey; ensure: only start it (default from config).",
    )
    parser.add_argument(
        "--monitor",
        action="store_true",
        help="Also log every message received on the activation channel.",
    )
    parser.add_argument(
        "--log-level",
        metavar="LEVEL",
        help="Root log level, e.g. DEBUG (default from config).",
    )

    args = parser.parse_args(argv)

    config = ConfigManager()
    setup_logging(level=args.log_level or str(config.get("log_level", "INFO")))

    orchestrator = ApplicationOrchestrator(config=config, mode=args.mode)
    if args.monitor:
        orchestrator.monitor()

    # Blocks until Ctrl-C / SIGTERM; the signal handler stops the loop.
    try:
        orchestrator.run()
    except KeyboardInterrupt:  # pragma: no cover – manual stop
        pass
    finally:
        orchestrator.shutdown()


if __name__ == "__main__":  # pragma: no cover – manual execution helper
    main()
