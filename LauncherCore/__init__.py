"""Plugin host launcher core package.

Exposes commonly used helpers at the package root for convenience.
"""

from .config_manager import ConfigManager  # noqa: F401
from .errors import HelperNotInstalled, LaunchError, LaunchRejected  # noqa: F401
from .resource_manager import resolve_helper_path, resource_path  # noqa: F401
from .trigger_guard import CompositionState, TriggerGuard  # noqa: F401
from .process_registry import ProcessHandle, ProcessRegistry  # noqa: F401
from .process_launcher import LaunchResult, ProcessLauncher  # noqa: F401
from .coordinator import Coordinator, CoordinatorState  # noqa: F401

# Desktop-integration helpers – their platform imports are lazy, so importing
# them is safe on headless CI runners.
from .hotkey_manager import HotkeyManager  # noqa: F401
from .notification_manager import NotificationManager  # noqa: F401
