import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from LauncherCore.resource_manager import default_helper_identity, default_helper_subpath


class ConfigManager:
    """Simple JSON-backed configuration loader / saver.

    The config file is stored in the user-specific application data directory.
    On Windows we honour the %APPDATA% convention. On *nix platforms we fall
    back to ~/.config.  Keys missing from the file take their value from
    :attr:`DEFAULTS`.
    """

    _FILENAME = "config.json"

    #: Default configuration values shipped with the launcher.
    DEFAULTS: Dict[str, Any] = {
        "hotkey": "ctrl+shift+space",
        "hotkey_mode": "toggle",            # "toggle" or "ensure"
        "helper_identity": default_helper_identity(),
        "helper_relative_path": default_helper_subpath(),
        "launch_settle_delay_sec": 0.5,     # after a fresh launch, before SetSourceContext
        "activation_settle_delay_sec": 0.1,  # after activating a running helper
        "channel_endpoint": "tcp://127.0.0.1:47811",
        "show_notifications": True,
        "terminate_helper_on_exit": True,
        "log_level": "INFO",
    }

    def __init__(self, app_name: str = "Plugin Host Launcher") -> None:
        self.app_name = app_name
        self._config_path: Path = self._resolve_config_path()
        self.settings: Dict[str, Any] = {}
        self._load()

    # ---------------------------------------------------------------------
    # Public helpers
    # ---------------------------------------------------------------------
    def get(self, key: str, default: Optional[Any] = None) -> Any:
        """Return the configuration value for *key*, or *default* if missing."""
        return self.settings.get(key, default)

    def set(self, key: str, value: Any, *, auto_save: bool = True) -> None:
        """Set *key* to *value*. Optionally persist immediately."""
        self.settings[key] = value
        if auto_save:
            self._save()

    def reload(self) -> None:
        """Force reload configuration from disk, discarding local changes."""
        self._load()

    @property
    def path(self) -> Path:
        return self._config_path

    # ------------------------------------------------------------------
    # Implementation details
    # ------------------------------------------------------------------
    def _resolve_config_path(self) -> Path:
        """Compute platform-appropriate path for the JSON config."""
        # Prefer the *APPDATA* environment variable when set so tests can
        # redirect it regardless of the host OS.
        if "APPDATA" in os.environ and os.environ["APPDATA"]:
            base_dir = Path(os.environ["APPDATA"])
        elif os.name == "nt":
            base_dir = Path(Path.home())
        else:
            # Honour XDG if available, otherwise use ~/.config.
            base_dir = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))

        path = base_dir / self.app_name.replace(" ", "_") / self._FILENAME
        return path

    def _load(self) -> None:
        """Load settings from disk, creating the file with defaults if absent."""
        try:
            if self._config_path.exists():
                with self._config_path.open("r", encoding="utf-8") as fh:
                    loaded = json.load(fh)
                if not isinstance(loaded, dict):
                    raise ValueError("config root must be a JSON object")
                self.settings = {**self.DEFAULTS, **loaded}
            else:
                self.settings = self.DEFAULTS.copy()
                self._write_to_disk(self.settings)
        except (json.JSONDecodeError, ValueError, OSError) as exc:
            logging.warning("Failed to load config – using defaults: %s", exc)
            self.settings = self.DEFAULTS.copy()
            # Attempt to overwrite the corrupted file with defaults.
            try:
                self._write_to_disk(self.settings)
            except OSError as write_exc:
                logging.error("Unable to write default config: %s", write_exc)

    def _save(self) -> None:
        """Persist current *settings* to disk."""
        self._write_to_disk(self.settings)

    def _write_to_disk(self, data: Dict[str, Any]) -> None:
        self._config_path.parent.mkdir(parents=True, exist_ok=True)
        with self._config_path.open("w", encoding="utf-8") as fh:
            json.dump(data, fh, indent=4)

    # ------------------------------------------------------------------
    # Convenience dunder methods
    # ------------------------------------------------------------------
    def __getitem__(self, item: str) -> Any:  # dict-style access
        return self.settings[item]

    def __setitem__(self, key: str, value: Any) -> None:
        self.set(key, value)

    def __contains__(self, item: str) -> bool:
        return item in self.settings

    def __repr__(self) -> str:  # pragma: no cover
        return f"<ConfigManager path={self._config_path!s} keys={list(self.settings.keys())}>"
