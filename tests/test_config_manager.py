import os
import json
from pathlib import Path

import pytest

# Ensure the root of the repo is on sys.path if tests run via `python -m pytest` from subdir
import sys, inspect
ROOT_DIR = Path(inspect.getfile(inspect.currentframe())).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from LauncherCore.config_manager import ConfigManager  # noqa: E402
from LauncherCore.resource_manager import default_helper_identity  # noqa: E402


@pytest.fixture()
def temp_appdata(monkeypatch, tmp_path):
    """Redirect %APPDATA% to a temporary directory for test isolation."""
    monkeypatch.setenv("APPDATA", str(tmp_path))
    return tmp_path


def test_save_load_round_trip(temp_appdata):
    """Settings saved by one instance should be visible when reloaded by another."""
    # GIVEN a pristine configuration environment
    cm1 = ConfigManager(app_name="TestApp")

    # WHEN we mutate a setting and rely on the default auto-save behaviour
    cm1.set("hotkey", "ctrl+shift+h")

    # THEN a brand-new instance should observe the persisted value
    cm2 = ConfigManager(app_name="TestApp")
    assert cm2.get("hotkey") == "ctrl+shift+h"

    # AND the config file should exist on disk inside the redirected %APPDATA%
    expected_path = Path(os.environ["APPDATA"]) / "TestApp" / "config.json"
    assert expected_path.is_file()
    assert cm2.path == expected_path

    data = json.loads(expected_path.read_text(encoding="utf-8"))
    assert data["hotkey"] == "ctrl+shift+h"


def test_defaults_written_on_first_run(temp_appdata):
    """A missing file is created with the shipped defaults."""
    cm = ConfigManager(app_name="Fresh App")

    assert cm.path == temp_appdata / "Fresh_App" / "config.json"
    assert cm.get("hotkey_mode") == "toggle"
    assert cm.get("launch_settle_delay_sec") == 0.5
    assert cm.get("activation_settle_delay_sec") == 0.1
    assert cm.get("channel_endpoint") == "tcp://127.0.0.1:47811"
    assert json.loads(cm.path.read_text(encoding="utf-8")) == ConfigManager.DEFAULTS


def test_missing_keys_take_defaults(temp_appdata):
    """Older config files without newer keys still yield every setting."""
    path = temp_appdata / "TestApp" / "config.json"
    path.parent.mkdir(parents=True)
    path.write_text(json.dumps({"hotkey_mode": "ensure"}), encoding="utf-8")

    cm = ConfigManager(app_name="TestApp")

    assert cm.get("hotkey_mode") == "ensure"
    assert cm.get("helper_identity") == default_helper_identity()


@pytest.mark.parametrize("payload", ["{not json", "[1, 2, 3]"])
def test_corrupt_file_falls_back_to_defaults(temp_appdata, payload):
    """Unreadable or non-object JSON is replaced by the defaults."""
    path = temp_appdata / "TestApp" / "config.json"
    path.parent.mkdir(parents=True)
    path.write_text(payload, encoding="utf-8")

    cm = ConfigManager(app_name="TestApp")

    assert cm.settings == ConfigManager.DEFAULTS
    assert json.loads(path.read_text(encoding="utf-8")) == ConfigManager.DEFAULTS
