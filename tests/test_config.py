"""Tests for configuration management."""

import json
from pathlib import Path

import pytest

from lifesync.config import ConfigManager


@pytest.fixture
def config_file(tmp_path):
    """Create a temporary config file."""
    config_path = tmp_path / "config.json"
    config_path.write_text(
        json.dumps(
            {
                "apiUrl": "http://lifesync.local:3000",
                "dataPath": "/custom/data",
                "defaultStore": "Giant",
                "username": "francisco",
                "monitor": {
                    "command": ["npm", "run", "api"],
                    "port": 4001,
                    "maxRestarts": 3,
                    "projectDir": "/srv/lifesync",
                },
            }
        )
    )
    return config_path


class TestConfigManager:
    """Tests for ConfigManager."""

    def test_load_config_file(self, config_file):
        """Load configuration from file."""
        manager = ConfigManager(config_path=config_file)

        assert manager.api_url == "http://lifesync.local:3000"
        assert manager.data_path == Path("/custom/data")
        assert manager.cli.default_store == "Giant"
        assert manager.cli.username == "francisco"

    def test_monitor_config(self, config_file):
        """Load monitor section, keeping defaults for unset keys."""
        manager = ConfigManager(config_path=config_file)

        assert manager.monitor.command == ["npm", "run", "api"]
        assert manager.monitor.port == 4001
        assert manager.monitor.max_restarts == 3
        assert manager.monitor.project_dir == Path("/srv/lifesync")
        assert manager.monitor.check_interval == 15.0

    def test_missing_config_uses_defaults(self, tmp_path):
        """Missing config file uses default values."""
        manager = ConfigManager(config_path=tmp_path / "nonexistent.json")

        assert manager.api_url == "http://localhost:3000"
        assert manager.cli.default_meal_type == "dinner"
        assert manager.monitor.max_restarts == 10
        assert manager.monitor.project_dir is None

    def test_invalid_json_uses_defaults(self, tmp_path, log_messages):
        """Unreadable config is logged and replaced by defaults."""
        path = tmp_path / "config.json"
        path.write_text("{broken")
        manager = ConfigManager(config_path=path)

        assert manager.api_url == "http://localhost:3000"
        assert any(m.startswith("ERROR|") for m in log_messages)

    def test_non_object_uses_defaults(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("[1, 2]")
        manager = ConfigManager(config_path=path)
        assert manager.cli.username == "user"


class TestConfigGet:
    """Tests for dot-path lookups."""

    def test_get_nested_value(self, config_file):
        manager = ConfigManager(config_path=config_file)
        assert manager.get("monitor.maxRestarts") == 3
        assert manager.get("cli.api_url") == "http://lifesync.local:3000"

    def test_get_missing_returns_default(self, config_file):
        manager = ConfigManager(config_path=config_file)
        assert manager.get("monitor.nothing", "fallback") == "fallback"

    def test_get_none_returns_default(self, tmp_path):
        manager = ConfigManager(config_path=tmp_path / "none.json")
        assert manager.get("monitor.projectDir", "here") == "here"


class TestConfigSet:
    """Tests for changing and saving settings."""

    def test_set_camel_case_key(self, config_path):
        manager = ConfigManager(config_path=config_path)
        manager.set("apiUrl", "http://example:3000")
        assert manager.api_url == "http://example:3000"

    def test_set_data_path_becomes_path(self, config_path, tmp_path):
        manager = ConfigManager(config_path=config_path)
        stored = manager.set("data_path", str(tmp_path / "d"))
        assert stored == tmp_path / "d"
        assert manager.data_path == tmp_path / "d"

    def test_set_unknown_key(self, config_path):
        manager = ConfigManager(config_path=config_path)
        with pytest.raises(ValueError, match="Unknown config key"):
            manager.set("colour", "blue")

    def test_save_round_trip(self, config_path):
        """Saved settings load back in camelCase form."""
        manager = ConfigManager(config_path=config_path)
        manager.set("username", "bob")
        saved = manager.save()

        assert saved == config_path
        data = json.loads(config_path.read_text())
        assert data["username"] == "bob"
        assert data["monitor"]["maxRestarts"] == 10
        assert "projectDir" not in data["monitor"]

        reloaded = ConfigManager(config_path=config_path)
        assert reloaded.cli.username == "bob"

    def test_reset_restores_defaults(self, config_file):
        """Reset drops both CLI and monitor settings back to defaults."""
        manager = ConfigManager(config_path=config_file)
        manager.reset()
        manager.save()

        reloaded = ConfigManager(config_path=config_file)
        assert reloaded.cli.username == "user"
        assert reloaded.api_url == "http://localhost:3000"
        assert reloaded.monitor.port == 3001
        assert reloaded.monitor.project_dir is None
