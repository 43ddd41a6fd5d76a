"""Configuration management for LifeSync."""

import json
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

from loguru import logger
from pydantic.alias_generators import to_camel, to_snake


def _default_data_path() -> Path:
    return Path.home() / ".lifesync" / "data"


@dataclass
class CliConfig:
    """Settings shared by every CLI command."""

    api_url: str = "http://localhost:3000"
    data_path: Path = field(default_factory=_default_data_path)
    default_store: str = ""
    default_meal_type: str = "dinner"
    default_category: str = "other"
    username: str = "user"


@dataclass
class MonitorConfig:
    """Settings for supervising the API server."""

    command: list[str] = field(default_factory=lambda: ["node", "start-with-db.js"])
    port: int = 3001
    api_url: str = "http://localhost:3001"
    project_dir: Path | None = None
    check_interval: float = 15.0
    initial_delay: float = 10.0
    restart_delay: float = 5.0
    max_restarts: int = 10
    log_file: Path = Path("api-monitor.log")


@dataclass
class Config:
    """Complete application configuration."""

    cli: CliConfig
    monitor: MonitorConfig


class ConfigManager:
    """Manages application configuration stored as JSON."""

    def __init__(self, config_path: Path | None = None):
        """Initialize configuration manager.

        Args:
            config_path: Optional explicit path to config file.
                        If not provided, searches standard locations.
        """
        self.config_path = config_path or self._find_config()
        self._config = self._load_config()

    @property
    def cli(self) -> CliConfig:
        """Get CLI configuration."""
        return self._config.cli

    @property
    def monitor(self) -> MonitorConfig:
        """Get monitor configuration."""
        return self._config.monitor

    @property
    def api_url(self) -> str:
        return self._config.cli.api_url

    @property
    def data_path(self) -> Path:
        return self._config.cli.data_path

    def _find_config(self) -> Path:
        """Find config file in standard locations."""
        locations = [
            Path.cwd() / ".lifesync.json",
            Path.home() / ".lifesync" / "config.json",
        ]

        for loc in locations:
            if loc.exists():
                return loc

        return Path.home() / ".lifesync" / "config.json"

    def _load_config(self) -> Config:
        """Load configuration from the JSON file."""
        if not self.config_path.exists():
            return self._default_config()

        try:
            with open(self.config_path) as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.error("Failed to read config {}: {}; using defaults", self.config_path, e)
            return self._default_config()

        if not isinstance(data, dict):
            logger.error("Config {} is not a JSON object; using defaults", self.config_path)
            return self._default_config()

        cli_defaults = CliConfig()
        monitor_data = data.get("monitor") or {}
        monitor_defaults = MonitorConfig()

        project_dir = monitor_data.get("projectDir")
        return Config(
            cli=CliConfig(
                api_url=data.get("apiUrl", cli_defaults.api_url),
                data_path=Path(data.get("dataPath", cli_defaults.data_path)).expanduser(),
                default_store=data.get("defaultStore", cli_defaults.default_store),
                default_meal_type=data.get("defaultMealType", cli_defaults.default_meal_type),
                default_category=data.get("defaultCategory", cli_defaults.default_category),
                username=data.get("username", cli_defaults.username),
            ),
            monitor=MonitorConfig(
                command=list(monitor_data.get("command", monitor_defaults.command)),
                port=int(monitor_data.get("port", monitor_defaults.port)),
                api_url=monitor_data.get("apiUrl", monitor_defaults.api_url),
                project_dir=Path(project_dir).expanduser() if project_dir else None,
                check_interval=float(
                    monitor_data.get("checkInterval", monitor_defaults.check_interval)
                ),
                initial_delay=float(
                    monitor_data.get("initialDelay", monitor_defaults.initial_delay)
                ),
                restart_delay=float(
                    monitor_data.get("restartDelay", monitor_defaults.restart_delay)
                ),
                max_restarts=int(monitor_data.get("maxRestarts", monitor_defaults.max_restarts)),
                log_file=Path(monitor_data.get("logFile", monitor_defaults.log_file)).expanduser(),
            ),
        )

    def _default_config(self) -> Config:
        """Return default configuration."""
        return Config(cli=CliConfig(), monitor=MonitorConfig())

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get config value by dot-notation path.

        Args:
            key_path: Dot-separated path like 'monitor.maxRestarts' or 'cli.api_url'
            default: Default value if path not found

        Returns:
            Configuration value or default
        """
        value: Any = self._config

        for key in key_path.split("."):
            name = to_snake(key)
            if hasattr(value, name):
                value = getattr(value, name)
            else:
                return default

        return value if value is not None else default

    def set(self, key: str, value: str) -> Any:
        """Set a top-level CLI setting.

        Args:
            key: camelCase or snake_case name such as 'apiUrl'
            value: New value

        Returns:
            The stored value

        Raises:
            ValueError: If the key is unknown
        """
        name = to_snake(key)
        valid = [f.name for f in fields(CliConfig)]
        if name not in valid:
            raise ValueError(
                f"Unknown config key '{key}'. Valid keys: "
                + ", ".join(to_camel(n) for n in valid)
            )

        stored: Any = Path(value).expanduser() if name == "data_path" else value
        setattr(self._config.cli, name, stored)
        return stored

    def to_dict(self) -> dict[str, Any]:
        """Configuration in its on-disk camelCase shape."""
        cli = self._config.cli
        monitor = self._config.monitor
        monitor_data: dict[str, Any] = {
            "command": monitor.command,
            "port": monitor.port,
            "apiUrl": monitor.api_url,
            "checkInterval": monitor.check_interval,
            "initialDelay": monitor.initial_delay,
            "restartDelay": monitor.restart_delay,
            "maxRestarts": monitor.max_restarts,
            "logFile": str(monitor.log_file),
        }
        if monitor.project_dir is not None:
            monitor_data["projectDir"] = str(monitor.project_dir)

        return {
            "apiUrl": cli.api_url,
            "dataPath": str(cli.data_path),
            "defaultStore": cli.default_store,
            "defaultMealType": cli.default_meal_type,
            "defaultCategory": cli.default_category,
            "username": cli.username,
            "monitor": monitor_data,
        }

    def reset(self) -> None:
        """Restore every setting to its default. Call save() to persist."""
        self._config = self._default_config()

    def save(self) -> Path:
        """Write the configuration file, creating its directory."""
        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.config_path, "w") as f:
            json.dump(self.to_dict(), f, indent=2)
        return self.config_path
