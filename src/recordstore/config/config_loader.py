"""
Configuration loader for the record store.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml


logger = logging.getLogger(__name__)

# Environment variable -> dotted config key
ENV_OVERRIDES = {
    "RECORDSTORE_BACKEND": "backend",
    "RECORDSTORE_ROOT_DIR": "file.root_dir",
    "RECORDSTORE_DB_PATH": "sqlite.db_path",
    "RECORDSTORE_SQLSERVER_CONN_STR": "sqlserver.connection_string",
    "RECORDSTORE_SQLSERVER_PASSWORD": "sqlserver.password",
    "RECORDSTORE_LOG_LEVEL": "logging.level",
}


class RecordStoreConfig:
    """
    Configuration for the record store.

    Loads a YAML configuration file (or defaults) and applies
    environment variable overrides on top.
    """

    def __init__(self, config_path: Optional[Path] = None):
        """
        Initialize configuration.

        Args:
            config_path: Path to YAML config file (optional)
        """
        self.config_path = Path(config_path) if config_path else None
        self.config = self._load_config() if self.config_path else self._default_config()
        self._apply_env_overrides()

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from YAML file, merged over the defaults."""
        if not self.config_path.exists():
            raise FileNotFoundError(f"Config file not found: {self.config_path}")

        logger.info(f"Loading config from: {self.config_path}")

        with open(self.config_path, "r", encoding="utf-8") as f:
            loaded = yaml.safe_load(f) or {}

        config = self._default_config()
        for key, value in loaded.items():
            if isinstance(value, dict) and isinstance(config.get(key), dict):
                config[key].update(value)
            else:
                config[key] = value
        return config

    def _default_config(self) -> Dict[str, Any]:
        """Return default configuration."""
        return {
            "backend": "sqlite",
            "file": {
                "root_dir": "local/snapshots",
                "encoding": "utf-8",
            },
            "sqlite": {
                "db_path": "local/state/recordstore.db",
                "table": "snapshots",
            },
            "sqlserver": {
                "host": "localhost",
                "port": 1433,
                "database": "RecordStore",
                "user": "sa",
                "driver": "ODBC Driver 18 for SQL Server",
                "schema": "recordstore",
                "table": "snapshots",
            },
            "logging": {
                "level": "INFO",
                "structured": False,
            },
        }

    def _apply_env_overrides(self) -> None:
        """Apply environment variable overrides to loaded config."""
        for env_var, key in ENV_OVERRIDES.items():
            value = os.environ.get(env_var)
            if not value:
                continue
            section, _, leaf = key.rpartition(".")
            target = self.config.setdefault(section, {}) if section else self.config
            target[leaf] = value
            logger.debug(f"Config override from {env_var}: {key}")

    def get_backend(self) -> str:
        """Get the configured backend name."""
        return str(self.config.get("backend", "sqlite")).lower()

    def get_backend_config(self, backend: Optional[str] = None) -> Dict[str, Any]:
        """Get the settings section for a backend (default: the configured one)."""
        return self.config.get(backend or self.get_backend(), {}) or {}

    def get_logging_config(self) -> Dict[str, Any]:
        """Get logging configuration."""
        return self.config.get("logging", {})

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value by dotted key."""
        keys = key.split(".")
        value = self.config

        for k in keys:
            if isinstance(value, dict):
                value = value.get(k)
            else:
                return default

        return value if value is not None else default
