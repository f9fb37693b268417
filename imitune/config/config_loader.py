"""Configuration loader for ImiTune."""

import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional

import filelock
import ruamel.yaml

from imitune.utils.exceptions import ConfigurationError

from .validators import ImituneConfig, validate_config

# Plain stdlib logger here: imitune.utils.logger reads this module's config
logger = logging.getLogger(__name__)


def _yaml() -> ruamel.yaml.YAML:
    yaml_loader = ruamel.yaml.YAML()
    yaml_loader.preserve_quotes = True
    yaml_loader.width = 4096
    return yaml_loader


class ConfigLoader:
    """Loads and manages application configuration from YAML files."""

    def __init__(
        self,
        config_path: Optional[str] = None,
        credentials_path: str = "credentials.yml",
    ) -> None:
        """Initialize the configuration loader.

        Args:
            config_path: Path to the main configuration file. Defaults to
                ``$IMITUNE_CONFIG`` or ``config.yml``.
            credentials_path: Optional YAML file merged over the main config.
        """
        config_path = config_path or os.environ.get("IMITUNE_CONFIG", "config.yml")
        self.config_path = Path(config_path)
        self.credentials_path = Path(credentials_path)
        self.backup_path = Path(f"{config_path}.backup")
        self.config: Dict[str, Any] = {}
        self.validated_config: Optional[ImituneConfig] = None
        self._validation_error: Optional[str] = None
        self.load()

    def load(self) -> None:
        """Load configuration from YAML files."""
        if self.config_path.exists():
            with open(self.config_path, "r") as f:
                self.config = _yaml().load(f) or {}
        else:
            logger.warning(
                f"Config file not found: {self.config_path}, using built-in defaults"
            )
            self.config = {}

        if self.credentials_path.exists():
            with open(self.credentials_path, "r") as f:
                credentials = _yaml().load(f) or {}
            # Merge credentials section by section
            for key, value in credentials.items():
                if isinstance(value, dict) and isinstance(self.config.get(key), dict):
                    self.config[key].update(value)
                else:
                    self.config[key] = value

        self._validate_config()

    def save(self) -> None:
        """Save configuration to YAML file with atomic write and backup."""
        temp_name = None
        try:
            self._create_backup()

            self._validate_config()
            if self._validation_error:
                raise ConfigurationError(self._validation_error)

            with tempfile.NamedTemporaryFile(
                mode="w",
                delete=False,
                suffix=".tmp",
                dir=self.config_path.parent.resolve(),
            ) as temp_file:
                temp_name = temp_file.name
                _yaml().dump(self.config, temp_file)
                temp_file.flush()

            lock = filelock.FileLock(f"{self.config_path}.lock")
            with lock.acquire(timeout=10):
                shutil.move(temp_name, self.config_path)

        except Exception as e:
            if temp_name and Path(temp_name).exists():
                Path(temp_name).unlink()
            raise ConfigurationError(f"Failed to save configuration: {e}")

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value by dot-notation key.

        Args:
            key: Configuration key (e.g., "audio.silence_threshold").
            default: Default value if key not found.

        Returns:
            Configuration value or default.
        """
        keys = key.split(".")
        value = self.config

        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value

    def set(self, key: str, value: Any) -> None:
        """Set a configuration value by dot-notation key.

        Args:
            key: Configuration key (e.g., "preprocessing.target_sample_rate").
            value: Value to set.
        """
        keys = key.split(".")
        config_ref = self.config

        for k in keys[:-1]:
            if k not in config_ref:
                config_ref[k] = {}
            config_ref = config_ref[k]

        config_ref[keys[-1]] = value
        self._validate_config()

    def get_all(self) -> Dict[str, Any]:
        """Get the entire configuration dictionary.

        Returns:
            Complete configuration dictionary.
        """
        return self.config.copy()

    @property
    def validated(self) -> ImituneConfig:
        """Validated configuration model.

        Raises:
            ConfigurationError: If the current configuration is invalid.
        """
        if self.validated_config is None:
            raise ConfigurationError(
                self._validation_error or "Configuration has not been validated"
            )
        return self.validated_config

    def _validate_config(self) -> None:
        """Validate the loaded configuration using Pydantic schemas."""
        try:
            self.validated_config = validate_config(self.config)
            self._validation_error = None
        except ValueError as e:
            # Keep the raw config usable, typed access will raise
            self.validated_config = None
            self._validation_error = str(e)
            logger.error(f"Configuration validation failed: {e}")

    def _create_backup(self) -> None:
        """Create a backup of the current configuration file."""
        if self.config_path.exists():
            try:
                shutil.copy2(self.config_path, self.backup_path)
                logger.debug(f"Configuration backup created: {self.backup_path}")
            except OSError as e:
                logger.warning(f"Failed to create configuration backup: {e}")

    def restore_from_backup(self) -> bool:
        """Restore configuration from backup file.

        Returns:
            True if restore was successful, False otherwise.
        """
        if not self.backup_path.exists():
            logger.error("No backup file found for restore")
            return False

        try:
            shutil.copy2(self.backup_path, self.config_path)
            self.load()
            logger.info("Configuration restored from backup successfully")
            return True
        except Exception as e:
            logger.error(f"Failed to restore configuration from backup: {e}")
            return False


# Global config instance
config = ConfigLoader()
