"""Configuration loader for the MQTT release notifier.

Settings come from the process environment. An optional YAML file may
provide the same settings; environment variables always take precedence.
"""

import logging
import os
from typing import Any, Dict, Mapping, Optional

import yaml

from .models import (
    DEFAULT_CONNECT_TIMEOUT_MS,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_PAYLOAD,
    DEFAULT_RETRY_DELAY_MS,
    BrokerAddress,
    PublisherConfig,
)


logger = logging.getLogger(__name__)

DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Environment variable -> key in the YAML 'mqtt' section
ENV_KEYS = {
    "MQTT_HOST": "host",
    "MQTT_PATH": "topic",
    "RELEASE_TAG": "payload",
    "MQTT_USER": "username",
    "MQTT_PASSWORD": "password",
    "MQTT_ATTEMPTS": "attempts",
    "MQTT_RETRY_DELAY_MS": "retry_delay_ms",
    "MQTT_CONNECT_TIMEOUT_MS": "connect_timeout_ms",
    "MQTT_CLIENT_ID": "client_id",
    "CF_ACCESS_CLIENT_ID": "access.client_id",
    "CF_ACCESS_CLIENT_SECRET": "access.client_secret",
}


class ConfigError(Exception):
    """Raised when configuration is invalid or cannot be loaded."""

    pass


class ConfigMissingError(ConfigError):
    """Raised when a required setting is not provided."""

    pass


class Config:
    """Application configuration manager."""

    def __init__(
        self,
        config_path: Optional[str] = None,
        environ: Optional[Mapping[str, str]] = None,
    ):
        """
        Initialize configuration.

        Args:
            config_path: Optional path to a YAML file. Falls back to
                ``MQTT_CONFIG_FILE`` from the environment.
            environ: Environment mapping, defaults to ``os.environ``
        """
        self.environ = os.environ if environ is None else environ
        self.config_path = config_path or self._env("MQTT_CONFIG_FILE")
        self._data: Dict[str, Any] = {}
        if self.config_path:
            self.load()

    def _env(self, name: str) -> Optional[str]:
        """Environment value, treating empty strings as unset."""
        value = self.environ.get(name)
        return value if value else None

    def load(self) -> None:
        """
        Load configuration from the YAML file.

        Raises:
            ConfigError: If config file cannot be loaded or is invalid
        """
        try:
            logger.info(f"Loading configuration from: {self.config_path}")
            with open(self.config_path, "r") as f:
                data = yaml.safe_load(f) or {}
        except FileNotFoundError:
            raise ConfigError(f"Config file not found: {self.config_path}")
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in config file: {e}")
        except OSError as e:
            raise ConfigError(f"Failed to load config: {e}")

        if not isinstance(data, dict):
            raise ConfigError("Config file must contain a mapping at the top level")
        for section in ("mqtt", "logging"):
            if not isinstance(data.get(section, {}), dict):
                raise ConfigError(f"'{section}' section must be a mapping")

        self._data = data

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value from the file by key.

        Args:
            key: Configuration key (supports dot notation, e.g., 'mqtt.host')
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        value: Any = self._data
        for k in key.split("."):
            if isinstance(value, dict):
                value = value.get(k)
                if value is None:
                    return default
            else:
                return default

        return value if value is not None else default

    def setting(self, env_name: str, default: Any = None) -> Any:
        """
        Resolve a setting: environment first, then the file's 'mqtt' section.

        Args:
            env_name: Environment variable name (a key of ENV_KEYS)
            default: Value used when neither source provides one
        """
        value = self._env(env_name)
        if value is not None:
            return value
        value = self.get(f"mqtt.{ENV_KEYS[env_name]}")
        if value is None or value == "":
            return default
        return value

    def _int_setting(self, env_name: str, default: int) -> int:
        value = self.setting(env_name, default)
        try:
            return int(str(value).strip())
        except ValueError:
            raise ConfigError(f"{env_name} must be an integer, got {value!r}")

    def get_publisher_config(self) -> PublisherConfig:
        """
        Build the publisher configuration.

        Returns:
            PublisherConfig object

        Raises:
            ConfigMissingError: If the broker address is not set
            ConfigError: If a setting is invalid
        """
        broker_url = self.setting("MQTT_HOST")
        if not broker_url:
            raise ConfigMissingError("MQTT_HOST is not set!")

        def optional(env_name: str) -> Optional[str]:
            value = self.setting(env_name)
            return None if value is None else str(value)

        try:
            config = PublisherConfig(
                broker_url=str(broker_url),
                topic=optional("MQTT_PATH"),
                payload=str(self.setting("RELEASE_TAG", DEFAULT_PAYLOAD)),
                username=optional("MQTT_USER"),
                password=optional("MQTT_PASSWORD"),
                access_client_id=optional("CF_ACCESS_CLIENT_ID"),
                access_client_secret=optional("CF_ACCESS_CLIENT_SECRET"),
                max_attempts=self._int_setting("MQTT_ATTEMPTS", DEFAULT_MAX_ATTEMPTS),
                retry_delay_ms=self._int_setting(
                    "MQTT_RETRY_DELAY_MS", DEFAULT_RETRY_DELAY_MS
                ),
                connect_timeout_ms=self._int_setting(
                    "MQTT_CONNECT_TIMEOUT_MS", DEFAULT_CONNECT_TIMEOUT_MS
                ),
                client_id=optional("MQTT_CLIENT_ID") or "",
            )
            BrokerAddress.parse(config.broker_url)
        except ValueError as e:
            raise ConfigError(str(e)) from e

        if not config.topic:
            logger.warning("MQTT_PATH is not set, publishing will fail")
        if bool(config.access_client_id) != bool(config.access_client_secret):
            logger.debug("Only one of CF_ACCESS_CLIENT_ID/CF_ACCESS_CLIENT_SECRET set, ignoring both")

        return config

    def get_logging_config(self) -> Dict[str, Any]:
        """
        Get logging configuration.

        Returns:
            Dictionary with 'level' and 'format'
        """
        return {
            "level": self._env("MQTT_LOG_LEVEL") or self.get("logging.level", "INFO"),
            "format": self.get("logging.format", DEFAULT_LOG_FORMAT),
        }

    def __repr__(self) -> str:
        """String representation of config."""
        return f"Config(path={self.config_path})"


def load_config(
    environ: Optional[Mapping[str, str]] = None,
    config_path: Optional[str] = None,
) -> PublisherConfig:
    """Load the publisher configuration from the environment and optional file."""
    return Config(config_path, environ).get_publisher_config()
