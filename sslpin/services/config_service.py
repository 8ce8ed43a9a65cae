"""
Configuration service for loading and validating client settings.
"""
import os
import configparser
from typing import Dict, Any
from urllib.parse import urlparse
import logging

from ..models.config import Config, ConfigValidationError, ConfigValidationResult

# Maps "section.key" and flat keys to Config fields
CONFIG_MAPPING = {
    "pinning.host": ("pinned_host", str),
    "pinned_host": ("pinned_host", str),
    "pinning.anchor_dir": ("anchor_dir", str),
    "anchor_dir": ("anchor_dir", str),

    "network.api_url": ("api_url", str),
    "api_url": ("api_url", str),
    "network.verify_ca": ("verify_ca", bool),
    "verify_ca": ("verify_ca", bool),
    "network.max_retry_attempts": ("max_retry_attempts", int),
    "max_retry_attempts": ("max_retry_attempts", int),
    "network.request_timeout_seconds": ("request_timeout_seconds", int),
    "request_timeout_seconds": ("request_timeout_seconds", int),

    "app.log_level": ("log_level", str),
    "log_level": ("log_level", str),
    "app.log_file_path": ("log_file_path", str),
    "log_file_path": ("log_file_path", str),
}

DEFAULT_CONFIG_CONTENT = """# SSL Pinning Client Configuration File

[pinning]
host = thronesapi.com
anchor_dir = certs

[network]
api_url = https://thronesapi.com/api/v2/Characters
verify_ca = true
max_retry_attempts = 3
request_timeout_seconds = 30

[app]
log_level = INFO
log_file_path = logs/ssl_pinning.log
"""


class ConfigService:
    """Service for loading and validating client configuration."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def load_config(self, config_path: str) -> Config:
        """
        Load configuration from a property file.

        Args:
            config_path: Path to the configuration file

        Returns:
            Config object with loaded settings

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config file is invalid or has validation errors
        """
        if not os.path.exists(config_path):
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        config_data = self._load_config_file(config_path)
        config = self._create_config_from_data(config_data)

        validation_result = self.validate_config(config)

        if validation_result.has_errors():
            error_summary = validation_result.get_error_summary()
            raise ValueError(f"Configuration validation failed:\n{error_summary}")

        if validation_result.has_warnings():
            warning_summary = validation_result.get_error_summary()
            self.logger.warning(f"Configuration warnings:\n{warning_summary}")

        return config

    def _load_config_file(self, config_path: str) -> Dict[str, Any]:
        """Load configuration data from file."""
        config_parser = configparser.ConfigParser()

        try:
            config_parser.read(config_path)
        except configparser.Error as e:
            raise ValueError(f"Failed to parse configuration file: {e}")

        config_data = {}
        for section in config_parser.sections():
            for key, value in config_parser.items(section):
                config_data[f"{section}.{key}"] = value

        # DEFAULT section items are flat keys
        for key, value in config_parser.defaults().items():
            config_data.setdefault(key, value)

        return config_data

    def _create_config_from_data(self, config_data: Dict[str, Any]) -> Config:
        """Create Config object from configuration data."""
        config_kwargs = {}

        for config_key, raw_value in config_data.items():
            if config_key not in CONFIG_MAPPING:
                continue

            field_name, field_type = CONFIG_MAPPING[config_key]
            try:
                if field_type == bool:
                    value = self._parse_bool(raw_value)
                elif field_type == int:
                    value = int(raw_value)
                else:
                    value = str(raw_value).strip()
            except (ValueError, TypeError) as e:
                raise ValueError(f"Invalid value for {config_key}: {raw_value} ({e})")

            config_kwargs[field_name] = value

        return Config(**config_kwargs)

    def _parse_bool(self, value: Any) -> bool:
        """Parse boolean value from string."""
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return value.lower() in ("true", "yes", "1", "on", "enabled")
        return bool(value)

    def validate_config(self, config: Config) -> ConfigValidationResult:
        """
        Validate configuration settings.

        Args:
            config: Configuration object to validate

        Returns:
            ConfigValidationResult with validation results
        """
        errors = []
        warnings = []

        parsed_url = urlparse(config.api_url or "")
        if parsed_url.scheme != "https" or not parsed_url.netloc:
            errors.append(ConfigValidationError(
                "api_url",
                "API URL must be an https:// URL"
            ))
        elif parsed_url.hostname != config.pinned_host:
            warnings.append(ConfigValidationError(
                "api_url",
                f"API host {parsed_url.hostname} differs from pinned host {config.pinned_host}",
                "warning"
            ))

        anchor_path = os.path.join(config.anchor_dir, f"{config.pinned_host}.der")
        if not os.path.exists(anchor_path):
            warnings.append(ConfigValidationError(
                "anchor_dir",
                f"Pinned certificate not found: {anchor_path}; all connections will be rejected",
                "warning"
            ))

        if not config.verify_ca:
            warnings.append(ConfigValidationError(
                "verify_ca",
                "CA verification is disabled; only the pin protects connections",
                "warning"
            ))

        if config.log_file_path:
            log_dir = os.path.dirname(config.log_file_path)
            if log_dir and not os.path.exists(log_dir):
                warnings.append(ConfigValidationError(
                    "log_file_path",
                    f"Log directory does not exist: {log_dir}",
                    "warning"
                ))

        if config.request_timeout_seconds > 300:
            warnings.append(ConfigValidationError(
                "request_timeout_seconds",
                "Request timeout over 5 minutes may cause performance issues",
                "warning"
            ))

        all_issues = errors + warnings
        return ConfigValidationResult(
            is_valid=len(errors) == 0,
            errors=all_issues,
            warnings=[]
        )

    def create_default_config_file(self, config_path: str) -> None:
        """
        Create a default configuration file with example settings.

        Args:
            config_path: Path where to create the config file
        """
        config_dir = os.path.dirname(config_path)
        if config_dir:
            os.makedirs(config_dir, exist_ok=True)

        with open(config_path, 'w') as f:
            f.write(DEFAULT_CONFIG_CONTENT)

        self.logger.info(f"Created default configuration file: {config_path}")
