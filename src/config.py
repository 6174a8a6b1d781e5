"""
Configuration module for the signal harness
Centralizes timeouts, browser projects, logging and environment validation
"""

import json
import logging
import os
import threading
from pathlib import Path
from typing import Any, Dict, Literal, Optional, Union

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

SUPPORTED_PROJECTS = ("chromium", "firefox")


class ConfigError(Exception):
    """Configuration validation error"""
    pass


def _is_ci() -> bool:
    return bool(os.getenv("CI"))


def _safe_int_env(name: str, default: int, min_val: int = None, max_val: int = None) -> int:
    """
    Safely parse integer environment variable with bounds.
    Falls back to default on invalid values.
    """
    logger_local = logging.getLogger(__name__)
    try:
        value = int(os.getenv(name, str(default)))
        if min_val is not None:
            value = max(min_val, value)
        if max_val is not None:
            value = min(max_val, value)
        return value
    except (ValueError, TypeError):
        logger_local.warning(f"Invalid {name}, using default {default}")
        return default


class EnvironmentSettings(BaseModel):
    """
    Validated process environment.

    STEEL_API_KEY is optional: when set, browsers are remote Steel sessions
    reached over CDP instead of locally launched ones.
    """

    steel_api_key: Optional[str] = Field(None, min_length=1, description="Steel browser API key")
    base_url: str = Field("http://localhost:3000", description="PLAYWRIGHT_BASE_URL")
    environment: Literal["development", "test", "production"] = Field("test")
    ci: bool = Field(False)

    @field_validator("base_url")
    @classmethod
    def _check_base_url(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")) or "://" == value[-3:]:
            raise ValueError(f"PLAYWRIGHT_BASE_URL must be an http(s) URL, got {value!r}")
        return value

    @property
    def cdp_url(self) -> Optional[str]:
        """Steel CDP websocket endpoint, or None to launch browsers locally."""
        if not self.steel_api_key:
            return None
        return f"wss://connect.steel.dev?apiKey={self.steel_api_key}"


class Config:
    """
    Harness configuration with:
    - Sectioned defaults (CI-aware)
    - Environment variable support (.env loaded on demand)
    - Validation with aggregated errors
    - JSON overrides
    """

    # ========== Harness Settings ==========
    HARNESS = {
        'test_timeout': 120,  # seconds, whole merchant test
        'signal_timeout_ms': 15000,  # per wait attempt
        'signal_max_retries': 3,
        'signal_retry_backoff': 1.0,  # seconds between attempts
        'poll_interval': 0.05,
        'default_wait_timeout_ms': 30000,
        'retries': 2 if _is_ci() else 0,  # whole-test retries
        'workers': 1 if _is_ci() else _safe_int_env('HARNESS_WORKERS', 4, 1, 32),
    }

    # ========== Browser Settings ==========
    BROWSER = {
        'projects': list(SUPPORTED_PROJECTS),
        'headless': _is_ci() or os.getenv('HEADLESS', 'false').lower() == 'true',
        'viewport': {'width': 1280, 'height': 720},
        'ignore_https_errors': True,
        'navigation_wait_until': 'domcontentloaded',
    }

    # ========== Logging Settings ==========
    LOGGING = {
        'level': os.getenv('LOG_LEVEL', 'INFO'),
        'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        'date_format': '%Y-%m-%d %H:%M:%S',
        'max_bytes': 5 * 1024 * 1024,
        'backup_count': 3,
        'json_logs': os.getenv('LOG_JSON', 'false').lower() == 'true',
    }

    # ========== File Settings ==========
    @classmethod
    def get_files_config(cls) -> dict:
        """Get file configuration lazily so env overrides are honored"""
        output_dir = Path(os.getenv('HARNESS_OUTPUT_DIR', 'test-results'))
        return {
            'output_dir': output_dir,
            'log_dir': Path(os.getenv('HARNESS_LOG_DIR', str(output_dir / 'logs'))),
            'junit_file': output_dir / 'results.xml',
            'json_file': output_dir / 'results.json',
        }

    def __init__(
        self,
        config_file: Optional[str] = None,
        validate: bool = True,
    ):
        """
        Initialize configuration with optional validation

        Args:
            config_file: Optional path to JSON config file
            validate: Whether to validate configuration on init
        """
        self._lock = threading.RLock()
        self._files_config: Optional[dict] = None
        self._environment: Optional[EnvironmentSettings] = None
        self.config_file = config_file
        self._custom_settings: Dict[str, Dict[str, Any]] = {}
        self._logger = None

        if config_file:
            self.load_from_file(config_file)

        if validate:
            self.validate()

    @property
    def FILES(self) -> dict:
        """Cached file configuration"""
        with self._lock:
            if self._files_config is None:
                self._files_config = self.get_files_config()
            return self._files_config

    def load_environment(self, env_file: Union[str, Path, None] = '.env') -> EnvironmentSettings:
        """
        Load .env (if present) and validate the process environment.

        Raises:
            ConfigError: With every validation message if the environment is invalid
        """
        if env_file and Path(env_file).exists():
            load_dotenv(env_file)

        raw = {
            'steel_api_key': os.getenv('STEEL_API_KEY'),
            'base_url': os.getenv('PLAYWRIGHT_BASE_URL', 'http://localhost:3000'),
            'environment': os.getenv('HARNESS_ENV') or os.getenv('NODE_ENV') or 'test',
            'ci': _is_ci(),
        }
        try:
            settings = EnvironmentSettings(**raw)
        except ValidationError as e:
            messages = [
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
            ]
            raise ConfigError(
                "Invalid or missing environment variables:\n" + "\n".join(messages)
            ) from e

        with self._lock:
            self._environment = settings
        return settings

    @property
    def environment(self) -> EnvironmentSettings:
        """Validated environment (loaded on first access)"""
        with self._lock:
            settings = self._environment
        return settings if settings is not None else self.load_environment()

    def validate(self):
        """
        Validate all configuration values

        Raises:
            ConfigError: If configuration is invalid
        """
        errors = []

        if self.get('harness', 'test_timeout', 0) <= 0:
            errors.append("test_timeout must be positive")
        if self.get('harness', 'signal_timeout_ms', 0) <= 0:
            errors.append("signal_timeout_ms must be positive")
        if self.get('harness', 'default_wait_timeout_ms', 0) <= 0:
            errors.append("default_wait_timeout_ms must be positive")
        if self.get('harness', 'poll_interval', 0) <= 0:
            errors.append("poll_interval must be positive")
        if self.get('harness', 'signal_max_retries', 0) < 1:
            errors.append("signal_max_retries must be at least 1")
        if self.get('harness', 'signal_retry_backoff', 0) < 0:
            errors.append("signal_retry_backoff cannot be negative")
        if self.get('harness', 'retries', 0) < 0:
            errors.append("retries cannot be negative")
        if self.get('harness', 'workers', 0) < 1:
            errors.append("workers must be at least 1")

        projects = self.get('browser', 'projects', [])
        if not projects:
            errors.append("At least one browser project is required")
        for project in projects:
            if project not in SUPPORTED_PROJECTS:
                errors.append(f"Unknown browser project: {project}")

        viewport = self.get('browser', 'viewport', {})
        if viewport.get('width', 0) < 100 or viewport.get('height', 0) < 100:
            errors.append("Viewport dimensions must be at least 100x100")

        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if str(self.get('logging', 'level', '')).upper() not in valid_levels:
            errors.append(f"Invalid log level: {self.get('logging', 'level')}")

        if errors:
            raise ConfigError("Configuration validation failed:\n" + "\n".join(errors))

    def load_from_file(self, filepath: Union[str, Path]):
        """
        Load configuration overrides from a JSON file

        Args:
            filepath: Path to JSON configuration file
        """
        filepath = Path(filepath)

        try:
            if not filepath.exists():
                if self._logger:
                    self._logger.warning(f"Config file not found: {filepath}")
                return

            with open(filepath, 'r') as f:
                data = json.load(f)

            if not isinstance(data, dict):
                raise ConfigError(f"Config file must contain a JSON object: {filepath}")

            with self._lock:
                for section, values in data.items():
                    if isinstance(values, dict):
                        self._custom_settings.setdefault(section.lower(), {}).update(values)

            if self._logger:
                self._logger.info(f"Loaded configuration from {filepath}")

        except json.JSONDecodeError as e:
            error_msg = f"Invalid JSON in config file: {e}"
            if self._logger:
                self._logger.error(error_msg)
            raise ConfigError(error_msg)

    def get(self, section: str, key: str, default: Any = None) -> Any:
        """
        Get configuration value with support for custom settings

        Args:
            section: Configuration section name
            key: Configuration key
            default: Default value if not found

        Returns:
            Configuration value or default
        """
        with self._lock:
            section_lower = section.lower()
            if section_lower in self._custom_settings:
                if key in self._custom_settings[section_lower]:
                    return self._custom_settings[section_lower][key]

            section_attr = section.upper()
            if hasattr(self, section_attr):
                section_dict = getattr(self, section_attr)
                if isinstance(section_dict, dict):
                    return section_dict.get(key, default)

        return default

    def set(self, section: str, key: str, value: Any):
        """
        Set a configuration value

        Args:
            section: Configuration section name
            key: Configuration key
            value: Value to set
        """
        with self._lock:
            section_lower = section.lower()
            if section_lower not in self._custom_settings:
                self._custom_settings[section_lower] = {}
            self._custom_settings[section_lower][key] = value

    def set_logger(self, logger):
        """Set logger instance after logger initialization"""
        self._logger = logger

    def section(self, name: str) -> dict:
        """Section defaults merged with custom overrides"""
        merged = dict(getattr(self, name.upper(), {}))
        with self._lock:
            merged.update(self._custom_settings.get(name.lower(), {}))
        return merged


# Create global configuration instance.
#
# IMPORTANT: Keep this import side-effect free. Environment loading, logging
# configuration and validation happen in the runner's startup path.
config = Config(validate=False)
