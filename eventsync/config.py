"""
Configuration management for the event sync service.

This module provides centralized configuration management, supporting:
- Loading from JSON config files
- Environment variable overrides
- Validation of all settings
- The single logging setup shared by the API and scripts
"""

import os
import json
import logging
from dataclasses import dataclass, asdict
from typing import Optional, List, Tuple
from pathlib import Path

from eventsync.constants import (
    DEFAULT_CATEGORIES, SYNC_INTERVAL_MS_DEFAULT,
    MAX_EVENTS_DEFAULT, MAX_DELAY_MS_DEFAULT,
    STORE_MIN_LATENCY_MS_DEFAULT, STORE_MAX_LATENCY_MS_DEFAULT,
    RATE_LIMITED_RATE_DEFAULT, REQUEST_FAILED_RATE_DEFAULT, AMBIGUOUS_WRITE_RATE_DEFAULT,
    STATS_SAMPLES_DEFAULT, STATS_INTERVAL_MS_DEFAULT, LOG_FORMAT,
)
from eventsync.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

VALID_LOG_LEVELS = {'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'}


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging once for the process.

    Args:
        level: Logging level name. Defaults to the LOG_LEVEL environment
               variable, then 'INFO'.
    """
    level_name = (level or os.environ.get('LOG_LEVEL') or 'INFO').upper()
    if level_name not in VALID_LOG_LEVELS:
        level_name = 'INFO'
    logging.basicConfig(level=getattr(logging, level_name), format=LOG_FORMAT)


@dataclass
class SyncSettings:
    """Reconciliation settings.

    Attributes:
        categories: Known event categories, in sweep order
        sync_interval_ms: Period of the background sweep in milliseconds
    """
    categories: Tuple[str, ...] = DEFAULT_CATEGORIES
    sync_interval_ms: int = SYNC_INTERVAL_MS_DEFAULT

    def validate(self) -> List[str]:
        """Validate settings and return list of error messages (empty if valid)."""
        errors = []
        if not self.categories:
            errors.append("At least one event category is required")
        elif len(set(self.categories)) != len(self.categories):
            errors.append("Event categories must be unique")
        if not isinstance(self.sync_interval_ms, int) or self.sync_interval_ms <= 0:
            errors.append("Sync interval must be a positive integer")
        return errors


@dataclass
class SimulationSettings:
    """Occurrence generator and simulated remote store settings.

    Attributes:
        max_events: Occurrences generated per category (0 disables the generator)
        max_delay_ms: Upper bound of the pause between generated occurrences
        min_latency_ms: Lower bound of simulated store latency
        max_latency_ms: Upper bound of simulated store latency
        rate_limited_rate: Probability a store update is rate limited
        request_failed_rate: Probability a store update never reaches the store
        ambiguous_write_rate: Probability a store update is applied but unacknowledged
        seed: Optional random seed for reproducible runs
    """
    max_events: int = MAX_EVENTS_DEFAULT
    max_delay_ms: int = MAX_DELAY_MS_DEFAULT
    min_latency_ms: int = STORE_MIN_LATENCY_MS_DEFAULT
    max_latency_ms: int = STORE_MAX_LATENCY_MS_DEFAULT
    rate_limited_rate: float = RATE_LIMITED_RATE_DEFAULT
    request_failed_rate: float = REQUEST_FAILED_RATE_DEFAULT
    ambiguous_write_rate: float = AMBIGUOUS_WRITE_RATE_DEFAULT
    seed: Optional[int] = None

    def validate(self) -> List[str]:
        """Validate settings and return list of error messages (empty if valid)."""
        errors = []
        if self.max_events < 0:
            errors.append("Max events must be non-negative")
        if self.max_delay_ms < 0:
            errors.append("Max delay must be non-negative")
        if self.min_latency_ms < 0 or self.max_latency_ms < self.min_latency_ms:
            errors.append("Latency range must satisfy 0 <= min_latency_ms <= max_latency_ms")
        rates = (self.rate_limited_rate, self.request_failed_rate, self.ambiguous_write_rate)
        if any(r < 0 or r > 1 for r in rates):
            errors.append("Failure rates must be between 0 and 1")
        elif sum(rates) > 1:
            errors.append("Failure rates must sum to at most 1")
        return errors


@dataclass
class AppSettings:
    """Application-level configuration settings.

    Attributes:
        log_level: Logging level ('DEBUG', 'INFO', 'WARNING', 'ERROR')
        stats_samples: How many times the observation harness reports
        stats_interval_ms: Pause between observation reports
    """
    log_level: str = 'INFO'
    stats_samples: int = STATS_SAMPLES_DEFAULT
    stats_interval_ms: int = STATS_INTERVAL_MS_DEFAULT

    def validate(self) -> List[str]:
        """Validate settings and return list of error messages (empty if valid)."""
        errors = []
        if self.log_level.upper() not in VALID_LOG_LEVELS:
            errors.append(f"Log level must be one of {VALID_LOG_LEVELS}")
        if self.stats_samples < 0:
            errors.append("Stats samples must be non-negative")
        if self.stats_interval_ms <= 0:
            errors.append("Stats interval must be positive")
        return errors


# environment variable -> (section attribute, field name, converter)
_ENV_OVERRIDES = {
    'EVENTSYNC_SYNC_INTERVAL_MS': ('sync_settings', 'sync_interval_ms', int),
    'EVENTSYNC_MAX_EVENTS': ('simulation_settings', 'max_events', int),
    'EVENTSYNC_MAX_DELAY_MS': ('simulation_settings', 'max_delay_ms', int),
    'EVENTSYNC_MIN_LATENCY_MS': ('simulation_settings', 'min_latency_ms', int),
    'EVENTSYNC_MAX_LATENCY_MS': ('simulation_settings', 'max_latency_ms', int),
    'EVENTSYNC_RATE_LIMITED_RATE': ('simulation_settings', 'rate_limited_rate', float),
    'EVENTSYNC_REQUEST_FAILED_RATE': ('simulation_settings', 'request_failed_rate', float),
    'EVENTSYNC_AMBIGUOUS_WRITE_RATE': ('simulation_settings', 'ambiguous_write_rate', float),
    'EVENTSYNC_SEED': ('simulation_settings', 'seed', int),
}


def _parse_categories(value) -> Tuple[str, ...]:
    if isinstance(value, str):
        value = value.split(',')
    return tuple(str(c).strip() for c in value if str(c).strip())


class ConfigManager:
    """Centralized configuration manager for the event sync service.

    Settings are loaded from multiple sources with priority:
    1. JSON config file (highest priority)
    2. Environment variables
    3. Default values (lowest priority)

    Attributes:
        sync_settings: Reconciliation configuration
        simulation_settings: Generator and simulated store configuration
        app_settings: Application-level configuration
        _config_file: Path to JSON config file (if loaded)
    """

    def __init__(self, config_file: Optional[str] = None):
        """Initialize ConfigManager.

        Args:
            config_file: Optional path to JSON config file. If None, will try
                         EVENTSYNC_CONFIG, then ~/.eventsync/config.json
        """
        self.sync_settings = SyncSettings()
        self.simulation_settings = SimulationSettings()
        self.app_settings = AppSettings()
        self._config_file: Optional[str] = config_file

        self._load_from_environment()
        if config_file:
            self._load_from_file(config_file)
        else:
            self._load_from_default_locations()

        errors = self.validate()
        if errors:
            logger.warning(f"Configuration validation errors: {errors}")

    @property
    def config_file(self) -> Optional[str]:
        return self._config_file

    def _load_from_environment(self) -> None:
        """Load configuration from environment variables."""
        categories = os.environ.get('EVENTSYNC_CATEGORIES')
        if categories:
            self.sync_settings.categories = _parse_categories(categories)

        for var, (section, name, convert) in _ENV_OVERRIDES.items():
            raw = os.environ.get(var)
            if raw is None or raw == '':
                continue
            try:
                setattr(getattr(self, section), name, convert(raw))
            except (ValueError, TypeError):
                logger.warning(f"Invalid {var} environment variable: {raw}")

        log_level = os.environ.get('LOG_LEVEL')
        if log_level:
            self.app_settings.log_level = log_level.upper()

    def _apply_section(self, settings, data: dict, section_name: str) -> None:
        for key, value in data.items():
            if not hasattr(settings, key):
                logger.warning(f"Unknown setting {section_name}.{key} in config file")
                continue
            current = getattr(settings, key)
            try:
                if key == 'categories':
                    value = _parse_categories(value)
                elif key == 'log_level':
                    value = str(value).upper()
                elif value is not None and isinstance(current, (int, float)) and not isinstance(current, bool):
                    value = type(current)(value)
            except (ValueError, TypeError):
                logger.warning(f"Invalid {section_name}.{key} in config: {value}")
                continue
            setattr(settings, key, value)

    def _load_from_file(self, file_path: str) -> bool:
        """Load configuration from JSON file.

        Args:
            file_path: Path to JSON config file

        Returns:
            True if loaded successfully, False otherwise
        """
        if not os.path.exists(file_path):
            logger.debug(f"Config file not found: {file_path}")
            return False

        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            logger.error(f"Failed to parse config file {file_path}: {e}")
            return False
        except OSError as e:
            logger.error(f"Failed to read config file {file_path}: {e}", exc_info=True)
            return False

        for section_name in ('sync_settings', 'simulation_settings', 'app_settings'):
            if section_name in data:
                self._apply_section(getattr(self, section_name), data[section_name], section_name)

        self._config_file = file_path
        logger.info(f"Loaded configuration from {file_path}")
        return True

    def _load_from_default_locations(self) -> None:
        """Try loading from default config file locations."""
        env_file = os.environ.get('EVENTSYNC_CONFIG')
        if env_file:
            self._load_from_file(env_file)
            return

        user_config_file = Path.home() / '.eventsync' / 'config.json'
        if user_config_file.exists():
            self._load_from_file(str(user_config_file))

    def save_to_file(self, file_path: Optional[str] = None) -> bool:
        """Save current configuration to JSON file.

        Args:
            file_path: Optional path to save to. If None, uses _config_file or creates user config.

        Returns:
            True if saved successfully, False otherwise
        """
        save_path = file_path or self._config_file
        if not save_path:
            user_config_dir = Path.home() / '.eventsync'
            save_path = str(user_config_dir / 'config.json')

        data = {
            'sync_settings': asdict(self.sync_settings),
            'simulation_settings': asdict(self.simulation_settings),
            'app_settings': asdict(self.app_settings),
        }
        data['sync_settings']['categories'] = list(self.sync_settings.categories)

        # Remove None values
        for section in data.values():
            for key in list(section.keys()):
                if section[key] is None:
                    del section[key]

        try:
            os.makedirs(os.path.dirname(os.path.abspath(save_path)), exist_ok=True)
            with open(save_path, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2)
        except OSError as e:
            logger.error(f"Failed to save config file {save_path}: {e}", exc_info=True)
            return False

        self._config_file = save_path
        logger.info(f"Saved configuration to {save_path}")
        return True

    def validate(self) -> List[str]:
        """Validate all configuration settings.

        Returns:
            List of error messages (empty if all valid)
        """
        errors = []
        errors.extend(self.sync_settings.validate())
        errors.extend(self.simulation_settings.validate())
        errors.extend(self.app_settings.validate())
        return errors

    def require_valid(self) -> None:
        """Raise ConfigurationError if any setting is invalid."""
        errors = self.validate()
        if errors:
            raise ConfigurationError(f"Invalid configuration: {'; '.join(errors)}")
