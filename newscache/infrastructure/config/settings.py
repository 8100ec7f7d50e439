"""Provides functions for loading and accessing configuration settings.

Supports loading from .env files, environment variables and a YAML
configuration file (~/.newscache/config.yaml).
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

from newscache.domain.models.cache import Expiration
from newscache.domain.models.keys import KEY_VARIANTS

logger = logging.getLogger(__name__)

# --- Configuration Constants ---
DEFAULT_CONFIG_DIR = Path.home() / ".newscache"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"
ENV_FILE_NAME = ".env"
ENV_PREFIX = "NEWSCACHE_"

# --- Global Configuration Store ---
_config: Dict[str, Any] = {}
_test_config: Dict[str, Any] = {}
_loaded = False


def load_configuration(config_file: Path = DEFAULT_CONFIG_FILE, env_file: Optional[Path] = None) -> None:
    """Loads configuration from environment, .env file, and YAML file.

    Priority order (highest to lowest):
    1. Test overrides (set_config_for_testing)
    2. Environment Variables
    3. .env file
    4. YAML configuration file
    5. Defaults passed to get_config

    Args:
        config_file: Path to the YAML configuration file.
        env_file: Path to the .env file (searches upwards from cwd if None).
    """
    global _config, _loaded
    if _loaded:
        logger.debug("Configuration already loaded.")
        return

    _config = {}

    # 1. YAML file (lowest priority)
    if config_file.exists():
        try:
            with open(config_file, 'r', encoding='utf-8') as f:
                yaml_config = yaml.safe_load(f)
            if isinstance(yaml_config, dict):
                _config.update(yaml_config)
                logger.info(f"Loaded configuration from YAML: {config_file}")
            elif yaml_config is not None:
                logger.warning(f"YAML config file {config_file} did not contain a dictionary.")
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load or parse YAML config {config_file}: {e}")
    else:
        logger.debug(f"YAML config file not found: {config_file}")

    # 2. .env file; override=False so real environment variables win
    dotenv_path = env_file or find_dotenv_path()
    if dotenv_path:
        if load_dotenv(dotenv_path=dotenv_path, override=False):
            logger.info(f"Loaded environment variables from: {dotenv_path}")
    else:
        logger.debug("No .env file found at or above the current directory.")

    _loaded = True


def reset_configuration() -> None:
    """Forgets loaded configuration so the next lookup reloads it."""
    global _config, _loaded
    _config = {}
    _loaded = False


def env_var_name(key: str) -> str:
    """'cache.ttl.news' -> 'NEWSCACHE_CACHE_TTL_NEWS'."""
    return ENV_PREFIX + key.upper().replace('.', '_')


def _coerce_env_value(value: str) -> Any:
    if value.lower() == 'true':
        return True
    elif value.lower() == 'false':
        return False
    try:
        if '.' in value:
            return float(value)
        else:
            return int(value)
    except (ValueError, TypeError):
        return value


def _lookup_yaml(key: str) -> Any:
    """Finds a dotted key either as a flat entry or by walking nested mappings."""
    if key in _config:
        return _config[key]
    node: Any = _config
    for part in key.split('.'):
        if not isinstance(node, dict) or part not in node:
            return None
        node = node[part]
    return node


def get_config(key: str, default: Any = None) -> Any:
    """
    Get a configuration value by dotted key (e.g. 'cache.dir').

    Args:
        key: The configuration key
        default: Default value if the key is not found

    Returns:
        The configuration value
    """
    if not _loaded:
        load_configuration()

    if key in _test_config:
        return _test_config[key]

    env_key = env_var_name(key)
    if env_key in os.environ:
        return _coerce_env_value(os.environ[env_key])

    value = _lookup_yaml(key)
    if value is not None:
        return value

    logger.debug(f"Config key '{key}' not found in environment or loaded config. Returning default: {default}")
    return default


def find_dotenv_path() -> Optional[Path]:
    """Searches for the .env file upwards from the current directory."""
    try:
        cwd = Path.cwd()
        for path in [cwd] + list(cwd.parents):
            env_path = path / ENV_FILE_NAME
            if env_path.is_file():
                return env_path
    except OSError as e:
        logger.warning(f"Error searching for .env file: {e}")
    return None


# --- Convenience Functions ---

def get_cache_dir() -> Optional[Path]:
    value = get_config('cache.dir')
    return Path(str(value)).expanduser() if value else None


def get_queue_size(default: int = 1024) -> int:
    value = get_config('cache.queue_size', default)
    try:
        size = int(value)
    except (TypeError, ValueError):
        logger.warning(f"Invalid cache.queue_size '{value}'. Using {default}.")
        return default
    return size if size > 0 else default


def get_image_cache_dir() -> Optional[Path]:
    value = get_config('image_cache.dir')
    return Path(str(value)).expanduser() if value else None


def get_image_memory_limit(default: int = 50) -> int:
    value = get_config('image_cache.memory_limit', default)
    try:
        return max(1, int(value))
    except (TypeError, ValueError):
        logger.warning(f"Invalid image_cache.memory_limit '{value}'. Using {default}.")
        return default


def get_image_memory_cost_limit(default: int = 30 * 1024 * 1024) -> int:
    value = get_config('image_cache.memory_cost_limit', default)
    try:
        return max(1, int(value))
    except (TypeError, ValueError):
        logger.warning(f"Invalid image_cache.memory_cost_limit '{value}'. Using {default}.")
        return default


def get_ttl_overrides() -> Dict[str, Expiration]:
    """Reads cache.ttl.<namespace> settings (seconds, or 'never')."""
    overrides: Dict[str, Expiration] = {}
    for namespace in KEY_VARIANTS:
        value = get_config(f'cache.ttl.{namespace}')
        if value is None:
            continue
        if isinstance(value, str) and value.strip().lower() == 'never':
            overrides[namespace] = Expiration.never()
            continue
        try:
            seconds = float(value)
        except (TypeError, ValueError):
            logger.warning(f"Ignoring invalid TTL for namespace '{namespace}': {value!r}")
            continue
        if seconds < 0:
            logger.warning(f"Ignoring negative TTL for namespace '{namespace}': {value!r}")
            continue
        overrides[namespace] = Expiration.seconds(seconds)
    return overrides


def set_config_for_testing(config_dict: Dict[str, Any]) -> None:
    """
    Set configuration values for testing purposes.
    These values will override any existing configuration.
    """
    _test_config.update(config_dict)
    logger.debug(f"Set testing configuration: {config_dict}")


def clear_test_config() -> None:
    """Clear all testing configuration values."""
    _test_config.clear()
    logger.debug("Cleared testing configuration")
