"""Provides functions for loading and accessing configuration settings.

Supports loading from .env files, environment variables, and a YAML
configuration file (~/.validkit/config.yaml).

Keys are dotted (``resilience.retry_attempts``). The matching environment
variable is ``VALIDKIT_`` + the upper-cased key with dots as underscores
(``VALIDKIT_RESILIENCE_RETRY_ATTEMPTS``).
"""

import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

from validkit.domain.models.common import (
    DEFAULT_RETRY_ATTEMPTS,
    DEFAULT_RETRY_DELAY_MS,
    ResilienceConfig,
)
from validkit.domain.models.errors import ValidationError

logger = logging.getLogger(__name__)

# --- Configuration Constants ---
DEFAULT_CONFIG_DIR = Path.home() / ".validkit"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"
ENV_FILE_NAME = ".env"
ENV_PREFIX = "VALIDKIT_"

PRODUCTION_BASE_URL = "https://api.tpeoficial.com"
_ALLOWED_BASE_URL_RE = re.compile(r"^(https://api\.tpeoficial\.com|http://(localhost|dymoapi):\d+)$")

# --- Global Configuration Store ---
_config: Dict[str, Any] = {}
_test_config: Dict[str, Any] = {}
_loaded = False


def _flatten(data: Dict[str, Any], prefix: str = "") -> Dict[str, Any]:
    """Turns nested YAML mappings into dotted keys."""
    flat: Dict[str, Any] = {}
    for key, value in data.items():
        dotted = f"{prefix}{key}"
        if isinstance(value, dict):
            flat.update(_flatten(value, prefix=f"{dotted}."))
        else:
            flat[dotted] = value
    return flat


def load_configuration(
    config_file: Path = DEFAULT_CONFIG_FILE,
    env_file: Optional[Path] = None,
    force: bool = False,
) -> None:
    """Loads configuration from environment, .env file, and YAML file.

    Priority order (highest to lowest):
    1. Testing overrides
    2. Environment Variables
    3. .env file
    4. YAML configuration file
    5. Defaults passed to ``get_config``

    Args:
        config_file: Path to the YAML configuration file.
        env_file: Path to the .env file (searches upwards from cwd if None).
        force: Reload even if configuration was already loaded.
    """
    global _config, _loaded
    if _loaded and not force:
        logger.debug("Configuration already loaded.")
        return

    _config = {}

    # 1. YAML file (lowest priority)
    if config_file.exists():
        try:
            with open(config_file, "r", encoding="utf-8") as f:
                yaml_config = yaml.safe_load(f)
            if isinstance(yaml_config, dict):
                _config.update(_flatten(yaml_config))
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
        logger.debug("Skipping .env file loading (no file found).")

    _loaded = True
    logger.debug("Configuration loading process completed.")


def env_key_for(key: str) -> str:
    """Environment variable name for a configuration key."""
    if key.startswith(ENV_PREFIX):
        return key
    return ENV_PREFIX + key.upper().replace(".", "_")


def _coerce(value: str) -> Any:
    lowered = value.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    try:
        return float(value) if "." in value else int(value)
    except ValueError:
        return value


def get_config(key: str, default: Any = None) -> Any:
    """
    Get a configuration value by key.

    Args:
        key: The configuration key (e.g. 'resilience.retry_delay')
        default: Default value if the key is not found

    Returns:
        The configuration value
    """
    if key in _test_config:
        return _test_config[key]

    if not _loaded:
        load_configuration()

    env_key = env_key_for(key)
    if env_key in os.environ:
        return _coerce(os.environ[env_key])

    if key in _config:
        return _config[key]

    logger.debug(f"Config key '{key}' not found. Returning default: {default}")
    return default


def set_config(key: str, value: Any) -> None:
    """Sets a configuration value in memory for the rest of the process."""
    if not _loaded:
        load_configuration()
    logger.debug(f"Setting config: {key} = {value}")
    _config[key] = value


def find_dotenv_path() -> Optional[Path]:
    """Searches for the .env file upwards from the current directory."""
    cwd = Path.cwd()
    for path in [cwd] + list(cwd.parents):
        env_path = path / ENV_FILE_NAME
        if env_path.is_file():
            return env_path
    return None


# --- Convenience Functions ---

def get_api_key() -> Optional[str]:
    """Private API key (VALIDKIT_API_KEY or yaml api_key)."""
    key = get_config("api_key")
    return str(key) if key else None


def get_root_api_key() -> Optional[str]:
    """Root API key (VALIDKIT_ROOT_API_KEY or yaml root_api_key)."""
    key = get_config("root_api_key")
    return str(key) if key else None


def validate_base_url(base_url: str) -> str:
    """Accepts the production URL or a local development server.

    Raises:
        ValidationError: For any other URL.
    """
    if not _ALLOWED_BASE_URL_RE.match(base_url):
        raise ValidationError(
            "Invalid URL. It must be https://api.tpeoficial.com or start with "
            "http://localhost or http://dymoapi followed by a port."
        )
    return base_url


def get_base_url() -> str:
    return validate_base_url(str(get_config("base_url", PRODUCTION_BASE_URL)))


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def get_resilience_config() -> ResilienceConfig:
    """Builds a ResilienceConfig from the ``resilience.*`` keys."""
    try:
        return ResilienceConfig(
            fallback_enabled=_as_bool(get_config("resilience.fallback_enabled", False)),
            retry_attempts=int(get_config("resilience.retry_attempts", DEFAULT_RETRY_ATTEMPTS)),
            retry_delay=int(get_config("resilience.retry_delay", DEFAULT_RETRY_DELAY_MS)),
        )
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Invalid resilience configuration: {e}") from e


def set_config_for_testing(config_dict: Dict[str, Any]) -> None:
    """
    Set configuration values for testing purposes.
    These values override any existing configuration.
    """
    _test_config.update(config_dict)
    logger.debug(f"Set testing configuration: {config_dict}")


def clear_test_config() -> None:
    """Clear all testing configuration values."""
    _test_config.clear()
    logger.debug("Cleared testing configuration")
