"""Process-wide configuration in effect for new launches.

The configuration is built lazily on first use:
1. From the YAML file named by PROCFUTURE_CONFIG, if set.
2. Otherwise from ConfigSchema defaults.
Then PROCFUTURE_DEBUG=1 turns on buffer retention.

Example:
    >>> from procfuture.config import configure, set_debug
    >>> configure(worker={"init_modules": ["myapp.bootstrap"]})
    >>> set_debug(True)   # keep output buffers of finished processes
"""

import logging
import os
import threading
from typing import Any, Optional

from procfuture.config.loader import load_yaml_config
from procfuture.config.schema import ConfigSchema

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "PROCFUTURE_CONFIG"
DEBUG_ENV_VAR = "PROCFUTURE_DEBUG"

_TRUE_VALUES = {"1", "true", "yes", "on"}

_config: Optional[ConfigSchema] = None
_lock = threading.Lock()


def _initial_config() -> ConfigSchema:
    path = os.environ.get(CONFIG_ENV_VAR)
    if path:
        logger.info(f"Loading procfuture configuration from {path}")
        config = load_yaml_config(path)
        if config.observability.level != "off":
            from procfuture.observability import configure_from_schema
            configure_from_schema(config.observability)
    else:
        config = ConfigSchema()

    if os.environ.get(DEBUG_ENV_VAR, "").strip().lower() in _TRUE_VALUES:
        config = config.model_copy(update={"retain_buffers": True})
    return config


def get_config() -> ConfigSchema:
    """Return the configuration in effect."""
    global _config
    if _config is None:
        with _lock:
            if _config is None:
                _config = _initial_config()
    return _config


def set_config(config: ConfigSchema) -> None:
    """Replace the configuration in effect."""
    global _config
    with _lock:
        _config = config


def configure(**overrides: Any) -> ConfigSchema:
    """Update fields of the configuration in effect.

    Nested sections may be given as dicts and are merged into the
    current section, e.g. ``configure(worker={"log_level": "DEBUG"})``.

    Returns:
        The new configuration.
    """
    data = get_config().model_dump()
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(data.get(key), dict):
            data[key].update(value)
        else:
            data[key] = value
    config = ConfigSchema.model_validate(data)
    set_config(config)
    return config


def reset_config() -> None:
    """Forget the configuration; the next get_config() rebuilds it."""
    global _config
    with _lock:
        _config = None


def set_debug(enabled: bool = True) -> None:
    """Toggle retention of completed output buffers."""
    configure(retain_buffers=enabled)


def is_debug() -> bool:
    return get_config().retain_buffers
