"""YAML configuration loader with environment variable substitution.

Environment variable syntax:
    ${VAR}          - Required variable, raises error if not set
    ${VAR:-default} - Optional variable with default value

Example:
    >>> config = load_yaml_config("procfuture.yaml")
    >>> config.worker.flags
    ['-u', '-s']
"""

import os
import re
from pathlib import Path
from typing import Any, Union

import yaml
from pydantic import ValidationError

from procfuture.config.schema import ConfigSchema


class ConfigLoadError(Exception):
    """Error loading or validating configuration."""

    pass


# Pattern for environment variables: ${VAR} or ${VAR:-default}
ENV_VAR_PATTERN = re.compile(r"\$\{([^}:]+)(?::-([^}]*))?\}")


def substitute_env_vars(value: Any) -> Any:
    """Recursively substitute environment variables in a value.

    Args:
        value: Value to process (string, dict, list, or other).

    Returns:
        Value with environment variables substituted.

    Raises:
        KeyError: If a required environment variable is not set.

    Examples:
        >>> os.environ["WORKER_PY"] = "/usr/bin/python3"
        >>> substitute_env_vars({"python": "${WORKER_PY}"})
        {'python': '/usr/bin/python3'}
        >>> substitute_env_vars("${MISSING:-WARNING}")
        'WARNING'
    """
    if isinstance(value, str):
        return ENV_VAR_PATTERN.sub(_replace_var, value)
    elif isinstance(value, dict):
        return {k: substitute_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [substitute_env_vars(item) for item in value]
    else:
        return value


def _replace_var(match: re.Match) -> str:
    var_name = match.group(1)
    default = match.group(2)  # None if no default specified

    value = os.environ.get(var_name)
    if value is not None:
        return value
    if default is not None:
        return default
    raise KeyError(
        f"Environment variable '{var_name}' is not set "
        f"and no default provided"
    )


def _build_config(raw_data: Any, source: str, substitute_vars: bool) -> ConfigSchema:
    """Validate parsed YAML data into a ConfigSchema."""
    # An empty document means "all defaults".
    if raw_data is None:
        raw_data = {}

    if not isinstance(raw_data, dict):
        raise ConfigLoadError(
            f"Configuration in {source} must be a dictionary, "
            f"got {type(raw_data).__name__}"
        )

    if substitute_vars:
        try:
            raw_data = substitute_env_vars(raw_data)
        except KeyError as e:
            raise ConfigLoadError(f"Environment variable error in {source}: {e}") from e

    try:
        return ConfigSchema.model_validate(raw_data)
    except ValidationError as e:
        raise ConfigLoadError(f"Configuration validation failed for {source}: {e}") from e


def load_yaml_config(
    path: Union[str, Path],
    substitute_vars: bool = True,
) -> ConfigSchema:
    """Load and validate a YAML configuration file.

    Args:
        path: Path to the YAML configuration file.
        substitute_vars: Whether to substitute environment variables.

    Returns:
        Validated ConfigSchema object.

    Raises:
        ConfigLoadError: If the file cannot be parsed or validated.
        FileNotFoundError: If the config file doesn't exist.
    """
    path = Path(path)

    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            raw_data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigLoadError(f"Invalid YAML in {path}: {e}") from e

    return _build_config(raw_data, str(path), substitute_vars)


def load_yaml_string(
    content: str,
    substitute_vars: bool = True,
) -> ConfigSchema:
    """Load and validate a YAML configuration from a string.

    Raises:
        ConfigLoadError: If the content cannot be parsed or validated.
    """
    try:
        raw_data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigLoadError(f"Invalid YAML: {e}") from e

    return _build_config(raw_data, "<string>", substitute_vars)
