"""Configuration system for procfuture.

Provides YAML-based configuration with:
- Pydantic schema validation
- Environment variable substitution (${VAR} and ${VAR:-default})
- A process-wide configuration used by new launches

Example YAML config:
    version: "1.0"
    retain_buffers: false
    worker:
      python: "${WORKER_PYTHON:-/usr/bin/python3}"
      flags: ["-u", "-s"]
      init_modules:
        - myapp.bootstrap
      log_level: WARNING
    capture:
      default_exclude: "^_"
    observability:
      level: normal
      sinks:
        - type: file
          path: "${LOG_DIR:-./logs}/procfuture.jsonl"

Example usage:
    >>> from procfuture.config import load_yaml_config, set_config
    >>> set_config(load_yaml_config("procfuture.yaml"))
"""

from procfuture.config.schema import (
    ConfigSchema,
    WorkerSchema,
    CaptureSchema,
    ObservabilitySchema,
    SinkSchema,
)
from procfuture.config.loader import (
    load_yaml_config,
    load_yaml_string,
    substitute_env_vars,
    ConfigLoadError,
)
from procfuture.config.runtime import (
    get_config,
    set_config,
    configure,
    reset_config,
    set_debug,
    is_debug,
)

__all__ = [
    # Schema models
    "ConfigSchema",
    "WorkerSchema",
    "CaptureSchema",
    "ObservabilitySchema",
    "SinkSchema",
    # Loader
    "load_yaml_config",
    "load_yaml_string",
    "substitute_env_vars",
    "ConfigLoadError",
    # Runtime
    "get_config",
    "set_config",
    "configure",
    "reset_config",
    "set_debug",
    "is_debug",
]
