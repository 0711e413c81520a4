"""Validate command for procfuture CLI."""

import sys
from pathlib import Path

from procfuture.config import load_yaml_config, ConfigLoadError


def cmd_validate(config_path: str) -> int:
    """Validate a configuration file.

    Args:
        config_path: Path to the YAML configuration file.

    Returns:
        Exit code (0 for success, 1 for validation errors).
    """
    path = Path(config_path)

    if not path.exists():
        print(f"Error: Configuration file not found: {path}", file=sys.stderr)
        return 1

    print(f"Validating: {path}")

    try:
        config = load_yaml_config(path)
    except ConfigLoadError as e:
        print(f"Validation failed: {e}", file=sys.stderr)
        return 1

    print(f"  Version: {config.version}")
    print(f"  Encoding: {config.encoding}")
    print(f"  Retain buffers: {config.retain_buffers}")

    worker = config.worker
    print("\n  Worker:")
    print(f"    Python: {worker.python or 'current interpreter'}")
    print(f"    Flags: {' '.join(worker.flags) or '(none)'}")
    print(f"    Log level: {worker.log_level}")
    if worker.init_modules:
        print("    Init modules:")
        for module_name in worker.init_modules:
            print(f"      - {module_name}")

    print(f"\n  Capture exclude: {config.capture.default_exclude or '(none)'}")
    print(f"  Observability: {config.observability.level}")

    if config.observability.sinks:
        print(f"    Sinks: {len(config.observability.sinks)}")
        for sink in config.observability.sinks:
            sink_info = sink.type
            if sink.path:
                sink_info += f" -> {sink.path}"
            print(f"      - {sink_info}")

    print("\nConfiguration is valid.")
    return 0
