"""Version command for procfuture CLI."""

import sys
from importlib.metadata import version, PackageNotFoundError


def cmd_version() -> int:
    """Display version information.

    Returns:
        Exit code (always 0).
    """
    try:
        pf_version = version("procfuture")
    except PackageNotFoundError:
        pf_version = "development"

    print(f"procfuture {pf_version}")
    print(f"Python {sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}")

    print("\nDependencies:")

    deps = [
        ("cloudpickle", "Task and value serialization"),
        ("pydantic", "Config validation"),
        ("pyyaml", "YAML config support"),
    ]

    for pkg, desc in deps:
        try:
            pkg_version = version(pkg)
            status = f"v{pkg_version}"
        except PackageNotFoundError:
            status = "not installed"
        print(f"  {pkg}: {status} ({desc})")

    return 0
