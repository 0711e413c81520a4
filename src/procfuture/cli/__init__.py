"""CLI entry point for procfuture.

Provides command-line interface for:
- Running a program under a process future
- Evaluating an expression in a task worker
- Validating configuration files
- Displaying version information

Usage:
    procfuture run -- ls -l /tmp
    procfuture eval "sum(range(10))"
    procfuture validate -c procfuture.yaml
    procfuture version
"""

import argparse
import sys
from typing import List, Optional


def create_parser() -> argparse.ArgumentParser:
    """Create the main argument parser."""
    parser = argparse.ArgumentParser(
        prog="procfuture",
        description="Run work in separate processes through futures",
    )
    parser.add_argument(
        "--version",
        action="store_true",
        help="Show version and exit",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Retain output buffers of completed processes",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # run command
    run_parser = subparsers.add_parser(
        "run",
        help="Run a program and wait for it",
    )
    run_parser.add_argument(
        "--name",
        help="Label for logs and traces (default: program name)",
    )
    run_parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Seconds to wait before giving up",
    )
    run_parser.add_argument(
        "program",
        help="Program to run",
    )
    run_parser.add_argument(
        "args",
        nargs=argparse.REMAINDER,
        help="Arguments passed to the program",
    )

    # eval command
    eval_parser = subparsers.add_parser(
        "eval",
        help="Evaluate a Python expression in a worker process",
    )
    eval_parser.add_argument(
        "expression",
        help="Expression to evaluate",
    )
    eval_parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Seconds to wait before giving up",
    )

    # validate command
    validate_parser = subparsers.add_parser(
        "validate",
        help="Validate a configuration file",
    )
    validate_parser.add_argument(
        "-c", "--config",
        required=True,
        help="Path to YAML configuration file",
    )

    # version command
    subparsers.add_parser(
        "version",
        help="Show version information",
    )

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:]).

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.version:
        from procfuture.cli.commands.version import cmd_version
        return cmd_version()

    if args.command is None:
        parser.print_help()
        return 0

    if args.debug:
        from procfuture.config import set_debug
        set_debug(True)

    if args.command == "run":
        from procfuture.cli.commands.run import cmd_run
        return cmd_run(
            program=args.program,
            args=args.args,
            name=args.name,
            timeout=args.timeout,
        )

    elif args.command == "eval":
        from procfuture.cli.commands.eval import cmd_eval
        return cmd_eval(
            expression=args.expression,
            timeout=args.timeout,
        )

    elif args.command == "validate":
        from procfuture.cli.commands.validate import cmd_validate
        return cmd_validate(config_path=args.config)

    elif args.command == "version":
        from procfuture.cli.commands.version import cmd_version
        return cmd_version()

    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
