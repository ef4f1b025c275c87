# SPDX-License-Identifier: MIT
"""Command-line interface for bullet-sys."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from bullet_sys.configure.config import PipelineConfig, load_config
from bullet_sys.configure.environment import BuildEnvironment, set_cli_vars
from bullet_sys.configure.platform import resolve_target
from bullet_sys.core.errors import BulletSysError
from bullet_sys.core.pipeline import Pipeline

# Set up logging
logger = logging.getLogger("bullet_sys")


def setup_logging(verbose: bool = False, debug: bool = False) -> None:
    """Configure logging based on verbosity level.

    Log output goes to stderr; stdout is reserved for link directives.
    """
    if debug:
        level = logging.DEBUG
        fmt = "%(levelname)s: %(name)s: %(message)s"
    elif verbose:
        level = logging.INFO
        fmt = "%(levelname)s: %(message)s"
    else:
        level = logging.WARNING
        fmt = "%(levelname)s: %(message)s"

    logging.basicConfig(level=level, format=fmt, stream=sys.stderr)


def parse_variables(args: list[str]) -> tuple[dict[str, str], list[str]]:
    """Parse KEY=value arguments from a list.

    Args:
        args: List of arguments.

    Returns:
        Tuple of (variables dict, remaining args).
    """
    variables: dict[str, str] = {}
    remaining: list[str] = []

    for arg in args:
        if "=" in arg and not arg.startswith("-"):
            key, _, value = arg.partition("=")
            if key:  # Valid KEY=value
                variables[key] = value
            else:
                remaining.append(arg)
        else:
            remaining.append(arg)

    return variables, remaining


def load_settings(args: argparse.Namespace) -> tuple[PipelineConfig, BuildEnvironment]:
    """Build the configuration and environment from parsed arguments.

    Raises:
        FileNotFoundError: If --config names a missing file.
        ValueError: If the config file or a variable is invalid.
    """
    variables, remaining = parse_variables(getattr(args, "extra", []))
    if remaining:
        raise ValueError(f"Unexpected arguments: {' '.join(remaining)}")
    set_cli_vars(variables)

    config = PipelineConfig()
    if args.config:
        config = load_config(args.config)
    if variables.get("GIT"):
        config = config.replace(git=variables["GIT"])
    if variables.get("CMAKE"):
        config = config.replace(cmake=variables["CMAKE"])

    env = BuildEnvironment.from_vars(args.root)
    return config, env


def _run(args: argparse.Namespace, until: str | None = None) -> int:
    setup_logging(args.verbose, args.debug)
    try:
        config, env = load_settings(args)
    except (OSError, ValueError) as e:
        logger.error("%s", e)
        return 1

    pipeline = Pipeline(config, env, script=Path(args.script) if args.script else None)
    try:
        pipeline.run(until=until)
    except BulletSysError as e:
        logger.error("%s", e)
        return 1
    return 0


def cmd_default(args: argparse.Namespace) -> int:
    """Default command: run the whole pipeline."""
    return _run(args)


def cmd_fetch(args: argparse.Namespace) -> int:
    """Fetch or update the source checkout only."""
    return _run(args, until="fetch")


def cmd_target(args: argparse.Namespace) -> int:
    """Print the resolved target identifier."""
    setup_logging(args.verbose, args.debug)
    try:
        config, env = load_settings(args)
    except (OSError, ValueError) as e:
        logger.error("%s", e)
        return 1

    print(resolve_target(env.target, config.apple_min_version))
    return 0


def cmd_info(args: argparse.Namespace) -> int:
    """Show the effective configuration and environment."""
    setup_logging(args.verbose, args.debug)
    try:
        config, env = load_settings(args)
    except (OSError, ValueError) as e:
        logger.error("%s", e)
        return 1

    data = {
        "config": config.to_dict(),
        "environment": {
            "project_root": str(env.project_root),
            "target": env.target,
            "resolved_target": resolve_target(env.target, config.apple_min_version),
            "out_dir": str(env.out_dir),
            "jobs": env.jobs,
            "checkout": str(config.checkout_dir(env.project_root)),
        },
    }
    print(json.dumps(data, indent=2))
    return 0


def add_common_args(parser: argparse.ArgumentParser) -> None:
    """Add common arguments to a parser."""
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    parser.add_argument("--debug", action="store_true", help="Debug output")
    parser.add_argument("-c", "--config", help="JSON file with configuration overrides")
    parser.add_argument(
        "-R", "--root", help="Project root (default: BULLET_SYS_ROOT or current dir)"
    )
    parser.add_argument(
        "-s", "--script", help="Build script announced as rerun trigger (default: the running script)"
    )
    parser.add_argument(
        "extra",
        nargs="*",
        help="Build variables (KEY=value), e.g. TARGET=x86_64-apple-darwin",
    )


COMMANDS = ("build", "fetch", "target", "info")

# Common options that take a value
VALUE_OPTIONS = ("-c", "--config", "-R", "--root", "-s", "--script")


def find_command(argv: list[str]) -> int | None:
    """Index of the command name in argv, or None if there is none.

    Option values are skipped, so `-R build` names a root directory.
    """
    skip = False
    for i, arg in enumerate(argv):
        if skip:
            skip = False
        elif arg in VALUE_OPTIONS:
            skip = True
        elif not arg.startswith("-"):
            return i if arg in COMMANDS else None
    return None


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the bullet-sys CLI.

    Without a command, ``build`` is assumed:
        bullet-sys -v TARGET=x86_64-apple-darwin
    """
    parser = argparse.ArgumentParser(
        prog="bullet-sys",
        description="Fetch and build Bullet, then generate ctypes bindings for its C API.",
        epilog="Run 'bullet-sys <command> --help' for command-specific help.",
    )
    from bullet_sys import __version__

    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    build_parser = subparsers.add_parser(
        "build", help="Run the whole pipeline (default)"
    )
    add_common_args(build_parser)
    build_parser.set_defaults(func=cmd_default)

    fetch_parser = subparsers.add_parser("fetch", help="Fetch or update the source checkout")
    add_common_args(fetch_parser)
    fetch_parser.set_defaults(func=cmd_fetch)

    target_parser = subparsers.add_parser("target", help="Print the resolved target")
    add_common_args(target_parser)
    target_parser.set_defaults(func=cmd_target)

    info_parser = subparsers.add_parser("info", help="Show the effective configuration")
    add_common_args(info_parser)
    info_parser.set_defaults(func=cmd_info)

    argv = list(sys.argv[1:] if argv is None else argv)
    index = find_command(argv)
    if index is not None:
        argv.insert(0, argv.pop(index))
    elif not any(arg in ("-h", "--help", "--version") for arg in argv):
        argv.insert(0, "build")

    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        return 1

    result: int = args.func(args)
    return result


if __name__ == "__main__":
    sys.exit(main())
