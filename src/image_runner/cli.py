"""Command-line interface: ``image-runner run IMAGE COMMAND [ARG...]``."""

import argparse
import logging
import sys
from typing import List, Optional

from . import __version__
from .core.types import CommandSpec, RegistryConfig
from .exceptions import ImageRunnerError
from .run import report_error, run_container
from .utils.reference import parse_image_reference


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="image-runner",
        description="Run a command inside a root filesystem pulled from a container registry.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="log progress to stderr (-vv for debug output)",
    )

    subparsers = parser.add_subparsers(dest="action", required=True)

    run_parser = subparsers.add_parser("run", help="pull an image and run a command in it")
    run_parser.add_argument("--registry-url", help="registry base URL")
    run_parser.add_argument("--auth-url", help="token endpoint URL")
    run_parser.add_argument("--timeout", type=int, help="request timeout in seconds")
    run_parser.add_argument("image", help="image reference, name[:tag]")
    run_parser.add_argument("command", help="absolute path of the executable to run")
    run_parser.add_argument("args", nargs=argparse.REMAINDER, help="arguments for the command")

    return parser


def configure_logging(verbosity: int) -> None:
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    options = parser.parse_args(argv)
    configure_logging(options.verbose)

    try:
        spec = CommandSpec(
            image=parse_image_reference(options.image),
            executable=options.command,
            args=tuple(options.args),
        )
        config = RegistryConfig.from_env(
            registry_url=options.registry_url,
            auth_url=options.auth_url,
            timeout=options.timeout,
        )
        return run_container(spec, config)
    except ImageRunnerError as e:
        report_error(e)
        return 1
