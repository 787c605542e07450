"""Command line entry point.

Usage:
    openhub [--server URL] [--user USER] [--password PASS] [--token TOKEN] [--single-shot] CONFIG
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from collections.abc import Sequence
from pathlib import Path

from openhub import __version__
from openhub.config import DEFAULT_SERVER, Credentials, Options, load_configuration
from openhub.exceptions import ConfigurationError
from openhub.sync.scheduler import sync

logger = logging.getLogger(__name__)

# Set at release time
GIT_COMMIT = ""

TRUTHY = {"1", "true", "yes", "on"}


def version_string(version: str = __version__, commit: str = GIT_COMMIT) -> str:
    text = version
    if commit:
        text += f" with commit '{commit}'"
    return (
        f"{text}.\n"
        "Copyright (C) 2018-2019 Miquel Sabaté Solà <mikisabate@gmail.com>\n"
        'License GPLv3+: GNU GPL version 3 or later "<http://gnu.org/licenses/gpl.html>.\n'
        "This is free software: you are free to change and redistribute it.\n"
        "There is NO WARRANTY, to the extent permitted by law."
    )


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in TRUTHY


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="openhub",
        description="Glue service between OBS and DockerHub",
    )
    parser.add_argument("config", type=Path, help="Path to the services configuration file")
    parser.add_argument(
        "-s",
        "--server",
        default=os.environ.get("OPENHUB_OBS_SERVER", DEFAULT_SERVER),
        help="The location of the Open Build Service server",
    )
    parser.add_argument(
        "-u",
        "--user",
        default=os.environ.get("OPENHUB_OBS_USER", ""),
        help="The user to be used for the Open Build Service",
    )
    parser.add_argument(
        "-p",
        "--password",
        default=os.environ.get("OPENHUB_OBS_PASSWORD", ""),
        help="The password for the Open Build Service",
    )
    parser.add_argument(
        "-t",
        "--token",
        default=os.environ.get("OPENHUB_DOCKER_TOKEN", ""),
        help="The authentication token provided from DockerHub",
    )
    parser.add_argument(
        "--single-shot",
        action="store_true",
        default=_env_flag("OPENHUB_SINGLE_SHOT"),
        help="Only run the execution cycle once",
    )
    parser.add_argument(
        "--interval",
        type=float,
        default=300.0,
        help="Seconds between execution cycles (default: 300)",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("-v", "--version", action="version", version=version_string())
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        stream=sys.stderr,
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        config = load_configuration(
            args.config,
            Credentials(
                server=args.server,
                user=args.user,
                password=args.password,
                token=args.token,
            ),
            Options(single_shot=args.single_shot, interval_seconds=args.interval),
        )
    except (ConfigurationError, ValueError) as e:
        logger.error("%s", e)
        return 1

    try:
        asyncio.run(sync(config))
    except KeyboardInterrupt:
        logger.info("Interrupted, stopping...")
    return 0


if __name__ == "__main__":
    sys.exit(main())
