"""
lxd-copy command line

Copy containers within or in between LXD instances.
"""

import argparse
import asyncio
import os
import sys

from .constants import CONTAINER_NAME_MESSAGE
from .core.config_loader import load_config_async
from .core.copy import ContainerCopier
from .core.copy.copier import ClientFactory
from .core.exceptions import LxdCopyError
from .core.logging_config import get_logger, setup_logging
from .models.container import CopyOptions
from .utils import parse_config_overrides


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="lxd-copy",
        description="Copy containers within or in between LXD instances.",
        usage=(
            "lxd-copy [<remote>:]<source>[/<snapshot>] [[<remote>:]<destination>] "
            "[--ephemeral|-e] [--profile|-p <profile>...] [--config|-c <key=value>...] "
            "[--container-only]"
        ),
    )
    parser.add_argument("source", help="Source container or snapshot")
    parser.add_argument("destination", nargs="?", default=None, help="Destination container")
    parser.add_argument(
        "-c",
        "--config",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Config key/value to apply to the new container",
    )
    parser.add_argument(
        "-p",
        "--profile",
        action="append",
        default=[],
        help="Profile to apply to the new container",
    )
    parser.add_argument("-e", "--ephemeral", action="store_true", help="Ephemeral container")
    parser.add_argument(
        "--container-only",
        action="store_true",
        help="Copy the container without its snapshots",
    )
    parser.add_argument(
        "--config-file",
        default=os.getenv("LXD_COPY_CONFIG"),
        help="Remote configuration file path",
    )
    parser.add_argument(
        "--log-level",
        default=os.getenv("LOG_LEVEL", "WARNING"),
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level",
    )
    parser.add_argument("--log-dir", default=os.getenv("LOG_DIR"), help="Directory for log files")

    args = parser.parse_args(argv)
    try:
        args.config_overrides = parse_config_overrides(args.config)
    except ValueError as e:
        parser.error(str(e))
    return args


async def run(args: argparse.Namespace, client_factory: ClientFactory | None = None) -> int:
    """Run one copy and print the created name when the endpoint chose it."""
    config = await load_config_async(args.config_file)
    copier = ContainerCopier(config, client_factory)
    options = CopyOptions(
        profiles=args.profile,
        config=args.config_overrides,
        ephemeral=args.ephemeral,
        container_only=args.container_only,
    )

    result = await copier.copy(args.source, args.destination, options)
    if result.name is not None:
        print(CONTAINER_NAME_MESSAGE.format(name=result.name))
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    setup_logging(log_dir=args.log_dir, log_level=args.log_level)
    logger = get_logger()

    try:
        return asyncio.run(run(args))
    except LxdCopyError as e:
        logger.debug("Copy failed", error_type=type(e).__name__, error=str(e))
        print(f"error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        logger.info("Copy interrupted")
        return 130
    except Exception as e:
        logger.error("Unexpected error", error_type=type(e).__name__, error=str(e))
        print(f"error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
