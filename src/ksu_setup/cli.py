"""
Command line entry point.

    ksu-setup                 set up or update to the latest tag
    ksu-setup <revision>      set up or update to a commit, tag or branch
    ksu-setup --cleanup       revert every modification
    ksu-setup --list-refs     show branches, tags and commits of the clone
"""
import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .config_manager import ConfigManager
from .git_manager import GitCommandError
from .paths import DriversDirNotFoundError
from .setup_manager import SetupManager

logger = logging.getLogger(__name__)

EXIT_NO_DRIVERS_DIR = 127


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ksu-setup",
        description="Set up, update or remove KernelSU in an Android kernel tree.",
        epilog="With no arguments the KernelSU environment is set up or updated "
               "to the latest tagged version.",
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "target",
        nargs="?",
        metavar="<commit-or-tag>",
        help="Set up or update KernelSU to the specified commit, tag or branch",
    )
    mode.add_argument(
        "--cleanup",
        action="store_true",
        help="Clean up previous modifications made by this tool",
    )
    mode.add_argument(
        "--list-refs",
        action="store_true",
        help="List available branches, recent tags and recent commits",
    )
    parser.add_argument(
        "--kernel-root",
        type=Path,
        default=None,
        help="Kernel source root (default: current directory)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Configuration file (default: ~/.ksu-setup/config.json)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Show git commands")
    return parser


def setup_logging(verbose: bool) -> None:
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(name)s - %(levelname)s - %(message)s",
            stream=sys.stdout,
        )
    else:
        logging.basicConfig(level=logging.INFO, format="%(message)s", stream=sys.stdout)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)

    kernel_root = args.kernel_root or Path.cwd()

    try:
        config = ConfigManager(args.config).load()
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"[ERROR] Could not load configuration: {e}")
        return 1

    try:
        manager = SetupManager(kernel_root, config)

        if args.cleanup:
            manager.cleanup()
        elif args.list_refs:
            listing = manager.list_refs()
            if listing is None:
                return 1
            print(listing.format())
        else:
            manager.setup(args.target)
    except DriversDirNotFoundError as e:
        logger.error(f"[ERROR] {e}")
        return EXIT_NO_DRIVERS_DIR
    except GitCommandError as e:
        logger.error(f"[ERROR] {e}")
        return e.returncode
    except OSError as e:
        logger.error(f"[ERROR] {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
