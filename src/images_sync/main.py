"""Main module for the images sync CLI."""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import List, Optional

from . import __version__
from .core import ImagesSyncError, get_logger, set_log_level
from .core.config import load_config
from .processors.creation import DEFAULT_CREATE_CONCURRENCY
from .processors.deletion import DEFAULT_DELETE_CONCURRENCY
from .runner import check_state, delete_path, run_sync, upload_path


def positive_int(value: str) -> int:
    """argparse type for worker pool sizes."""
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid int value: {value!r}")
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {number}")
    return number


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with the run, check, upload, delete and version commands."""
    parser = argparse.ArgumentParser(
        prog="images-sync",
        description="Keep resized image derivatives in an S3 bucket in sync with their sources",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Create every missing derivative
  images-sync run

  # Also delete derivatives whose source image is gone
  images-sync run --delete

  # Save the computed state without changing anything
  images-sync check -O state.json
        """,
    )
    parser.add_argument(
        "--config", type=Path, default=None, help="Path to the JSON configuration file"
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    run_parser = subparsers.add_parser("run", help="Process all images")
    run_parser.add_argument(
        "--delete",
        action="store_true",
        help="Delete output images that don't have a matching input image",
    )
    run_parser.add_argument(
        "--create-concurrency",
        type=positive_int,
        default=DEFAULT_CREATE_CONCURRENCY,
        help=f"Concurrent creation jobs (default: {DEFAULT_CREATE_CONCURRENCY})",
    )
    run_parser.add_argument(
        "--delete-concurrency",
        type=positive_int,
        default=DEFAULT_DELETE_CONCURRENCY,
        help=f"Concurrent deletes (default: {DEFAULT_DELETE_CONCURRENCY})",
    )

    check_parser = subparsers.add_parser(
        "check",
        help="Check how many images have been processed and need to be processed",
    )
    check_parser.add_argument(
        "-O", "--output", type=Path, default=None, help="Write the state to this JSON file"
    )

    upload_parser = subparsers.add_parser(
        "upload", help="Upload all files from src directory to dest in the bucket"
    )
    upload_parser.add_argument("src", type=Path, help="Local source directory")
    upload_parser.add_argument("dest", help="Destination prefix in the bucket")
    upload_parser.add_argument("-s", "--show-files", action="store_true", help="Show files")
    upload_parser.add_argument("-f", "--force", action="store_true", help="Skip confirmation")

    delete_parser = subparsers.add_parser(
        "delete", help="Delete all files in the bucket under a path"
    )
    delete_parser.add_argument("path", help="Prefix to delete")
    delete_parser.add_argument("-s", "--show-files", action="store_true", help="Show files")
    delete_parser.add_argument("-f", "--force", action="store_true", help="Skip confirmation")

    subparsers.add_parser("version", help="Show version information")

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """
    Entry point for the images sync command-line interface.

    Exits with status 1 when configuration or store connectivity fails;
    isolated per-image failures are reported but do not change the status.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "version":
        print("Images Sync CLI")
        print(f"Version {__version__}")
        sys.exit(0)
    if args.command is None:
        parser.print_help()
        sys.exit(1)

    if args.debug:
        set_log_level("DEBUG")

    logger = get_logger("images_sync.cli")
    try:
        config = load_config(args.config)

        if args.command == "run":
            asyncio.run(
                run_sync(
                    config,
                    delete=args.delete,
                    create_concurrency=args.create_concurrency,
                    delete_concurrency=args.delete_concurrency,
                )
            )
        elif args.command == "check":
            asyncio.run(check_state(config, args.output))
        elif args.command == "upload":
            asyncio.run(
                upload_path(config, args.src, args.dest, args.show_files, args.force)
            )
        elif args.command == "delete":
            asyncio.run(
                delete_path(config, args.path, args.show_files, args.force)
            )

    except KeyboardInterrupt:
        logger.warning("Interrupted by user.")
        sys.exit(130)
    except ImagesSyncError as e:
        logger.error(str(e))
        sys.exit(1)
    except Exception as e:
        logger.error(f"Processing failed: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
