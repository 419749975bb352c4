from __future__ import annotations

import argparse
import logging

from cache_cleaner.cleaner import Cleaner
from cache_cleaner.cleanerconfig import CleanerConfig
from cache_cleaner.cleanerconfig import write_new_config
from cache_cleaner.cleaneremitter import CleanerEmitter

LOG_FORMAT = "%(asctime)s %(levelname)s %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

logger = logging.getLogger(__name__)


def parse_args(args: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="cache-cleaner",
        description="Report, and optionally delete, expired file cache entries and empty cache directories.",
    )
    parser.add_argument(
        "directory",
        type=str,
        nargs="?",
        default=None,
        help="The cache directory. Overrides `cache_directory` in the config file.",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="The path to an optional configuration file.",
    )
    parser.add_argument(
        "--clean",
        help="Delete expired files and empty directories. Default: report only.",
        default=None,
        action="store_true",
    )
    parser.add_argument(
        "--verbose",
        help="Log every file and directory acted on.",
        default=None,
        action="store_true",
    )
    parser.add_argument(
        "--debug",
        help="Enable debug logging.",
        default=False,
        action="store_true",
    )
    parser.add_argument(
        "--log-file",
        type=str,
        default=None,
        help="Also write the log to this file.",
    )
    parser.add_argument(
        "--make-config",
        help="Create a default configuration file at the --config path.",
        default=False,
        action="store_true",
    )
    return parser.parse_args(args)


def add_file_handler_to_logging(log_filepath: str) -> None:
    """Add a file handler to the root logger writing to the given file."""
    file_handler = logging.FileHandler(log_filepath)
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    logging.getLogger().addHandler(file_handler)


def main(*, cli_args: list[str] | None = None) -> int:
    """
    Main entry point.

    Returns:
        0 on success, 1 on a configuration error, 2 when the run completed
        with errors on individual files or directories.
    """
    args = parse_args(cli_args)

    if args.make_config:
        if not args.config:
            print("--make-config requires --config")
            return 1
        write_new_config(args.config, args.directory or "")
        return 0

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
    )

    if args.log_file:
        add_file_handler_to_logging(args.log_file)

    try:
        config = CleanerConfig(args.config)
        config.override(
            cache_directory=args.directory,
            clean=args.clean,
            verbose=args.verbose,
        )
        report = Cleaner.from_config(config).run()
        CleanerEmitter(config).emit(report)

    except ValueError as error:
        logger.error("%s", error)
        return 1

    return 2 if report["errors"] else 0


if __name__ == "__main__":
    raise SystemExit(main())
