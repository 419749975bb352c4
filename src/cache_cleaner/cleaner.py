from __future__ import annotations

import logging
import os
import re
import time
from typing import TYPE_CHECKING

from .cleanermodel import Classification
from .cleanermodel import Entry
from .cleanermodel import Report
from .cleanerscan import CacheScanner
from .cleanerscan import classify

if TYPE_CHECKING:
    from typing import Protocol

    class _CleanerConfig(Protocol):
        @property
        def cache_directory(self) -> str:
            ...

        @property
        def clean_mode(self) -> bool:
            ...

        @property
        def verbose(self) -> bool:
            ...


__version__ = "1.0.0"

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Expiration header of a cache file: a unix timestamp as 10 ASCII digits
TIMESTAMP_LENGTH = 10

# 2286-11-20 17:46:39 UTC, never expires
MAX_TIMESTAMP = 9999999999

_DIGITS = re.compile(rb"[0-9]+")


class CacheDirectoryError(ValueError):
    """The cache directory is missing or is not a directory."""


def read_expiration(header: bytes) -> int | None:
    """Return the timestamp in a cache file header, None if it is not one."""
    if len(header) != TIMESTAMP_LENGTH or not _DIGITS.fullmatch(header):
        return None

    return int(header)


def format_timestamp(timestamp: int) -> str:
    """Format a unix timestamp as a UTC date string."""
    return time.strftime(DATE_FORMAT, time.gmtime(timestamp))


class Cleaner:
    """Find, and optionally delete, expired cache files and empty shards."""

    logger = logging.getLogger(__name__)

    def __init__(
        self,
        directory: str,
        *,
        clean_mode: bool = False,
        verbose: bool = False,
        now: int | None = None,
        scanner: CacheScanner | None = None,
    ) -> None:
        """
        Initialize a new Cleaner.

        Args:
            directory: The top of the cache tree.

        Keyword Args:
            clean_mode: Delete expired files and empty cache subdirectories.
                When False, only report what would be deleted.
            verbose: Log a line for each file or directory acted on at INFO
                level instead of DEBUG.
            now: The expiration horizon as a unix timestamp. Sampled once
                per run when not given.
            scanner: The scanner used to walk the directory.
        """
        self._directory = directory
        self._clean_mode = clean_mode
        self._entry_level = logging.INFO if verbose else logging.DEBUG
        self._now = now
        self._scanner = scanner or CacheScanner()

    @classmethod
    def from_config(cls, config: _CleanerConfig) -> Cleaner:
        """Build a Cleaner from the given configuration."""
        return cls(
            config.cache_directory,
            clean_mode=config.clean_mode,
            verbose=config.verbose,
        )

    def run(self) -> Report:
        """
        Run the cleaner once over the cache directory.

        Raises:
            CacheDirectoryError: The directory is empty or not a directory.
        """
        root = self._resolve_directory(self._directory)
        now = self._now if self._now is not None else int(time.time())

        self.logger.info("cache_cleaner v%s", __version__)
        self.logger.info("Check time: %s UTC", format_timestamp(now))
        self.logger.info("Cache directory: %s", root)
        tic = time.perf_counter()

        report = Report(directory=root, clean_mode=self._clean_mode, checked_at=now)
        removed: set[str] = set()

        subdirectories = self._examine_cache_directory(root, now, report, removed)
        self._examine_subdirectories(subdirectories, report, removed)

        toc = time.perf_counter()
        self.logger.info("Cleaner finished in %s seconds", toc - tic)
        self.logger.info("%s", report)

        return report

    @staticmethod
    def _resolve_directory(directory: str) -> str:
        """Return the absolute, resolved cache directory."""
        if not directory:
            raise CacheDirectoryError("Missing cache directory")

        if not os.path.isdir(directory):
            raise CacheDirectoryError(f"Cache directory not found: {directory}")

        return os.path.realpath(directory)

    def _examine_cache_directory(
        self,
        root: str,
        now: int,
        report: Report,
        removed: set[str],
    ) -> list[str]:
        """
        Walk the cache directory, evaluating cache files as they are found.

        Returns:
            Cache subdirectories in the order they were discovered.
        """
        subdirectories: list[str] = []

        for entry in self._scanner.scan(root, report):
            report.increment("objects")
            kind = classify(entry.name, entry.is_directory)

            if entry.is_directory:
                if kind is Classification.CACHE_DIRECTORY:
                    report.increment("cache_subdirectories")
                    subdirectories.append(entry.path)
                else:
                    report.increment("non_cache_subdirectories")

            # Pipes, sockets and devices are never opened
            elif kind is Classification.CACHE_FILE and entry.is_file:
                report.increment("cache_files")
                self._examine_file(entry, now, report, removed)

            else:
                report.increment("non_cache_files")

        self.logger.debug("%s objects found", report["objects"])
        self.logger.debug("%s cache files found", report["cache_files"])
        self.logger.debug("%s cache subdirectories found", len(subdirectories))

        return subdirectories

    def _examine_file(
        self,
        entry: Entry,
        now: int,
        report: Report,
        removed: set[str],
    ) -> None:
        """Count a cache file as expired or not, deleting it in clean mode."""
        size = entry.size
        report.increment("cache_files_size", size)
        timestamp = self._get_expiration(entry.path, size, report)

        if timestamp > now:
            report.increment("unexpired_cache_files")
            report.increment("unexpired_cache_files_size", size)
            return

        report.increment("expired_cache_files")
        report.increment("expired_cache_files_size", size)

        if not self._clean_mode:
            removed.add(entry.path)
            self.logger.log(
                self._entry_level,
                "EXPIRED - %s UTC - %s",
                format_timestamp(timestamp),
                entry.path,
            )
            return

        try:
            os.remove(entry.path)

        except OSError as error:
            report.increment("errors")
            self.logger.error("Unable to delete '%s': %s", entry.path, error)
            return

        removed.add(entry.path)
        report.increment("deleted_expired_cache_files")
        report.increment("deleted_expired_cache_files_size", size)
        self.logger.log(
            self._entry_level,
            "DELETED - %s UTC - %s",
            format_timestamp(timestamp),
            entry.path,
        )

    def _get_expiration(self, filepath: str, size: int, report: Report) -> int:
        """
        Return the expiration timestamp of a cache file.

        Files without a valid header, or that cannot be read, are given
        MAX_TIMESTAMP so they are never deleted.
        """
        try:
            with open(filepath, "rb") as cache_file:
                header = cache_file.read(TIMESTAMP_LENGTH)

        except OSError as error:
            report.increment("errors")
            self.logger.error("Unable to read '%s': %s", filepath, error)
            return MAX_TIMESTAMP

        timestamp = read_expiration(header)
        if timestamp is None:
            report.increment("invalid_timestamp_cache_files")
            report.increment("invalid_timestamp_cache_files_size", size)
            self.logger.log(self._entry_level, "Not cache: %s", filepath)
            return MAX_TIMESTAMP

        return timestamp

    def _examine_subdirectories(
        self,
        subdirectories: list[str],
        report: Report,
        removed: set[str],
    ) -> None:
        """Remove empty cache subdirectories, deepest first."""
        for directory in reversed(subdirectories):
            if not self._is_empty_directory(directory, report, removed):
                continue

            report.increment("empty_cache_subdirectories")

            if not self._clean_mode:
                removed.add(directory)
                self.logger.log(self._entry_level, "EMPTY DIR: %s", directory)
                continue

            try:
                os.rmdir(directory)

            except OSError as error:
                report.increment("errors")
                self.logger.error("Unable to delete '%s': %s", directory, error)
                continue

            removed.add(directory)
            report.increment("deleted_empty_cache_subdirectories")
            self.logger.log(self._entry_level, "DELETED EMPTY DIR: %s", directory)

    def _is_empty_directory(
        self,
        directory: str,
        report: Report,
        removed: set[str],
    ) -> bool:
        """
        True if nothing is left in the directory once this run's removals
        are taken into account. Only the immediate children are listed.
        """
        try:
            with os.scandir(directory) as entries:
                return all(entry.path in removed for entry in entries)

        except OSError as error:
            report.increment("errors")
            self.logger.error("Unable to list '%s': %s", directory, error)
            return False


def clean(directory: str, *, clean_mode: bool = False, verbose: bool = False) -> Report:
    """Run a Cleaner once over directory and return its report."""
    return Cleaner(directory, clean_mode=clean_mode, verbose=verbose).run()
