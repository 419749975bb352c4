from __future__ import annotations

import logging
import os
import re
import stat
from typing import Callable
from typing import Iterator

from .cleanermodel import Classification
from .cleanermodel import Entry
from .cleanermodel import Report

CACHE_FILE_NAME_LENGTH = 40
CACHE_DIRECTORY_NAME_LENGTH = 2

_ALPHANUMERIC = re.compile(r"[a-z0-9]+", re.IGNORECASE | re.ASCII)

WalkFunction = Callable[..., Iterator[tuple[str, list[str], list[str]]]]
StatFunction = Callable[[str], os.stat_result]


def classify(name: str, is_directory: bool) -> Classification:
    """
    Classify an entry by the shape of its name.

    Cache files are named after a 40 character hex digest and live in
    2 character shard directories. Anything else is left alone.
    """
    if is_directory:
        expected_length = CACHE_DIRECTORY_NAME_LENGTH
        match = Classification.CACHE_DIRECTORY
    else:
        expected_length = CACHE_FILE_NAME_LENGTH
        match = Classification.CACHE_FILE

    if len(name) == expected_length and _ALPHANUMERIC.fullmatch(name):
        return match

    return Classification.OTHER


class CacheScanner:
    """Walk a cache directory top-down, yielding every entry below it."""

    logger = logging.getLogger(__name__)

    def __init__(
        self,
        walk: WalkFunction = os.walk,
        stat_file: StatFunction = os.stat,
    ) -> None:
        """
        Initialize the scanner.

        Args:
            walk: A callable with the signature of `os.walk`. Replace this
                to scan something other than the local filesystem.
            stat_file: A callable with the signature of `os.stat`, used on
                every file name the walk returns.
        """
        self._walk = walk
        self._stat_file = stat_file

    def scan(self, root: str, report: Report) -> Iterator[Entry]:
        """
        Yield every file and directory below root, parents before children.

        Directories that cannot be listed, and files that cannot be stat'ed,
        are logged and counted as errors; the walk continues with their
        siblings. Files carry their size and whether they are regular files.

        Args:
            root: The directory to walk. Not yielded itself.
            report: Receives an `errors` count for each entry that fails.
        """

        def on_error(error: OSError) -> None:
            report.increment("errors")
            self.logger.error("Unable to list '%s': %s", error.filename, error)

        for dirpath, dirnames, filenames in self._walk(root, onerror=on_error):
            for dirname in dirnames:
                yield Entry(os.path.join(dirpath, dirname), dirname, True)

            for filename in filenames:
                filepath = os.path.join(dirpath, filename)

                try:
                    file_stat = self._stat_file(filepath)

                except OSError as error:
                    # Removed after the walk listed it, or a dangling link
                    report.increment("errors")
                    self.logger.error("Unable to stat '%s': %s", filepath, error)
                    continue

                yield Entry(
                    filepath,
                    filename,
                    False,
                    is_file=stat.S_ISREG(file_stat.st_mode),
                    size=file_stat.st_size,
                )
