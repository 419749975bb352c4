from __future__ import annotations

import dataclasses
import enum
from collections import Counter

CATEGORIES = (
    "objects",
    "cache_files",
    "cache_files_size",
    "non_cache_files",
    "unexpired_cache_files",
    "unexpired_cache_files_size",
    "expired_cache_files",
    "expired_cache_files_size",
    "deleted_expired_cache_files",
    "deleted_expired_cache_files_size",
    "invalid_timestamp_cache_files",
    "invalid_timestamp_cache_files_size",
    "cache_subdirectories",
    "non_cache_subdirectories",
    "empty_cache_subdirectories",
    "deleted_empty_cache_subdirectories",
    "errors",
)


class Classification(enum.Enum):
    """What a filesystem entry is to the cache store."""

    CACHE_FILE = "cache_file"
    CACHE_DIRECTORY = "cache_directory"
    OTHER = "other"


@dataclasses.dataclass(frozen=True)
class Entry:
    """A file or directory found while walking the cache directory."""

    path: str
    name: str
    is_directory: bool
    is_file: bool = False
    size: int = 0


@dataclasses.dataclass
class Report:
    """Counts collected over one cleaning run."""

    directory: str = ""
    clean_mode: bool = False
    checked_at: int = 0
    counts: Counter[str] = dataclasses.field(default_factory=Counter)

    def __getitem__(self, category: str) -> int:
        return self.counts[category]

    def __str__(self) -> str:
        """Return a one line summary of the report."""
        mode = "clean" if self.clean_mode else "report"
        return (
            f"{self.directory} ({mode}): "
            f"{self['cache_files']} cache files, "
            f"{self['expired_cache_files']} expired, "
            f"{self['deleted_expired_cache_files']} deleted, "
            f"{self['deleted_empty_cache_subdirectories']} directories removed, "
            f"{self['errors']} errors"
        )

    def increment(self, category: str, amount: int = 1) -> None:
        """Add amount to the given category."""
        self.counts[category] += amount

    @property
    def deletions(self) -> int:
        """Total number of files and directories removed."""
        return (
            self["deleted_expired_cache_files"]
            + self["deleted_empty_cache_subdirectories"]
        )

    def as_dict(self) -> dict[str, int]:
        """
        Return all counts, canonical categories first.

        Canonical categories are always present, zero when never incremented.
        """
        counts = {category: self.counts[category] for category in CATEGORIES}
        for category, value in self.counts.items():
            counts.setdefault(category, value)
        return counts
