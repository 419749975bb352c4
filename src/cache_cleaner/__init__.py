from __future__ import annotations

from .cleaner import CacheDirectoryError
from .cleaner import Cleaner
from .cleaner import __version__
from .cleaner import clean
from .cleanerconfig import CleanerConfig
from .cleanermodel import Report

__all__ = [
    "CacheDirectoryError",
    "Cleaner",
    "CleanerConfig",
    "Report",
    "__version__",
    "clean",
]
