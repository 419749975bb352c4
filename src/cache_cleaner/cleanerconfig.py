from __future__ import annotations

import logging
import os
from configparser import ConfigParser

NEW_CONFIG = """\
[cleaner]
# The top of the file cache tree to examine.
cache_directory = {cache_directory}
# When false, expired files and empty directories are only reported.
clean = false
# Log every file and directory acted on.
verbose = false
# Used as the metric name and report file prefix. Cannot contain spaces or commas.
report_name = cache_cleaner

[dimensions]
# Dimensions are optional and add context to line protocol output.
# By default the root directory and run mode are always included.
config.file.name = {filename}

[emit]
# Emit the report to the following destinations.
stdout = true
file = false
# text or lines (line protocol)
format = text
telegraf = false
telegraf_host = 127.0.0.1
telegraf_port = 8080
telegraf_path = /telegraf

    """

REPORT_FORMATS = ("text", "lines")


class CleanerConfig:
    """Configuration for the Cleaner."""

    logger = logging.getLogger("cache_cleaner.CleanerConfig")

    def __init__(self, filepath: str | None = None) -> None:
        """
        Load the configuration from the given file.

        Args:
            filepath: Path to an INI file. When None, every value is left at
                its default.

        Raises:
            ValueError: The file could not be read or holds an unknown format.
        """
        self._config = ConfigParser(interpolation=None)

        if filepath is not None:
            success = self._config.read(filepath)

            if not success:
                raise ValueError(f"Could not read config file at {filepath}")

            self.logger.debug("Loaded config from %s", filepath)

        if self.report_format not in REPORT_FORMATS:
            raise ValueError(f"Unknown report format: {self.report_format}")

    @property
    def cache_directory(self) -> str:
        """Return the cache directory to examine, empty if not set."""
        return self._config.get("cleaner", "cache_directory", fallback="")

    @property
    def clean_mode(self) -> bool:
        """Return whether expired files and empty directories are deleted."""
        return self._config.getboolean("cleaner", "clean", fallback=False)

    @property
    def verbose(self) -> bool:
        """Return whether each file and directory acted on is logged."""
        return self._config.getboolean("cleaner", "verbose", fallback=False)

    @property
    def report_name(self) -> str:
        """Return the name used for the metric and report files."""
        return self._config.get("cleaner", "report_name", fallback="cache_cleaner")

    @property
    def dimensions(self) -> str:
        """Return a string of any additional dimensions to add to the metric."""
        if not self._config.has_section("dimensions"):
            return ""
        dimensions = self._config["dimensions"]
        return ",".join(f"{key}={value}" for key, value in dimensions.items())

    @property
    def emit_stdout(self) -> bool:
        """Return whether to emit the report to stdout."""
        return self._config.getboolean("emit", "stdout", fallback=True)

    @property
    def emit_file(self) -> bool:
        """Return whether to emit the report to a file."""
        return self._config.getboolean("emit", "file", fallback=False)

    @property
    def report_format(self) -> str:
        """Return the report format, `text` or `lines`."""
        return self._config.get("emit", "format", fallback="text").lower()

    @property
    def emit_telegraf(self) -> bool:
        """Return whether to emit the report to a telegraf listener."""
        return self._config.getboolean("emit", "telegraf", fallback=False)

    @property
    def telegraf_host(self) -> str:
        return self._config.get("emit", "telegraf_host", fallback="127.0.0.1")

    @property
    def telegraf_port(self) -> int:
        return self._config.getint("emit", "telegraf_port", fallback=8080)

    @property
    def telegraf_path(self) -> str:
        return self._config.get("emit", "telegraf_path", fallback="/telegraf")

    def override(self, **values: str | bool | None) -> None:
        """
        Replace values in the [cleaner] section, skipping any set to None.

        Used to apply command line flags on top of the file.
        """
        if not self._config.has_section("cleaner"):
            self._config.add_section("cleaner")

        for key, value in values.items():
            if value is None:
                continue
            if isinstance(value, bool):
                value = "true" if value else "false"
            self._config.set("cleaner", key, value)


def write_new_config(filename: str, cache_directory: str = "") -> None:
    """Write a new config file if one does not exist."""
    if os.path.exists(filename):
        return

    config = NEW_CONFIG.format(filename=filename, cache_directory=cache_directory)

    with open(filename, "w") as config_file:
        config_file.write(config)
