from __future__ import annotations

import http.client
import logging
import re
import time
from datetime import datetime
from typing import TYPE_CHECKING

from .cleanermodel import Report

if TYPE_CHECKING:
    from .cleanerconfig import CleanerConfig

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class CleanerEmitter:
    """A class to emit cleaner reports to various targets."""

    logger = logging.getLogger(__name__)

    def __init__(self, config: CleanerConfig) -> None:
        """Initialize the emitter."""
        self._config = config

    def emit(self, report: Report) -> None:
        """Render the report in the configured format and emit it to all targets."""
        if self._config.report_format == "lines":
            lines = [self.as_metric_line(report)]
        else:
            lines = self.as_text_lines(report)

        self.to_stdout(lines)
        self.to_file(lines)
        if self._config.emit_telegraf:
            self.to_telegraf([self.as_metric_line(report)])

        self.logger.debug("Emitted report for %s", report.directory)

    def as_text_lines(self, report: Report) -> list[str]:
        """Return a human readable rendering of the report."""
        checked_at = time.strftime(DATE_FORMAT, time.gmtime(report.checked_at))
        counts = report.as_dict()
        width = max(len(category) for category in counts)

        lines = [
            f"Cache directory: {report.directory}",
            f"Mode: {'clean' if report.clean_mode else 'report only'}",
            f"Check time: {checked_at} UTC",
        ]
        lines.extend(f"{category:<{width}}  {value}" for category, value in counts.items())

        return lines

    def as_metric_line(self, report: Report, timestamp: int = 0) -> str:
        """
        Return the report as a single line in line protocol format.

        Args:
            report: The report to render.
            timestamp: The timestamp for the line, in seconds. If 0, the
                current time is used. Converted to milliseconds.
        """
        metric_name = self._config.report_name
        if re.search(r"[\s,]", metric_name):
            raise ValueError("Metric name cannot contain whitespace or commas")

        dimensions = [
            f"root={self._sanitize_directory_path(report.directory)}",
            f"mode={'clean' if report.clean_mode else 'report'}",
        ]
        if self._config.dimensions:
            dimensions.append(self._config.dimensions)

        fields = ",".join(f"{key}={value}" for key, value in report.as_dict().items())
        timestamp = (timestamp or int(datetime.now().timestamp())) * 1000

        return f"{metric_name},{','.join(dimensions)} {fields} {timestamp}"

    def to_file(self, lines: list[str]) -> None:
        """
        Emit report lines to a file.

        Args:
            lines: A list of lines to emit.

        Output:
            A file named <report_name>_<date>_report.txt
        """
        if not self._config.emit_file or not lines:
            return
        date = datetime.now().strftime("%Y%m%d")
        filename = f"{self._config.report_name}_{date}_report.txt"

        with open(filename, "a") as file_out:
            file_out.write("\n".join(lines) + "\n")

        self.logger.debug("Emitted %d lines to %s", len(lines), filename)

    def to_stdout(self, lines: list[str]) -> None:
        """
        Emit report lines to stdout.

        Args:
            lines: A list of lines to emit.
        """
        if not self._config.emit_stdout or not lines:
            return

        print("\n".join(lines))

    def to_telegraf(self, metric_lines: list[str]) -> None:
        """
        Emit metric lines to a telegraf listener.

        Args:
            metric_lines: A list of lines in line protocol format.
        """
        if not self._config.emit_telegraf or not metric_lines:
            return

        payload = "\n".join(metric_lines) + "\n"

        conn = http.client.HTTPConnection(
            host=self._config.telegraf_host,
            port=self._config.telegraf_port,
            timeout=3,
        )
        try:
            conn.request("POST", self._config.telegraf_path, payload.encode("utf-8"))
            response = conn.getresponse()
            status, body = response.status, response.read()

        except (OSError, http.client.HTTPException) as error:
            self.logger.error("Failed to reach telegraf listener: %s", error)
            return

        finally:
            conn.close()

        if status != 204:
            self.logger.error(
                "Failed to emit %d lines to telegraf listener: %s",
                len(metric_lines),
                body,
            )
        else:
            self.logger.debug("Emitted %d lines to telegraf listener", len(metric_lines))

    @staticmethod
    def _sanitize_directory_path(path: str) -> str:
        """
        Remove invalid characters from a directory path and double backslashes.

        Args:
            path: The directory path to sanitize.

        Returns:
            The sanitized directory path.
        """
        path = re.sub(r"\s+", "_", path)
        path = path.replace("\\", "\\\\")
        return re.sub(r"[^a-zA-Z0-9\/\\_:]", "", path)
