"""Run log for a single import.

ImportLogger keeps every entry in memory, mirrors it to an append-only run file
and gates console output by verbosity. Diagnostics from library modules go
through standard module loggers instead; this class records the user-facing
history of one run.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, List, Optional, Union

from .exceptions import ImporterError
from .models import ImportLogEntry, LogLevel

CONSOLE_LOGGER_NAME = "podcast_importer.run"
RULE = "=" * 80

_STD_LEVELS = {
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}


def _format_timestamp(ts: datetime) -> str:
    return ts.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _run_console() -> logging.Logger:
    """Console logger for run entries, independent of the root log level."""
    console = logging.getLogger(CONSOLE_LOGGER_NAME)
    if not console.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(message)s"))
        console.addHandler(handler)
        console.propagate = False
    console.setLevel(logging.INFO)
    return console


def format_entry(entry: ImportLogEntry) -> str:
    """Render one entry in run-file format (including trailing newline)."""
    line = f"[{_format_timestamp(entry.timestamp)}] {entry.level.upper():<5} {entry.message}\n"
    if entry.details is not None:
        line += f"   Details: {json.dumps(entry.details, indent=2, default=str)}\n"
    return line


class ImportLogger:
    """Leveled, timestamped run log.

    Args:
        verbose: Print info and warn entries to the console (errors always print)
        log_file: Run file path; truncated with a header on construction

    Raises:
        ImporterError: If the run file cannot be created
        console: Logger used for console output (default: ``podcast_importer.run``)
    """

    def __init__(
        self,
        verbose: bool = False,
        log_file: Optional[Union[str, Path]] = None,
        console: Optional[logging.Logger] = None,
    ) -> None:
        self.verbose = verbose
        self.log_file = Path(log_file) if log_file else None
        self._console = console or _run_console()
        self._entries: List[ImportLogEntry] = []

        if self.log_file is not None:
            started = _format_timestamp(datetime.now(timezone.utc))
            try:
                self.log_file.parent.mkdir(parents=True, exist_ok=True)
                self.log_file.write_text(f"RSS Import Log - {started}\n{RULE}\n\n", encoding="utf-8")
            except OSError as exc:
                raise ImporterError(f"Cannot write log file {self.log_file}: {exc}") from exc

    def info(self, message: str, details: Any = None) -> None:
        self._log("info", message, details)

    def warn(self, message: str, details: Any = None) -> None:
        self._log("warn", message, details)

    def error(self, message: str, details: Any = None) -> None:
        self._log("error", message, details)

    def _log(self, level: LogLevel, message: str, details: Any) -> None:
        entry = ImportLogEntry(
            timestamp=datetime.now(timezone.utc), level=level, message=message, details=details
        )
        self._entries.append(entry)

        if self.verbose or level == "error":
            self._console.log(_STD_LEVELS[level], message)
            if details is not None and self.verbose:
                self._console.log(_STD_LEVELS[level], "   %s", details)

        if self.log_file is not None:
            self._append(format_entry(entry))

    def _append(self, text: str) -> None:
        with self.log_file.open("a", encoding="utf-8") as fh:  # type: ignore[union-attr]
            fh.write(text)

    @property
    def entries(self) -> List[ImportLogEntry]:
        """Copy of all entries in creation order."""
        return list(self._entries)

    @property
    def error_count(self) -> int:
        return sum(1 for e in self._entries if e.level == "error")

    @property
    def warning_count(self) -> int:
        return sum(1 for e in self._entries if e.level == "warn")

    def summary(self) -> str:
        return (
            f"\n{RULE}\n"
            "Import Summary:\n"
            f"  Errors: {self.error_count}\n"
            f"  Warnings: {self.warning_count}\n"
            f"  Total Log Entries: {len(self._entries)}\n"
            f"{RULE}\n"
        )

    def write_summary(self) -> str:
        """Append the summary block to the run file and print it.

        The summary is emitted regardless of verbosity.
        """
        text = self.summary()
        if self.log_file is not None:
            self._append(text)
        print(text)
        return text
