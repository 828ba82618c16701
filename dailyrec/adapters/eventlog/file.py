"""Append-only file event log.

Implements EventLogPort by appending one timestamped line per message to
a flat text file and mirroring the same line to stdout. The file is never
truncated or rewritten by this process.
"""

import sys
from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path

from dailyrec.core.ports import EventLogPort


def _utc_now() -> datetime:
    return datetime.now(UTC)


class FileEventLog(EventLogPort):
    """Appends timestamped lines to a log file."""

    def __init__(
        self,
        log_file: str | Path,
        mirror_stdout: bool = True,
        clock: Callable[[], datetime] = _utc_now,
    ):
        """Initialize the event log.

        Args:
            log_file: Path of the log file. Parent directories are created.
            mirror_stdout: If True, every line is also printed to stdout.
            clock: Source of timestamps (overridable in tests).

        Raises:
            OSError: If the parent directory cannot be created.
        """
        self.path = Path(log_file)
        self.mirror_stdout = mirror_stdout
        self._clock = clock
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.touch(exist_ok=True)

    @property
    def location(self) -> str:
        """Path of the log file as configured."""
        return str(self.path)

    def format_line(self, message: str) -> str:
        """Prefix message with an ISO-8601 timestamp.

        Embedded newlines are flattened so each call yields exactly one line.
        Characters that cannot be encoded as UTF-8 (lone surrogates) are
        written as backslash escapes.
        """
        flat = " ".join(message.splitlines())
        flat = flat.encode("utf-8", "backslashreplace").decode("utf-8")
        return f"[{self._clock().isoformat()}] {flat}"

    def log(self, message: str) -> None:
        """Append message to the log file. Never raises."""
        line = self.format_line(message)

        if self.mirror_stdout:
            try:
                print(line, flush=True)
            except (OSError, ValueError) as e:
                print(f"Error mirroring event log line: {e}", file=sys.stderr)

        try:
            # One write per line on an append-mode handle.
            with self.path.open("a", encoding="utf-8", errors="backslashreplace") as f:
                f.write(line + "\n")
        except (OSError, ValueError) as e:
            print(f"Error writing to log file {self.path}: {e}", file=sys.stderr)


__all__ = ["FileEventLog"]
