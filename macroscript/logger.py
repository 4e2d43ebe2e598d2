"""
Status Logger - keeps the run history of the engine and its background threads.

SRP: This class has one responsibility - collecting log entries. Where they are
displayed is decided by whoever registers a sink.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, Optional


LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@dataclass
class LogEntry:
    """A single log entry."""
    timestamp: datetime
    message: str
    level: str = "INFO"
    thread: str = field(default_factory=lambda: threading.current_thread().name)

    def __str__(self) -> str:
        time_str = self.timestamp.strftime("%H:%M:%S")
        return f"[{time_str}] {self.level} ({self.thread}): {self.message}"


class StatusLogger:
    """
    Thread-safe log history shared by every part of a run.

    Hotkey tasks, the executor, the watcher and the supervising thread all
    write to the same instance, so every mutation happens under a lock.
    """

    def __init__(self, max_entries: int = 1000, sink: Optional[Callable[[LogEntry], None]] = None,
                 sink_level: str = "WARNING"):
        """
        Initialize the logger.

        Args:
            max_entries: Maximum number of log entries to keep in memory
            sink: Optional callable receiving every entry at or above ``sink_level``
            sink_level: Minimum level forwarded to ``sink``
        """
        self._log_entries: List[LogEntry] = []
        self._max_entries = max_entries
        self._lock = threading.Lock()
        self._sink = sink
        self._sink_level = LEVELS.index(sink_level)

    def set_sink(self, sink: Optional[Callable[[LogEntry], None]], level: str = "WARNING") -> None:
        """Forward entries at or above ``level`` to ``sink``."""
        with self._lock:
            self._sink = sink
            self._sink_level = LEVELS.index(level)

    def log_debug(self, message: str) -> None:
        self._add_entry(message, "DEBUG")

    def log_info(self, message: str) -> None:
        """Log an informational message."""
        self._add_entry(message, "INFO")

    def log_warning(self, message: str) -> None:
        """Log a warning message."""
        self._add_entry(message, "WARNING")

    def log_error(self, message: str) -> None:
        """Log an error message."""
        self._add_entry(message, "ERROR")

    def get_recent_logs(self, count: int = 10) -> List[LogEntry]:
        """
        Get the most recent log entries.

        Args:
            count: Number of recent entries to return

        Returns:
            List of recent log entries
        """
        with self._lock:
            return self._log_entries[-count:]

    def get_all_logs(self) -> List[LogEntry]:
        """Returns all log entries."""
        with self._lock:
            return self._log_entries.copy()

    def messages(self, level: Optional[str] = None) -> List[str]:
        """Messages of every entry, optionally restricted to one level."""
        with self._lock:
            return [e.message for e in self._log_entries if level is None or e.level == level]

    def clear_logs(self) -> None:
        """Clear all log entries."""
        with self._lock:
            self._log_entries.clear()

    def _add_entry(self, message: str, level: str) -> None:
        entry = LogEntry(timestamp=datetime.now(), message=message, level=level)

        with self._lock:
            self._log_entries.append(entry)
            # Trim old entries if we exceed max
            if len(self._log_entries) > self._max_entries:
                self._log_entries = self._log_entries[-self._max_entries:]
            sink = self._sink if LEVELS.index(level) >= self._sink_level else None

        if sink is not None:
            sink(entry)

    def export_logs_to_file(self, filepath: str) -> bool:
        """
        Export all logs to a text file.

        Args:
            filepath: Path where the log file should be saved

        Returns:
            bool: True if export was successful
        """
        try:
            with open(filepath, 'w', encoding='utf-8') as f:
                f.write("macroscript - Run Log\n")
                f.write(f"Generated: {datetime.now()}\n")
                f.write("=" * 50 + "\n\n")

                for entry in self.get_all_logs():
                    time_str = entry.timestamp.strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]
                    f.write(f"[{time_str}] {entry.level} ({entry.thread}): {entry.message}\n")

            return True
        except OSError as e:
            self.log_error(f"Failed to export logs: {e}")
            return False
