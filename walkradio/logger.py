"""Logging module for WalkRadio."""

import json
from collections import deque
from datetime import datetime
from typing import Optional, Callable


class Logger:
    """Logs simulation events to stdout, an optional file and an optional callback.

    The most recent entries are also kept in memory (``entries``) so a caller
    can show or inspect what happened without re-reading the file.
    """

    def __init__(self, log_path: Optional[str] = None, callback: Optional[Callable] = None,
                 echo: bool = True, keep: int = 500):
        self.log_path = log_path
        self.callback = callback
        self.echo = echo
        self.entries: deque[tuple[str, str, Optional[dict]]] = deque(maxlen=keep)
        self.file = None
        if log_path:
            self.file = open(log_path, "a")
            self._write_header()

    def _write_header(self):
        if self.file:
            self.file.write(f"\n{'='*60}\n")
            self.file.write(f"WalkRadio Log - {datetime.now().isoformat()}\n")
            self.file.write(f"{'='*60}\n\n")
            self.file.flush()

    def log(self, message: str, data: Optional[dict] = None):
        """Log a message with optional structured data"""
        timestamp = datetime.now().isoformat()
        self.entries.append((timestamp, message, data))
        line = f"[{timestamp}] {message}"
        if data:
            line += f" | {json.dumps(data, default=str)}"
        if self.echo:
            print(line)
        if self.file:
            self.file.write(line + "\n")
            self.file.flush()
        if self.callback:
            self.callback(message, data)

    def messages(self) -> list[str]:
        return [message for _, message, _ in self.entries]

    def close(self):
        if self.file:
            self.file.close()
            self.file = None
