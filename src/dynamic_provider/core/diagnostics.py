"""
Diagnostic Logger

Each component logs to itself, on the process's diagnostic stream.

Design:
- One record per line, tab-separated (human-readable, grep-able)
- Written to stderr only; stdout is reserved for the port announcement
- Tracebacks follow their record, indented
- Recent entries kept in memory for inspection (nothing written to disk)
"""

import csv
import sys
import traceback
from collections import deque
from datetime import datetime
from typing import Any, Dict, List, Optional, TextIO, Union

LEVELS = {
    'DEBUG': 10,
    'INFO': 20,
    'WARNING': 30,
    'ERROR': 40,
    'CRITICAL': 50,
}


class DiagnosticLogger:
    """
    Self-logging for provider components.

    Each record is written to the stream as:
    timestamp<TAB>level<TAB>component<TAB>message<TAB>key=value...
    """

    def __init__(
        self,
        component: str,
        stream: Optional[TextIO] = None,
        level: str = 'INFO',
        max_entries: int = 1000,
    ):
        """
        Initialize diagnostic logger.

        Args:
            component: Name of the logging component (e.g., 'dispatcher')
            stream: Output stream (default: sys.stderr at write time)
            level: Minimum level written to the stream
            max_entries: Number of recent entries kept in memory
        """
        self.component = component
        self.stream = stream
        self.level = normalize_level(level)
        self._entries: deque = deque(maxlen=max_entries)

    def log(self, level: str, message: str, **kwargs) -> None:
        """
        Log an entry.

        Args:
            level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            message: Log message
            **kwargs: Additional fields (method, resource_id, etc.)
        """
        level = normalize_level(level)

        entry = {
            'timestamp': datetime.now().isoformat(),
            'level': level,
            'component': self.component,
            'message': message,
            **kwargs,
        }

        # Drop empty fields
        entry = {k: v for k, v in entry.items() if v is not None}
        self._entries.append(entry)

        if LEVELS[level] >= LEVELS[self.level]:
            self._write(entry)

    def debug(self, message: str, **kwargs) -> None:
        """Log DEBUG level message"""
        self.log('DEBUG', message, **kwargs)

    def info(self, message: str, **kwargs) -> None:
        """Log INFO level message"""
        self.log('INFO', message, **kwargs)

    def warning(self, message: str, **kwargs) -> None:
        """Log WARNING level message"""
        self.log('WARNING', message, **kwargs)

    def error(self, message: str, **kwargs) -> None:
        """Log ERROR level message"""
        self.log('ERROR', message, **kwargs)

    def critical(self, message: str, **kwargs) -> None:
        """Log CRITICAL level message"""
        self.log('CRITICAL', message, **kwargs)

    def exception(self, message: str, exc: BaseException, **kwargs) -> None:
        """Log ERROR level message with the exception's stack trace"""
        trace = ''.join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        self.log(
            'ERROR',
            message,
            error=f'{type(exc).__name__}: {exc}',
            traceback=trace,
            **kwargs,
        )

    def get_logs(
        self,
        level: Optional[Union[str, List[str]]] = None,
        limit: Optional[int] = None,
        **filters,
    ) -> List[Dict[str, Any]]:
        """
        Get recent log entries.

        Args:
            level: Filter by level (string or list of strings)
            limit: Maximum number of entries to return (most recent last)
            **filters: Additional filters (e.g., method='create')

        Returns:
            List of log entries (dictionaries)
        """
        entries = list(self._entries)

        if level is not None:
            if isinstance(level, str):
                level = [level]
            wanted = {normalize_level(l) for l in level}
            entries = [e for e in entries if e['level'] in wanted]

        for key, value in filters.items():
            entries = [e for e in entries if e.get(key) == value]

        if limit is not None:
            entries = entries[-limit:] if limit else []

        return entries

    def clear(self) -> None:
        """Forget the in-memory entries"""
        self._entries.clear()

    def _write(self, entry: Dict[str, Any]) -> None:
        stream = self.stream or sys.stderr
        extra = {k: v for k, v in entry.items()
                 if k not in ('timestamp', 'level', 'component', 'message', 'traceback')}

        row = [entry['timestamp'], entry['level'], entry['component'], entry['message']]
        row.extend(f'{k}={v}' for k, v in extra.items())

        writer = csv.writer(stream, delimiter='\t', lineterminator='\n')
        writer.writerow(row)

        trace = entry.get('traceback')
        if trace:
            for line in trace.rstrip('\n').splitlines():
                stream.write(f'    {line}\n')

        stream.flush()


def normalize_level(level: str) -> str:
    """Upper-case a level name, rejecting unknown ones"""
    name = str(level).upper()
    if name not in LEVELS:
        raise ValueError(f"Unknown log level: {level} (expected one of {', '.join(LEVELS)})")
    return name
