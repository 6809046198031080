"""Activity log — the append-only trail shown in a connector's log view.

Entries live for the lifetime of the process only. Each one is mirrored to
the ``chatmate.activity`` logger so the same trail shows up in regular logs.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone

logger = logging.getLogger(__name__)

LogSink = Callable[["LogEntry"], None]


@dataclass(frozen=True)
class LogEntry:
    """One recorded event."""

    timestamp: str
    message: str
    detail: str | None = None

    def format(self) -> str:
        line = f"{self.timestamp} - {self.message}"
        if self.detail:
            line += f" - {self.detail}"
        return line

    def to_dict(self) -> dict:
        return {"timestamp": self.timestamp, "message": self.message, "detail": self.detail}


class ActivityLog:
    """Append-only sequence of LogEntry with observer sinks."""

    def __init__(self) -> None:
        self._entries: list[LogEntry] = []
        self._sinks: list[LogSink] = []

    def record(self, message: str, detail: str | None = None) -> LogEntry:
        entry = LogEntry(
            timestamp=datetime.now(timezone.utc).isoformat(timespec="milliseconds"),
            message=message,
            detail=detail,
        )
        self._entries.append(entry)
        if detail:
            logger.info("%s: %s", message, detail)
        else:
            logger.info("%s", message)

        for sink in list(self._sinks):
            try:
                sink(entry)
            except Exception as e:
                logger.warning("Activity sink %r failed: %s", sink, e)
        return entry

    def entries(self) -> list[LogEntry]:
        return list(self._entries)

    def clear(self) -> None:
        self._entries.clear()
        self.record("Logs cleared")

    def subscribe(self, sink: LogSink) -> None:
        self._sinks.append(sink)

    def unsubscribe(self, sink: LogSink) -> None:
        if sink in self._sinks:
            self._sinks.remove(sink)

    def __len__(self) -> int:
        return len(self._entries)
