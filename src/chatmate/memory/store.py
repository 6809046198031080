"""Persistent user record — name, tone preference and one remembered note.

The JSON file is the source of truth. There is no merge: callers load the
record, change it and save the whole thing back.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from chatmate.errors import StorageCorrupt

if TYPE_CHECKING:
    from chatmate.activity import ActivityLog

logger = logging.getLogger(__name__)

STORAGE_KEY = "chatmate_memory"

TONES = ("friendly", "concise", "direct")
DEFAULT_TONE = "friendly"


def validate_tone(tone: str) -> str:
    """Return a recognized tone, or raise ValueError."""
    t = (tone or "").strip().lower()
    if t not in TONES:
        raise ValueError(f"Unknown tone '{tone}'. Choose one of: {', '.join(TONES)}")
    return t


@dataclass
class MemoryRecord:
    """The single persisted record."""

    name: str = ""
    tone: str = DEFAULT_TONE
    note: str | None = None

    def to_dict(self) -> dict:
        return asdict(self)

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, separators=(",", ":"))

    @classmethod
    def from_dict(cls, data: dict) -> MemoryRecord:
        """Build a record from stored data, coercing unknown tones to the default."""
        tone = data.get("tone") or DEFAULT_TONE
        if tone not in TONES:
            logger.warning("Stored tone %r is not recognized, using %s", tone, DEFAULT_TONE)
            tone = DEFAULT_TONE
        note = data.get("note")
        return cls(
            name=str(data.get("name") or ""),
            tone=tone,
            note=str(note) if note else None,
        )


class MemoryStore:
    """Read/write access to the persisted MemoryRecord."""

    def __init__(self, root: Path, activity: ActivityLog | None = None) -> None:
        self.root = root
        self.path = root / f"{STORAGE_KEY}.json"
        self._activity = activity

    def _record_activity(self, message: str, detail: str | None = None) -> None:
        if self._activity is not None:
            self._activity.record(message, detail)

    def _read(self) -> dict:
        """Read the raw slot. Raises StorageCorrupt on unparseable content."""
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except (OSError, UnicodeDecodeError) as e:
            raise StorageCorrupt(self.path, str(e)) from e

        if not raw.strip():
            return {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise StorageCorrupt(self.path, str(e)) from e
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise StorageCorrupt(self.path, f"expected an object, got {type(data).__name__}")
        return data

    def load(self) -> MemoryRecord:
        """Return the stored record, or an empty one when missing or corrupt."""
        try:
            data = self._read()
        except StorageCorrupt as e:
            logger.warning("%s; starting from an empty record", e)
            self._record_activity("Memory load error", e.reason)
            return MemoryRecord()

        record = MemoryRecord.from_dict(data)
        self._record_activity("Loaded memory", record.to_json())
        return record

    def save(self, record: MemoryRecord) -> None:
        """Overwrite the stored record."""
        self.root.mkdir(parents=True, exist_ok=True)
        self.path.write_text(record.to_json(), encoding="utf-8")
        self._record_activity("Saved memory", record.to_json())

    def clear(self) -> None:
        """Remove the stored record entirely."""
        self.path.unlink(missing_ok=True)
        self._record_activity("Memory cleared")

    def exists(self) -> bool:
        return self.path.exists()
