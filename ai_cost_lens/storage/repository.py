"""
Repository pattern for history access.

Keeps the session's history in memory and exports/imports it as a JSON
document.
"""

import json
import logging
from datetime import date
from enum import Enum
from pathlib import Path
from typing import List, Optional

from .models import HistoryEntry

logger = logging.getLogger(__name__)


class HistoryFormatError(ValueError):
    """Raised when a history document cannot be parsed."""


class LoadMode(Enum):
    """How imported history combines with the current session."""
    APPEND = "append"
    REPLACE = "replace"


class HistoryRepository:
    """In-memory history of estimated calls, newest first.

    Entries are immutable; the repository only adds or replaces wholesale.
    """

    def __init__(self, entries: Optional[List[HistoryEntry]] = None):
        self._entries: List[HistoryEntry] = list(entries or [])

    def add(self, entry: HistoryEntry) -> None:
        """Record a new entry at the front of the history."""
        self._entries.insert(0, entry)

    def entries(self) -> List[HistoryEntry]:
        return list(self._entries)

    def get(self, entry_id: str) -> Optional[HistoryEntry]:
        for entry in self._entries:
            if entry.id == entry_id:
                return entry
        return None

    def __len__(self) -> int:
        return len(self._entries)

    def to_json(self) -> str:
        return json.dumps([entry.to_dict() for entry in self._entries], indent=2)

    def save(self, path: str) -> Path:
        """Write the history to a JSON file.

        Args:
            path: Target file path

        Returns:
            Path that was written
        """
        target = Path(path)
        target.write_text(self.to_json(), encoding="utf-8")
        logger.info("Saved %d history entries to %s", len(self._entries), target)
        return target

    def load(self, path: str, mode: LoadMode = LoadMode.APPEND) -> int:
        """Import history from a JSON file.

        Appended entries are placed before the current ones.

        Args:
            path: Source file path
            mode: Append to or replace the current history

        Returns:
            Number of entries imported

        Raises:
            FileNotFoundError: If the file doesn't exist
            HistoryFormatError: If the document is not a valid history
        """
        source = Path(path)
        if not source.exists():
            raise FileNotFoundError(f"History file not found: {path}")
        imported = parse_history(source.read_text(encoding="utf-8"))

        if mode == LoadMode.REPLACE:
            self._entries = imported
        else:
            self._entries = imported + self._entries
        logger.info("Loaded %d history entries from %s (%s)", len(imported), source, mode.value)
        return len(imported)


def parse_history(document: str) -> List[HistoryEntry]:
    """Parse a JSON history document.

    Raises:
        HistoryFormatError: If the document is not a list of entries
    """
    try:
        raw = json.loads(document)
    except json.JSONDecodeError as e:
        raise HistoryFormatError(f"Failed to parse history file: {e}")

    if not isinstance(raw, list):
        raise HistoryFormatError("Invalid history file format: expected a list of entries")

    entries = []
    for i, item in enumerate(raw):
        if not isinstance(item, dict):
            raise HistoryFormatError(f"History entry at index {i} must be an object")
        try:
            entries.append(HistoryEntry.from_dict(item))
        except (KeyError, TypeError, ValueError, ArithmeticError) as e:
            raise HistoryFormatError(f"Invalid history entry at index {i}: {e}")
    return entries


def default_export_name(today: Optional[date] = None) -> str:
    """Dated filename for a history export."""
    return f"ai-cost-history-{(today or date.today()).isoformat()}.json"
