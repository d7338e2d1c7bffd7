"""In-memory buffer of user corrections awaiting persistence."""

from __future__ import annotations

import threading
from typing import Iterable, Optional

from .models import Category, CorrectionEntry


class CorrectionCache:
    """Normalized text -> latest corrected category and how often it was taught.

    The category is last-write-wins; the count only grows until the entry is
    flushed, after which the next correction for that text starts over.
    """

    def __init__(self) -> None:
        self._entries: dict[str, CorrectionEntry] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, text: object) -> bool:
        return text in self._entries

    def record(self, text: str, category: Category) -> CorrectionEntry:
        """Count one more correction of ``text`` to ``category``."""
        with self._lock:
            entry = self._entries.get(text)
            if entry is None:
                entry = CorrectionEntry(text=text, category=category, count=1)
                self._entries[text] = entry
            else:
                entry.count += 1
                entry.category = category
            return CorrectionEntry(entry.text, entry.category, entry.count)

    def get(self, text: str) -> Optional[CorrectionEntry]:
        with self._lock:
            entry = self._entries.get(text)
            if entry is None:
                return None
            return CorrectionEntry(entry.text, entry.category, entry.count)

    def lookup(self, text: str, threshold: int = 1) -> Optional[Category]:
        """The corrected category once ``text`` was taught ``threshold`` times."""
        entry = self.get(text)
        if entry is not None and entry.count >= threshold:
            return entry.category
        return None

    def pending(self, threshold: int = 1) -> list[CorrectionEntry]:
        """Snapshot of the entries eligible for flushing."""
        with self._lock:
            return [
                CorrectionEntry(e.text, e.category, e.count)
                for e in self._entries.values()
                if e.count >= threshold
            ]

    def discard(self, flushed: Iterable[CorrectionEntry]) -> None:
        """Remove flushed entries.

        Corrections recorded while the flush was in flight are kept: only the
        flushed count is subtracted, and the entry survives if anything is left.
        """
        with self._lock:
            for snapshot in flushed:
                entry = self._entries.get(snapshot.text)
                if entry is None:
                    continue
                remaining = entry.count - snapshot.count
                if remaining > 0:
                    entry.count = remaining
                else:
                    del self._entries[snapshot.text]

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
