"""
history.py — the rolling "knowledge base" of user corrections.

Only the most recent corrections are kept and sent back to the service
with every call. Eviction is oldest-first; nothing is deduplicated, so
repeating the same correction can push older distinct ones out.
"""
from __future__ import annotations

from collections import deque
from datetime import datetime, timezone
from typing import Iterable, Iterator, Optional

from models import CorrectionEntry, RecognitionResult

DEFAULT_CAPACITY = 10


class CorrectionHistory:
    """Bounded, insertion-ordered log of CorrectionEntry records."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity < 1:
            raise ValueError(f"History capacity must be positive, got {capacity}")
        self._entries: deque[CorrectionEntry] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._entries.maxlen

    def append(self, entries: Iterable[CorrectionEntry]) -> None:
        # deque(maxlen) drops from the left once full
        self._entries.extend(entries)

    def snapshot(self) -> tuple[CorrectionEntry, ...]:
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[CorrectionEntry]:
        return iter(self.snapshot())

    def __repr__(self) -> str:
        return f"CorrectionHistory({len(self)}/{self.capacity})"


def diff_corrections(
    previous: RecognitionResult,
    corrections: dict,
    now: Optional[datetime] = None,
) -> list[CorrectionEntry]:
    """
    Compare corrected object names with the previous result, index by index.

    Positional, not name-based: reordering the list between calls yields
    an entry for every moved name. Indexes past the end of the previous
    object list have no original name and are skipped.
    """
    now = now or datetime.now(timezone.utc)
    entries: list[CorrectionEntry] = []
    for idx, obj in enumerate(corrections.get("objects") or []):
        if idx >= len(previous.objects):
            continue
        corrected = obj.get("name") if isinstance(obj, dict) else getattr(obj, "name", None)
        original  = previous.objects[idx].name
        if corrected is not None and corrected != original:
            entries.append(CorrectionEntry(original=original, corrected=corrected, observed_at=now))
    return entries
