"""
Bounded diagnostic log.

Owned by the orchestrator and passed to collaborators explicitly; oldest
entries are dropped once capacity is reached.
"""
from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Deque, List, Optional


@dataclass(frozen=True)
class DiagnosticEntry:
    timestamp: datetime
    message: str
    data: Optional[Any] = None

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp.isoformat(),
            "message": self.message,
            "data": self.data,
        }


@dataclass
class DiagnosticLog:
    """Ring buffer of diagnostic entries."""

    capacity: int = 100
    _entries: Deque[DiagnosticEntry] = field(init=False, repr=False)

    def __post_init__(self):
        if self.capacity < 1:
            raise ValueError("capacity must be >= 1")
        self._entries = deque(maxlen=self.capacity)

    def record(self, message: str, data: Optional[Any] = None) -> DiagnosticEntry:
        entry = DiagnosticEntry(
            timestamp=datetime.now(timezone.utc),
            message=message,
            data=data,
        )
        self._entries.append(entry)
        return entry

    def entries(self) -> List[DiagnosticEntry]:
        """Oldest first."""
        return list(self._entries)

    def messages(self) -> List[str]:
        return [e.message for e in self._entries]

    def clear(self):
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
