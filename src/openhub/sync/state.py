"""In-memory synchronization state, discarded when the process exits."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field


class RevisionTracker:
    """Maps listener names to the last revision observed for them.

    Entries are overwritten in place and never removed.
    """

    def __init__(self) -> None:
        self._revisions: dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, name: str) -> str | None:
        with self._lock:
            return self._revisions.get(name)

    def record(self, name: str, revision: str) -> None:
        with self._lock:
            self._revisions[name] = revision

    def snapshot(self) -> dict[str, str]:
        """Copy of the current mapping."""
        with self._lock:
            return dict(self._revisions)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._revisions

    def __len__(self) -> int:
        with self._lock:
            return len(self._revisions)


@dataclass
class SyncState:
    """State shared by the scheduler and the passes it starts.

    ``done`` is True once the last pass has finished; the scheduler clears it
    when it starts a new one.
    """

    done: bool = False
    revisions: RevisionTracker = field(default_factory=RevisionTracker)
