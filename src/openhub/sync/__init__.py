"""Synchronization loop: scheduler, per-pass dispatch and the revision state."""

from openhub.sync.dispatcher import run_pass
from openhub.sync.engine import Outcome, join_tags, synchronize
from openhub.sync.scheduler import Scheduler, sync
from openhub.sync.state import RevisionTracker, SyncState

__all__ = [
    "Outcome",
    "RevisionTracker",
    "Scheduler",
    "SyncState",
    "join_tags",
    "run_pass",
    "sync",
    "synchronize",
]
