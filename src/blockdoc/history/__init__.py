"""History bridge interface and implementations."""

from blockdoc.history.bridge import HistoryBridge, IdleQueue, NullHistory
from blockdoc.history.snapshot import HistoryEntry, SnapshotHistory

__all__ = ["HistoryBridge", "IdleQueue", "NullHistory", "HistoryEntry", "SnapshotHistory"]
