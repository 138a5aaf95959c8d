"""In-memory snapshot history.

A small undo/redo store implementing ``HistoryBridge``. Each entry keeps
the document snapshot before and after a run of mutations; undo and redo
replay snapshots through the engine.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional

from blockdoc.models.mutation import BlockMutation
from blockdoc.utils.logging import get_logger

if TYPE_CHECKING:
    from blockdoc.core.engine import MutationEngine

logger = get_logger(__name__)

_UNSET = object()


@dataclass
class HistoryEntry:
    """One undoable unit."""

    before: list[dict[str, Any]]
    current_before: int
    caret: Any = None
    after: Optional[list[dict[str, Any]]] = None
    current_after: int = -1
    mutations: int = 0


class SnapshotHistory:
    """
    Snapshot-based undo/redo with grouping.

    Mutations are captured into an open entry until a boundary: an explicit
    ``stop_capturing()`` made outside any group (the engine issues one on
    every pointer change outside a group), or an undo. Groups only suppress
    boundaries, so changes made right after a group can still join its
    entry until the next boundary.

    Example:
        >>> history = SnapshotHistory(max_length=30)
        >>> engine = MutationEngine(registry, history)
        >>> history.attach(engine)
        >>> engine.insert_block("paragraph", {"text": "a"})
        >>> history.undo()
    """

    def __init__(self, max_length: int = 30) -> None:
        self.max_length = max_length
        self._engine: Optional["MutationEngine"] = None
        self._undo: list[HistoryEntry] = []
        self._redo: list[HistoryEntry] = []
        self._open: Optional[HistoryEntry] = None
        self._group_depth = 0
        self._baseline: list[dict[str, Any]] = []
        self._baseline_current = -1
        self._pending_caret: Any = _UNSET

    def attach(self, engine: "MutationEngine") -> None:
        """Bind to an engine and take its current state as the baseline."""
        self._engine = engine
        self.clear()

    def clear(self) -> None:
        """Forget every entry and re-baseline on the current document."""
        self._undo.clear()
        self._redo.clear()
        self._open = None
        self._group_depth = 0
        self._pending_caret = _UNSET
        self._rebaseline()

    @property
    def can_undo(self) -> bool:
        return bool(self._undo) or (self._open is not None and self._open.mutations > 0)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    @property
    def undo_depth(self) -> int:
        return len(self._undo)

    def begin_group(self) -> None:
        self._group_depth += 1

    def end_group(self) -> None:
        if self._group_depth:
            self._group_depth -= 1

    def stop_capturing(self) -> None:
        if self._group_depth:
            return
        self._close()

    def mark_position_before_change(self, position: Any = None) -> None:
        self._pending_caret = position

    def record(self, mutation: BlockMutation) -> None:
        if self._engine is None:
            return
        if self._open is None:
            caret = None if self._pending_caret is _UNSET else self._pending_caret
            self._pending_caret = _UNSET
            self._open = HistoryEntry(before=self._baseline, current_before=self._baseline_current, caret=caret)
            self._redo.clear()
        self._open.mutations += 1

    def undo(self) -> Any:
        """
        Revert the most recent entry.

        Returns:
            Caret handle marked before the entry's first change, or None
        """
        self._group_depth = 0
        self._close()
        if not self._undo or self._engine is None:
            return None
        entry = self._undo.pop()
        self._engine.restore(entry.before, entry.current_before)
        self._redo.append(entry)
        self._rebaseline()
        logger.debug("history_undo", remaining=len(self._undo))
        return entry.caret

    def redo(self) -> Any:
        """
        Re-apply the most recently undone entry.

        Returns:
            Caret handle stored with the entry, or None
        """
        if not self._redo or self._engine is None:
            return None
        entry = self._redo.pop()
        self._engine.restore(entry.after, entry.current_after)
        self._undo.append(entry)
        self._rebaseline()
        logger.debug("history_redo", remaining=len(self._redo))
        return entry.caret

    def _close(self) -> None:
        entry, self._open = self._open, None
        if entry is None:
            # A mark with no change after it belongs to no entry
            self._pending_caret = _UNSET
            return
        if self._engine is None:
            return
        entry.after = self._engine.snapshot()
        entry.current_after = self._engine.current_index
        self._baseline = entry.after
        self._baseline_current = entry.current_after
        if entry.after == entry.before:
            return
        self._undo.append(entry)
        self._redo.clear()
        if len(self._undo) > self.max_length:
            del self._undo[: len(self._undo) - self.max_length]

    def _rebaseline(self) -> None:
        if self._engine is None:
            return
        self._baseline = self._engine.snapshot()
        self._baseline_current = self._engine.current_index
