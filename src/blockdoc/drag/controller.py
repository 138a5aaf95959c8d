"""Drag controller: turns pointer and key events into drag transitions."""

from typing import TYPE_CHECKING, Iterable, Optional, Union

from blockdoc.drag.autoscroll import AutoScroll, Scroller
from blockdoc.drag.descendants import collect_descendants
from blockdoc.drag.operations import DragOperations
from blockdoc.drag.state import DragState
from blockdoc.drag.target import DropTargetDetector, HitTester
from blockdoc.history.bridge import HistoryBridge, NullHistory
from blockdoc.models.config import DragConfig
from blockdoc.models.drag import DragPhase, DropTarget, DuplicateResult, MoveResult
from blockdoc.utils.logging import get_logger

if TYPE_CHECKING:
    from blockdoc.core.engine import MutationEngine
    from blockdoc.core.selection import BlockSelection
    from blockdoc.services.saver import DocumentSaver

logger = get_logger(__name__)

DropResult = Union[MoveResult, DuplicateResult]

PRIMARY_BUTTON = 0
CANCEL_KEY = "Escape"


class DragController:
    """
    Pointer-driven reordering of blocks.

    The gesture goes idle -> tracking on pointer-down, tracking -> dragging
    once the pointer travels past the threshold, and ends committed (released
    over a target) or cancelled (Escape, ``cancel()``, or release with no
    target). Holding the duplicate modifier at release copies instead of
    moving.

    When the pointer goes down on a selected block, the whole selection is
    dragged. Otherwise the block is dragged with the nested descendants that
    follow it, and the selection is cleared once dragging starts. Cancelling
    restores the selection held at pointer-down.

    Example:
        >>> controller = DragController(engine, selection, hit_tester)
        >>> controller.pointer_down(block_id, 10, 10)
        True
        >>> controller.pointer_move(10, 200)
        DropTarget(...)
        >>> await controller.release()
        MoveResult(...)
    """

    def __init__(
        self,
        engine: "MutationEngine",
        selection: "BlockSelection",
        hit_tester: HitTester,
        config: Optional[DragConfig] = None,
        *,
        saver: Optional["DocumentSaver"] = None,
        scroller: Optional[Scroller] = None,
        history: Optional[HistoryBridge] = None,
    ) -> None:
        self.engine = engine
        self.selection = selection
        self.hit_tester = hit_tester
        self.config = config or DragConfig()
        self.history: HistoryBridge = history or engine.history or NullHistory()
        self.state = DragState()
        self.detector = DropTargetDetector(engine)
        self.operations = DragOperations(engine, selection, saver)
        self.autoscroll: Optional[AutoScroll] = None
        if scroller is not None:
            self.autoscroll = AutoScroll(scroller, self.config.auto_scroll_zone, self.config.auto_scroll_speed)

    @property
    def phase(self) -> DragPhase:
        return self.state.phase

    @property
    def target(self) -> Optional[DropTarget]:
        return self.state.target

    def pointer_down(self, block_id: str, x: float, y: float, button: int = PRIMARY_BUTTON) -> bool:
        """
        Start tracking a potential drag from a block's handle.

        Returns:
            True when tracking started
        """
        if button != PRIMARY_BUTTON or self.state.is_active:
            return False
        if self.engine.get_by_id(block_id) is None:
            logger.warning("drag_source_missing", block_id=block_id)
            return False

        self.state.start_tracking(
            block_id,
            self._collect_sources(block_id),
            x,
            y,
            selection_snapshot=self.selection.snapshot(),
        )
        return True

    def pointer_move(self, x: float, y: float) -> Optional[DropTarget]:
        """
        Feed a pointer position.

        While tracking, dragging starts once the pointer has moved at least
        the configured threshold. While dragging, the drop target and the
        auto-scroll direction are recomputed.

        Returns:
            The current drop target (None while tracking or over no target)
        """
        if self.state.phase is DragPhase.TRACKING:
            if self.state.distance_from_start(x, y) < self.config.threshold:
                return None
            self._start_drag()
        if self.state.phase is not DragPhase.DRAGGING:
            return None

        target = self.detector.determine(self.hit_tester.hit(x, y), y, self.state.source_ids)
        self.state.set_target(target)
        if self.autoscroll is not None:
            self.autoscroll.update(y)
        return target

    async def release(self, modifiers: Iterable[str] = ()) -> Optional[DropResult]:
        """
        Finish the gesture.

        Releasing before the threshold is a plain click and leaves the
        document alone. Releasing with no target cancels.

        Args:
            modifiers: Modifier keys held at release (case-insensitive)

        Returns:
            The move or duplicate result, or None when nothing was dropped
        """
        if self.state.phase is DragPhase.TRACKING:
            self.state.reset()
            return None
        if self.state.phase is not DragPhase.DRAGGING:
            return None
        if self.state.target is None:
            self.cancel()
            return None

        target = self.state.target
        source_ids = list(self.state.source_ids)
        duplicate = self.config.duplicate_modifier in {modifier.lower() for modifier in modifiers}
        self._stop_autoscroll()

        self.history.stop_capturing()
        self.history.mark_position_before_change(self.engine.current_index)
        try:
            if duplicate:
                result: DropResult = await self.operations.duplicate(source_ids, target)
            else:
                result = self.operations.move(source_ids, target)
        except Exception:
            self.state.cancel()
            self.selection.restore(self.state.selection_snapshot)
            raise
        self.history.stop_capturing()
        self.state.commit()
        logger.info(
            "drop_committed",
            operation="duplicate" if duplicate else "move",
            count=len(source_ids),
            target=target.block_id,
            edge=target.edge.value,
        )
        return result

    def key_down(self, key: str) -> bool:
        """Handle a key press; Escape cancels an active gesture."""
        if key == CANCEL_KEY:
            return self.cancel()
        return False

    def cancel(self) -> bool:
        """
        Abort an active gesture and restore the pre-drag selection.

        Returns:
            True when a gesture was cancelled
        """
        if not self.state.is_active:
            return False
        was_dragging = self.state.phase is DragPhase.DRAGGING
        self.state.cancel()
        self.selection.restore(self.state.selection_snapshot)
        self._stop_autoscroll()
        if was_dragging:
            logger.info("drag_cancelled", source=self.state.source_id)
        return True

    def cancel_tracking(self) -> bool:
        """
        Drop a pending gesture that has not crossed the threshold yet.

        Used when another interaction (text selection, for instance) claims
        the pointer. Has no effect once dragging started.
        """
        if self.state.phase is not DragPhase.TRACKING:
            return False
        self.state.cancel()
        return True

    def _collect_sources(self, block_id: str) -> list[str]:
        if self.selection.is_selected(block_id):
            return self.selection.selected_ids
        return [block_id, *collect_descendants(self.engine, block_id)]

    def _start_drag(self) -> None:
        self.state.start_drag()
        if not self.selection.is_selected(self.state.source_id):
            self.selection.clear()
        logger.info("drag_started", source=self.state.source_id, count=len(self.state.source_ids))

    def _stop_autoscroll(self) -> None:
        if self.autoscroll is not None:
            self.autoscroll.stop()
