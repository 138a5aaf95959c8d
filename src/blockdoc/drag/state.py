"""Drag gesture state machine."""

from typing import Optional

from blockdoc.models.drag import DragPhase, DropTarget
from blockdoc.services.exceptions import DragStateError

# Allowed transitions, keyed by the phase they leave
_TRANSITIONS: dict[DragPhase, frozenset[DragPhase]] = {
    DragPhase.IDLE: frozenset({DragPhase.TRACKING}),
    DragPhase.TRACKING: frozenset({DragPhase.DRAGGING, DragPhase.CANCELLED, DragPhase.IDLE}),
    DragPhase.DRAGGING: frozenset({DragPhase.COMMITTED, DragPhase.CANCELLED}),
    DragPhase.COMMITTED: frozenset({DragPhase.IDLE}),
    DragPhase.CANCELLED: frozenset({DragPhase.IDLE}),
}


class DragState:
    """
    Phase and bookkeeping of one drag gesture.

    Transitions not listed for the current phase raise ``DragStateError``.
    ``reset()`` always returns to idle.

    Attributes:
        phase: Current phase
        source_id: Block the pointer went down on
        source_ids: Blocks being dragged, in document order
        start_x: Pointer x at pointer-down
        start_y: Pointer y at pointer-down
        target: Last computed drop target (None when hovering nowhere valid)
        selection_snapshot: Selection to restore on cancel
    """

    def __init__(self) -> None:
        self.reset()

    def reset(self) -> None:
        self.phase = DragPhase.IDLE
        self.source_id: Optional[str] = None
        self.source_ids: list[str] = []
        self.start_x = 0.0
        self.start_y = 0.0
        self.target: Optional[DropTarget] = None
        self.selection_snapshot: list[str] = []

    @property
    def is_active(self) -> bool:
        """True while tracking or dragging."""
        return self.phase in (DragPhase.TRACKING, DragPhase.DRAGGING)

    def start_tracking(
        self,
        source_id: str,
        source_ids: list[str],
        x: float,
        y: float,
        selection_snapshot: Optional[list[str]] = None,
    ) -> None:
        if self.phase in (DragPhase.COMMITTED, DragPhase.CANCELLED):
            self.reset()
        self._transition(DragPhase.TRACKING)
        self.source_id = source_id
        self.source_ids = list(source_ids)
        self.start_x = x
        self.start_y = y
        self.selection_snapshot = list(selection_snapshot or [])

    def start_drag(self) -> None:
        self._transition(DragPhase.DRAGGING)

    def set_target(self, target: Optional[DropTarget]) -> None:
        if self.phase is not DragPhase.DRAGGING:
            raise DragStateError(self.phase.value, "set a drop target")
        self.target = target

    def commit(self) -> None:
        if self.target is None:
            raise DragStateError(self.phase.value, "commit without a drop target")
        self._transition(DragPhase.COMMITTED)

    def cancel(self) -> None:
        self._transition(DragPhase.CANCELLED)

    def distance_from_start(self, x: float, y: float) -> float:
        return ((x - self.start_x) ** 2 + (y - self.start_y) ** 2) ** 0.5

    def _transition(self, phase: DragPhase) -> None:
        if phase not in _TRANSITIONS[self.phase]:
            raise DragStateError(self.phase.value, f"enter {phase.value}")
        self.phase = phase
