"""Drag gesture state and result models."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class DragPhase(str, Enum):
    """Lifecycle of a pointer-driven reorder gesture."""

    IDLE = "idle"
    TRACKING = "tracking"      # Pointer down, below the drag threshold
    DRAGGING = "dragging"      # Threshold crossed, drop targets are computed
    COMMITTED = "committed"    # Released over a valid target
    CANCELLED = "cancelled"    # Escape or external preemption


class DropEdge(str, Enum):
    """Half of the hovered block the pointer is over."""

    TOP = "top"
    BOTTOM = "bottom"


@dataclass(frozen=True)
class DropTarget:
    """
    Canonical drop position for a drag gesture.

    Attributes:
        block_id: Block the drop is relative to
        edge: Whether the drop lands above or below ``block_id``
        target_index: Index of ``block_id`` when the target was computed
        depth: Nesting depth the dropped block(s) should take
        parent_id: Parent the dropped block(s) should take at that depth
    """

    block_id: str
    edge: DropEdge
    target_index: int
    depth: int = 0
    parent_id: Optional[str] = None

    @property
    def insert_index(self) -> int:
        """Index in the pre-move sequence before which blocks are inserted."""
        return self.target_index if self.edge is DropEdge.TOP else self.target_index + 1


@dataclass
class MoveResult:
    """Outcome of a committed move."""

    moved_ids: list[str] = field(default_factory=list)
    target: Optional[DropTarget] = None
    changed: bool = False


@dataclass
class DuplicateResult:
    """Outcome of a committed duplicate."""

    source_ids: list[str] = field(default_factory=list)
    duplicate_ids: list[str] = field(default_factory=list)
    target: Optional[DropTarget] = None
