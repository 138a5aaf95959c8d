"""Pointer-driven reordering: drag state, drop targets and drop operations."""

from blockdoc.drag.autoscroll import AutoScroll, Scroller
from blockdoc.drag.controller import DragController
from blockdoc.drag.descendants import collect_descendants
from blockdoc.drag.operations import DragOperations
from blockdoc.drag.state import DragState
from blockdoc.drag.target import DropTargetDetector, HitBox, HitTester

__all__ = [
    "AutoScroll",
    "DragController",
    "DragOperations",
    "DragState",
    "DropTargetDetector",
    "HitBox",
    "HitTester",
    "Scroller",
    "collect_descendants",
]
