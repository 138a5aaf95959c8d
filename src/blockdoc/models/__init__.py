"""Data models for blockdoc."""

from blockdoc.models.block import STUB_TOOL_NAME, BlockRecord
from blockdoc.models.document import SavedBlock, SavedDocument
from blockdoc.models.drag import DragPhase, DropEdge, DropTarget, DuplicateResult, MoveResult
from blockdoc.models.mutation import BlockMutation, MutationKind

__all__ = [
    "STUB_TOOL_NAME",
    "BlockRecord",
    "SavedBlock",
    "SavedDocument",
    "DragPhase",
    "DropEdge",
    "DropTarget",
    "DuplicateResult",
    "MoveResult",
    "BlockMutation",
    "MutationKind",
]
