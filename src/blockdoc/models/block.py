"""Block record: the atomic unit of a document."""

import copy
from dataclasses import dataclass, field
from typing import Any, Optional

from blockdoc.utils.ids import generate_block_id

STUB_TOOL_NAME = "stub"


@dataclass
class BlockRecord:
    """
    One block in a document.

    The record is owned by the block collection. ``data`` and ``tunes`` are
    opaque tool payloads; the engine only copies and merges them.

    Attributes:
        tool_name: Registry key of the owning tool
        data: Tool-owned payload
        tunes: Per-block settings, independent of the tool
        id: Unique identifier, stable for the document's lifetime
        parent_id: Id of the containing block, if nested
        child_ids: Ordered ids of nested children (empty for leaves)
        is_default: Whether the owning tool is the default block tool
        instance: Tool instance built for this block, if any
        stub_reason: Why this block was replaced by a stub, if it was
    """

    tool_name: str
    data: dict[str, Any] = field(default_factory=dict)
    tunes: dict[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=generate_block_id)
    parent_id: Optional[str] = None
    child_ids: list[str] = field(default_factory=list)
    is_default: bool = field(default=False, compare=False)
    instance: Any = field(default=None, repr=False, compare=False)
    stub_reason: Optional[str] = field(default=None, compare=False)

    @property
    def is_stub(self) -> bool:
        """True if this block preserves content for a missing or failed tool."""
        return self.tool_name == STUB_TOOL_NAME

    @property
    def has_children(self) -> bool:
        return bool(self.child_ids)

    def snapshot(self) -> dict[str, Any]:
        """
        Return a detached, serializable copy of the record state.

        Used by history replay and by duplicate operations. The tool
        instance is not part of the snapshot.

        Returns:
            Dict with id, tool, data, tunes, parent and content keys
        """
        return {
            "id": self.id,
            "tool": self.tool_name,
            "data": copy.deepcopy(self.data),
            "tunes": copy.deepcopy(self.tunes),
            "parent": self.parent_id,
            "content": list(self.child_ids),
        }
