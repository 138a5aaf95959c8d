"""Mutation events emitted by the engine after each applied change."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class MutationKind(str, Enum):
    """Kind of structural change applied to the collection."""

    ADDED = "added"
    REMOVED = "removed"
    CHANGED = "changed"
    MOVED = "moved"


@dataclass(frozen=True)
class BlockMutation:
    """
    Description of one applied change.

    Attributes:
        kind: What happened to the block
        block_id: Id of the affected block
        index: Index of the block after the change (before it, for removals)
        from_index: Previous index, for moves
    """

    kind: MutationKind
    block_id: str
    index: int
    from_index: Optional[int] = None
