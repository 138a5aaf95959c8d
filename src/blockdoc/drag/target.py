"""Drop target detection: hit testing, edge normalization and depth."""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Collection, Optional, Protocol

from blockdoc.models.block import BlockRecord
from blockdoc.models.drag import DropEdge, DropTarget

if TYPE_CHECKING:
    from blockdoc.core.engine import MutationEngine


@dataclass(frozen=True)
class HitBox:
    """Vertical extent of the block under the pointer."""

    block_id: str
    top: float
    height: float

    @property
    def middle(self) -> float:
        return self.top + self.height / 2


class HitTester(Protocol):
    """Maps pointer coordinates to the block rendered there."""

    def hit(self, x: float, y: float) -> Optional[HitBox]:
        """Return the hovered block's box, or None over empty space."""


class DropTargetDetector:
    """
    Turns a hovered block and pointer position into a canonical drop target.

    "Top of block N" and "bottom of block N-1" describe the same gap, so
    the top edge is rewritten to the bottom of the previous block unless
    that block is being dragged. Blocks that are part of the drag are never
    valid targets.
    """

    def __init__(self, engine: "MutationEngine") -> None:
        self.engine = engine

    def determine(
        self,
        hit: Optional[HitBox],
        pointer_y: float,
        source_ids: Collection[str],
    ) -> Optional[DropTarget]:
        """
        Compute the drop target for the current pointer position.

        Args:
            hit: Box of the hovered block (None over empty space)
            pointer_y: Pointer y in the same coordinates as ``hit``
            source_ids: Blocks being dragged

        Returns:
            The drop target, or None when there is no valid one
        """
        if hit is None:
            return None
        sources = set(source_ids)
        if hit.block_id in sources:
            return None
        index = self.engine.index_of(hit.block_id)
        if index is None:
            return None
        edge = DropEdge.TOP if pointer_y < hit.middle else DropEdge.BOTTOM
        return self.canonical(index, edge, sources)

    def canonical(self, index: int, edge: DropEdge, sources: Collection[str] = ()) -> DropTarget:
        """Normalize (index, edge) and attach the depth and parent a drop there takes."""
        if edge is DropEdge.TOP and index > 0:
            previous = self.engine.get_by_index(index - 1)
            if previous.id not in sources:
                index -= 1
                edge = DropEdge.BOTTOM

        record = self.engine.get_by_index(index)
        insert_index = index if edge is DropEdge.TOP else index + 1
        depth, parent_id = self.placement(insert_index, sources)
        return DropTarget(record.id, edge, index, depth, parent_id)

    def placement(self, insert_index: int, sources: Collection[str] = ()) -> tuple[int, Optional[str]]:
        """
        Depth and parent for blocks dropped before ``insert_index``.

        Dropped blocks take the depth of the block that will follow them
        when it is exactly one level deeper than the block that will precede
        them (they become its first sibling), and the preceding block's
        depth otherwise. Dragged blocks are skipped when finding neighbours.
        A drop at the top of the document is always at depth 0.
        """
        if insert_index == 0:
            return 0, None
        previous = self._neighbour(insert_index - 1, -1, sources)
        if previous is None:
            return 0, None
        following = self._neighbour(insert_index, 1, sources)

        hierarchy = self.engine.hierarchy
        previous_depth = hierarchy.depth(previous)
        if following is not None and hierarchy.depth(following) == previous_depth + 1:
            return previous_depth + 1, following.parent_id
        return previous_depth, previous.parent_id

    def _neighbour(self, index: int, step: int, sources: Collection[str]) -> Optional[BlockRecord]:
        while (record := self.engine.get_by_index(index)) is not None:
            if record.id not in sources:
                return record
            index += step
        return None
