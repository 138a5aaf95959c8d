"""Committed drop operations: move and duplicate."""

from typing import TYPE_CHECKING, Iterable, Optional

from blockdoc.models.block import BlockRecord
from blockdoc.models.document import SavedBlock
from blockdoc.models.drag import DropEdge, DropTarget, DuplicateResult, MoveResult
from blockdoc.services.exceptions import BlockNotFound
from blockdoc.utils.ids import generate_block_id
from blockdoc.utils.logging import get_logger

if TYPE_CHECKING:
    from blockdoc.core.engine import MutationEngine
    from blockdoc.core.selection import BlockSelection
    from blockdoc.services.saver import DocumentSaver

logger = get_logger(__name__)


class DragOperations:
    """
    Applies a committed drop through the mutation engine.

    Each operation runs inside one atomic group, so a drop is a single undo
    entry. Blocks keep their relative document order in every case.
    """

    def __init__(
        self,
        engine: "MutationEngine",
        selection: Optional["BlockSelection"] = None,
        saver: Optional["DocumentSaver"] = None,
    ) -> None:
        self.engine = engine
        self.selection = selection
        self.saver = saver

    def move(self, source_ids: Iterable[str], target: DropTarget) -> MoveResult:
        """
        Move blocks to a drop target.

        Sources above the insertion point are placed bottom-up into the slots
        just before it, then sources at or below it are placed top-down from
        it, so every intermediate move leaves already placed blocks alone.
        Blocks already in place are not moved. Moved blocks whose parent is
        outside the moved set are re-homed under the target's parent.

        Args:
            source_ids: Blocks to move
            target: Drop target

        Returns:
            Ids moved (in document order) and whether anything changed

        Raises:
            BlockNotFound: If the target block no longer exists
        """
        ids = self._ordered(source_ids)
        if not ids:
            return MoveResult(target=target)
        insert_index = self._insert_index(target)
        above = [block_id for block_id in ids if self.engine.index_of(block_id) < insert_index]
        below = ids[len(above):]

        changed = False
        with self.engine.atomic():
            for offset, block_id in enumerate(reversed(above)):
                changed |= self._place(block_id, insert_index - 1 - offset)
            for offset, block_id in enumerate(below):
                changed |= self._place(block_id, insert_index + offset)
            changed |= self._reparent(ids, target)

        if self.selection is not None and len(ids) > 1:
            self.selection.restore(ids)
        logger.info("blocks_moved", count=len(ids), target=target.block_id, edge=target.edge.value, changed=changed)
        return MoveResult(moved_ids=ids, target=target, changed=changed)

    async def duplicate(self, source_ids: Iterable[str], target: DropTarget) -> DuplicateResult:
        """
        Insert copies of blocks at a drop target.

        Sources are saved first, so nothing is mutated until every tool has
        produced its data. Copies get fresh ids; a copy whose source parent
        was also copied is parented to that copy, and the rest take the
        target's parent. The copies become the selection.

        Args:
            source_ids: Blocks to copy
            target: Drop target

        Returns:
            Source ids and the ids of their copies, in the same order
        """
        ids = self._ordered(source_ids)
        if not ids:
            return DuplicateResult(target=target)
        insert_index = self._insert_index(target)

        records = [self.engine.get_by_id(block_id) for block_id in ids]
        saved = [await self._save(record) for record in records]
        id_map = {record.id: generate_block_id() for record in records}

        with self.engine.atomic():
            for offset, (record, block) in enumerate(zip(records, saved)):
                self.engine.insert_block(
                    block.type,
                    block.data,
                    index=insert_index + offset,
                    id=id_map[record.id],
                    tunes=block.tunes,
                    need_to_focus=False,
                )
            for record in records:
                parent_id = id_map.get(record.parent_id, target.parent_id)
                if parent_id is not None:
                    self.engine.set_block_parent(id_map[record.id], parent_id)

        duplicate_ids = [id_map[block_id] for block_id in ids]
        if self.selection is not None:
            self.selection.restore(duplicate_ids)
        logger.info("blocks_duplicated", count=len(ids), target=target.block_id, edge=target.edge.value)
        return DuplicateResult(source_ids=ids, duplicate_ids=duplicate_ids, target=target)

    def _ordered(self, source_ids: Iterable[str]) -> list[str]:
        indexed = []
        for block_id in dict.fromkeys(source_ids):
            index = self.engine.index_of(block_id)
            if index is None:
                logger.warning("drag_source_missing", block_id=block_id)
                continue
            indexed.append((index, block_id))
        return [block_id for _, block_id in sorted(indexed)]

    def _insert_index(self, target: DropTarget) -> int:
        index = self.engine.index_of(target.block_id)
        if index is None:
            raise BlockNotFound(target.block_id)
        return index if target.edge is DropEdge.TOP else index + 1

    def _place(self, block_id: str, destination: int) -> bool:
        current = self.engine.index_of(block_id)
        if current == destination:
            return False
        self.engine.move_block(destination, current)
        return True

    def _reparent(self, ids: list[str], target: DropTarget) -> bool:
        moved = set(ids)
        changed = False
        for block_id in ids:
            record = self.engine.get_by_id(block_id)
            if record.parent_id in moved or record.parent_id == target.parent_id:
                continue
            if target.parent_id is not None and not self._can_adopt(record, target.parent_id):
                logger.debug("reparent_skipped", block_id=block_id, parent_id=target.parent_id)
                continue
            self.engine.set_block_parent(block_id, target.parent_id)
            changed = True
        return changed

    def _can_adopt(self, record: BlockRecord, parent_id: str) -> bool:
        parent = self.engine.get_by_id(parent_id)
        if parent is None or parent.id == record.id:
            return False
        return not self.engine.hierarchy.is_ancestor(record.id, parent)

    async def _save(self, record: BlockRecord) -> SavedBlock:
        if self.saver is not None:
            saved = await self.saver.save_block(record)
            if saved is not None:
                return saved
        snapshot = record.snapshot()
        return SavedBlock(type=snapshot["tool"], data=snapshot["data"], tunes=snapshot["tunes"])
