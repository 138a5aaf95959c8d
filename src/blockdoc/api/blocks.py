"""Public block mutation surface consumed by the UI layer."""

from typing import Any, Iterable, Optional

from blockdoc.api.handle import BlockAPI
from blockdoc.core.collection import validate_index
from blockdoc.core.engine import BlockInput, MutationEngine
from blockdoc.history.bridge import HistoryBridge, IdleQueue, NullHistory
from blockdoc.models.document import SavedDocument
from blockdoc.services.renderer import DocumentRenderer
from blockdoc.services.saver import DocumentSaver
from blockdoc.utils.logging import get_logger

logger = get_logger(__name__)


class BlocksAPI:
    """
    Block operations addressed by id, returning ``BlockAPI`` handles.

    Mutations raise the errors documented on the engine. Read accessors
    (``get_by_id``, ``get_by_index``, ``get_block_index``) return None and
    log a warning when nothing matches, since callers use them as existence
    checks.
    """

    def __init__(
        self,
        engine: MutationEngine,
        *,
        history: Optional[HistoryBridge] = None,
        idle_queue: Optional[IdleQueue] = None,
        renderer: Optional[DocumentRenderer] = None,
        saver: Optional[DocumentSaver] = None,
    ) -> None:
        self.engine = engine
        self.history: HistoryBridge = history or engine.history or NullHistory()
        self.idle_queue = idle_queue or IdleQueue()
        self.renderer = renderer or DocumentRenderer(engine, self.history)
        self.saver = saver or DocumentSaver(engine, self.renderer.busy)

    def _handle(self, block_id: str) -> BlockAPI:
        return BlockAPI(self.engine, block_id, self.saver)

    # Mutations

    def insert(
        self,
        type: Optional[str] = None,
        data: Optional[dict[str, Any]] = None,
        index: Optional[int] = None,
        need_to_focus: bool = True,
        replace: bool = False,
        id: Optional[str] = None,
        tunes: Optional[dict[str, Any]] = None,
        parent_id: Optional[str] = None,
    ) -> BlockAPI:
        """
        Insert a block and return its handle.

        Args:
            type: Tool name (default tool when None)
            data: Tool payload
            index: Target index (after the current block when None)
            need_to_focus: Make the new block current
            replace: Overwrite the block at index
            id: Explicit block id
            tunes: Tune settings
            parent_id: Parent block id

        Returns:
            Handle of the inserted block
        """
        record = self.engine.insert_block(
            type, data, index=index, replace=replace, id=id, tunes=tunes,
            parent_id=parent_id, need_to_focus=need_to_focus,
        )
        return self._handle(record.id)

    def insert_many(self, blocks: Iterable[BlockInput], index: Optional[int] = None) -> list[BlockAPI]:
        """Insert several saved blocks in order; appends when index is None."""
        if index is not None:
            validate_index(index, "insert_many")
        records = self.engine.insert_many(blocks, index)
        return [self._handle(record.id) for record in records]

    def delete(self, index: Optional[int] = None) -> Optional[int]:
        """
        Delete the block at index (the current block when None).

        Returns:
            Index where the caret should land, or None when nothing matched
        """
        if index is None:
            index = self.engine.current_index
        else:
            validate_index(index, "delete")
        record = self.engine.get_by_index(index)
        if record is None:
            logger.warning("block_not_found", index=index, operation="delete")
            return None
        return self.engine.remove_block(record.id)

    def move(self, to_index: int, from_index: Optional[int] = None) -> None:
        self.engine.move_block(to_index, from_index)

    def update(
        self,
        block_id: str,
        data: Optional[dict[str, Any]] = None,
        tunes: Optional[dict[str, Any]] = None,
    ) -> BlockAPI:
        """Merge data into a block (and replace its tunes when given)."""
        record = self.engine.update_block(block_id, data, tunes)
        return self._handle(record.id)

    def convert(self, block_id: str, new_type: str, data_overrides: Optional[dict[str, Any]] = None) -> BlockAPI:
        """Convert a block to another tool; the returned handle has a new id."""
        record = self.engine.convert_block(block_id, new_type, data_overrides)
        return self._handle(record.id)

    def split_block(
        self,
        current_block_id: str,
        current_block_data: dict[str, Any],
        new_block_type: Optional[str],
        new_block_data: Optional[dict[str, Any]],
        insert_index: int,
    ) -> BlockAPI:
        """
        Split a block at the caret as one undoable edit.

        The current undo entry is closed before the split, and another
        boundary is scheduled on the idle queue so that follow-up changes
        reacting to the split join the same entry.

        Returns:
            Handle of the new block
        """
        self.history.stop_capturing()
        record = self.engine.split_block(
            current_block_id, current_block_data, new_block_type, new_block_data, insert_index,
        )
        self.idle_queue.schedule(self.history.stop_capturing)
        return self._handle(record.id)

    def merge(self, target_id: str, source_id: str) -> BlockAPI:
        record = self.engine.merge_blocks(target_id, source_id)
        return self._handle(record.id)

    def set_parent(self, block_id: str, parent_id: Optional[str]) -> BlockAPI:
        record = self.engine.set_block_parent(block_id, parent_id)
        return self._handle(record.id)

    def clear(self) -> BlockAPI:
        return self._handle(self.engine.clear().id)

    # Read accessors

    def get_by_id(self, block_id: str) -> Optional[BlockAPI]:
        if self.engine.get_by_id(block_id) is None:
            logger.warning("block_not_found", block_id=block_id)
            return None
        return self._handle(block_id)

    def get_by_index(self, index: int) -> Optional[BlockAPI]:
        record = self.engine.get_by_index(index)
        if record is None:
            logger.warning("block_not_found", index=index)
            return None
        return self._handle(record.id)

    def get_block_index(self, block_id: str) -> Optional[int]:
        index = self.engine.index_of(block_id)
        if index is None:
            logger.warning("block_not_found", block_id=block_id)
        return index

    def get_children(self, parent_id: Optional[str] = None) -> list[BlockAPI]:
        """Children of a block in document order (top-level blocks when None)."""
        return [self._handle(record.id) for record in self.engine.children_of(parent_id)]

    def get_depth(self, block_id: str) -> Optional[int]:
        depth = self.engine.get_block_depth(block_id)
        if depth is None:
            logger.warning("block_not_found", block_id=block_id)
        return depth

    def get_blocks_count(self) -> int:
        return len(self.engine)

    def get_current_block_index(self) -> int:
        return self.engine.current_index

    # Document I/O

    async def render(self, document: Any) -> None:
        await self.renderer.render(document)

    async def save(self) -> SavedDocument:
        return await self.saver.save()

    async def compose_block_data(self, tool_name: str) -> dict[str, Any]:
        """
        Data a fresh block of ``tool_name`` starts with.

        Builds a read-only tool instance on empty data and returns what it
        saves (empty data for data-only tools).

        Raises:
            UnknownTool: If the tool is not registered
        """
        spec = self.engine.registry.require(tool_name)
        record = self.engine.factory.compose_block(spec.name, {})
        if record.is_stub:
            return {}
        saved = await self.saver.save_block(record)
        return {} if saved is None else saved.data

    # History

    def mark_position_before_change(self, position: Any = None) -> None:
        self.history.mark_position_before_change(position)

    def undo(self) -> Any:
        return self.history.undo()

    def redo(self) -> Any:
        return self.history.redo()
