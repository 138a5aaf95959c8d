"""Mutation engine: invariant-preserving operations over a block collection.

The engine is the only component that mutates the collection. Every public
operation validates its arguments before touching the collection and either
completes fully or raises without partial mutation. When ``__debug__`` is
true the structural invariants are checked after every operation.
"""

import copy
from contextlib import contextmanager
from typing import Any, Callable, Iterable, Iterator, Optional, Union

from blockdoc.core.collection import BlockCollection, validate_index
from blockdoc.core.factory import BlockFactory
from blockdoc.core.hierarchy import BlockHierarchy
from blockdoc.history.bridge import HistoryBridge, NullHistory
from blockdoc.models.block import BlockRecord
from blockdoc.models.document import SavedBlock
from blockdoc.models.mutation import BlockMutation, MutationKind
from blockdoc.services.exceptions import (
    BlockNotFound,
    ConversionUnsupported,
    DuplicateBlockId,
    HierarchyError,
    IndexOutOfRange,
    InvariantViolation,
)
from blockdoc.tools.conversion import convert_string_to_block_data, export_data_as_string, is_convertible
from blockdoc.tools.registry import ToolRegistry
from blockdoc.utils.logging import get_logger

logger = get_logger(__name__)

BlockInput = Union[BlockRecord, SavedBlock, dict[str, Any]]
MutationListener = Callable[[BlockMutation], None]

_UNSET = object()


class MutationEngine:
    """
    Owns a block collection and applies every change to it.

    The engine also owns the current-block pointer. Outside callers may
    request focus changes, but while an operation is running such requests
    are deferred until it completes, so the pointer never references a
    block mid-mutation.

    Example:
        >>> engine = MutationEngine(registry)
        >>> block = engine.insert_block("paragraph", {"text": "Hello"})
        >>> engine.index_of(block.id)
        0
    """

    def __init__(
        self,
        registry: ToolRegistry,
        history: Optional[HistoryBridge] = None,
        *,
        factory: Optional[BlockFactory] = None,
        read_only: bool = False,
        blocks: Optional[Iterable[BlockInput]] = None,
    ) -> None:
        """
        Initialize the engine.

        Args:
            registry: Tool registry (must define a default tool)
            history: History bridge (defaults to NullHistory)
            factory: Block factory (built from the registry when None)
            read_only: Build tool instances in read-only mode
            blocks: Initial blocks; a single default block when None or empty

        Raises:
            ValueError: If the registry has no default tool
        """
        self.registry = registry
        self.factory = factory or BlockFactory(registry, read_only)
        self.history: HistoryBridge = history or NullHistory()
        self._collection = BlockCollection()
        self._hierarchy = BlockHierarchy(self._collection)
        self._listeners: list[MutationListener] = []
        self._current_index = -1
        self._atomic_depth = 0
        self._op_depth = 0
        self._replaying = False
        self._pending_focus: Any = _UNSET

        # Fail early when no default tool exists
        self.registry.default_tool

        self.load([self._compose_from(block) for block in blocks or ()])

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._collection)

    def __iter__(self) -> Iterator[BlockRecord]:
        return iter(self._collection)

    @property
    def blocks(self) -> list[BlockRecord]:
        return self._collection.records()

    @property
    def hierarchy(self) -> BlockHierarchy:
        return self._hierarchy

    @property
    def current_index(self) -> int:
        """Index of the current block, or -1 when no block is current."""
        return self._current_index

    @property
    def current_block(self) -> Optional[BlockRecord]:
        return self._collection.get_by_index(self._current_index)

    def get_by_id(self, block_id: str) -> Optional[BlockRecord]:
        return self._collection.get_by_id(block_id)

    def get_by_index(self, index: int) -> Optional[BlockRecord]:
        return self._collection.get_by_index(index)

    def index_of(self, block_id: str) -> Optional[int]:
        return self._collection.index_of(block_id)

    def children_of(self, parent_id: Optional[str]) -> list[BlockRecord]:
        return self._collection.children_of(parent_id)

    def get_block_depth(self, block_id: str) -> Optional[int]:
        record = self._collection.get_by_id(block_id)
        return None if record is None else self._hierarchy.depth(record)

    def snapshot(self) -> list[dict[str, Any]]:
        """Detached copy of every record, in order."""
        return [record.snapshot() for record in self._collection]

    def subscribe(self, listener: MutationListener) -> Callable[[], None]:
        """
        Register a callback for applied mutations.

        Returns:
            Function that unsubscribes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ------------------------------------------------------------------
    # Grouping and pointer
    # ------------------------------------------------------------------

    @contextmanager
    def atomic(self) -> Iterator[None]:
        """
        Group every mutation in the block into one history entry.

        Pointer changes inside the block do not close the entry.
        """
        self.history.begin_group()
        self._atomic_depth += 1
        try:
            yield
        finally:
            self._atomic_depth -= 1
            self.history.end_group()

    def focus(self, index: Optional[int]) -> None:
        """
        Set the current block pointer (None clears it).

        Requests made while an operation is running are applied when the
        operation finishes.

        Raises:
            InvalidIndex: If index is not a non-negative integer
            IndexOutOfRange: If no block exists at index
        """
        target = -1 if index is None else validate_index(index, "focus")
        if target >= len(self._collection):
            raise IndexOutOfRange(target, len(self._collection), "focus")
        if self._op_depth:
            self._pending_focus = target
            logger.debug("focus_deferred", index=target)
            return
        self._set_current(target)

    # ------------------------------------------------------------------
    # Insertion
    # ------------------------------------------------------------------

    def insert_block(
        self,
        tool_name: Optional[str] = None,
        data: Optional[dict[str, Any]] = None,
        *,
        index: Optional[int] = None,
        replace: bool = False,
        id: Optional[str] = None,
        tunes: Optional[dict[str, Any]] = None,
        parent_id: Optional[str] = None,
        need_to_focus: bool = True,
    ) -> BlockRecord:
        """
        Insert a new block.

        Unknown tools and failing tool constructors produce a stub block
        that preserves the given data.

        Args:
            tool_name: Tool name (default tool when None)
            data: Tool payload
            index: Target index; defaults to right after the current block
                (or at it, when replacing)
            replace: Overwrite the block at index instead of shifting it
            id: Explicit block id
            tunes: Tune settings
            parent_id: Parent block id for nested blocks
            need_to_focus: Make the new block current

        Returns:
            The inserted record

        Raises:
            InvalidIndex: If index is not a non-negative integer
            IndexOutOfRange: If index is greater than the block count
            DuplicateBlockId: If id is already used
            BlockNotFound: If parent_id does not exist
        """
        with self._operation():
            return self._insert(
                tool_name, data, index=index, replace=replace, id=id, tunes=tunes,
                parent_id=parent_id, need_to_focus=need_to_focus,
            )

    def insert_default_block(self, index: Optional[int] = None, need_to_focus: bool = False) -> BlockRecord:
        """Insert an empty block of the default tool."""
        with self._operation():
            return self._insert(None, None, index=index, need_to_focus=need_to_focus)

    def insert_many(self, blocks: Iterable[BlockInput], index: Optional[int] = None) -> list[BlockRecord]:
        """
        Insert several blocks, preserving their relative order.

        Parents that are neither in the document nor in the batch are
        scrubbed with a warning; child lists are rebuilt from parent links.

        Args:
            blocks: Records, SavedBlock models or saved-block dicts
            index: Insertion index (appends when None)

        Returns:
            Inserted records in order

        Raises:
            InvalidIndex: If index is not a non-negative integer
            IndexOutOfRange: If index is greater than the block count
            DuplicateBlockId: If an id collides with the document or the batch
        """
        if index is None:
            index = len(self._collection)
        validate_index(index, "insert_many")
        if index > len(self._collection):
            raise IndexOutOfRange(index, len(self._collection), "insert_many")

        records = [self._compose_from(block) for block in blocks]
        batch_ids = {record.id for record in records}
        for record in records:
            if record.parent_id is not None and record.parent_id not in batch_ids \
                    and record.parent_id not in self._collection:
                logger.warning("dangling_parent_scrubbed", block_id=record.id, parent_id=record.parent_id)
                record.parent_id = None

        with self._operation():
            self._collection.insert_many(records, index)
            for record in records:
                if record.parent_id is not None and record.parent_id not in batch_ids:
                    self._hierarchy.attach(record)
            self._hierarchy.normalize()
            for offset, record in enumerate(records):
                self._emit(MutationKind.ADDED, record, index + offset)
            if records and index <= self._current_index:
                self._set_current(self._current_index + len(records))
        return records

    # ------------------------------------------------------------------
    # Removal
    # ------------------------------------------------------------------

    def remove_block(self, block_id: str) -> int:
        """
        Remove a block.

        Children of the removed block are lifted to its parent. Removing the
        last block inserts a default block.

        Args:
            block_id: Id of the block to remove

        Returns:
            Index where the caret should land

        Raises:
            BlockNotFound: If the block does not exist
        """
        self._require(block_id)
        with self._operation(), self.atomic():
            index = self._collection.index_of(block_id)
            self._remove_at(index)
            if not self._collection:
                self._insert(None, None, index=0, need_to_focus=True)
                return 0
            if index == 0 and self._current_index < 0:
                self._set_current(0)
            return max(index - 1, 0)

    def remove_blocks(self, block_ids: Iterable[str]) -> int:
        """
        Remove several blocks as one edit.

        When every block is removed a single default block replaces them.

        Returns:
            Index where the caret should land

        Raises:
            BlockNotFound: If any block does not exist (nothing is removed)
        """
        records = [self._require(block_id) for block_id in block_ids]
        if not records:
            return max(self._current_index, 0)
        indices = sorted({self._collection.index_of(record.id) for record in records}, reverse=True)
        with self._operation(), self.atomic():
            for index in indices:
                self._remove_at(index)
            if not self._collection:
                self._insert(None, None, index=0, need_to_focus=True)
                return 0
            return max(indices[-1] - 1, 0)

    def clear(self) -> BlockRecord:
        """Remove every block and insert one default block."""
        with self._operation(), self.atomic():
            for index in range(len(self._collection) - 1, -1, -1):
                self._remove_at(index)
            self._current_index = -1
            return self._insert(None, None, index=0, need_to_focus=True)

    # ------------------------------------------------------------------
    # Reordering and hierarchy
    # ------------------------------------------------------------------

    def move_block(self, to_index: int, from_index: Optional[int] = None) -> None:
        """
        Move one block, shifting the blocks in between.

        Moving a block onto its own index does nothing at all.

        Args:
            to_index: Destination index
            from_index: Source index (current block when None)

        Raises:
            InvalidIndex: If an index is not a non-negative integer
            IndexOutOfRange: If an index does not address a block
        """
        if from_index is None:
            from_index = self._current_index
        length = len(self._collection)
        for value in (from_index, to_index):
            validate_index(value, "move_block")
            if value >= length:
                raise IndexOutOfRange(value, length, "move_block")
        if from_index == to_index:
            return

        with self._operation():
            record = self._collection.get_by_index(from_index)
            self._collection.move(from_index, to_index)
            self._hierarchy.resync(record.parent_id)
            self._emit(MutationKind.MOVED, record, to_index, from_index)
            self._set_current(to_index)

    def move_current_up(self) -> bool:
        """Swap the current block with the one above it."""
        if self._current_index <= 0:
            return False
        self.move_block(self._current_index - 1, self._current_index)
        return True

    def move_current_down(self) -> bool:
        """Swap the current block with the one below it."""
        if self._current_index < 0 or self._current_index >= len(self._collection) - 1:
            return False
        self.move_block(self._current_index + 1, self._current_index)
        return True

    def set_block_parent(self, block_id: str, parent_id: Optional[str]) -> BlockRecord:
        """
        Re-home a block under another block (None for top level).

        Raises:
            BlockNotFound: If either block does not exist
            HierarchyError: If the assignment would create a cycle
        """
        record = self._require(block_id)
        old_parent = record.parent_id
        with self._operation():
            self._hierarchy.set_parent(record, parent_id)
            if old_parent != parent_id:
                self._emit(MutationKind.CHANGED, record, self._collection.index_of(record.id))
        return record

    # ------------------------------------------------------------------
    # Content changes
    # ------------------------------------------------------------------

    def update_block(
        self,
        block_id: str,
        data: Optional[dict[str, Any]] = None,
        tunes: Optional[dict[str, Any]] = None,
    ) -> BlockRecord:
        """
        Merge new data into a block, keeping its id and position.

        Args:
            block_id: Block to update
            data: Keys merged over the existing data
            tunes: Replacement tunes

        Returns:
            The updated record

        Raises:
            BlockNotFound: If the block does not exist
        """
        record = self._require(block_id)
        if data is None and tunes is None:
            return record
        with self._operation():
            self._apply_update(record, data, tunes)
            self._emit(MutationKind.CHANGED, record, self._collection.index_of(record.id))
        return record

    def replace_block(
        self,
        block_id: str,
        tool_name: str,
        data: Optional[dict[str, Any]] = None,
        tunes: Optional[dict[str, Any]] = None,
    ) -> BlockRecord:
        """
        Replace a block with a new one (new id) at the same index.

        The replacement takes over the parent slot and the children.

        Raises:
            BlockNotFound: If the block does not exist
        """
        old = self._require(block_id)
        record = self.factory.compose_block(tool_name, data, tunes=tunes)
        with self._operation(), self.atomic():
            self._replace_at(self._collection.index_of(old.id), record)
        return record

    def convert_block(
        self,
        block_id: str,
        target_tool: str,
        data_overrides: Optional[dict[str, Any]] = None,
    ) -> BlockRecord:
        """
        Convert a block to another tool through its string export.

        Args:
            block_id: Block to convert
            target_tool: Name of the tool to convert to
            data_overrides: Keys merged over the imported data

        Returns:
            The replacement record (new id, same index)

        Raises:
            BlockNotFound: If the block does not exist
            ConversionUnsupported: If the source cannot export, the target
                cannot import, or the target is not registered
        """
        record = self._require(block_id)
        source_spec = self.registry.get(record.tool_name)
        target_spec = self.registry.get(target_tool)
        if target_spec is None:
            raise ConversionUnsupported(
                record.tool_name, target_tool, [target_tool],
                reason=f'Tool "{target_tool}" is not registered',
            )

        lacking = []
        if source_spec is None or not is_convertible(source_spec, "export"):
            lacking.append(record.tool_name)
        if not is_convertible(target_spec, "import"):
            lacking.append(target_tool)
        if lacking:
            raise ConversionUnsupported(record.tool_name, target_tool, lacking)

        exported = export_data_as_string(record.data, source_spec)
        new_data = convert_string_to_block_data(exported, target_spec)
        if data_overrides:
            new_data.update(copy.deepcopy(data_overrides))

        replacement = self.factory.compose_block(target_tool, new_data, tunes=record.tunes)
        with self._operation(), self.atomic():
            self._replace_at(self._collection.index_of(record.id), replacement)
        logger.debug("block_converted", block_id=record.id, new_id=replacement.id, source=record.tool_name, target=target_tool)
        return replacement

    def split_block(
        self,
        block_id: str,
        truncated_data: dict[str, Any],
        new_tool_name: Optional[str],
        new_data: Optional[dict[str, Any]],
        insert_index: int,
        *,
        tunes: Optional[dict[str, Any]] = None,
    ) -> BlockRecord:
        """
        Split a block in two as one edit.

        The existing block receives ``truncated_data`` (the part before the
        caret) and a new block holding ``new_data`` is inserted at
        ``insert_index``. If inserting fails, the update is rolled back.

        Args:
            block_id: Block being split
            truncated_data: Data merged into the existing block
            new_tool_name: Tool for the new block (default tool when None)
            new_data: Data for the new block
            insert_index: Index of the new block
            tunes: Tunes for the new block

        Returns:
            The new record, which becomes current

        Raises:
            BlockNotFound: If the block does not exist
            InvalidIndex: If insert_index is not a non-negative integer
            IndexOutOfRange: If insert_index is greater than the block count
        """
        record = self._require(block_id)
        validate_index(insert_index, "split_block")
        index = self._collection.index_of(record.id)
        parent_id = record.parent_id if insert_index == index + 1 else None

        with self._operation(), self.atomic():
            saved_state = self._capture_state(record)
            self._apply_update(record, truncated_data, None)
            try:
                new_record = self._insert(
                    new_tool_name, new_data, index=insert_index, tunes=tunes,
                    parent_id=parent_id, need_to_focus=True,
                )
            except Exception:
                self._restore_state(record, saved_state)
                logger.warning("split_rolled_back", block_id=record.id, insert_index=insert_index)
                raise
            self._emit(MutationKind.CHANGED, record, self._collection.index_of(record.id))
        return new_record

    def merge_blocks(self, target_id: str, source_id: str) -> BlockRecord:
        """
        Merge the source block's content into the target and remove the source.

        Blocks of the same tool merge directly; otherwise the source is
        converted to the target's format through its string export first.

        Returns:
            The target record

        Raises:
            BlockNotFound: If either block does not exist
            ValueError: If both ids are the same
            ConversionUnsupported: If the target cannot merge or the source
                cannot be converted to the target's format
        """
        target = self._require(target_id)
        source = self._require(source_id)
        if target.id == source.id:
            raise ValueError("Cannot merge a block into itself")

        target_spec = self.registry.get(target.tool_name)
        if target_spec is None or not target_spec.mergeable:
            raise ConversionUnsupported(
                source.tool_name, target.tool_name, [target.tool_name],
                reason=f'"{target.tool_name}" tool does not support merging',
            )

        if source.tool_name == target.tool_name:
            source_data = copy.deepcopy(source.data)
        else:
            source_spec = self.registry.get(source.tool_name)
            lacking = []
            if source_spec is None or not is_convertible(source_spec, "export"):
                lacking.append(source.tool_name)
            if not is_convertible(target_spec, "import"):
                lacking.append(target.tool_name)
            if lacking:
                raise ConversionUnsupported(source.tool_name, target.tool_name, lacking)
            exported = export_data_as_string(source.data, source_spec)
            source_data = convert_string_to_block_data(exported, target_spec)

        merged = target_spec.merge(copy.deepcopy(target.data), source_data)

        with self._operation(), self.atomic():
            target.data = dict(merged)
            self.factory.rebind(target)
            self._emit(MutationKind.CHANGED, target, self._collection.index_of(target.id))
            self._remove_at(self._collection.index_of(source.id))
            self._set_current(self._collection.index_of(target.id))
        return target

    # ------------------------------------------------------------------
    # Whole-document replacement
    # ------------------------------------------------------------------

    def load(self, records: list[BlockRecord]) -> None:
        """
        Replace the whole document without recording history.

        The hierarchy is normalized and an empty list yields one default
        block. The current pointer is cleared.

        Raises:
            DuplicateBlockId: If two records share an id
        """
        seen: set[str] = set()
        for record in records:
            if record.id in seen:
                raise DuplicateBlockId(record.id)
            seen.add(record.id)

        with self._operation(), self._history_suspended():
            for index in range(len(self._collection) - 1, -1, -1):
                removed = self._collection.remove(index)
                self._emit(MutationKind.REMOVED, removed, index)
            self._current_index = -1
            self._collection.insert_many(records, 0)
            repairs = self._hierarchy.normalize()
            if repairs:
                logger.info("hierarchy_normalized", repairs=repairs)
            for index, record in enumerate(self._collection):
                self._emit(MutationKind.ADDED, record, index)
            if not self._collection:
                self._insert(None, None, index=0, need_to_focus=False)

    def restore(self, snapshot: list[dict[str, Any]], current_index: Optional[int] = None) -> None:
        """
        Rebuild the document from ``snapshot()`` output (history replay).

        Args:
            snapshot: Record snapshots in order
            current_index: Pointer to restore (clamped to the new length)
        """
        records = [
            self.factory.compose_block(
                item["tool"], item["data"], id=item["id"], tunes=item.get("tunes"),
                parent_id=item.get("parent"), child_ids=item.get("content"),
            )
            for item in snapshot
        ]
        previous = self._current_index if current_index is None else current_index
        self.load(records)
        self._current_index = min(previous, len(self._collection) - 1)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _insert(
        self,
        tool_name: Optional[str],
        data: Optional[dict[str, Any]],
        *,
        index: Optional[int] = None,
        replace: bool = False,
        id: Optional[str] = None,
        tunes: Optional[dict[str, Any]] = None,
        parent_id: Optional[str] = None,
        need_to_focus: bool = True,
    ) -> BlockRecord:
        if tool_name is None:
            tool_name = self.registry.default_tool.name
        if index is None:
            index = max(self._current_index + (0 if replace else 1), 0)
        validate_index(index, "insert_block")
        length = len(self._collection)
        if index > length:
            raise IndexOutOfRange(index, length, "insert_block")

        replaced = self._collection.get_by_index(index) if replace else None
        if id is not None and id in self._collection and (replaced is None or replaced.id != id):
            raise DuplicateBlockId(id)
        if parent_id is not None:
            if parent_id not in self._collection:
                raise BlockNotFound(parent_id)
            if replaced is not None and (
                parent_id == replaced.id
                or self._hierarchy.is_ancestor(replaced.id, self._collection.get_by_id(parent_id))
            ):
                raise HierarchyError(id or "<new>", parent_id, "Block cannot be nested under the block it replaces")

        record = self.factory.compose_block(tool_name, data, id=id, tunes=tunes, parent_id=parent_id)
        if replaced is not None:
            self._replace_at(index, record)
        else:
            self._collection.insert(record, index)
            self._hierarchy.attach(record)
            self._emit(MutationKind.ADDED, record, index)

        if need_to_focus:
            self._set_current(index)
        elif replaced is None and index <= self._current_index:
            self._set_current(self._current_index + 1)
        return record

    def _replace_at(self, index: int, record: BlockRecord) -> None:
        old = self._collection.get_by_index(index)
        explicit_parent = record.parent_id
        self._hierarchy.transfer(old, record)
        self._collection.insert(record, index, replace=True)
        if explicit_parent is not None and explicit_parent != record.parent_id:
            self._hierarchy.set_parent(record, explicit_parent)
        self._emit(MutationKind.REMOVED, old, index)
        self._emit(MutationKind.ADDED, record, index)

    def _remove_at(self, index: int) -> BlockRecord:
        record = self._collection.get_by_index(index)
        lifted = self._hierarchy.detach(record)
        self._collection.remove(index)
        if self._current_index >= index:
            self._set_current(self._current_index - 1)
        self._emit(MutationKind.REMOVED, record, index)
        for child in lifted:
            self._emit(MutationKind.CHANGED, child, self._collection.index_of(child.id))
        return record

    def _apply_update(self, record: BlockRecord, data: Optional[dict[str, Any]], tunes: Optional[dict[str, Any]]) -> None:
        if data is not None:
            record.data = {**record.data, **copy.deepcopy(data)}
        if tunes is not None:
            record.tunes = copy.deepcopy(tunes)
        self.factory.rebind(record)

    @staticmethod
    def _capture_state(record: BlockRecord) -> dict[str, Any]:
        return {
            "tool_name": record.tool_name,
            "data": copy.deepcopy(record.data),
            "tunes": copy.deepcopy(record.tunes),
            "instance": record.instance,
            "is_default": record.is_default,
            "stub_reason": record.stub_reason,
        }

    @staticmethod
    def _restore_state(record: BlockRecord, state: dict[str, Any]) -> None:
        for name, value in state.items():
            setattr(record, name, value)

    def _compose_from(self, block: BlockInput) -> BlockRecord:
        if isinstance(block, BlockRecord):
            return block
        saved = block if isinstance(block, SavedBlock) else SavedBlock.model_validate(block)
        return self.factory.compose_block(
            saved.type, saved.data, id=saved.id, tunes=saved.tunes,
            parent_id=saved.parent, child_ids=saved.content,
        )

    def _require(self, block_id: str) -> BlockRecord:
        record = self._collection.get_by_id(block_id)
        if record is None:
            raise BlockNotFound(block_id)
        return record

    def _set_current(self, index: int) -> None:
        if index == self._current_index:
            return
        self._current_index = index
        if self._atomic_depth == 0 and not self._replaying:
            self.history.stop_capturing()

    def _emit(self, kind: MutationKind, record: BlockRecord, index: Optional[int], from_index: Optional[int] = None) -> None:
        mutation = BlockMutation(kind=kind, block_id=record.id, index=-1 if index is None else index, from_index=from_index)
        logger.debug("block_mutation", kind=kind.value, block_id=record.id, index=mutation.index)
        if not self._replaying:
            self.history.record(mutation)
        for listener in list(self._listeners):
            try:
                listener(mutation)
            except Exception as e:
                logger.error("mutation_listener_failed", kind=kind.value, block_id=record.id, error=str(e), exc_info=True)

    @contextmanager
    def _operation(self) -> Iterator[None]:
        outer = self._op_depth == 0
        self._op_depth += 1
        try:
            yield
        finally:
            self._op_depth -= 1
            if outer:
                self._apply_pending_focus()
        if outer:
            self._check()

    @contextmanager
    def _history_suspended(self) -> Iterator[None]:
        previous = self._replaying
        self._replaying = True
        try:
            yield
        finally:
            self._replaying = previous

    def _apply_pending_focus(self) -> None:
        pending, self._pending_focus = self._pending_focus, _UNSET
        if pending is _UNSET:
            return
        if pending < len(self._collection):
            self._set_current(pending)

    def _check(self) -> None:
        if not __debug__:
            return
        self._collection.verify()
        self._hierarchy.verify()
        if not self._collection:
            raise InvariantViolation("non-empty", "document has no blocks")
        if not -1 <= self._current_index < len(self._collection):
            raise InvariantViolation(
                "current-pointer",
                f"current index {self._current_index} outside 0..{len(self._collection) - 1}",
            )
