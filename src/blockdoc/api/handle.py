"""Id-addressed handle exposed to API consumers instead of records."""

import copy
from typing import TYPE_CHECKING, Any, Optional

from blockdoc.models.block import BlockRecord
from blockdoc.services.exceptions import BlockNotFound

if TYPE_CHECKING:
    from blockdoc.core.engine import MutationEngine
    from blockdoc.services.saver import DocumentSaver


class BlockAPI:
    """
    Lightweight pointer to a block by id.

    Every property is resolved through the engine at access time, so a
    handle never caches a stale index. Once the block is removed, accessing
    the handle raises ``BlockNotFound``.

    Example:
        >>> handle = blocks_api.insert("paragraph", {"text": "Hi"})
        >>> handle.index
        1
        >>> blocks_api.delete(handle.index)
        >>> handle.is_alive
        False
    """

    __slots__ = ("_engine", "_id", "_saver")

    def __init__(self, engine: "MutationEngine", block_id: str, saver: Optional["DocumentSaver"] = None) -> None:
        self._engine = engine
        self._id = block_id
        self._saver = saver

    @property
    def id(self) -> str:
        return self._id

    @property
    def is_alive(self) -> bool:
        return self._engine.get_by_id(self._id) is not None

    @property
    def name(self) -> str:
        """Tool name of the block."""
        return self._record().tool_name

    @property
    def data(self) -> dict[str, Any]:
        """Copy of the block's data."""
        return copy.deepcopy(self._record().data)

    @property
    def tunes(self) -> dict[str, Any]:
        return copy.deepcopy(self._record().tunes)

    @property
    def parent_id(self) -> Optional[str]:
        return self._record().parent_id

    @property
    def child_ids(self) -> list[str]:
        return list(self._record().child_ids)

    @property
    def is_default(self) -> bool:
        return self._record().is_default

    @property
    def is_stub(self) -> bool:
        return self._record().is_stub

    @property
    def index(self) -> int:
        self._record()
        return self._engine.index_of(self._id)

    @property
    def depth(self) -> int:
        return self._engine.hierarchy.depth(self._record())

    def parent(self) -> Optional["BlockAPI"]:
        parent_id = self._record().parent_id
        if parent_id is None or self._engine.get_by_id(parent_id) is None:
            return None
        return BlockAPI(self._engine, parent_id, self._saver)

    def children(self) -> list["BlockAPI"]:
        self._record()
        return [BlockAPI(self._engine, child.id, self._saver) for child in self._engine.children_of(self._id)]

    async def save(self) -> dict[str, Any]:
        """
        Serialize the block in saved-document shape.

        Raises:
            BlockNotFound: If the block was removed
        """
        record = self._record()
        if self._saver is None:
            snapshot = record.snapshot()
            return {"id": snapshot["id"], "type": snapshot["tool"], "data": snapshot["data"]}
        saved = await self._saver.save_block(record)
        return {} if saved is None else saved.to_dict()

    def _record(self) -> BlockRecord:
        record = self._engine.get_by_id(self._id)
        if record is None:
            raise BlockNotFound(self._id)
        return record

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BlockAPI):
            return NotImplemented
        return self._id == other._id and self._engine is other._engine

    def __hash__(self) -> int:
        return hash(self._id)

    def __repr__(self) -> str:
        return f"BlockAPI(id={self._id!r})"
