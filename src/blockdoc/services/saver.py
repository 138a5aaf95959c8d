"""Document saving: engine blocks -> saved document."""

import asyncio
import copy
import inspect
import time
from typing import Any, Optional

from blockdoc import __version__
from blockdoc.core.engine import MutationEngine
from blockdoc.models.block import BlockRecord
from blockdoc.models.document import SavedBlock, SavedDocument
from blockdoc.tools.stub import is_stub_saved_data
from blockdoc.utils.logging import get_logger

logger = get_logger(__name__)


class DocumentSaver:
    """
    Serializes the engine's blocks.

    Concurrent ``save()`` calls share one in-flight save.

    Example:
        >>> saver = DocumentSaver(engine)
        >>> document = await saver.save()
        >>> document.to_dict()["blocks"]
    """

    def __init__(self, engine: MutationEngine, render_lock: Optional[asyncio.Lock] = None) -> None:
        self.engine = engine
        self.render_lock = render_lock
        self.last_error: Optional[BaseException] = None
        self._pending: Optional[asyncio.Future] = None

    async def save(self) -> SavedDocument:
        """
        Save every block.

        A document holding only one empty default block saves as an empty
        block list.

        Returns:
            The saved document
        """
        if self._pending is None:
            self._pending = asyncio.ensure_future(self._save())
            self._pending.add_done_callback(self._clear_pending)
        return await asyncio.shield(self._pending)

    async def save_block(self, record: BlockRecord) -> Optional[SavedBlock]:
        """
        Save one block.

        Stubs emit the block they preserve. Tool ``save()`` failures fall
        back to the record's data. Top-level blocks rejected by the tool's
        ``validate`` hook are skipped.

        Returns:
            The saved block, or None when skipped
        """
        if record.is_stub:
            return self._save_stub(record)

        data = await self._extract(record)
        spec = self.engine.registry.get(record.tool_name)
        if spec is not None and spec.validate is not None and record.parent_id is None and not spec.validate(data):
            logger.info("block_skipped_invalid", tool_name=record.tool_name, block_id=record.id)
            return None
        return SavedBlock(
            id=record.id,
            type=record.tool_name,
            data=data,
            tunes=copy.deepcopy(record.tunes),
            parent=record.parent_id,
            content=list(record.child_ids),
        )

    async def _save(self) -> SavedDocument:
        if self.render_lock is not None:
            async with self.render_lock:
                records = self.engine.blocks
        else:
            records = self.engine.blocks

        if self._is_single_empty_default(records):
            return SavedDocument(blocks=[], time=_now_ms(), version=__version__)

        self.last_error = None
        saved = await asyncio.gather(*(self.save_block(record) for record in records))
        blocks = [block for block in saved if block is not None]
        logger.info("document_saved", blocks=len(blocks), skipped=len(saved) - len(blocks))
        return SavedDocument(blocks=blocks, time=_now_ms(), version=__version__)

    async def _extract(self, record: BlockRecord) -> dict[str, Any]:
        instance_save = getattr(record.instance, "save", None)
        if instance_save is None:
            return copy.deepcopy(record.data)
        try:
            result = instance_save()
            if inspect.isawaitable(result):
                result = await result
        except Exception as e:
            self.last_error = e
            logger.error("block_save_failed", tool_name=record.tool_name, block_id=record.id, error=str(e))
            return copy.deepcopy(record.data)
        if not isinstance(result, dict):
            logger.warning("block_save_returned_no_data", tool_name=record.tool_name, block_id=record.id)
            return copy.deepcopy(record.data)
        return result

    def _save_stub(self, record: BlockRecord) -> Optional[SavedBlock]:
        if not is_stub_saved_data(record.data):
            logger.warning("stub_data_malformed", block_id=record.id)
            return None
        preserved = copy.deepcopy(record.data)
        preserved.pop("parent", None)
        preserved.pop("content", None)
        return SavedBlock(**preserved, parent=record.parent_id, content=list(record.child_ids))

    def _is_single_empty_default(self, records: list[BlockRecord]) -> bool:
        if len(records) != 1 or not records[0].is_default or records[0].tunes:
            return False
        spec = self.engine.registry.get(records[0].tool_name)
        return spec is not None and spec.data_is_empty(records[0].data)

    def _clear_pending(self, _future: asyncio.Future) -> None:
        self._pending = None


def _now_ms() -> int:
    return int(time.time() * 1000)
