"""Document loading: saved document -> engine blocks."""

import asyncio
from typing import Any, Optional

from blockdoc.core.engine import MutationEngine
from blockdoc.history.bridge import HistoryBridge
from blockdoc.models.block import BlockRecord
from blockdoc.models.document import SavedBlock, SavedDocument
from blockdoc.utils.ids import generate_block_id
from blockdoc.utils.logging import get_logger

logger = get_logger(__name__)


class DocumentRenderer:
    """
    Loads saved documents into an engine.

    Every tool ``load`` hook is awaited before the collection is touched, so
    the engine never observes a half-constructed document. ``busy`` is held
    while rendering; savers wait on it.

    Example:
        >>> renderer = DocumentRenderer(engine)
        >>> await renderer.render({"blocks": [{"type": "paragraph", "data": {"text": "Hi"}}]})
    """

    def __init__(self, engine: MutationEngine, history: Optional[HistoryBridge] = None) -> None:
        self.engine = engine
        self.history = history
        self.busy = asyncio.Lock()

    async def render(self, document: Any) -> list[BlockRecord]:
        """
        Replace the engine's document with a saved one.

        Unknown tools and failing ``load`` hooks produce stub blocks; missing
        or duplicated ids are regenerated; the hierarchy is normalized. An
        empty document yields a single default block.

        Args:
            document: SavedDocument, ``{"blocks": [...]}`` dict or list of blocks

        Returns:
            The loaded records in order

        Raises:
            pydantic.ValidationError: If the document shape is invalid
        """
        saved = SavedDocument.coerce(document)
        async with self.busy:
            prepared = await asyncio.gather(*(self._prepare(block) for block in saved.blocks))
            records = self._compose(saved.blocks, prepared)
            self.engine.load(records)
            if self.history is not None:
                self.history.clear()

        stubs = sum(1 for record in self.engine if record.is_stub)
        logger.info("document_rendered", blocks=len(self.engine), stubs=stubs)
        return self.engine.blocks

    async def _prepare(self, block: SavedBlock) -> tuple[dict[str, Any], Optional[Exception]]:
        return await self.engine.factory.prepare(block.type, block.data)

    def _compose(
        self,
        blocks: list[SavedBlock],
        prepared: list[tuple[dict[str, Any], Optional[Exception]]],
    ) -> list[BlockRecord]:
        factory = self.engine.factory
        records: list[BlockRecord] = []
        seen: set[str] = set()
        for block, (data, failure) in zip(blocks, prepared):
            block_id = block.id
            if not block_id or block_id in seen:
                new_id = generate_block_id()
                if block_id:
                    logger.warning("duplicate_block_id", block_id=block_id, new_id=new_id)
                block_id = new_id
            seen.add(block_id)

            if failure is not None:
                logger.error("tool_construction_failed", tool_name=block.type, block_id=block_id, error=str(failure))
                record = factory.compose_stub(
                    block.type, block.data, block_id, block.tunes,
                    block.parent, block.content, reason=str(failure),
                )
            else:
                record = factory.compose_block(
                    block.type, data, id=block_id, tunes=block.tunes,
                    parent_id=block.parent, child_ids=block.content,
                )
            records.append(record)
        return records
