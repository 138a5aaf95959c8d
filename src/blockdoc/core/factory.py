"""Block composition with stub substitution.

Composing a block never fails because of tool code: an unknown tool or a
tool whose constructor raises yields a stub block that preserves the
original ``{id, type, data}`` so no content is lost.
"""

import copy
from typing import Any, Optional

from blockdoc.models.block import STUB_TOOL_NAME, BlockRecord
from blockdoc.services.exceptions import ToolConstructionFailure, UnknownTool
from blockdoc.tools.registry import ToolRegistry, ToolSpec
from blockdoc.tools.stub import is_stub_saved_data, make_stub_data
from blockdoc.utils.ids import generate_block_id
from blockdoc.utils.logging import get_logger

logger = get_logger(__name__)


class BlockFactory:
    """Builds block records and their tool instances from the registry."""

    def __init__(self, registry: ToolRegistry, read_only: bool = False) -> None:
        self.registry = registry
        self.read_only = read_only

    def compose_block(
        self,
        tool_name: str,
        data: Optional[dict[str, Any]] = None,
        *,
        id: Optional[str] = None,
        tunes: Optional[dict[str, Any]] = None,
        parent_id: Optional[str] = None,
        child_ids: Optional[list[str]] = None,
    ) -> BlockRecord:
        """
        Build a block record for a tool.

        Args:
            tool_name: Registry key of the tool
            data: Tool payload (copied)
            id: Block id (generated when None)
            tunes: Tune settings (copied)
            parent_id: Parent block id
            child_ids: Child block ids

        Returns:
            New record; a stub record when the tool is unknown or fails
        """
        block_id = id or generate_block_id()
        data = copy.deepcopy(data) if data is not None else {}
        tunes = copy.deepcopy(tunes) if tunes else {}

        if tool_name == STUB_TOOL_NAME:
            return self._compose_preserved_stub(block_id, data, parent_id, child_ids)

        try:
            spec = self.registry.require(tool_name)
        except UnknownTool as e:
            logger.warning("unknown_tool", tool_name=tool_name, block_id=block_id)
            return self.compose_stub(tool_name, data, block_id, tunes, parent_id, child_ids, reason=str(e))

        record = BlockRecord(
            tool_name=spec.name,
            data=data,
            tunes=tunes,
            id=block_id,
            parent_id=parent_id,
            child_ids=list(child_ids or []),
            is_default=self.registry.is_default(spec.name),
        )
        try:
            record.instance = self._create_instance(spec, record)
        except ToolConstructionFailure as e:
            logger.error(
                "tool_construction_failed",
                tool_name=spec.name,
                block_id=block_id,
                error=str(e.cause),
            )
            return self.compose_stub(tool_name, data, block_id, tunes, parent_id, child_ids, reason=str(e))
        return record

    def compose_stub(
        self,
        tool_name: str,
        data: dict[str, Any],
        block_id: str,
        tunes: Optional[dict[str, Any]] = None,
        parent_id: Optional[str] = None,
        child_ids: Optional[list[str]] = None,
        reason: Optional[str] = None,
    ) -> BlockRecord:
        """Wrap an original block in a stub record that keeps its hierarchy links."""
        preserved = make_stub_data(tool_name, data, block_id, tunes, parent_id, child_ids)
        record = BlockRecord(
            tool_name=STUB_TOOL_NAME,
            data=preserved,
            id=block_id,
            parent_id=parent_id,
            child_ids=list(child_ids or []),
            stub_reason=reason,
        )
        record.instance = self.registry.stub.create(preserved, record, self.read_only)
        return record

    def rebind(self, record: BlockRecord) -> BlockRecord:
        """
        Rebuild the tool instance after the record's data changed.

        A failing constructor degrades the record to a stub in place.

        Returns:
            The same record
        """
        if record.is_stub:
            record.instance = self.registry.stub.create(record.data, record, self.read_only)
            return record
        spec = self.registry.get(record.tool_name)
        if spec is None:
            return record
        try:
            record.instance = self._create_instance(spec, record)
        except ToolConstructionFailure as e:
            logger.error(
                "tool_construction_failed",
                tool_name=spec.name,
                block_id=record.id,
                error=str(e.cause),
            )
            stub = self.compose_stub(
                record.tool_name, record.data, record.id, record.tunes,
                record.parent_id, record.child_ids, reason=str(e),
            )
            record.tool_name = stub.tool_name
            record.data = stub.data
            record.tunes = {}
            record.is_default = False
            record.instance = stub.instance
            record.instance.block = record
            record.stub_reason = stub.stub_reason
        return record

    async def prepare(self, tool_name: str, data: dict[str, Any]) -> tuple[dict[str, Any], Optional[ToolConstructionFailure]]:
        """
        Run the tool's async ``load`` hook on saved data.

        Args:
            tool_name: Registry key of the tool
            data: Saved payload

        Returns:
            (data, failure): normalized data, or the original data together
            with the failure when the hook raised
        """
        spec = self.registry.get(tool_name)
        if spec is None or spec.load is None:
            return data, None
        try:
            return await spec.load(copy.deepcopy(data)), None
        except Exception as e:
            return data, ToolConstructionFailure(tool_name, None, e)

    def _create_instance(self, spec: ToolSpec, record: BlockRecord) -> Any:
        try:
            return spec.create(record.data, record, self.read_only)
        except Exception as e:
            raise ToolConstructionFailure(spec.name, record.id, e) from e

    def _compose_preserved_stub(
        self,
        block_id: str,
        data: dict[str, Any],
        parent_id: Optional[str],
        child_ids: Optional[list[str]],
    ) -> BlockRecord:
        if not is_stub_saved_data(data):
            logger.warning("malformed_stub_data", block_id=block_id)
            return self.compose_stub(STUB_TOOL_NAME, data, block_id, None, parent_id, child_ids, reason="malformed stub data")
        return self.compose_stub(
            data["type"],
            data["data"],
            block_id,
            data.get("tunes"),
            parent_id,
            child_ids,
            reason="restored stub",
        )
