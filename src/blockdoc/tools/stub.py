"""Stub tool: lossless placeholder for blocks whose tool is missing or failed."""

import copy
from typing import Any, Optional

from blockdoc.models.block import STUB_TOOL_NAME
from blockdoc.tools.registry import ToolSpec


def make_stub_data(
    tool_name: str,
    data: Optional[dict[str, Any]],
    block_id: str,
    tunes: Optional[dict[str, Any]] = None,
    parent: Optional[str] = None,
    content: Optional[list[str]] = None,
) -> dict[str, Any]:
    """
    Wrap a block's original saved shape as stub data.

    Args:
        tool_name: Original tool name
        data: Original tool payload
        block_id: Original block id
        tunes: Original tunes, kept when non-empty
        parent: Original parent id
        content: Original child ids

    Returns:
        Dict in saved-block shape: ``{id, type, data[, tunes, parent, content]}``
    """
    preserved: dict[str, Any] = {
        "id": block_id,
        "type": tool_name,
        "data": copy.deepcopy(data) if data is not None else {},
    }
    if tunes:
        preserved["tunes"] = copy.deepcopy(tunes)
    if parent is not None:
        preserved["parent"] = parent
    if content:
        preserved["content"] = list(content)
    return preserved


def is_stub_saved_data(data: Any) -> bool:
    """Check that stub data carries a preserved ``{id, type, data}`` block."""
    return (
        isinstance(data, dict)
        and isinstance(data.get("id"), str)
        and isinstance(data.get("type"), str)
        and isinstance(data.get("data"), dict)
    )


class StubTool:
    """
    Tool instance for stub blocks.

    It never interprets the preserved block; saving returns it verbatim.
    """

    def __init__(self, data: dict[str, Any], block: Any = None, read_only: bool = False) -> None:
        self.preserved = copy.deepcopy(data)
        self.block = block
        self.read_only = read_only

    @property
    def original_tool(self) -> Optional[str]:
        return self.preserved.get("type")

    def save(self) -> dict[str, Any]:
        return copy.deepcopy(self.preserved)


def build_stub_spec() -> ToolSpec:
    """Return the spec registered under the reserved ``stub`` name."""
    return ToolSpec(
        name=STUB_TOOL_NAME,
        factory=StubTool,
        validate=is_stub_saved_data,
    )
