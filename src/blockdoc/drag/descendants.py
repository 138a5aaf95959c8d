"""Descendant capture for single-block drags."""

from typing import TYPE_CHECKING

from blockdoc.models.block import BlockRecord

if TYPE_CHECKING:
    from blockdoc.core.engine import MutationEngine


def supports_nesting(engine: "MutationEngine", record: BlockRecord) -> bool:
    spec = engine.registry.get(record.tool_name)
    return spec is not None and spec.supports_nesting


def collect_descendants(engine: "MutationEngine", block_id: str) -> list[str]:
    """
    Collect the blocks that travel with a dragged block.

    Only blocks whose tool supports nesting carry descendants. Starting
    right after the block, every following block that also supports nesting
    and sits strictly deeper is collected; the first block that does not
    ends the run.

    Args:
        engine: Engine holding the document
        block_id: Block being dragged

    Returns:
        Descendant ids in document order (empty for unknown blocks)

    Example:
        >>> # list(0), list(1), list(2), paragraph(0)
        >>> collect_descendants(engine, first_id)
        ['second-id', 'third-id']
    """
    record = engine.get_by_id(block_id)
    if record is None or not supports_nesting(engine, record):
        return []

    depth = engine.hierarchy.depth(record)
    result: list[str] = []
    index = engine.index_of(block_id) + 1
    while (following := engine.get_by_index(index)) is not None:
        if not supports_nesting(engine, following) or engine.hierarchy.depth(following) <= depth:
            break
        result.append(following.id)
        index += 1
    return result
