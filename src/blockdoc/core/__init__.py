"""Block collection, hierarchy and mutation engine."""

from blockdoc.core.collection import BlockCollection, validate_index
from blockdoc.core.engine import MutationEngine
from blockdoc.core.factory import BlockFactory
from blockdoc.core.hierarchy import BlockHierarchy
from blockdoc.core.selection import BlockSelection

__all__ = [
    "BlockCollection",
    "validate_index",
    "MutationEngine",
    "BlockFactory",
    "BlockHierarchy",
    "BlockSelection",
]
