"""Block selection state."""

from typing import TYPE_CHECKING, Iterable, Optional

from blockdoc.models.mutation import BlockMutation, MutationKind

if TYPE_CHECKING:
    from blockdoc.core.engine import MutationEngine


class BlockSelection:
    """
    Set of selected block ids.

    Ids of removed blocks are dropped automatically once the selection is
    bound to an engine.

    Example:
        >>> selection = BlockSelection(engine)
        >>> selection.select("a")
        >>> selection.is_selected("a")
        True
    """

    def __init__(self, engine: Optional["MutationEngine"] = None) -> None:
        self._selected: dict[str, None] = {}
        self._engine = engine
        if engine is not None:
            engine.subscribe(self._on_mutation)

    def select(self, block_id: str) -> None:
        self._selected[block_id] = None

    def select_many(self, block_ids: Iterable[str]) -> None:
        for block_id in block_ids:
            self._selected[block_id] = None

    def unselect(self, block_id: str) -> None:
        self._selected.pop(block_id, None)

    def clear(self) -> None:
        self._selected.clear()

    def is_selected(self, block_id: str) -> bool:
        return block_id in self._selected

    @property
    def any_selected(self) -> bool:
        return bool(self._selected)

    @property
    def selected_ids(self) -> list[str]:
        """Selected ids in document order (selection order when unbound)."""
        if self._engine is None:
            return list(self._selected)
        indexed = [
            (index, block_id)
            for block_id in self._selected
            if (index := self._engine.index_of(block_id)) is not None
        ]
        return [block_id for _, block_id in sorted(indexed)]

    def snapshot(self) -> list[str]:
        return list(self._selected)

    def restore(self, block_ids: Iterable[str]) -> None:
        self._selected = dict.fromkeys(block_ids)

    def __len__(self) -> int:
        return len(self._selected)

    def _on_mutation(self, mutation: BlockMutation) -> None:
        if mutation.kind is MutationKind.REMOVED:
            self._selected.pop(mutation.block_id, None)
