"""Parent/child links between blocks.

Parent links are plain ids resolved through the collection. A parent's
``child_ids`` is a cache that must list exactly the blocks naming it as
parent, in flat-sequence order.
"""

from typing import Iterator, Optional

from blockdoc.core.collection import BlockCollection
from blockdoc.models.block import BlockRecord
from blockdoc.services.exceptions import BlockNotFound, HierarchyError, InvariantViolation
from blockdoc.utils.logging import get_logger

logger = get_logger(__name__)


class BlockHierarchy:
    """Maintains parent links and child ordering over a collection."""

    def __init__(self, collection: BlockCollection) -> None:
        self._collection = collection

    def parent_of(self, record: BlockRecord) -> Optional[BlockRecord]:
        if record.parent_id is None:
            return None
        return self._collection.get_by_id(record.parent_id)

    def ancestors(self, record: BlockRecord) -> Iterator[BlockRecord]:
        """Yield ancestors from the nearest parent upward (stops on cycles)."""
        seen = {record.id}
        parent = self.parent_of(record)
        while parent is not None and parent.id not in seen:
            yield parent
            seen.add(parent.id)
            parent = self.parent_of(parent)

    def depth(self, record: BlockRecord) -> int:
        """Number of ancestors above ``record`` (0 for top-level blocks)."""
        return sum(1 for _ in self.ancestors(record))

    def is_ancestor(self, ancestor_id: str, record: BlockRecord) -> bool:
        return any(parent.id == ancestor_id for parent in self.ancestors(record))

    def descendants(self, record: BlockRecord) -> list[BlockRecord]:
        """All blocks below ``record`` through parent links, in sequence order."""
        return [other for other in self._collection if self.is_ancestor(record.id, other)]

    def attach(self, record: BlockRecord) -> None:
        """
        Register a freshly inserted record with its parent.

        The id is placed in the parent's ``child_ids`` according to the flat
        sequence order.

        Raises:
            BlockNotFound: If the parent id does not exist
        """
        if record.parent_id is None:
            return
        parent = self._collection.get_by_id(record.parent_id)
        if parent is None:
            raise BlockNotFound(record.parent_id)
        if record.id not in parent.child_ids:
            parent.child_ids.append(record.id)
        self.resync(parent.id)

    def detach(self, record: BlockRecord) -> list[BlockRecord]:
        """
        Unlink a record that is about to be removed.

        The record leaves its parent's ``child_ids`` and its children are
        lifted one level, taking its slot under the grandparent.

        Returns:
            The children that were lifted
        """
        lifted = self._collection.children_of(record.id)
        parent = self.parent_of(record)
        for child in lifted:
            child.parent_id = record.parent_id
        if parent is not None:
            slot = parent.child_ids.index(record.id) if record.id in parent.child_ids else len(parent.child_ids)
            parent.child_ids[slot:slot + 1] = [child.id for child in lifted]
            self.resync(parent.id)
        record.child_ids = []
        if lifted:
            logger.debug("children_lifted", block_id=record.id, count=len(lifted))
        return lifted

    def transfer(self, old: BlockRecord, new: BlockRecord) -> None:
        """
        Move the hierarchy position of ``old`` onto its replacement ``new``.

        ``new`` takes the parent slot and the children of ``old``.
        """
        new.parent_id = old.parent_id
        new.child_ids = list(old.child_ids)
        parent = self.parent_of(old)
        if parent is not None and old.id in parent.child_ids:
            parent.child_ids[parent.child_ids.index(old.id)] = new.id
        for child in self._collection.children_of(old.id):
            child.parent_id = new.id
        old.child_ids = []

    def set_parent(self, record: BlockRecord, parent_id: Optional[str]) -> None:
        """
        Re-home ``record`` under ``parent_id`` (None for top level).

        Raises:
            BlockNotFound: If the parent does not exist
            HierarchyError: If the parent is the record itself or a descendant
        """
        if parent_id == record.parent_id:
            return
        new_parent = None
        if parent_id is not None:
            new_parent = self._collection.get_by_id(parent_id)
            if new_parent is None:
                raise BlockNotFound(parent_id)
            if new_parent.id == record.id or self.is_ancestor(record.id, new_parent):
                raise HierarchyError(record.id, parent_id)

        old_parent = self.parent_of(record)
        if old_parent is not None and record.id in old_parent.child_ids:
            old_parent.child_ids.remove(record.id)
        record.parent_id = parent_id
        if new_parent is not None:
            new_parent.child_ids.append(record.id)
            self.resync(new_parent.id)

    def resync(self, parent_id: Optional[str]) -> None:
        """Re-sort a parent's ``child_ids`` by flat sequence order."""
        if parent_id is None:
            return
        parent = self._collection.get_by_id(parent_id)
        if parent is None or len(parent.child_ids) < 2:
            return
        positions = {child_id: self._collection.index_of(child_id) for child_id in parent.child_ids}
        parent.child_ids.sort(key=lambda child_id: (positions[child_id] is None, positions[child_id] or 0))

    def children_map(self) -> dict[str, list[str]]:
        """Map each parent id to its children's ids in sequence order."""
        children: dict[str, list[str]] = {}
        for record in self._collection:
            if record.parent_id is not None:
                children.setdefault(record.parent_id, []).append(record.id)
        return children

    def normalize(self) -> int:
        """
        Repair hierarchy links after loading a document.

        Unknown, self-referencing or cyclic parents are scrubbed, child lists
        are rebuilt from the parent links and sorted by sequence order.

        Returns:
            Number of repairs made
        """
        repairs = 0
        for record in self._collection:
            if record.parent_id is None:
                continue
            if record.parent_id == record.id or record.parent_id not in self._collection:
                logger.warning("dangling_parent_scrubbed", block_id=record.id, parent_id=record.parent_id)
                record.parent_id = None
                repairs += 1
            elif self._in_cycle(record):
                logger.warning("parent_cycle_broken", block_id=record.id, parent_id=record.parent_id)
                record.parent_id = None
                repairs += 1

        children = self.children_map()
        for record in self._collection:
            expected = children.get(record.id, [])
            if record.child_ids != expected:
                if sorted(record.child_ids) != sorted(expected):
                    logger.warning(
                        "child_list_rebuilt",
                        block_id=record.id,
                        listed=list(record.child_ids),
                        actual=expected,
                    )
                record.child_ids = list(expected)
                repairs += 1
        return repairs

    def verify(self) -> None:
        """
        Check parent links and child ordering.

        Raises:
            InvariantViolation: If a parent link dangles or a child list
                disagrees with the flat sequence
        """
        children = self.children_map()
        for record in self._collection:
            if record.parent_id is not None and record.parent_id not in self._collection:
                raise InvariantViolation(
                    "dangling-parent",
                    f"block {record.id!r} names missing parent {record.parent_id!r}",
                )
            expected = children.get(record.id, [])
            if record.child_ids != expected:
                raise InvariantViolation(
                    "child-order",
                    f"block {record.id!r} lists children {record.child_ids} but sequence has {expected}",
                )

    def _in_cycle(self, record: BlockRecord) -> bool:
        seen: set[str] = set()
        current: Optional[BlockRecord] = record
        while current is not None and current.parent_id is not None:
            if current.parent_id == record.id:
                return True
            if current.parent_id in seen:
                return False
            seen.add(current.parent_id)
            current = self._collection.get_by_id(current.parent_id)
        return False
