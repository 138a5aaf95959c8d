"""Ordered, id-addressable store of block records."""

from typing import Any, Iterable, Iterator, Optional

from blockdoc.models.block import BlockRecord
from blockdoc.services.exceptions import DuplicateBlockId, IndexOutOfRange, InvalidIndex, InvariantViolation


def validate_index(index: Any, operation: str = "") -> int:
    """
    Check that an index is a non-negative integer.

    Booleans are rejected even though they are ints.

    Args:
        index: Value to check
        operation: Operation name used in the error message

    Returns:
        The index unchanged

    Raises:
        InvalidIndex: If index is not a non-negative int
    """
    if isinstance(index, bool) or not isinstance(index, int) or index < 0:
        raise InvalidIndex(index, operation)
    return index


class BlockCollection:
    """
    Ordered sequence of block records with an ``id -> index`` map.

    Every structural mutation re-indexes the affected tail so that lookups
    by id stay O(1) and indices stay contiguous.

    Example:
        >>> blocks = BlockCollection()
        >>> blocks.insert(BlockRecord("paragraph", id="a"), 0)
        0
        >>> blocks.index_of("a")
        0
    """

    def __init__(self, records: Iterable[BlockRecord] = ()) -> None:
        self._records: list[BlockRecord] = []
        self._index: dict[str, int] = {}
        self.insert_many(list(records), 0)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[BlockRecord]:
        return iter(list(self._records))

    def __contains__(self, block_id: object) -> bool:
        return block_id in self._index

    def records(self) -> list[BlockRecord]:
        """Return a shallow copy of the sequence."""
        return list(self._records)

    def ids(self) -> list[str]:
        return [record.id for record in self._records]

    def insert(self, record: BlockRecord, at_index: int, replace: bool = False) -> int:
        """
        Insert a record, or overwrite the one at ``at_index`` when replacing.

        Args:
            record: Record to insert
            at_index: Target position; ``len(self)`` appends
            replace: Overwrite the record at ``at_index`` if one exists

        Returns:
            Index of the inserted record

        Raises:
            InvalidIndex: If at_index is not a non-negative integer
            IndexOutOfRange: If at_index is greater than the length
            DuplicateBlockId: If the id is already present
        """
        validate_index(at_index, "insert")
        if at_index > len(self._records):
            raise IndexOutOfRange(at_index, len(self._records), "insert")

        replacing = replace and at_index < len(self._records)
        existing = self._index.get(record.id)
        if existing is not None and not (replacing and existing == at_index):
            raise DuplicateBlockId(record.id)

        if replacing:
            old = self._records[at_index]
            del self._index[old.id]
            self._records[at_index] = record
            self._index[record.id] = at_index
        else:
            self._records.insert(at_index, record)
            self._reindex(at_index)
        return at_index

    def insert_many(self, records: list[BlockRecord], at_index: int) -> list[int]:
        """
        Insert records in order starting at ``at_index``.

        Validation happens before any record is inserted.

        Returns:
            Indices of the inserted records

        Raises:
            InvalidIndex: If at_index is not a non-negative integer
            IndexOutOfRange: If at_index is greater than the length
            DuplicateBlockId: If any id is already present or repeated
        """
        validate_index(at_index, "insert_many")
        if at_index > len(self._records):
            raise IndexOutOfRange(at_index, len(self._records), "insert_many")
        seen: set[str] = set()
        for record in records:
            if record.id in self._index or record.id in seen:
                raise DuplicateBlockId(record.id)
            seen.add(record.id)

        self._records[at_index:at_index] = records
        self._reindex(at_index)
        return list(range(at_index, at_index + len(records)))

    def remove(self, index: int) -> BlockRecord:
        """
        Remove and return the record at ``index``.

        The collection may become empty; restoring a default block is the
        caller's job.

        Raises:
            InvalidIndex: If index is not a non-negative integer
            IndexOutOfRange: If no record exists at index
        """
        self._check_existing_index(index, "remove")
        record = self._records.pop(index)
        del self._index[record.id]
        self._reindex(index)
        return record

    def move(self, from_index: int, to_index: int) -> None:
        """
        Relocate one record, shifting the records in between.

        Returns immediately when both indices are equal.

        Raises:
            InvalidIndex: If an index is not a non-negative integer
            IndexOutOfRange: If an index does not address a record
        """
        self._check_existing_index(from_index, "move")
        self._check_existing_index(to_index, "move")
        if from_index == to_index:
            return
        record = self._records.pop(from_index)
        self._records.insert(to_index, record)
        self._reindex(min(from_index, to_index))

    def clear(self) -> list[BlockRecord]:
        """Remove every record and return them in order."""
        removed = self._records
        self._records = []
        self._index = {}
        return removed

    def get_by_index(self, index: int) -> Optional[BlockRecord]:
        """Return the record at ``index``, or None (negative indices never wrap)."""
        if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < len(self._records):
            return None
        return self._records[index]

    def get_by_id(self, block_id: str) -> Optional[BlockRecord]:
        index = self._index.get(block_id)
        return None if index is None else self._records[index]

    def index_of(self, block_id: str) -> Optional[int]:
        return self._index.get(block_id)

    def children_of(self, parent_id: Optional[str]) -> list[BlockRecord]:
        """
        Return records whose parent is ``parent_id``, in sequence order.

        Passing None returns the top-level records.
        """
        return [record for record in self._records if record.parent_id == parent_id]

    def verify(self) -> None:
        """
        Check that the index map matches the sequence.

        Raises:
            InvariantViolation: If indices are stale, missing or duplicated
        """
        if len(self._index) != len(self._records):
            raise InvariantViolation(
                "index-map",
                f"{len(self._index)} indexed ids for {len(self._records)} records",
            )
        for position, record in enumerate(self._records):
            if self._index.get(record.id) != position:
                raise InvariantViolation(
                    "index-map",
                    f"block {record.id!r} at {position} is indexed as {self._index.get(record.id)}",
                )

    def _check_existing_index(self, index: Any, operation: str) -> None:
        validate_index(index, operation)
        if index >= len(self._records):
            raise IndexOutOfRange(index, len(self._records), operation)

    def _reindex(self, start: int) -> None:
        for position in range(start, len(self._records)):
            self._index[self._records[position].id] = position
