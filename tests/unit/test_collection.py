"""Unit tests for BlockCollection."""

import pytest

from blockdoc.core.collection import BlockCollection, validate_index
from blockdoc.models.block import BlockRecord
from blockdoc.services.exceptions import DuplicateBlockId, IndexOutOfRange, InvalidIndex


def make_records(*ids):
    return [BlockRecord("paragraph", {"text": block_id}, id=block_id) for block_id in ids]


class TestValidateIndex:
    """Test index validation."""

    def test_accepts_non_negative_ints(self):
        """Test that zero and positive ints pass through unchanged."""
        assert validate_index(0) == 0
        assert validate_index(7, "insert") == 7

    @pytest.mark.parametrize("value", [-1, 1.0, "1", None, True])
    def test_rejects_invalid_values(self, value):
        """Test that negatives, non-ints and booleans are rejected."""
        with pytest.raises(InvalidIndex):
            validate_index(value, "move")

    def test_error_mentions_operation(self):
        """Test that the error message names the rejecting operation."""
        with pytest.raises(InvalidIndex, match="remove"):
            validate_index(-3, "remove")


class TestBlockCollectionInsert:
    """Test inserting records."""

    def test_insert_keeps_index_map_contiguous(self):
        """Test that inserting in the middle shifts following indices."""
        collection = BlockCollection(make_records("a", "b", "c"))

        collection.insert(BlockRecord("paragraph", id="x"), 1)

        assert collection.ids() == ["a", "x", "b", "c"]
        assert [collection.index_of(block_id) for block_id in "axbc"] == [0, 1, 2, 3]
        collection.verify()

    def test_insert_at_length_appends(self):
        """Test that inserting at len() appends."""
        collection = BlockCollection(make_records("a"))

        collection.insert(BlockRecord("paragraph", id="b"), 1)

        assert collection.ids() == ["a", "b"]

    def test_insert_past_end_raises(self):
        """Test that an index beyond the length is rejected without mutation."""
        collection = BlockCollection(make_records("a"))

        with pytest.raises(IndexOutOfRange) as exc_info:
            collection.insert(BlockRecord("paragraph", id="b"), 5)

        assert exc_info.value.length == 1
        assert collection.ids() == ["a"]

    def test_insert_duplicate_id_raises(self):
        """Test that ids are unique within the collection."""
        collection = BlockCollection(make_records("a", "b"))

        with pytest.raises(DuplicateBlockId):
            collection.insert(BlockRecord("paragraph", id="b"), 0)

        assert collection.ids() == ["a", "b"]

    def test_replace_overwrites_in_place(self):
        """Test that replace swaps the record without shifting."""
        collection = BlockCollection(make_records("a", "b", "c"))

        collection.insert(BlockRecord("header", id="x"), 1, replace=True)

        assert collection.ids() == ["a", "x", "c"]
        assert "b" not in collection
        collection.verify()

    def test_insert_many_is_all_or_nothing(self):
        """Test that a duplicate anywhere in the batch aborts the whole insert."""
        collection = BlockCollection(make_records("a"))

        with pytest.raises(DuplicateBlockId):
            collection.insert_many(make_records("x", "y", "x"), 1)

        assert collection.ids() == ["a"]


class TestBlockCollectionRemoveAndMove:
    """Test removing and moving records."""

    def test_remove_reindexes_tail(self):
        """Test that removing a record shifts following indices down."""
        collection = BlockCollection(make_records("a", "b", "c"))

        removed = collection.remove(0)

        assert removed.id == "a"
        assert collection.index_of("c") == 1
        assert collection.index_of("a") is None
        collection.verify()

    def test_remove_out_of_range(self):
        """Test that removing a missing index raises."""
        collection = BlockCollection(make_records("a"))

        with pytest.raises(IndexOutOfRange):
            collection.remove(1)

    def test_move_down_and_up(self):
        """Test moves in both directions shift the records in between."""
        collection = BlockCollection(make_records("a", "b", "c", "d"))

        collection.move(0, 2)
        assert collection.ids() == ["b", "c", "a", "d"]

        collection.move(3, 0)
        assert collection.ids() == ["d", "b", "c", "a"]
        collection.verify()

    def test_move_to_same_index_is_noop(self):
        """Test that moving a record onto itself changes nothing."""
        collection = BlockCollection(make_records("a", "b"))

        collection.move(1, 1)

        assert collection.ids() == ["a", "b"]


class TestBlockCollectionLookup:
    """Test lookups."""

    def test_negative_index_does_not_wrap(self):
        """Test that get_by_index(-1) returns None instead of the last record."""
        collection = BlockCollection(make_records("a", "b"))

        assert collection.get_by_index(-1) is None
        assert collection.get_by_index(2) is None
        assert collection.get_by_index(1).id == "b"

    def test_children_of_returns_sequence_order(self):
        """Test that children come back in flat order, top level for None."""
        records = make_records("p", "x", "y")
        records[2].parent_id = "p"
        records[1].parent_id = "p"
        collection = BlockCollection(records)

        assert [record.id for record in collection.children_of("p")] == ["x", "y"]
        assert [record.id for record in collection.children_of(None)] == ["p"]
