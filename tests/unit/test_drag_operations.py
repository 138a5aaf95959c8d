"""Unit tests for committed drop operations."""

import pytest

from blockdoc.core.selection import BlockSelection
from blockdoc.drag.operations import DragOperations
from blockdoc.drag.target import DropTargetDetector
from blockdoc.models.drag import DropEdge, DropTarget
from blockdoc.services.exceptions import BlockNotFound
from blockdoc.services.saver import DocumentSaver


@pytest.fixture
def seven(make_engine, block):
    """Paragraphs a..g."""
    return make_engine(*(block(block_id) for block_id in "abcdefg"))


def drop(engine, block_id, edge, sources):
    """Canonical target for dropping sources on an edge of block_id."""
    return DropTargetDetector(engine).canonical(engine.index_of(block_id), edge, set(sources))


class TestMove:
    """Test moving blocks to a drop target."""

    def test_single_block_down(self, engine, order):
        """Test that a block dropped below a later block lands after it."""
        result = DragOperations(engine).move(["a"], drop(engine, "c", DropEdge.BOTTOM, ["a"]))

        assert order(engine) == ["b", "c", "a", "d", "e"]
        assert result.changed
        assert result.moved_ids == ["a"]

    def test_single_block_up(self, engine, order):
        """Test that a block dropped on a top edge lands before that block."""
        DragOperations(engine).move(["e"], drop(engine, "b", DropEdge.TOP, ["e"]))

        assert order(engine) == ["a", "e", "b", "c", "d"]

    def test_drop_in_place_is_noop(self, engine, order):
        """Test that dropping a block where it already is changes nothing."""
        result = DragOperations(engine).move(["b"], drop(engine, "a", DropEdge.BOTTOM, ["b"]))

        assert not result.changed
        assert order(engine) == ["a", "b", "c", "d", "e"]
        assert not engine.history.can_undo

    def test_multi_block_up_preserves_order(self, seven, order):
        """Test that blocks at 2, 3 and 5 moved to the top keep their order."""
        DragOperations(seven).move(["f", "c", "d"], drop(seven, "a", DropEdge.TOP, ["c", "d", "f"]))

        assert order(seven) == ["c", "d", "f", "a", "b", "e", "g"]

    def test_multi_block_down_preserves_order(self, seven, order):
        """Test a downward multi-block move."""
        DragOperations(seven).move(["a", "b", "d"], drop(seven, "f", DropEdge.BOTTOM, ["a", "b", "d"]))

        assert order(seven) == ["c", "e", "f", "a", "b", "d", "g"]

    def test_multi_block_around_target(self, seven, order):
        """Test sources on both sides of the drop point."""
        DragOperations(seven).move(["b", "d", "f"], drop(seven, "c", DropEdge.BOTTOM, ["b", "d", "f"]))

        assert order(seven) == ["a", "c", "b", "d", "f", "e", "g"]

    def test_move_is_one_undo_entry(self, seven, order):
        """Test that a multi-block move undoes in one step."""
        DragOperations(seven).move(["a", "c", "e"], drop(seven, "g", DropEdge.BOTTOM, ["a", "c", "e"]))
        seven.history.stop_capturing()

        seven.history.undo()

        assert order(seven) == ["a", "b", "c", "d", "e", "f", "g"]

    def test_multi_block_move_reselects(self, seven):
        """Test that moved blocks become the selection."""
        selection = BlockSelection(seven)
        selection.select("a")

        DragOperations(seven, selection).move(["b", "d"], drop(seven, "f", DropEdge.BOTTOM, ["b", "d"]))

        assert selection.selected_ids == ["b", "d"]

    def test_missing_target_block(self, engine):
        """Test that a target removed mid-drag is reported."""
        target = DropTarget("ghost", DropEdge.BOTTOM, 0)

        with pytest.raises(BlockNotFound):
            DragOperations(engine).move(["a"], target)


class TestMoveNesting:
    """Test that moved blocks take the target depth."""

    @pytest.fixture
    def nested(self, make_engine, block):
        return make_engine(
            block("p", "toggle"),
            block("x", "list", parent="p"),
            block("q"),
        )

    def test_move_into_nesting(self, nested, order):
        """Test that a block dropped after a child becomes its sibling."""
        result = DragOperations(nested).move(["q"], drop(nested, "x", DropEdge.BOTTOM, ["q"]))

        assert result.changed
        assert order(nested) == ["p", "x", "q"]
        assert nested.get_by_id("q").parent_id == "p"
        assert nested.get_by_id("p").child_ids == ["x", "q"]

    def test_move_out_of_nesting(self, nested, order):
        """Test that a child dropped at top level is un-nested."""
        DragOperations(nested).move(["x"], drop(nested, "q", DropEdge.BOTTOM, ["x"]))

        assert order(nested) == ["p", "q", "x"]
        assert nested.get_by_id("x").parent_id is None
        assert nested.get_by_id("p").child_ids == []

    def test_children_travel_with_parent(self, nested, order):
        """Test that descendants moved with their parent stay nested under it."""
        DragOperations(nested).move(["p", "x"], drop(nested, "q", DropEdge.BOTTOM, ["p", "x"]))

        assert order(nested) == ["q", "p", "x"]
        assert nested.get_by_id("x").parent_id == "p"

    def test_cannot_nest_under_own_descendant(self, make_engine, block, order):
        """Test that re-homing is skipped when it would create a cycle."""
        engine = make_engine(
            block("p", "toggle"),
            block("x", "list", parent="p"),
            block("y", "list", parent="p"),
        )
        target = DropTarget("x", DropEdge.BOTTOM, 1, depth=1, parent_id="p")

        DragOperations(engine).move(["p"], target)

        assert order(engine) == ["x", "p", "y"]
        assert engine.get_by_id("p").parent_id is None


class TestDuplicate:
    """Test duplicating blocks to a drop target."""

    @pytest.mark.asyncio
    async def test_duplicate_single_block(self, engine, order):
        """Test that a copy with a fresh id is inserted and selected."""
        selection = BlockSelection(engine)
        operations = DragOperations(engine, selection, DocumentSaver(engine))

        result = await operations.duplicate(["b"], drop(engine, "d", DropEdge.BOTTOM, ["b"]))

        copy_id = result.duplicate_ids[0]
        assert order(engine) == ["a", "b", "c", "d", copy_id, "e"]
        assert copy_id != "b"
        assert engine.get_by_id(copy_id).data == {"text": "b"}
        assert selection.selected_ids == [copy_id]
        assert result.source_ids == ["b"]

    @pytest.mark.asyncio
    async def test_duplicate_keeps_internal_hierarchy(self, make_engine, block, order):
        """Test that a copied child is parented to the copied parent."""
        engine = make_engine(block("p", "toggle"), block("x", "list", parent="p"), block("q"))
        operations = DragOperations(engine, saver=DocumentSaver(engine))

        result = await operations.duplicate(["p", "x"], drop(engine, "q", DropEdge.BOTTOM, ["p", "x"]))

        p_copy, x_copy = result.duplicate_ids
        assert order(engine) == ["p", "x", "q", p_copy, x_copy]
        assert engine.get_by_id(x_copy).parent_id == p_copy
        assert engine.get_by_id(p_copy).parent_id is None
        assert engine.get_by_id("p").child_ids == ["x"]

    @pytest.mark.asyncio
    async def test_duplicate_into_nesting(self, make_engine, block):
        """Test that copies take the target parent."""
        engine = make_engine(block("p", "toggle"), block("x", "list", parent="p"), block("q"))
        operations = DragOperations(engine)

        result = await operations.duplicate(["q"], drop(engine, "x", DropEdge.BOTTOM, ["q"]))

        assert engine.get_by_id(result.duplicate_ids[0]).parent_id == "p"

    @pytest.mark.asyncio
    async def test_duplicate_stub_preserves_original(self, make_engine, block):
        """Test that a copied stub still preserves the unknown tool's content."""
        engine = make_engine(block("a"), block("t", "table", rows=[[1, 2]]))
        operations = DragOperations(engine, saver=DocumentSaver(engine))

        result = await operations.duplicate(["t"], drop(engine, "a", DropEdge.TOP, ["t"]))

        duplicate = engine.get_by_id(result.duplicate_ids[0])
        assert duplicate.is_stub
        assert duplicate.data["type"] == "table"
        assert duplicate.data["data"] == {"text": "t", "rows": [[1, 2]]}
        assert duplicate.data["id"] == duplicate.id

    @pytest.mark.asyncio
    async def test_duplicate_leaves_sources_untouched(self, engine):
        """Test that sources keep their ids, data and positions."""
        before = engine.snapshot()

        result = await DragOperations(engine).duplicate(["a", "c"], drop(engine, "e", DropEdge.BOTTOM, ["a", "c"]))

        after = [item for item in engine.snapshot() if item["id"] not in result.duplicate_ids]
        assert after == before
