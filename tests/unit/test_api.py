"""Unit tests for the blocks API and block handles."""

import pytest

from blockdoc.api import BlockAPI, BlocksAPI
from blockdoc.services.exceptions import (
    BlockNotFound,
    ConversionUnsupported,
    InvalidIndex,
    UnknownTool,
)


@pytest.fixture
def api(engine):
    return BlocksAPI(engine)


@pytest.fixture
def nested_api(make_engine, block):
    engine = make_engine(
        block("p", "toggle"),
        block("x", "list", parent="p"),
        block("q"),
    )
    return BlocksAPI(engine)


class TestBlockHandle:
    """Test id-addressed block handles."""

    def test_properties_resolve_live(self, api):
        """Test that a handle reports the block's current state."""
        handle = api.get_by_id("c")

        assert handle.id == "c"
        assert handle.name == "paragraph"
        assert handle.index == 2
        assert handle.is_default

        api.move(0, 2)

        assert handle.index == 0

    def test_data_is_a_copy(self, api, engine):
        """Test that mutating returned data leaves the block alone."""
        handle = api.get_by_id("a")

        handle.data["text"] = "changed"

        assert engine.get_by_id("a").data == {"text": "a"}

    def test_stale_handle_raises(self, api):
        """Test that a handle to a removed block raises on access."""
        handle = api.get_by_id("b")

        api.delete(handle.index)

        assert not handle.is_alive
        with pytest.raises(BlockNotFound):
            handle.index
        with pytest.raises(BlockNotFound):
            handle.data

    def test_hierarchy_navigation(self, nested_api):
        """Test parent, children and depth through handles."""
        parent = nested_api.get_by_id("p")
        child = nested_api.get_by_id("x")

        assert parent.children() == [child]
        assert child.parent() == parent
        assert child.depth == 1
        assert parent.parent() is None
        assert parent.child_ids == ["x"]

    def test_equality_by_id(self, api, engine):
        """Test that two handles to the same block compare equal."""
        assert api.get_by_id("a") == BlockAPI(engine, "a")
        assert api.get_by_id("a") != api.get_by_id("b")
        assert len({api.get_by_id("a"), api.get_by_id("a")}) == 1

    @pytest.mark.asyncio
    async def test_save(self, api):
        """Test that a handle saves its block in document shape."""
        saved = await api.get_by_id("a").save()

        assert saved == {"id": "a", "type": "paragraph", "data": {"text": "a"}}

    @pytest.mark.asyncio
    async def test_save_without_saver(self, engine):
        """Test that a bare handle saves from the record snapshot."""
        saved = await BlockAPI(engine, "b").save()

        assert saved == {"id": "b", "type": "paragraph", "data": {"text": "b"}}


class TestBlocksAPIMutations:
    """Test mutations through the blocks API."""

    def test_insert(self, api, engine):
        """Test that insert returns a handle to the new current block."""
        handle = api.insert("header", {"text": "Title"}, index=1)

        assert handle.index == 1
        assert handle.name == "header"
        assert engine.current_index == 1
        assert api.get_blocks_count() == 6

    def test_insert_without_focus(self, api, engine):
        """Test that need_to_focus=False leaves the pointer alone."""
        api.insert("paragraph", {"text": "n"}, index=5, need_to_focus=False)

        assert engine.current_index == -1

    def test_insert_with_parent(self, nested_api):
        """Test that inserted children are linked to their parent."""
        handle = nested_api.insert("list", {"text": "y"}, index=2, parent_id="p")

        assert handle.parent_id == "p"
        assert nested_api.get_by_id("p").child_ids == ["x", handle.id]

    def test_insert_many_appends_by_default(self, api, order, engine):
        """Test that insert_many without an index appends."""
        handles = api.insert_many([
            {"id": "y", "type": "paragraph", "data": {"text": "y"}},
            {"id": "z", "type": "quote", "data": {"text": "z"}},
        ])

        assert [handle.id for handle in handles] == ["y", "z"]
        assert order(engine)[-2:] == ["y", "z"]

    def test_insert_many_rejects_negative_index(self, api):
        with pytest.raises(InvalidIndex):
            api.insert_many([], -1)

    def test_delete_by_index(self, api, order, engine):
        """Test that delete returns where the caret should land."""
        assert api.delete(2) == 1
        assert order(engine) == ["a", "b", "d", "e"]

    def test_delete_current(self, api, engine, order):
        """Test that delete without an index removes the current block."""
        engine.focus(3)

        api.delete()

        assert order(engine) == ["a", "b", "c", "e"]

    def test_delete_missing_index_returns_none(self, api):
        """Test that deleting past the end warns instead of raising."""
        assert api.delete(99) is None
        assert api.get_blocks_count() == 5

    def test_delete_invalid_index(self, api):
        with pytest.raises(InvalidIndex):
            api.delete(-2)

    def test_update(self, api, engine):
        """Test that update merges data and keeps the id."""
        handle = api.update("a", {"bold": True}, tunes={"anchor": "x"})

        assert handle.id == "a"
        assert engine.get_by_id("a").data == {"text": "a", "bold": True}
        assert handle.tunes == {"anchor": "x"}

    def test_convert_returns_new_handle(self, api):
        """Test that conversion replaces the block under a new id."""
        old = api.get_by_id("a")

        converted = api.convert("a", "header")

        assert converted.id != "a"
        assert converted.name == "header"
        assert converted.data == {"text": "a", "level": 3}
        assert converted.index == 0
        assert not old.is_alive

    def test_convert_unsupported(self, api):
        """Test that converting to a tool without an import raises."""
        with pytest.raises(ConversionUnsupported):
            api.convert("a", "quote")

    def test_merge(self, api, order, engine):
        """Test merging the next block into the previous one."""
        handle = api.merge("a", "b")

        assert handle.id == "a"
        assert handle.data == {"text": "ab"}
        assert order(engine) == ["a", "c", "d", "e"]

    def test_set_parent(self, nested_api):
        """Test re-homing a block through the API."""
        nested_api.set_parent("q", "p")

        assert [handle.id for handle in nested_api.get_children("p")] == ["x", "q"]
        assert [handle.id for handle in nested_api.get_children()] == ["p"]

    def test_clear(self, api, engine):
        """Test that clear leaves one empty default block."""
        handle = api.clear()

        assert len(engine) == 1
        assert handle.name == "paragraph"
        assert handle.data == {}


class TestBlocksAPIAccessors:
    """Test read accessors, which return None instead of raising."""

    def test_lookup_misses(self, api):
        assert api.get_by_id("ghost") is None
        assert api.get_by_index(99) is None
        assert api.get_block_index("ghost") is None
        assert api.get_depth("ghost") is None

    def test_lookup_hits(self, api):
        assert api.get_by_index(1).id == "b"
        assert api.get_block_index("d") == 3
        assert api.get_depth("d") == 0

    def test_current_block_index(self, api, engine):
        assert api.get_current_block_index() == -1
        engine.focus(2)
        assert api.get_current_block_index() == 2

    @pytest.mark.asyncio
    async def test_compose_block_data(self, api):
        """Test the data a fresh block of a tool starts with."""
        assert await api.compose_block_data("paragraph") == {}
        assert await api.compose_block_data("image") == {}

    @pytest.mark.asyncio
    async def test_compose_block_data_unknown_tool(self, api):
        with pytest.raises(UnknownTool):
            await api.compose_block_data("table")


class TestBlocksAPIHistory:
    """Test undo and redo through the API."""

    def test_undo_redo(self, api, engine, order):
        """Test that undo and redo replay a deletion."""
        api.delete(0)
        assert order(engine) == ["b", "c", "d", "e"]

        api.undo()
        assert order(engine) == ["a", "b", "c", "d", "e"]

        api.redo()
        assert order(engine) == ["b", "c", "d", "e"]

    def test_undo_returns_marked_caret(self, api, engine):
        """Test that the caret marked before a change is handed back on undo."""
        engine.focus(1)
        api.mark_position_before_change({"block": "b", "offset": 1})
        api.update("b", {"text": "bee"})

        assert api.undo() == {"block": "b", "offset": 1}
        assert engine.get_by_id("b").data == {"text": "b"}
