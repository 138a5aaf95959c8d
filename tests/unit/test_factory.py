"""Unit tests for BlockFactory stub substitution."""

import pytest

from blockdoc.core.factory import BlockFactory
from blockdoc.services.exceptions import ToolConstructionFailure


@pytest.fixture
def factory(registry):
    return BlockFactory(registry)


class TestComposeBlock:
    """Test composing records."""

    def test_compose_known_tool(self, factory):
        """Test that a registered tool gets an instance and copied data."""
        data = {"text": "Hello"}

        record = factory.compose_block("paragraph", data, id="a")

        assert record.tool_name == "paragraph"
        assert record.id == "a"
        assert record.is_default
        assert record.instance.block is record
        data["text"] = "changed"
        assert record.data == {"text": "Hello"}

    def test_generates_ids(self, factory):
        """Test that records without an id get distinct generated ids."""
        first = factory.compose_block("paragraph")
        second = factory.compose_block("paragraph")

        assert first.id != second.id
        assert len(first.id) == 10

    def test_unknown_tool_becomes_stub(self, factory):
        """Test that an unregistered tool yields a stub preserving the block."""
        record = factory.compose_block("table", {"rows": [["x"]]}, id="t1", tunes={"align": "left"})

        assert record.is_stub
        assert record.id == "t1"
        assert record.data == {
            "id": "t1",
            "type": "table",
            "data": {"rows": [["x"]]},
            "tunes": {"align": "left"},
        }
        assert record.instance.original_tool == "table"
        assert "table" in record.stub_reason

    def test_failing_constructor_becomes_stub(self, factory):
        """Test that a tool raising in its constructor yields a stub."""
        record = factory.compose_block("broken", {"value": 1}, id="b1")

        assert record.is_stub
        assert record.data["type"] == "broken"
        assert record.data["data"] == {"value": 1}
        assert "tool exploded" in record.stub_reason

    def test_composing_stub_restores_preserved_block(self, factory):
        """Test that a stub snapshot composes back into an equivalent stub."""
        stub = factory.compose_block("table", {"rows": []}, id="t1")

        restored = factory.compose_block("stub", stub.data, id="t1")

        assert restored.is_stub
        assert restored.data == stub.data

    def test_malformed_stub_data_is_still_preserved(self, factory):
        """Test that garbage under the stub name is wrapped, not dropped."""
        record = factory.compose_block("stub", {"nonsense": True}, id="s1")

        assert record.is_stub
        assert record.data["data"] == {"nonsense": True}


class TestRebindAndPrepare:
    """Test instance rebuilding and async load hooks."""

    def test_rebind_degrades_to_stub(self, factory, registry):
        """Test that a tool failing on updated data turns the record into a stub in place."""
        record = factory.compose_block("paragraph", {"text": "ok"}, id="p1")
        def explode(data, block, read_only):
            raise RuntimeError("bad")

        registry.get("paragraph").factory = explode

        factory.rebind(record)

        assert record.is_stub
        assert record.id == "p1"
        assert record.data["data"] == {"text": "ok"}
        assert record.instance.block is record

    @pytest.mark.asyncio
    async def test_prepare_runs_load_hook(self, factory, registry):
        """Test that the load hook normalizes data."""
        async def load(data):
            return {**data, "loaded": True}

        registry.get("header").load = load

        data, failure = await factory.prepare("header", {"text": "T"})

        assert data == {"text": "T", "loaded": True}
        assert failure is None

    @pytest.mark.asyncio
    async def test_prepare_reports_failures(self, factory, registry):
        """Test that a failing load hook returns the original data and the failure."""
        async def load(data):
            raise RuntimeError("cannot load")

        registry.get("header").load = load

        data, failure = await factory.prepare("header", {"text": "T"})

        assert data == {"text": "T"}
        assert isinstance(failure, ToolConstructionFailure)
        assert isinstance(failure.cause, RuntimeError)
