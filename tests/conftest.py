"""Shared test fixtures for all test modules."""

from typing import Any, Optional

import pytest

from blockdoc.core.engine import MutationEngine
from blockdoc.core.selection import BlockSelection
from blockdoc.editor import Editor
from blockdoc.history.snapshot import SnapshotHistory
from blockdoc.models.config import EditorConfig
from blockdoc.tools.registry import ConversionConfig, ToolRegistry, ToolSpec


class TextTool:
    """Minimal tool instance that saves its block's data."""

    def __init__(self, data: dict[str, Any], block: Any, read_only: bool = False):
        self.data = dict(data)
        self.block = block
        self.read_only = read_only

    def save(self) -> dict[str, Any]:
        return dict(self.block.data)


def broken_factory(data: dict[str, Any], block: Any, read_only: bool = False):
    raise RuntimeError("tool exploded")


def concat_text(target: dict[str, Any], source: dict[str, Any]) -> dict[str, Any]:
    return {**target, "text": target.get("text", "") + source.get("text", "")}


def header_import(text: str, settings: dict[str, Any]) -> dict[str, Any]:
    return {"text": text, "level": settings.get("level", 2)}


def build_tool_specs() -> list[ToolSpec]:
    """Tool set used across the suite."""
    return [
        ToolSpec(
            name="paragraph",
            factory=TextTool,
            is_default=True,
            conversion_config=ConversionConfig(export="text", import_="text"),
            merge=concat_text,
            is_empty=lambda data: not data.get("text"),
        ),
        ToolSpec(
            name="header",
            factory=TextTool,
            conversion_config=ConversionConfig(export="text", import_=header_import),
            settings={"level": 3},
        ),
        ToolSpec(
            name="list",
            factory=TextTool,
            conversion_config=ConversionConfig(export="text", import_="text"),
            supports_nesting=True,
            merge=concat_text,
        ),
        ToolSpec(
            name="toggle",
            factory=TextTool,
            conversion_config=ConversionConfig(export="text", import_="text"),
            supports_nesting=True,
        ),
        ToolSpec(
            name="quote",
            factory=TextTool,
            conversion_config=ConversionConfig(export=lambda data: data.get("text", "")),
        ),
        ToolSpec(
            name="image",
            validate=lambda data: bool(data.get("url")),
        ),
        ToolSpec(
            name="broken",
            factory=broken_factory,
        ),
    ]


@pytest.fixture
def tool_specs():
    """Fresh list of tool specs."""
    return build_tool_specs()


@pytest.fixture
def registry(tool_specs):
    """Registry with paragraph as the default tool."""
    return ToolRegistry(tool_specs, default_tool="paragraph")


@pytest.fixture
def block():
    """
    Builder for saved-block dicts.

    The text defaults to the id so tests can read document order from data.
    """
    def build(
        block_id: str,
        tool: str = "paragraph",
        text: Optional[str] = None,
        parent: Optional[str] = None,
        **data: Any,
    ) -> dict[str, Any]:
        saved: dict[str, Any] = {
            "id": block_id,
            "type": tool,
            "data": {"text": block_id if text is None else text, **data},
        }
        if parent is not None:
            saved["parent"] = parent
        return saved

    return build


@pytest.fixture
def make_engine(registry):
    """Factory building an engine (with snapshot history) over saved blocks."""
    def build(*blocks: dict[str, Any], history: bool = True) -> MutationEngine:
        snapshot_history = SnapshotHistory() if history else None
        engine = MutationEngine(registry, snapshot_history, blocks=list(blocks))
        if snapshot_history is not None:
            snapshot_history.attach(engine)
        return engine

    return build


@pytest.fixture
def engine(make_engine, block):
    """Engine holding paragraphs a, b, c, d, e."""
    return make_engine(*(block(block_id) for block_id in "abcde"))


@pytest.fixture
def selection(engine):
    return BlockSelection(engine)


@pytest.fixture
def editor(tool_specs):
    """Editor wired from default configuration plus the test tools."""
    return Editor.from_config(EditorConfig(), tool_specs)


def ids(engine: MutationEngine) -> list[str]:
    """Block ids in document order."""
    return [record.id for record in engine]


@pytest.fixture
def order():
    """Return the helper listing block ids in document order."""
    return ids
