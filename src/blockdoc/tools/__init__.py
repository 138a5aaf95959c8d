"""Block tool registry, stub tool and conversion helpers."""

from blockdoc.tools.registry import ConversionConfig, ToolRegistry, ToolSpec
from blockdoc.tools.stub import StubTool, is_stub_saved_data, make_stub_data
from blockdoc.tools.conversion import convert_string_to_block_data, export_data_as_string, is_convertible

__all__ = [
    "ConversionConfig",
    "ToolRegistry",
    "ToolSpec",
    "StubTool",
    "is_stub_saved_data",
    "make_stub_data",
    "convert_string_to_block_data",
    "export_data_as_string",
    "is_convertible",
]
