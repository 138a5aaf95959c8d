"""Conversion helpers between block tools.

Conversion goes through a plain string: the source tool exports its data
as a string and the target tool imports that string into its own shape.
"""

from typing import Any, Literal

from blockdoc.tools.registry import ToolSpec

Direction = Literal["export", "import"]


def is_convertible(spec: ToolSpec, direction: Direction) -> bool:
    """
    Check whether a tool provides the transform for one direction.

    Args:
        spec: Tool to inspect
        direction: "export" or "import"

    Returns:
        True if the tool declares the transform
    """
    config = spec.conversion_config
    if direction == "export":
        return config.export is not None
    if direction == "import":
        return config.import_ is not None
    raise ValueError(f"Unknown conversion direction: {direction!r}")


def export_data_as_string(data: dict[str, Any], spec: ToolSpec) -> str:
    """
    Export block data as a string using the tool's export rule.

    A key name returns that field (missing fields export as ""); a callable
    is called with the data.

    Raises:
        ValueError: If the tool has no export rule
    """
    rule = spec.conversion_config.export
    if rule is None:
        raise ValueError(f"Tool {spec.name!r} does not export data")
    if callable(rule):
        return str(rule(data))
    value = data.get(rule)
    return "" if value is None else str(value)


def convert_string_to_block_data(text: str, spec: ToolSpec) -> dict[str, Any]:
    """
    Build block data for a tool from an exported string.

    A key name produces ``{key: text}``; a callable is called with the text
    and the tool settings.

    Raises:
        ValueError: If the tool has no import rule
    """
    rule = spec.conversion_config.import_
    if rule is None:
        raise ValueError(f"Tool {spec.name!r} does not import data")
    if callable(rule):
        return dict(rule(text, spec.settings))
    return {rule: text}
