"""Tool registry: maps tool names to block capabilities."""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Iterable, Iterator, Optional, Union

from blockdoc.models.block import STUB_TOOL_NAME
from blockdoc.services.exceptions import UnknownTool

if TYPE_CHECKING:
    from blockdoc.models.config import EditorConfig

ExportRule = Union[str, Callable[[dict[str, Any]], str]]
ImportRule = Union[str, Callable[[str, dict[str, Any]], dict[str, Any]]]


@dataclass(frozen=True)
class ConversionConfig:
    """
    How a tool's data converts to and from a plain string.

    Each side is either a data key name or a callable:
    ``export(data) -> str`` and ``import_(text, settings) -> data``.
    """

    export: Optional[ExportRule] = None
    import_: Optional[ImportRule] = None


@dataclass
class ToolSpec:
    """
    Capabilities of one block tool.

    The engine never renders; it only reads these flags and calls the
    optional hooks.

    Attributes:
        name: Registry key
        factory: ``factory(data, block, read_only)`` building a tool instance
        is_default: Whether this tool provides the fallback empty block
        conversion_config: Export/import transforms for conversion
        supports_nesting: Whether blocks of this tool can contain children
        merge: ``merge(target_data, source_data) -> data`` for merging blocks
        load: Async hook normalizing saved data before composition
        validate: Hook deciding whether saved data is worth keeping
        is_empty: Hook deciding whether data counts as an empty block
        settings: Tool settings passed to callable import transforms
    """

    name: str
    factory: Optional[Callable[..., Any]] = None
    is_default: bool = False
    conversion_config: ConversionConfig = field(default_factory=ConversionConfig)
    supports_nesting: bool = False
    merge: Optional[Callable[[dict[str, Any], dict[str, Any]], dict[str, Any]]] = None
    load: Optional[Callable[[dict[str, Any]], Awaitable[dict[str, Any]]]] = None
    validate: Optional[Callable[[dict[str, Any]], bool]] = None
    is_empty: Optional[Callable[[dict[str, Any]], bool]] = None
    settings: dict[str, Any] = field(default_factory=dict)

    @property
    def mergeable(self) -> bool:
        return self.merge is not None

    def create(self, data: dict[str, Any], block: Any, read_only: bool = False) -> Any:
        """Build a tool instance, or return None for data-only tools."""
        if self.factory is None:
            return None
        return self.factory(data, block, read_only)

    def data_is_empty(self, data: dict[str, Any]) -> bool:
        if self.is_empty is not None:
            return self.is_empty(data)
        return not any(data.values())


def _concat_merge(key: str) -> Callable[[dict[str, Any], dict[str, Any]], dict[str, Any]]:
    def merge(target: dict[str, Any], source: dict[str, Any]) -> dict[str, Any]:
        return {**target, key: f"{target.get(key, '')}{source.get(key, '')}"}

    return merge


class ToolRegistry:
    """
    Registry of block tools keyed by name.

    The stub tool is always registered under ``"stub"``; it preserves the
    content of blocks whose tool is missing or failed.

    Example:
        >>> registry = ToolRegistry([ToolSpec("paragraph", is_default=True)])
        >>> registry.default_tool.name
        'paragraph'
        >>> registry.get("table") is None
        True
    """

    def __init__(self, tools: Iterable[ToolSpec] = (), default_tool: Optional[str] = None) -> None:
        from blockdoc.tools.stub import build_stub_spec

        self._tools: dict[str, ToolSpec] = {}
        self._default_name = default_tool
        self._stub = build_stub_spec()
        for spec in tools:
            self.register(spec)

    def register(self, spec: ToolSpec) -> None:
        """
        Register (or replace) a tool.

        Raises:
            ValueError: If the tool uses the reserved stub name
        """
        if spec.name == STUB_TOOL_NAME:
            raise ValueError(f"Tool name '{STUB_TOOL_NAME}' is reserved")
        self._tools[spec.name] = spec

    def get(self, name: str) -> Optional[ToolSpec]:
        """Return the spec for ``name`` (including the stub), or None."""
        if name == STUB_TOOL_NAME:
            return self._stub
        return self._tools.get(name)

    def require(self, name: str) -> ToolSpec:
        """
        Return the spec for ``name``.

        Raises:
            UnknownTool: If no such tool is registered
        """
        spec = self.get(name)
        if spec is None:
            raise UnknownTool(name)
        return spec

    def __contains__(self, name: object) -> bool:
        return name == STUB_TOOL_NAME or name in self._tools

    def __iter__(self) -> Iterator[ToolSpec]:
        return iter(self._tools.values())

    def __len__(self) -> int:
        return len(self._tools)

    @property
    def names(self) -> list[str]:
        return list(self._tools)

    @property
    def stub(self) -> ToolSpec:
        return self._stub

    @property
    def default_tool(self) -> ToolSpec:
        """
        The tool used for fallback empty blocks.

        Raises:
            ValueError: If no default tool is configured
        """
        if self._default_name is not None:
            spec = self._tools.get(self._default_name)
            if spec is None:
                raise ValueError(f"Default block tool is not registered: {self._default_name}")
            return spec
        for spec in self._tools.values():
            if spec.is_default:
                return spec
        raise ValueError("Default block tool is not defined")

    def is_default(self, name: str) -> bool:
        try:
            return self.default_tool.name == name
        except ValueError:
            return False

    @classmethod
    def from_config(cls, config: "EditorConfig", extra: Iterable[ToolSpec] = ()) -> "ToolRegistry":
        """
        Build a registry from declarative tool configuration.

        Programmatic specs in ``extra`` replace configured tools of the same
        name.

        Args:
            config: Editor configuration
            extra: Additional tool specs with hooks and factories

        Returns:
            Populated registry whose default tool is ``config.default_block``
        """
        registry = cls(default_tool=config.default_block)
        for tool in config.tools:
            registry.register(
                ToolSpec(
                    name=tool.name,
                    is_default=tool.name == config.default_block,
                    conversion_config=ConversionConfig(export=tool.export, import_=tool.import_),
                    supports_nesting=tool.supports_nesting,
                    merge=_concat_merge(tool.export or tool.import_ or "text") if tool.mergeable else None,
                    settings=dict(tool.settings),
                )
            )
        for spec in extra:
            registry.register(spec)
        return registry
