"""Exceptions raised by the block document engine."""

from typing import Any, Iterable, Optional


class BlockDocError(Exception):
    """Base class for all blockdoc errors."""


class InvalidIndex(BlockDocError, ValueError):
    """Raised when an index is not a non-negative integer.

    Raised before any mutation happens, so the collection is never
    partially modified.

    Attributes:
        index: The rejected index value
        operation: Name of the operation that rejected it
    """

    def __init__(self, index: Any, operation: str = "", message: str = "Index must be a non-negative integer"):
        """Initialize InvalidIndex.

        Args:
            index: The rejected index value
            operation: Name of the operation that rejected it
            message: Human-readable error message
        """
        self.index = index
        self.operation = operation
        self.message = message
        prefix = f"{operation}: " if operation else ""
        super().__init__(f"{prefix}{message}, got {index!r}")


class IndexOutOfRange(InvalidIndex, IndexError):
    """Raised when an integer index falls outside the valid range.

    Attributes:
        index: The rejected index
        length: Collection length at the time of the call
    """

    def __init__(self, index: int, length: int, operation: str = ""):
        self.length = length
        super().__init__(index, operation, f"Index out of range for {length} block(s)")


class UnknownTool(BlockDocError, KeyError):
    """Raised when a tool name is not present in the registry.

    The block factory recovers from this by substituting the stub tool,
    so it only reaches callers that require a registered tool.

    Attributes:
        tool_name: The unregistered tool name
    """

    def __init__(self, tool_name: str):
        self.tool_name = tool_name
        super().__init__(tool_name)

    def __str__(self) -> str:
        return f"Tool is not registered: {self.tool_name!r}"


class ToolConstructionFailure(BlockDocError):
    """Raised when a tool fails to build an instance for a block.

    Attributes:
        tool_name: Tool whose constructor failed
        block_id: Id of the block being composed
        cause: Original exception raised by the tool
    """

    def __init__(self, tool_name: str, block_id: Optional[str], cause: BaseException):
        self.tool_name = tool_name
        self.block_id = block_id
        self.cause = cause
        super().__init__(f"Tool {tool_name!r} failed to construct block {block_id!r}: {cause}")


class ConversionUnsupported(BlockDocError):
    """Raised when a block cannot be converted between two tools.

    Attributes:
        source: Source tool name
        target: Target tool name
        lacking: Tool names missing the required transform
    """

    def __init__(self, source: str, target: str, lacking: Iterable[str], reason: str = ""):
        """Initialize ConversionUnsupported.

        Args:
            source: Source tool name
            target: Target tool name
            lacking: Tool names missing the export/import transform
            reason: Optional override for the explanatory suffix
        """
        self.source = source
        self.target = target
        self.lacking = list(lacking)
        names = " and ".join(name.capitalize() for name in self.lacking)
        detail = reason or f'{names} tool(s) should provide a "conversionConfig"'
        super().__init__(f'Conversion from "{source}" to "{target}" is not possible. {detail}')


class BlockNotFound(BlockDocError, LookupError):
    """Raised when a mutation addresses a block id that does not exist.

    Read accessors do not raise this; they return None and log a warning.

    Attributes:
        block_id: The missing id
    """

    def __init__(self, block_id: Any):
        self.block_id = block_id
        super().__init__(f"Block not found: {block_id!r}")


class DuplicateBlockId(BlockDocError, ValueError):
    """Raised when inserting a block whose id is already in the document."""

    def __init__(self, block_id: str):
        self.block_id = block_id
        super().__init__(f"Block id already exists: {block_id!r}")


class HierarchyError(BlockDocError, ValueError):
    """Raised when a parent assignment would create a cycle."""

    def __init__(self, block_id: str, parent_id: str, message: str = "Parent assignment would create a cycle"):
        self.block_id = block_id
        self.parent_id = parent_id
        super().__init__(f"{message}: {block_id!r} -> {parent_id!r}")


class InvariantViolation(BlockDocError, AssertionError):
    """Raised when a structural invariant of the collection is broken.

    This always indicates a programming error in the engine, never a user
    error.

    Attributes:
        invariant: Short invariant label (e.g. "index-map")
    """

    def __init__(self, invariant: str, message: str):
        self.invariant = invariant
        super().__init__(f"[{invariant}] {message}")


class DragStateError(BlockDocError, RuntimeError):
    """Raised on an illegal drag state transition."""

    def __init__(self, current: str, attempted: str):
        self.current = current
        self.attempted = attempted
        super().__init__(f"Cannot {attempted} while drag is {current}")


class ConfigError(BlockDocError, ValueError):
    """Raised when configuration cannot be loaded or validated.

    Attributes:
        path: Config file path, if any
    """

    def __init__(self, message: str, path: Optional[str] = None):
        self.path = path
        super().__init__(f"{message}: {path}" if path else message)
