"""Configuration models for blockdoc."""

from pathlib import Path
from typing import Any, Literal, Optional

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from blockdoc.models.block import STUB_TOOL_NAME


class ToolConfig(BaseModel):
    """Declarative description of a block tool."""

    name: str = Field(
        ...,
        min_length=1,
        description="Registry key of the tool (e.g., 'paragraph', 'list')"
    )

    is_default: bool = Field(
        default=False,
        description="Whether this tool provides the fallback empty block"
    )

    supports_nesting: bool = Field(
        default=False,
        description="Whether blocks of this tool can hold nested children"
    )

    export: Optional[str] = Field(
        default=None,
        description="Data key exported as a string during conversion"
    )

    import_: Optional[str] = Field(
        default=None,
        alias="import",
        description="Data key that receives an imported string during conversion"
    )

    mergeable: bool = Field(
        default=False,
        description="Whether adjacent blocks of this tool can be merged"
    )

    settings: dict[str, Any] = Field(
        default_factory=dict,
        description="Tool-specific settings passed to import transforms"
    )

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Reject the reserved stub tool name."""
        if v == STUB_TOOL_NAME:
            raise ValueError(f"Tool name '{STUB_TOOL_NAME}' is reserved for content preservation")
        return v

    model_config = {"frozen": True, "populate_by_name": True}


class DragConfig(BaseModel):
    """Configuration for pointer-driven block reordering."""

    threshold: float = Field(
        default=5.0,
        ge=0,
        description="Pointer travel in pixels before a press becomes a drag"
    )

    auto_scroll_zone: int = Field(
        default=50,
        ge=0,
        description="Distance in pixels from the viewport edge that triggers auto-scroll"
    )

    auto_scroll_speed: int = Field(
        default=10,
        ge=1,
        description="Pixels scrolled per auto-scroll tick"
    )

    duplicate_modifier: Literal["alt", "ctrl", "meta", "shift"] = Field(
        default="alt",
        description="Modifier key that turns a drop into a duplicate"
    )

    model_config = {"frozen": True}


class HistoryConfig(BaseModel):
    """Configuration for the built-in undo history."""

    enabled: bool = Field(
        default=True,
        description="Use the in-memory snapshot history (otherwise no history)"
    )

    max_length: int = Field(
        default=30,
        ge=1,
        le=1000,
        description="Maximum number of undo entries kept"
    )

    model_config = {"frozen": True}


def _default_tools() -> list[ToolConfig]:
    return [ToolConfig(name="paragraph", is_default=True, export="text", import_="text", mergeable=True)]


class EditorConfig(BaseModel):
    """Root configuration for a blockdoc editor."""

    default_block: str = Field(
        default="paragraph",
        description="Tool used for the fallback empty block"
    )

    read_only: bool = Field(
        default=False,
        description="Build tool instances in read-only mode"
    )

    tools: list[ToolConfig] = Field(
        default_factory=_default_tools,
        description="Declaratively configured tools"
    )

    drag: DragConfig = Field(default_factory=DragConfig, description="Drag settings")
    history: HistoryConfig = Field(default_factory=HistoryConfig, description="History settings")

    @model_validator(mode="after")
    def validate_tools(self) -> "EditorConfig":
        """Tool names must be unique and the default block must be configured."""
        names = [tool.name for tool in self.tools]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"Duplicate tool names: {', '.join(duplicates)}")
        if self.tools and self.default_block not in names:
            raise ValueError(
                f"Default block tool '{self.default_block}' is not configured.\n"
                f"Configured tools: {', '.join(names)}"
            )
        return self

    @classmethod
    def load(cls, path: Path) -> "EditorConfig":
        """
        Load configuration from a YAML file.

        Args:
            path: Path to config.yaml file

        Returns:
            Validated EditorConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If YAML is invalid or validation fails
        """
        if not path.exists():
            raise FileNotFoundError(
                f"Configuration file not found at {path}\n\n"
                f"Please create the file with the following format:\n\n"
                f"default_block: paragraph\n"
                f"tools:\n"
                f"  - name: paragraph\n"
                f"    is_default: true\n"
                f"    export: text\n"
                f"    import: text\n"
                f"drag:\n"
                f"  threshold: 5\n"
            )

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        return cls(**data)

    model_config = {"frozen": True}
