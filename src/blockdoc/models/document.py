"""Serialized document shape for load/save round-trips."""

from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator


class SavedBlock(BaseModel):
    """One block as it appears in a saved document."""

    id: Optional[str] = Field(
        default=None,
        description="Block id (generated on load when missing)"
    )

    type: str = Field(
        ...,
        min_length=1,
        description="Tool name that owns this block"
    )

    data: dict[str, Any] = Field(
        default_factory=dict,
        description="Opaque tool payload"
    )

    tunes: dict[str, Any] = Field(
        default_factory=dict,
        description="Per-block tune settings"
    )

    parent: Optional[str] = Field(
        default=None,
        description="Parent block id, if nested"
    )

    content: list[str] = Field(
        default_factory=list,
        description="Ordered child block ids, if a container"
    )

    @field_validator("data", "tunes", mode="before")
    @classmethod
    def none_as_empty(cls, v: Any) -> Any:
        """Treat explicit nulls as empty payloads."""
        return {} if v is None else v

    def to_dict(self) -> dict[str, Any]:
        """
        Serialize to the minimal wire shape.

        ``tunes`` is omitted when empty, ``parent`` when absent and
        ``content`` when the block has no children.

        Returns:
            Plain dict suitable for JSON encoding
        """
        output: dict[str, Any] = {"id": self.id, "type": self.type, "data": self.data}
        if self.tunes:
            output["tunes"] = self.tunes
        if self.parent is not None:
            output["parent"] = self.parent
        if self.content:
            output["content"] = list(self.content)
        return output


class SavedDocument(BaseModel):
    """A whole document: an ordered list of saved blocks."""

    blocks: list[SavedBlock] = Field(
        default_factory=list,
        description="Blocks in document order"
    )

    time: Optional[int] = Field(
        default=None,
        description="Save timestamp in milliseconds since the epoch"
    )

    version: Optional[str] = Field(
        default=None,
        description="blockdoc version that produced the document"
    )

    @classmethod
    def coerce(cls, document: Any) -> "SavedDocument":
        """
        Build a SavedDocument from a model, a dict or a bare list of blocks.

        Args:
            document: SavedDocument, ``{"blocks": [...]}`` mapping, list of
                block dicts, or None

        Returns:
            Validated SavedDocument

        Raises:
            pydantic.ValidationError: If the input does not match the shape
        """
        if document is None:
            return cls()
        if isinstance(document, cls):
            return document
        if isinstance(document, list):
            return cls(blocks=document)
        return cls.model_validate(document)

    def to_dict(self) -> dict[str, Any]:
        output: dict[str, Any] = {}
        if self.time is not None:
            output["time"] = self.time
        output["blocks"] = [block.to_dict() for block in self.blocks]
        if self.version is not None:
            output["version"] = self.version
        return output
