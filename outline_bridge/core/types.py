"""
Type definitions for the outline bridge.

This module defines the data structures shared by the conversion passes:
protected spans held by the placeholder vault, list frames used by the block
parser, the table model built by the table transpiler, and the options that
parameterize a single conversion.
"""

from enum import Enum
from typing import Dict, List

from pydantic import BaseModel, Field, model_validator

# Sentinels are framed by private-use code points that never survive input normalization
SENTINEL_OPEN = "\ue000"
SENTINEL_CLOSE = "\ue001"

# Placeholder for missing table cells; never an empty string
PAD_CELL = " "


class SpanKind(str, Enum):
    """Kinds of fragile spans the placeholder vault protects."""

    CODE_BLOCK = "CODEBLOCK"
    INLINE_CODE = "INLINECODE"
    LINK_OR_IMAGE = "LINK"
    MEDIA_EMBED = "EMBED"
    CALLOUT = "CALLOUT"


class Dialect(str, Enum):
    """Text dialects the bridge reads or writes."""

    HTML = "html"
    MARKDOWN = "markdown"
    OUTLINE = "outline"


class ListType(str, Enum):
    """List flavours, valued by their HTML tag."""

    BULLET = "ul"
    NUMBERED = "ol"


class Alignment(str, Enum):
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"
    NONE = "none"


class ProtectedSpan(BaseModel):
    """
    A fragile span swapped out of the working text by the placeholder vault.

    Attributes:
        kind: Construct that was protected
        index: Position of this span among spans of the same kind
        original_text: Text exactly as it appeared in the input
        rendered_text: Text written back on restore (HTML on the HTML path)
    """

    kind: SpanKind = Field(..., description="Protected construct kind")
    index: int = Field(..., ge=0, description="Index among spans of the same kind")
    original_text: str = Field(..., description="Matched input text")
    rendered_text: str = Field(..., description="Replacement written back on restore")

    @property
    def sentinel(self) -> str:
        """Token standing in for this span in the working text."""
        return f"{SENTINEL_OPEN}{self.kind.value}-{self.index}{SENTINEL_CLOSE}"


class ListFrame(BaseModel):
    """One currently open list on the block parser's nesting stack."""

    indent_level: int = Field(..., ge=0, description="Indentation level in units")
    list_type: ListType = Field(..., description="Bullet or numbered")


class TableModel(BaseModel):
    """
    A parsed table.

    Header, alignments and every row are padded to the table's maximum column
    count, so no row ever has fewer cells than the header.
    """

    header_cells: List[str] = Field(..., description="Header row cells")
    alignments: List[Alignment] = Field(default_factory=list, description="Per-column alignment")
    rows: List[List[str]] = Field(default_factory=list, description="Data rows")

    @model_validator(mode="after")
    def pad_to_column_count(self) -> "TableModel":
        width = self.column_count
        self.header_cells = self.header_cells + [PAD_CELL] * (width - len(self.header_cells))
        self.alignments = (self.alignments + [Alignment.NONE] * width)[:width]
        self.rows = [row + [PAD_CELL] * (width - len(row)) for row in self.rows]
        return self

    @property
    def column_count(self) -> int:
        return max([len(self.header_cells)] + [len(row) for row in self.rows])


class ConversionOptions(BaseModel):
    """
    Settings for one conversion.

    The reference maps are the only way caller data reaches the engine: page
    titles are marked with the uid found in page_uids (or the title itself),
    and block references show the text found in block_previews.
    """

    indent_unit: int = Field(default=2, ge=1, description="Spaces per nesting level")
    tab_width: int = Field(default=2, ge=0, description="Spaces a tab expands to")
    link_target: str = Field(default="_blank", description="Target attribute for external links")
    page_uids: Dict[str, str] = Field(default_factory=dict, description="Page title to page uid")
    block_previews: Dict[str, str] = Field(default_factory=dict, description="Block uid to preview text")
