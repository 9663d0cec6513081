"""
Document models: markup primitives, sections and parsed documents.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Literal, Union
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


def new_id() -> str:
    return str(uuid4())


class Alignment(str, Enum):
    """Paragraph justification."""

    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"
    JUSTIFY = "justify"


class ListType(str, Enum):
    BULLET = "bullet"
    NUMBER = "number"


# =============================================================================
# Formatting records
# =============================================================================


class RunFormatting(BaseModel):
    """Inline formatting of a text run. ``None`` means the attribute is unset."""

    bold: bool | None = None
    italic: bool | None = None
    underline: bool | None = None
    strike: bool | None = None
    font_size: float | None = Field(default=None, description="Size in points")
    font_family: str | None = None
    color: str | None = None
    highlight: str | None = None


class ParagraphFormatting(BaseModel):
    """
    Paragraph-level formatting.

    Indents and spacing are kept in the raw layout units of the source
    markup (twentieths of a point). An unset alignment stays ``None``; the
    "left" default is only applied when two paragraphs are compared.
    """

    alignment: Alignment | None = None
    indent_left: int | None = None
    indent_right: int | None = None
    indent_first_line: int | None = None
    spacing_before: int | None = None
    spacing_after: int | None = None
    line_spacing: int | None = None
    style_id: str | None = None
    style_name: str | None = None
    outline_level: int | None = None


# =============================================================================
# Primitives
# =============================================================================


class TextRun(BaseModel):
    text: str
    formatting: RunFormatting = Field(default_factory=RunFormatting)


class Paragraph(BaseModel):
    """A paragraph primitive with its runs and paragraph formatting."""

    kind: Literal["paragraph"] = "paragraph"
    id: str = Field(default_factory=new_id)
    runs: list[TextRun] = Field(default_factory=list)
    formatting: ParagraphFormatting = Field(default_factory=ParagraphFormatting)
    is_heading: bool = False
    heading_level: int | None = None
    list_level: int | None = None
    list_type: ListType | None = None

    @property
    def text(self) -> str:
        return "".join(run.text for run in self.runs)

    @classmethod
    def from_text(cls, text: str) -> "Paragraph":
        """Build an unformatted paragraph holding a single run."""
        return cls(runs=[TextRun(text=text)] if text else [])


class TableCell(BaseModel):
    content: list[Paragraph] = Field(default_factory=list)
    col_span: int | None = None
    row_span: int | None = None
    shading: str | None = None

    @property
    def text(self) -> str:
        return "\n".join(p.text for p in self.content)


class TableRow(BaseModel):
    cells: list[TableCell] = Field(default_factory=list)
    height: int | None = None
    is_header: bool = False


class Table(BaseModel):
    """A table primitive: a grid of cells holding nested paragraphs."""

    kind: Literal["table"] = "table"
    id: str = Field(default_factory=new_id)
    rows: list[TableRow] = Field(default_factory=list)
    columns: int = 0
    style: str | None = None


Block = Annotated[Union[Paragraph, Table], Field(discriminator="kind")]


class DocumentMetadata(BaseModel):
    """Optional core properties of a document, plus contract facts read from its text."""

    title: str | None = None
    author: str | None = None
    created: str | None = None
    vendor: str | None = None
    client: str | None = None
    effective_date: str | None = None
    total_value: str | None = None


class ExtractedDocument(BaseModel):
    """Output of the markup extractor: the ordered primitive stream."""

    blocks: list[Block] = Field(default_factory=list)
    metadata: DocumentMetadata = Field(default_factory=DocumentMetadata)
    metadata_warning: str | None = Field(
        default=None,
        description="Why optional metadata could not be read, if it could not",
    )
    styles: dict[str, ParagraphFormatting] = Field(default_factory=dict)

    @property
    def paragraphs(self) -> list[Paragraph]:
        return [b for b in self.blocks if isinstance(b, Paragraph)]

    @property
    def tables(self) -> list[Table]:
        return [b for b in self.blocks if isinstance(b, Table)]


# =============================================================================
# Sections
# =============================================================================


class Section(BaseModel):
    """
    A numbered and/or titled contiguous span of a document.

    The header paragraph (when there is one) is the first entry of
    ``paragraphs`` but is not part of ``body``.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    number: str | None = None
    title: str | None = None
    level: int = 1
    body: str = ""
    paragraphs: tuple[Paragraph, ...] = ()
    tables: tuple[Table, ...] = ()
    position: int = 0

    @property
    def heading(self) -> str:
        """Display label such as ``3.2. Payment Terms``."""
        prefix = f"{self.number}. " if self.number else ""
        return f"{prefix}{self.title or ''}".strip()


class ParsedDocument(BaseModel):
    """A document split into sections."""

    id: str = Field(default_factory=new_id)
    filename: str
    uploaded_at: datetime = Field(default_factory=datetime.utcnow)
    sections: list[Section] = Field(default_factory=list)
    raw_text: str = ""
    metadata: DocumentMetadata = Field(default_factory=DocumentMetadata)
    metadata_warning: str | None = None
    styles: dict[str, ParagraphFormatting] = Field(default_factory=dict)
    suppressed_count: int = 0

    def section_by_id(self, section_id: str) -> Section | None:
        for section in self.sections:
            if section.id == section_id:
                return section
        return None

    @property
    def full_text(self) -> str:
        """Section bodies joined the way the segmenter joins paragraphs."""
        return "\n\n".join(s.body for s in self.sections if s.body)
