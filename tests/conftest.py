"""Shared pytest fixtures and builders for the sowdiff test suite."""

import io
import zipfile
from unittest.mock import AsyncMock, MagicMock
from xml.sax.saxutils import escape

import pytest

from sowdiff.config import Settings, get_settings
from sowdiff.models.document import Paragraph, RunFormatting, Section, TextRun
from sowdiff.parsing.headers import derive_level


W_NS = "http://schemas.openxmlformats.org/wordprocessingml/2006/main"
OFFICE_DOCUMENT_REL = (
    "http://schemas.openxmlformats.org/officeDocument/2006/relationships/officeDocument"
)


# ---------------------------------------------------------------------------
# Settings cache clearing (autouse)
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Clear the @lru_cache settings singleton between tests."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings():
    """Settings with no provider credentials, isolated from the environment."""
    return Settings(
        _env_file=None,
        anthropic_api_key="",
        openai_api_key="",
        azure_openai_api_key="",
        azure_openai_endpoint="",
        review_batch_size=2,
    )


# ---------------------------------------------------------------------------
# In-memory DOCX builder
# ---------------------------------------------------------------------------

class DocxBuilder:
    """Builds minimal WordprocessingML containers from XML fragments."""

    def run(self, text, bold=None, italic=None, size=None, font=None):
        props = []
        if bold is not None:
            props.append("<w:b/>" if bold else '<w:b w:val="0"/>')
        if italic is not None:
            props.append("<w:i/>" if italic else '<w:i w:val="0"/>')
        if font:
            props.append(f'<w:rFonts w:ascii="{font}" w:hAnsi="{font}"/>')
        if size is not None:
            props.append(f'<w:sz w:val="{int(size * 2)}"/>')
        rpr = f"<w:rPr>{''.join(props)}</w:rPr>" if props else ""
        return f'<w:r>{rpr}<w:t xml:space="preserve">{escape(text)}</w:t></w:r>'

    def para(self, *runs, style=None, jc=None, spacing_after=None, indent_left=None,
             outline=None, num_level=None):
        props = []
        if style:
            props.append(f'<w:pStyle w:val="{style}"/>')
        if num_level is not None:
            props.append(f'<w:numPr><w:ilvl w:val="{num_level}"/><w:numId w:val="1"/></w:numPr>')
        if spacing_after is not None:
            props.append(f'<w:spacing w:after="{spacing_after}"/>')
        if indent_left is not None:
            props.append(f'<w:ind w:left="{indent_left}"/>')
        if jc:
            props.append(f'<w:jc w:val="{jc}"/>')
        if outline is not None:
            props.append(f'<w:outlineLvl w:val="{outline}"/>')
        ppr = f"<w:pPr>{''.join(props)}</w:pPr>" if props else ""
        content = "".join(r if r.startswith("<") else self.run(r) for r in runs)
        return f"<w:p>{ppr}{content}</w:p>"

    def table(self, rows):
        """``rows`` is a list of lists of cell XML or plain cell text."""
        xml_rows = []
        for row in rows:
            cells = "".join(
                cell if cell.startswith("<w:tc") else f"<w:tc>{self.para(cell)}</w:tc>"
                for cell in row
            )
            xml_rows.append(f"<w:tr>{cells}</w:tr>")
        return f"<w:tbl><w:tblPr><w:tblStyle w:val=\"TableGrid\"/></w:tblPr>{''.join(xml_rows)}</w:tbl>"

    def styles(self, *styles):
        """``styles`` are (style_id, name, outline_level or None) tuples."""
        entries = []
        for style_id, name, outline in styles:
            ppr = f'<w:pPr><w:outlineLvl w:val="{outline}"/></w:pPr>' if outline is not None else ""
            entries.append(
                f'<w:style w:type="paragraph" w:styleId="{style_id}">'
                f'<w:name w:val="{name}"/>{ppr}</w:style>'
            )
        return f'<w:styles xmlns:w="{W_NS}">{"".join(entries)}</w:styles>'

    def core(self, title=None, creator=None, created=None):
        parts = []
        if title:
            parts.append(f"<dc:title>{escape(title)}</dc:title>")
        if creator:
            parts.append(f"<dc:creator>{escape(creator)}</dc:creator>")
        if created:
            parts.append(f'<dcterms:created xsi:type="dcterms:W3CDTF">{created}</dcterms:created>')
        return (
            '<cp:coreProperties '
            'xmlns:cp="http://schemas.openxmlformats.org/package/2006/metadata/core-properties" '
            'xmlns:dc="http://purl.org/dc/elements/1.1/" '
            'xmlns:dcterms="http://purl.org/dc/terms/" '
            'xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance">'
            f"{''.join(parts)}</cp:coreProperties>"
        )

    def document_xml(self, *blocks):
        return f'<w:document xmlns:w="{W_NS}"><w:body>{"".join(blocks)}</w:body></w:document>'

    def build(self, *blocks, styles=None, core=None, document_xml=None,
              main_part="word/document.xml", rels=True):
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w") as archive:
            if rels:
                archive.writestr(
                    "_rels/.rels",
                    '<Relationships xmlns="http://schemas.openxmlformats.org/package/2006/relationships">'
                    f'<Relationship Id="rId1" Type="{OFFICE_DOCUMENT_REL}" Target="{main_part}"/>'
                    "</Relationships>",
                )
            archive.writestr(main_part, document_xml if document_xml is not None else self.document_xml(*blocks))
            if styles is not None:
                archive.writestr("word/styles.xml", styles)
            if core is not None:
                archive.writestr("docProps/core.xml", core)
        return buffer.getvalue()


@pytest.fixture
def docx():
    return DocxBuilder()


# ---------------------------------------------------------------------------
# Section factories
# ---------------------------------------------------------------------------

@pytest.fixture
def make_section():
    """Factory for Section records with an optional header paragraph."""
    def _make(number=None, title=None, body="", level=None, paragraphs=None, tables=(), position=0):
        return Section(
            number=number,
            title=title,
            level=level if level is not None else derive_level(number),
            body=body,
            paragraphs=tuple(paragraphs or ()),
            tables=tuple(tables),
            position=position,
        )
    return _make


@pytest.fixture
def make_paragraph():
    """Factory for a paragraph with one run per (text, RunFormatting kwargs) pair."""
    def _make(*runs, **formatting):
        from sowdiff.models.document import ParagraphFormatting

        heading = formatting.pop("is_heading", False)
        heading_level = formatting.pop("heading_level", None)
        text_runs = [
            TextRun(text=r, formatting=RunFormatting()) if isinstance(r, str)
            else TextRun(text=r[0], formatting=RunFormatting(**r[1]))
            for r in runs
        ]
        return Paragraph(
            runs=text_runs,
            formatting=ParagraphFormatting(**formatting),
            is_heading=heading,
            heading_level=heading_level,
        )
    return _make


# ---------------------------------------------------------------------------
# Mock services
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_llm():
    """Mock LLMService avoiding API calls."""
    mock = MagicMock()
    mock.generate = AsyncMock(return_value=("Mocked LLM response", "mock-model"))
    mock.generate_json = AsyncMock(return_value=({}, "mock-model"))
    mock.health_check = MagicMock(return_value={"anthropic": True})
    return mock


@pytest.fixture
def sow_template_text():
    """Minimal SOW template for fast tests."""
    return """STATEMENT OF WORK

This Statement of Work is entered into between ACME Corp and the Contractor.

1. Scope of Work
The Contractor shall provide consulting services for the ERP implementation.

2. Deliverables
The Contractor shall deliver a project plan and a final report.

3. Payment Terms
Invoices are payable within 30 days of receipt.

4. Confidentiality
Each party shall keep the other party's proprietary information confidential.
"""
