"""
Markup extractor for DOCX containers.

Unpacks the container and turns the main WordprocessingML part into an
ordered stream of paragraph and table primitives, together with the named
style catalogue and the optional core-properties metadata.
"""

import io
import re
import zipfile
import zlib
from typing import Iterator

import structlog
from lxml import etree

from sowdiff.exceptions import ParseError
from sowdiff.models.document import (
    Block,
    DocumentMetadata,
    ExtractedDocument,
    ListType,
    Paragraph,
    ParagraphFormatting,
    RunFormatting,
    Table,
    TableCell,
    TableRow,
    TextRun,
)
from sowdiff.parsing.formatting import parse_paragraph_properties, parse_run_properties
from sowdiff.parsing.ooxml import NAMESPACES, OFFICE_DOCUMENT_REL, child, to_int, val, w

logger = structlog.get_logger(__name__)

DEFAULT_MAIN_PART = "word/document.xml"
STYLES_PART = "word/styles.xml"
CORE_PROPERTIES_PART = "docProps/core.xml"

_RUN_XPATH = (
    "./w:r | ./w:hyperlink/w:r | ./w:ins/w:r | ./w:smartTag/w:r"
    " | ./w:fldSimple/w:r | ./w:sdt/w:sdtContent/w:r"
)
_HEADING_STYLE = re.compile(r"^heading\s*(\d+)?", re.IGNORECASE)
_BODY_TEXT_OUTLINE_LEVEL = 9

# NotImplementedError: unsupported compression method. RuntimeError: encrypted member.
_ZIP_ERRORS = (zipfile.BadZipFile, zlib.error, OSError, EOFError, NotImplementedError, RuntimeError)


def _xml_parser() -> etree.XMLParser:
    return etree.XMLParser(resolve_entities=False, no_network=True, huge_tree=True)


class MarkupExtractor:
    """
    Extracts primitives from DOCX bytes.

    With ``include_formatting=False`` the extractor takes the fast path:
    every paragraph carries a single unformatted run and tables are dropped.
    """

    def extract(
        self,
        data: bytes,
        filename: str | None = None,
        include_formatting: bool = True,
    ) -> ExtractedDocument:
        try:
            archive = zipfile.ZipFile(io.BytesIO(data))
        except (*_ZIP_ERRORS, ValueError) as e:
            raise ParseError(f"cannot open document container: {e}", filename) from e

        with archive:
            body = self._read_body(archive, filename)
            styles = self._read_styles(archive) if include_formatting else {}
            metadata, warning = self._read_metadata(archive)
            blocks = list(self._iter_blocks(body, styles, include_formatting))

        document = ExtractedDocument(
            blocks=blocks,
            metadata=metadata,
            metadata_warning=warning,
            styles=styles,
        )
        logger.debug(
            "markup_extracted",
            filename=filename,
            paragraphs=len(document.paragraphs),
            tables=len(document.tables),
            styles=len(styles),
            rich=include_formatting,
        )
        return document

    # =========================================================================
    # Container parts
    # =========================================================================

    def _main_part_path(self, archive: zipfile.ZipFile) -> str:
        """Locate the main document part through the package relationships."""
        try:
            rels = etree.fromstring(archive.read("_rels/.rels"), _xml_parser())
        except (KeyError, etree.XMLSyntaxError, *_ZIP_ERRORS):
            return DEFAULT_MAIN_PART

        for rel in rels.findall("rel:Relationship", NAMESPACES):
            if rel.get("Type") == OFFICE_DOCUMENT_REL and rel.get("Target"):
                return rel.get("Target").lstrip("/")
        return DEFAULT_MAIN_PART

    def _read_body(self, archive: zipfile.ZipFile, filename: str | None) -> etree._Element:
        part = self._main_part_path(archive)
        try:
            content = archive.read(part)
        except KeyError as e:
            raise ParseError(f"missing main document part {part}", filename) from e
        except _ZIP_ERRORS as e:
            raise ParseError(f"cannot read main document part: {e}", filename) from e

        try:
            root = etree.fromstring(content, _xml_parser())
        except etree.XMLSyntaxError as e:
            raise ParseError(f"malformed document markup: {e}", filename) from e

        body = root.find(w("body"))
        if body is None:
            raise ParseError("document markup has no body", filename)
        return body

    def _read_styles(self, archive: zipfile.ZipFile) -> dict[str, ParagraphFormatting]:
        """Parse the named-style catalogue; an unreadable catalogue is treated as empty."""
        try:
            root = etree.fromstring(archive.read(STYLES_PART), _xml_parser())
        except KeyError:
            return {}
        except (etree.XMLSyntaxError, *_ZIP_ERRORS) as e:
            logger.warning("styles_unreadable", error=str(e))
            return {}

        styles: dict[str, ParagraphFormatting] = {}
        for style in root.findall(w("style")):
            style_id = style.get(w("styleId"))
            if not style_id:
                continue
            formatting = parse_paragraph_properties(style.find(w("pPr")))
            styles[style_id] = formatting.model_copy(
                update={"style_id": style_id, "style_name": val(child(style, "name"))}
            )
        return styles

    def _read_metadata(self, archive: zipfile.ZipFile) -> tuple[DocumentMetadata, str | None]:
        try:
            content = archive.read(CORE_PROPERTIES_PART)
        except KeyError:
            return DocumentMetadata(), None
        except _ZIP_ERRORS as e:
            logger.warning("metadata_unreadable", error=str(e))
            return DocumentMetadata(), f"core properties unreadable: {e}"

        try:
            root = etree.fromstring(content, _xml_parser())
        except etree.XMLSyntaxError as e:
            logger.warning("metadata_unreadable", error=str(e))
            return DocumentMetadata(), f"core properties malformed: {e}"

        def text_of(path: str) -> str | None:
            element = root.find(path, NAMESPACES)
            if element is None or not element.text:
                return None
            return element.text.strip() or None

        return (
            DocumentMetadata(
                title=text_of("dc:title"),
                author=text_of("dc:creator"),
                created=text_of("dcterms:created"),
            ),
            None,
        )

    # =========================================================================
    # Body primitives
    # =========================================================================

    def _iter_blocks(
        self,
        container: etree._Element,
        styles: dict[str, ParagraphFormatting],
        rich: bool,
    ) -> Iterator[Block]:
        """Walk body children in document order."""
        for element in container:
            if element.tag == w("p"):
                yield self._parse_paragraph(element, styles, rich)
            elif element.tag == w("tbl"):
                if rich:
                    yield self._parse_table(element, styles)
            elif element.tag == w("sdt"):
                content = element.find(w("sdtContent"))
                if content is not None:
                    yield from self._iter_blocks(content, styles, rich)
            elif element.tag == w("customXml"):
                yield from self._iter_blocks(element, styles, rich)

    def _parse_paragraph(
        self,
        p: etree._Element,
        styles: dict[str, ParagraphFormatting],
        rich: bool,
    ) -> Paragraph:
        runs: list[TextRun] = []
        for r in p.xpath(_RUN_XPATH, namespaces=NAMESPACES):
            text = _run_text(r)
            if not text:
                continue
            formatting = parse_run_properties(r.find(w("rPr"))) if rich else RunFormatting()
            runs.append(TextRun(text=text, formatting=formatting))

        if not rich:
            return Paragraph.from_text("".join(run.text for run in runs))

        ppr = p.find(w("pPr"))
        formatting = parse_paragraph_properties(ppr)
        style = styles.get(formatting.style_id) if formatting.style_id else None
        if style is not None and style.style_name:
            formatting = formatting.model_copy(update={"style_name": style.style_name})

        is_heading, heading_level = _heading_info(formatting, style)

        list_level = None
        list_type = None
        num_pr = child(ppr, "numPr")
        if num_pr is not None:
            list_level = to_int(val(child(num_pr, "ilvl")))
            style_name = (formatting.style_name or "").lower()
            list_type = ListType.NUMBER if "number" in style_name else ListType.BULLET

        return Paragraph(
            runs=runs,
            formatting=formatting,
            is_heading=is_heading,
            heading_level=heading_level,
            list_level=list_level,
            list_type=list_type,
        )

    def _parse_table(
        self,
        tbl: etree._Element,
        styles: dict[str, ParagraphFormatting],
    ) -> Table:
        style = val(child(child(tbl, "tblPr"), "tblStyle"))
        rows: list[TableRow] = []
        columns = 0
        # grid column -> cell that started a vertical merge there
        open_merges: dict[int, TableCell] = {}

        for tr in tbl.findall(w("tr")):
            tr_pr = child(tr, "trPr")
            header = child(tr_pr, "tblHeader")
            row = TableRow(
                height=to_int(val(child(tr_pr, "trHeight"))),
                is_header=header is not None and (val(header) or "true").lower() not in {"0", "false", "off"},
            )

            grid_col = 0
            for tc in tr.findall(w("tc")):
                tc_pr = child(tc, "tcPr")
                span = to_int(val(child(tc_pr, "gridSpan")))
                width = span or 1
                v_merge = child(tc_pr, "vMerge")
                merge_mode = (val(v_merge) or "continue") if v_merge is not None else None

                if merge_mode == "continue" and grid_col in open_merges:
                    origin = open_merges[grid_col]
                    origin.row_span = (origin.row_span or 1) + 1
                    grid_col += width
                    continue

                cell = TableCell(
                    content=[self._parse_paragraph(p, styles, True) for p in tc.findall(w("p"))],
                    col_span=span,
                    shading=val(child(tc_pr, "shd"), "fill"),
                )
                if merge_mode == "restart":
                    cell.row_span = 1
                    open_merges[grid_col] = cell
                else:
                    open_merges.pop(grid_col, None)

                row.cells.append(cell)
                grid_col += width

            rows.append(row)
            columns = max(columns, grid_col)

        return Table(rows=rows, columns=columns, style=style)


def _run_text(r: etree._Element) -> str:
    parts = []
    for node in r:
        if node.tag == w("t"):
            parts.append(node.text or "")
        elif node.tag == w("tab"):
            parts.append("\t")
        elif node.tag in (w("br"), w("cr")):
            parts.append("\n")
        elif node.tag == w("noBreakHyphen"):
            parts.append("-")
    return "".join(parts)


def _heading_info(
    formatting: ParagraphFormatting,
    style: ParagraphFormatting | None,
) -> tuple[bool, int | None]:
    """Heading flag and level from the paragraph style or its outline level."""
    for name in (formatting.style_id, formatting.style_name):
        match = _HEADING_STYLE.match(name or "")
        if match:
            return True, int(match.group(1)) if match.group(1) else None

    outline = formatting.outline_level
    if outline is None and style is not None:
        outline = style.outline_level
    if outline is not None and 0 <= outline < _BODY_TEXT_OUTLINE_LEVEL:
        return True, outline + 1

    return False, None


def extract_document(
    data: bytes,
    filename: str | None = None,
    include_formatting: bool = True,
) -> ExtractedDocument:
    """Convenience wrapper around ``MarkupExtractor.extract``."""
    return MarkupExtractor().extract(data, filename, include_formatting)
