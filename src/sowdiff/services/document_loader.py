"""
Document loading service.

Turns DOCX bytes, files or plain text into a ``ParsedDocument`` by running
the markup extractor and the section segmenter.
"""

from pathlib import Path

import structlog

from sowdiff.formatting.lexicon import extract_contract_facts
from sowdiff.models.document import DocumentMetadata, ParsedDocument
from sowdiff.parsing.extractor import MarkupExtractor
from sowdiff.parsing.segmenter import SectionSegmenter

logger = structlog.get_logger(__name__)

DOCX_SUFFIX = ".docx"


def with_contract_facts(metadata: DocumentMetadata, text: str) -> DocumentMetadata:
    """Fill metadata fields the core properties left empty from labelled lines in the text."""
    facts = extract_contract_facts(text)
    return metadata.model_copy(
        update={name: value for name, value in facts.items() if getattr(metadata, name) is None}
    )


class DocumentLoader:
    """
    Service for loading and segmenting contract documents.

    Parsing is all-or-nothing: a ``ParseError`` leaves no partial document.
    """

    def __init__(
        self,
        extractor: MarkupExtractor | None = None,
        segmenter: SectionSegmenter | None = None,
    ):
        self.extractor = extractor or MarkupExtractor()
        self.segmenter = segmenter or SectionSegmenter()

    def load_bytes(
        self,
        data: bytes,
        filename: str,
        include_formatting: bool = True,
    ) -> ParsedDocument:
        extracted = self.extractor.extract(data, filename, include_formatting)
        segmentation = self.segmenter.segment(extracted.blocks)
        raw_text = "\n".join(p.text for p in extracted.paragraphs)

        document = ParsedDocument(
            filename=filename,
            sections=segmentation.sections,
            raw_text=raw_text,
            metadata=with_contract_facts(extracted.metadata, raw_text),
            metadata_warning=extracted.metadata_warning,
            styles=extracted.styles,
            suppressed_count=segmentation.suppressed_count,
        )

        logger.info(
            "document_parsed",
            filename=filename,
            sections=len(document.sections),
            suppressed=document.suppressed_count,
            metadata_warning=document.metadata_warning,
        )
        return document

    def load_path(self, file_path: Path | str, include_formatting: bool = True) -> ParsedDocument:
        """Load a document from a DOCX file."""
        file_path = Path(file_path)

        if not file_path.exists():
            raise FileNotFoundError(f"Document not found: {file_path}")

        if file_path.suffix.lower() != DOCX_SUFFIX:
            raise ValueError(f"Expected DOCX file, got: {file_path.suffix}")

        return self.load_bytes(file_path.read_bytes(), file_path.name, include_formatting)

    def load_text(self, text: str, filename: str = "text_input") -> ParsedDocument:
        """Segment plain text, one paragraph per non-blank line."""
        segmentation = self.segmenter.segment_lines(
            line for line in text.splitlines() if line.strip()
        )
        document = ParsedDocument(
            filename=filename,
            sections=segmentation.sections,
            raw_text=text,
            metadata=with_contract_facts(DocumentMetadata(), text),
            suppressed_count=segmentation.suppressed_count,
        )
        logger.info("text_parsed", filename=filename, sections=len(document.sections))
        return document


def output_filename(filename: str, suffix: str = "_reviewed") -> str:
    """
    Derive the output name for a regenerated document.

    ``draft.docx`` becomes ``draft_reviewed.docx``; names without an
    extension get ``.docx`` appended.
    """
    path = Path(filename)
    extension = path.suffix or DOCX_SUFFIX
    return f"{path.stem}{suffix}{extension}"
