"""
Section segmenter.

Partitions the ordered primitive stream into ``Section`` records in one
pass. Non-empty, non-suppressed paragraphs belong to exactly one section;
tables belong to the section open when they are encountered.
"""

from dataclasses import dataclass, field
from typing import Iterable

import structlog

from sowdiff.models.document import Block, Paragraph, Section, Table
from sowdiff.parsing.headers import HeaderMatch, derive_level, detect_header, is_toc_entry, is_toc_title

logger = structlog.get_logger(__name__)

INTRODUCTION_TITLE = "Introduction"
TOC_EXIT_LENGTH = 60
BODY_SEPARATOR = "\n\n"


@dataclass
class Segmentation:
    """Sections of one document plus the count of suppressed TOC paragraphs."""
    sections: list[Section]
    suppressed_count: int = 0


@dataclass
class _OpenSection:
    header: HeaderMatch | None
    paragraphs: list[Paragraph] = field(default_factory=list)
    body: list[str] = field(default_factory=list)
    tables: list[Table] = field(default_factory=list)

    def close(self, position: int) -> Section:
        if self.header is None:
            number, title = None, INTRODUCTION_TITLE
        else:
            number, title = self.header.number, self.header.title
        return Section(
            number=number,
            title=title,
            level=derive_level(number),
            body=BODY_SEPARATOR.join(self.body),
            paragraphs=tuple(self.paragraphs),
            tables=tuple(self.tables),
            position=position,
        )


class SectionSegmenter:
    """Splits a primitive stream into sections using the header rules."""

    def segment(self, blocks: Iterable[Block]) -> Segmentation:
        sections: list[Section] = []
        current: _OpenSection | None = None
        in_toc = False
        suppressed = 0

        def open_section(header: HeaderMatch | None) -> _OpenSection:
            if current is not None:
                sections.append(current.close(len(sections)))
            return _OpenSection(header=header)

        for block in blocks:
            if isinstance(block, Table):
                if current is None:
                    current = open_section(None)
                current.tables.append(block)
                continue

            text = block.text.strip()
            if not text:
                continue

            if is_toc_title(text):
                in_toc = True
                suppressed += 1
                continue

            if is_toc_entry(text):
                if in_toc:
                    suppressed += 1
                    continue
            elif in_toc and len(text) > TOC_EXIT_LENGTH:
                in_toc = False

            header = detect_header(text, block)
            if header is not None:
                in_toc = False
                current = open_section(header)
                current.paragraphs.append(block)
                continue

            if in_toc:
                suppressed += 1
                continue

            if current is None:
                current = open_section(None)
            current.paragraphs.append(block)
            current.body.append(text)

        if current is not None:
            sections.append(current.close(len(sections)))

        logger.debug("document_segmented", sections=len(sections), suppressed=suppressed)
        return Segmentation(sections=sections, suppressed_count=suppressed)

    def segment_lines(self, lines: Iterable[str]) -> Segmentation:
        """Segment plain text lines with the same rules as paragraphs."""
        return self.segment(Paragraph.from_text(line) for line in lines)


def segment_text(text: str) -> Segmentation:
    """Segment a plain-text document, one paragraph per non-blank line."""
    return SectionSegmenter().segment_lines(line for line in text.splitlines() if line.strip())
