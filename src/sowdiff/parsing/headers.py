"""Header detection rules for contract sections.

Header recognition is an ordered list of (name, rule) pairs. Each rule
takes the trimmed paragraph text (and the paragraph itself, when one is
available) and returns a ``HeaderMatch`` or ``None``; the first match wins.
The tables here are read-only reference data shared by every segmentation.
"""

import re
from dataclasses import dataclass
from typing import Callable

from sowdiff.models.document import Paragraph

MIN_HEADER_LENGTH = 3
MAX_HEADER_LENGTH = 150
UNTITLED = "Untitled"


@dataclass(frozen=True)
class HeaderMatch:
    """A recognised section header."""
    number: str | None
    title: str
    rule: str


HeaderRule = Callable[[str, Paragraph | None], HeaderMatch | None]


# =============================================================================
# Table of contents
# =============================================================================

_TOC_ENTRY = re.compile(r"(?:[.·]{3,}|…+)\s*\d+\s*$|\t+\d+\s*$")
_TOC_TITLE = re.compile(r"^(?:table\s+of\s+contents|contents)$", re.IGNORECASE)


def is_toc_entry(text: str) -> bool:
    """Leader dots, middle dots, ellipses or tabs followed by a page number."""
    return bool(_TOC_ENTRY.search(text))


def is_toc_title(text: str) -> bool:
    return bool(_TOC_TITLE.match(text.strip()))


# =============================================================================
# Numbering tokens
# =============================================================================

_DOTTED_WITH_PERIOD = re.compile(r"^(\d+(?:\.\d+)*)\.\s+(.+)$")
_DOTTED_BARE = re.compile(r"^(\d+(?:\.\d+)+)\s+(.+)$")
_KEYWORD = re.compile(
    r"^(?i:section|article)\s+(\d+(?:\.\d+)*|[IVXLCDM]+|[A-Z])\b[:.]?\s*(.*)$"
)
_ROMAN = re.compile(r"^(I|i|[IVXLCDM]{2,}|[ivxlcdm]{2,})\.\s+(.+)$")
_LETTER = re.compile(r"^([A-Za-z])\.\s+(.+)$")
_PARENTHETICAL = re.compile(r"^(\([A-Za-z0-9]{1,4}\))\.\s+(.+)$")

_ROMAN_TOKEN = re.compile(r"^(?:I|i|[IVXLCDM]{2,}|[ivxlcdm]{2,})$")
_LETTER_TOKEN = re.compile(r"^[A-Za-z]$")


def derive_level(number: str | None) -> int:
    """Nesting depth implied by a numbering token.

    Dotted numerics count one level per dot, roman numerals are top level,
    single letters sit at level 2 and parenthesised tokens at level 3.
    """
    if not number:
        return 1
    if number.startswith("("):
        return 3
    if "." in number:
        return number.count(".") + 1
    if _ROMAN_TOKEN.match(number):
        return 1
    if _LETTER_TOKEN.match(number):
        return 2
    return 1


def _numbered(pattern: re.Pattern, name: str) -> HeaderRule:
    def rule(text: str, paragraph: Paragraph | None) -> HeaderMatch | None:
        match = pattern.match(text)
        if match is None:
            return None
        return HeaderMatch(
            number=match.group(1),
            title=match.group(2).strip() or UNTITLED,
            rule=name,
        )

    return rule


# =============================================================================
# Unnumbered headers
# =============================================================================

TITLE_VOCABULARY: tuple[re.Pattern, ...] = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"^executive\s+summary$",
        r"^scope\s+of\s+(?:work|services)$",
        r"^deliverables$",
        r"^(?:timeline|milestones?)$",
        r"^(?:payment\s+terms?|pricing|fees?)$",
        r"^(?:terms?\s+and\s+termination|termination)$",
        r"^confidentiality$",
        r"^intellectual\s+property$",
        r"^(?:limitation\s+of\s+)?liability$",
        r"^indemnification$",
        r"^warrant(?:y|ies)$",
        r"^(?:service\s+level\s+agreement|sla)$",
        r"^acceptance\s+criteria$",
        r"^definitions?$",
        r"^(?:background|introduction|overview)$",
        r"^(?:assumptions|dependencies|exclusions)$",
        r"^(?:appendix|exhibit|schedule)\s*[a-z0-9]*$",
    )
)


def _heading_style(text: str, paragraph: Paragraph | None) -> HeaderMatch | None:
    if paragraph is None or not paragraph.is_heading:
        return None
    return HeaderMatch(number=None, title=text, rule="heading_style")


def _title_vocabulary(text: str, paragraph: Paragraph | None) -> HeaderMatch | None:
    for pattern in TITLE_VOCABULARY:
        if pattern.match(text):
            return HeaderMatch(number=None, title=text, rule="title_vocabulary")
    return None


def _all_caps(text: str, paragraph: Paragraph | None) -> HeaderMatch | None:
    if len(text) > 3 and text == text.upper() and any(c.isalpha() for c in text):
        return HeaderMatch(number=None, title=text, rule="all_caps")
    return None


# Roman numerals are tried before single letters. "I." is the only single
# character read as roman; "C.", "D.", "V." and the like are letters.
HEADER_RULES: tuple[tuple[str, HeaderRule], ...] = (
    ("dotted_numeric", _numbered(_DOTTED_WITH_PERIOD, "dotted_numeric")),
    ("dotted_numeric_bare", _numbered(_DOTTED_BARE, "dotted_numeric_bare")),
    ("section_keyword", _numbered(_KEYWORD, "section_keyword")),
    ("roman", _numbered(_ROMAN, "roman")),
    ("letter", _numbered(_LETTER, "letter")),
    ("parenthetical", _numbered(_PARENTHETICAL, "parenthetical")),
    ("heading_style", _heading_style),
    ("title_vocabulary", _title_vocabulary),
    ("all_caps", _all_caps),
)


def detect_header(text: str, paragraph: Paragraph | None = None) -> HeaderMatch | None:
    """
    Decide whether a paragraph opens a new section.

    Args:
        text: Paragraph text
        paragraph: The paragraph primitive, for style-based detection

    Returns:
        The first matching rule's result, or None for body text
    """
    trimmed = text.strip()
    if not MIN_HEADER_LENGTH <= len(trimmed) <= MAX_HEADER_LENGTH:
        return None
    if is_toc_entry(trimmed):
        return None

    for _, rule in HEADER_RULES:
        match = rule(trimmed, paragraph)
        if match is not None:
            return match
    return None
