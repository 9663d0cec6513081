"""
Lexical scans: acronyms, domain jargon, contract facts, key terms and
word-level text diffs.

These are regex sweeps over document text. They enrich the comparison report
but play no part in segmentation or alignment.
"""

import difflib
import re
from typing import Sequence

from sowdiff.models.analysis import (
    AcronymInfo,
    AcronymStatus,
    DiffPart,
    JargonAssessment,
    JargonInfo,
    KeyTerms,
    TextDiff,
)
from sowdiff.models.document import Section

_ACRONYM = re.compile(r"\b([A-Z]{2,6})\b")

# Upper-case words that are not acronyms
COMMON_UPPERCASE_WORDS = frozenset({
    "THE", "AND", "FOR", "ARE", "BUT", "NOT", "YOU", "ALL", "CAN", "HAD",
    "HER", "WAS", "ONE", "OUR", "OUT", "OR", "TO", "IN", "OF", "IT", "IS",
    "AS", "AT", "BY", "ON",
})

JARGON_PATTERNS: tuple[re.Pattern, ...] = (
    re.compile(
        r"\b(?:deliverable|milestone|scope|SLA|KPI|stakeholder|vendor|contractor|subcontractor)\b",
        re.IGNORECASE,
    ),
    re.compile(r"\b(?:indemnification|liability|termination|confidential|proprietary)\b", re.IGNORECASE),
    re.compile(r"\b(?:phase|sprint|iteration|release|deployment|implementation)\b", re.IGNORECASE),
)

_STATUS_ORDER = {
    AcronymStatus.UNDEFINED: 0,
    AcronymStatus.NEW: 1,
    AcronymStatus.MISSING: 2,
    AcronymStatus.OK: 3,
}


# =============================================================================
# Acronyms
# =============================================================================


def extract_acronyms(text: str) -> set[str]:
    """Runs of 2-6 capital letters, minus common upper-case words."""
    return {m for m in _ACRONYM.findall(text) if m not in COMMON_UPPERCASE_WORDS}


def is_acronym_defined(text: str, acronym: str) -> bool:
    """True when the text spells the acronym out, e.g. ``API (Application ...)``."""
    escaped = re.escape(acronym)
    patterns = (
        rf"{escaped}\s*\([^)]+\)",
        rf"\([^)]*{escaped}[^)]*\)",
        rf'"{escaped}"',
        rf"{escaped}\s*[-–—:]\s*\w+",
    )
    return any(re.search(p, text, re.IGNORECASE) for p in patterns)


def _sections_containing(sections: Sequence[Section], term: str, ignore_case: bool = False) -> list[str]:
    if ignore_case:
        term = term.lower()
        return [s.id for s in sections if term in s.body.lower()]
    return [s.id for s in sections if term in s.body]


def analyze_acronyms(
    template_text: str,
    draft_text: str,
    draft_sections: Sequence[Section] = (),
    definitions: dict[str, str] | None = None,
) -> list[AcronymInfo]:
    """
    Classify every acronym seen in either document.

    ``undefined``: in the draft but never spelled out where it appears.
    ``new``: only in the draft, spelled out there. ``missing``: only in the
    template. ``ok``: everything else. Results are ordered by that status,
    then alphabetically.
    """
    template_acronyms = extract_acronyms(template_text)
    draft_acronyms = extract_acronyms(draft_text)
    definitions = definitions or {}

    results = []
    for acronym in template_acronyms | draft_acronyms:
        in_template = acronym in template_acronyms
        in_draft = acronym in draft_acronyms
        defined_in_template = in_template and is_acronym_defined(template_text, acronym)
        defined_in_draft = in_draft and is_acronym_defined(draft_text, acronym)

        status = AcronymStatus.OK
        if in_draft and not in_template:
            status = AcronymStatus.NEW if defined_in_draft else AcronymStatus.UNDEFINED
        elif in_template and not in_draft:
            status = AcronymStatus.MISSING
        elif in_draft and not defined_in_draft and not defined_in_template:
            status = AcronymStatus.UNDEFINED

        results.append(
            AcronymInfo(
                acronym=acronym,
                occurrences=len(re.findall(rf"\b{re.escape(acronym)}\b", draft_text)),
                in_template=in_template,
                in_draft=in_draft,
                defined_in_template=defined_in_template,
                defined_in_draft=defined_in_draft,
                status=status,
                suggested_definition=definitions.get(acronym),
                section_ids=_sections_containing(draft_sections, acronym) if in_draft else [],
            )
        )

    results.sort(key=lambda a: (_STATUS_ORDER[a.status], a.acronym))
    return results


# =============================================================================
# Jargon
# =============================================================================


def extract_jargon(text: str) -> set[str]:
    """Domain terms found in the text, lower-cased."""
    found: set[str] = set()
    for pattern in JARGON_PATTERNS:
        found.update(m.lower() for m in pattern.findall(text))
    return found


def analyze_jargon(
    template_text: str,
    draft_text: str,
    draft_sections: Sequence[Section] = (),
    assessments: dict[str, JargonAssessment] | None = None,
) -> list[JargonInfo]:
    """Draft domain terms; terms the model did not assess count as standard."""
    template_terms = extract_jargon(template_text)
    assessments = assessments or {}

    results = []
    for term in sorted(extract_jargon(draft_text)):
        assessment = assessments.get(term) or JargonAssessment()
        results.append(
            JargonInfo(
                term=term,
                occurrences=len(re.findall(rf"\b{re.escape(term)}\b", draft_text, re.IGNORECASE)),
                in_template=term in template_terms,
                is_standard=assessment.is_standard,
                alternatives=assessment.alternatives,
                section_ids=_sections_containing(draft_sections, term, ignore_case=True),
            )
        )
    return results


# =============================================================================
# Contract facts and key terms
# =============================================================================


def _labelled(labels: str) -> re.Pattern:
    return re.compile(rf"^[ \t]*(?:{labels})[ \t]*:[ \t]*(\S.*?)[ \t]*$", re.IGNORECASE | re.MULTILINE)


_FACT_PATTERNS = {
    "title": _labelled(r"statement\s+of\s+work|sow"),
    "vendor": _labelled(r"vendor|provider|contractor"),
    "client": _labelled(r"client|customer|buyer"),
    "effective_date": _labelled(r"(?:effective|start)\s+date"),
    "total_value": re.compile(
        r"(?:total\s+value|contract\s+value|total\s+amount)[ \t]*:?[ \t]*\$?(\d[\d,]*(?:\.\d{2})?)",
        re.IGNORECASE,
    ),
}

_AMOUNT = re.compile(r"\$[\d,]+(?:\.\d{2})?|\b\d+(?:,\d{3})*(?:\.\d{2})?\s*(?:USD|dollars?)\b", re.IGNORECASE)
_MONTH = r"(?:Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)[a-z]*\.?"
_DATE = re.compile(
    r"\b(?:\d{1,2}[-/]\d{1,2}[-/]\d{2,4}"
    r"|\d{4}[-/]\d{1,2}[-/]\d{1,2}"
    rf"|{_MONTH}\s+\d{{1,2}},?\s+\d{{4}}"
    rf"|\d{{1,2}}\s+{_MONTH}\s+\d{{4}})\b",
    re.IGNORECASE,
)
_LIST_ITEM = re.compile(r"^\s*(?:[-•*]|\d+\.|\([a-z]\))\s*(\S[^\n]*)$", re.IGNORECASE | re.MULTILINE)

MAX_DELIVERABLES = 20
MIN_DELIVERABLE_CHARS = 6


def extract_contract_facts(text: str) -> dict[str, str]:
    """
    Labelled contract facts such as ``Vendor: Acme Corp``.

    Labels must start a line and be followed by a colon; the total value is
    the number after a value label, without currency sign.
    """
    facts = {}
    for name, pattern in _FACT_PATTERNS.items():
        match = pattern.search(text)
        if match:
            facts[name] = match.group(1).strip()
    return facts


def _unique(items) -> list[str]:
    return list(dict.fromkeys(items))


def extract_key_terms(text: str) -> KeyTerms:
    """Monetary amounts, dates and list-item deliverables, first occurrence order."""
    deliverables = [
        m.group(1).strip()
        for m in _LIST_ITEM.finditer(text)
        if len(m.group(1).strip()) >= MIN_DELIVERABLE_CHARS
    ]
    return KeyTerms(
        amounts=_unique(m.group(0) for m in _AMOUNT.finditer(text)),
        dates=_unique(m.group(0) for m in _DATE.finditer(text)),
        deliverables=_unique(deliverables)[:MAX_DELIVERABLES],
    )


# =============================================================================
# Text diff
# =============================================================================

_WORDS = re.compile(r"\s+|\S+")


def text_diff(old_text: str, new_text: str) -> TextDiff:
    """Word-level diff; whitespace runs are kept as their own tokens."""
    old_tokens = _WORDS.findall(old_text or "")
    new_tokens = _WORDS.findall(new_text or "")
    matcher = difflib.SequenceMatcher(None, old_tokens, new_tokens, autojunk=False)

    parts: list[DiffPart] = []
    added = removed = 0
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "equal":
            parts.append(DiffPart(value="".join(old_tokens[i1:i2])))
            continue
        if i2 > i1:
            parts.append(DiffPart(value="".join(old_tokens[i1:i2]), removed=True))
            removed += 1
        if j2 > j1:
            parts.append(DiffPart(value="".join(new_tokens[j1:j2]), added=True))
            added += 1

    return TextDiff(parts=parts, added_count=added, removed_count=removed)
