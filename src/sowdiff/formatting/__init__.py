"""Formatting comparison and lexical scans."""

from sowdiff.formatting.differ import FormattingDiffer, apply_fix
from sowdiff.formatting.lexicon import (
    analyze_acronyms,
    analyze_jargon,
    extract_acronyms,
    extract_contract_facts,
    extract_key_terms,
    is_acronym_defined,
    text_diff,
)

__all__ = [
    "FormattingDiffer",
    "apply_fix",
    "analyze_acronyms",
    "analyze_jargon",
    "extract_acronyms",
    "extract_contract_facts",
    "extract_key_terms",
    "is_acronym_defined",
    "text_diff",
]
