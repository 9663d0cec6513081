"""Section alignment between a template and a draft."""

from sowdiff.alignment.aligner import (
    LENIENT,
    STRICT,
    AlignerConfig,
    SectionAligner,
    align_sections,
)
from sowdiff.alignment.similarity import token_set_similarity

__all__ = [
    "LENIENT",
    "STRICT",
    "AlignerConfig",
    "SectionAligner",
    "align_sections",
    "token_set_similarity",
]
