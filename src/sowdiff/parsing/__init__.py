"""
Document parsing: markup extraction, formatting normalization and
section segmentation.
"""

from sowdiff.parsing.extractor import MarkupExtractor, extract_document
from sowdiff.parsing.headers import HeaderMatch, derive_level, detect_header, is_toc_entry
from sowdiff.parsing.segmenter import Segmentation, SectionSegmenter, segment_text

__all__ = [
    "MarkupExtractor",
    "extract_document",
    "HeaderMatch",
    "derive_level",
    "detect_header",
    "is_toc_entry",
    "Segmentation",
    "SectionSegmenter",
    "segment_text",
]
