"""Service layer for sowdiff."""

from sowdiff.services.comparison_service import ComparisonService
from sowdiff.services.document_loader import DocumentLoader, output_filename
from sowdiff.services.llm_service import LLMService
from sowdiff.services.review_service import ReviewService, classify_failure

__all__ = [
    "ComparisonService",
    "DocumentLoader",
    "output_filename",
    "LLMService",
    "ReviewService",
    "classify_failure",
]
