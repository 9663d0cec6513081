"""
Pydantic models for sowdiff.

This module contains all data models used throughout the application:
- Document models (markup primitives, sections, parsed documents)
- Analysis models (alignment, formatting differences, review findings)
- API models for request/response schemas
"""

from sowdiff.models.document import (
    Alignment,
    Block,
    DocumentMetadata,
    ExtractedDocument,
    ListType,
    Paragraph,
    ParagraphFormatting,
    ParsedDocument,
    RunFormatting,
    Section,
    Table,
    TableCell,
    TableRow,
    TextRun,
)
from sowdiff.models.analysis import (
    AcronymInfo,
    AcronymStatus,
    AlignmentEdge,
    AlignmentResult,
    AnalysisFailure,
    AnalysisResult,
    ComparisonReport,
    DiffPart,
    DifferenceLocation,
    DifferenceType,
    FailureKind,
    FixType,
    FormattingAnalysis,
    FormattingDifference,
    FormattingFix,
    FormattingSummary,
    GlobalAnalysis,
    Issue,
    IssueCategory,
    IssueCounts,
    IssueType,
    JargonAssessment,
    JargonInfo,
    KeyTermComparison,
    KeyTerms,
    MatchStrategy,
    ScopeChange,
    SectionAnalysis,
    SectionReport,
    SectionStatus,
    Severity,
    TextDiff,
    ValueChange,
)

__all__ = [
    # Document models
    "Alignment",
    "Block",
    "DocumentMetadata",
    "ExtractedDocument",
    "ListType",
    "Paragraph",
    "ParagraphFormatting",
    "ParsedDocument",
    "RunFormatting",
    "Section",
    "Table",
    "TableCell",
    "TableRow",
    "TextRun",
    # Analysis models
    "AcronymInfo",
    "AcronymStatus",
    "AlignmentEdge",
    "AlignmentResult",
    "AnalysisFailure",
    "AnalysisResult",
    "ComparisonReport",
    "DiffPart",
    "DifferenceLocation",
    "DifferenceType",
    "FailureKind",
    "FixType",
    "FormattingAnalysis",
    "FormattingDifference",
    "FormattingFix",
    "FormattingSummary",
    "GlobalAnalysis",
    "Issue",
    "IssueCategory",
    "IssueCounts",
    "IssueType",
    "JargonAssessment",
    "JargonInfo",
    "KeyTermComparison",
    "KeyTerms",
    "MatchStrategy",
    "ScopeChange",
    "SectionAnalysis",
    "SectionReport",
    "SectionStatus",
    "Severity",
    "TextDiff",
    "ValueChange",
]
