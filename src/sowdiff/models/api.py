"""
API request and response models.
"""

from pydantic import BaseModel, Field

from sowdiff.models.analysis import (
    AlignmentResult,
    AnalysisResult,
    ComparisonReport,
    FormattingAnalysis,
    MatchStrategy,
)
from sowdiff.models.document import DocumentMetadata, ParsedDocument


# =============================================================================
# Document Models
# =============================================================================


class SectionSummary(BaseModel):
    """Section outline entry in API responses."""

    id: str
    number: str | None = None
    title: str | None = None
    level: int
    body_chars: int
    paragraph_count: int
    table_count: int


class UploadResponse(BaseModel):
    """Response model for document upload."""

    document: ParsedDocument
    outline: list[SectionSummary] = Field(default_factory=list)
    metadata: DocumentMetadata
    metadata_warning: str | None = None

    @classmethod
    def from_document(cls, document: ParsedDocument) -> "UploadResponse":
        return cls(
            document=document,
            outline=[
                SectionSummary(
                    id=s.id,
                    number=s.number,
                    title=s.title,
                    level=s.level,
                    body_chars=len(s.body),
                    paragraph_count=len(s.paragraphs),
                    table_count=len(s.tables),
                )
                for s in document.sections
            ],
            metadata=document.metadata,
            metadata_warning=document.metadata_warning,
        )


# =============================================================================
# Analysis Models
# =============================================================================


class DocumentPairRequest(BaseModel):
    """Two previously parsed documents."""

    template: ParsedDocument = Field(..., description="Reference template document")
    draft: ParsedDocument = Field(..., description="Draft document under review")


class AlignRequest(DocumentPairRequest):
    strategy: MatchStrategy = Field(default=MatchStrategy.LENIENT, description="Scoring variant")


class AlignResponse(BaseModel):
    alignment: AlignmentResult
    mapping: dict[str, str | None]


class AnalyzeRequest(DocumentPairRequest):
    strategy: MatchStrategy = Field(default=MatchStrategy.STRICT, description="Scoring variant")


class AnalyzeResponse(BaseModel):
    alignment: AlignmentResult
    analysis: AnalysisResult


class FormattingRequest(DocumentPairRequest):
    strategy: MatchStrategy = MatchStrategy.LENIENT


class FormattingResponse(BaseModel):
    alignment: AlignmentResult
    formatting: FormattingAnalysis


class CompareResponse(BaseModel):
    report: ComparisonReport
    output_filename: str = Field(..., description="Suggested name for the reviewed draft")
