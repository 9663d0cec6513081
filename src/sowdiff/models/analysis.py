"""
Analysis models: alignment, formatting differences, review findings and the
aggregated comparison report.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from sowdiff.models.document import ParagraphFormatting, RunFormatting, new_id


class Severity(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


# =============================================================================
# Alignment
# =============================================================================


class MatchStrategy(str, Enum):
    """Named scoring variants of the section aligner."""

    LENIENT = "lenient"  # comparison view
    STRICT = "strict"  # review dashboard


class AlignmentEdge(BaseModel):
    """Correspondence of one draft section to a template section (or none)."""

    draft_section_id: str
    template_section_id: str | None = None
    score: float = 0.0
    signals: dict[str, float] = Field(default_factory=dict)

    @property
    def matched(self) -> bool:
        return self.template_section_id is not None


class AlignmentResult(BaseModel):
    strategy: MatchStrategy
    floor: float
    edges: list[AlignmentEdge] = Field(default_factory=list)
    unclaimed_template_ids: list[str] = Field(
        default_factory=list,
        description="Template sections no draft section claimed, in template order",
    )

    @property
    def mapping(self) -> dict[str, str | None]:
        return {e.draft_section_id: e.template_section_id for e in self.edges}

    def edge_for(self, draft_section_id: str) -> AlignmentEdge | None:
        for edge in self.edges:
            if edge.draft_section_id == draft_section_id:
                return edge
        return None

    @property
    def matched_count(self) -> int:
        return sum(1 for e in self.edges if e.matched)


# =============================================================================
# Formatting differences
# =============================================================================


class DifferenceType(str, Enum):
    STYLE = "style"
    FONT = "font"
    ALIGNMENT = "alignment"
    SPACING = "spacing"
    INDENT = "indent"
    LIST = "list"
    TABLE = "table"
    HEADING = "heading"


class FixType(str, Enum):
    APPLY_TEMPLATE_STYLE = "apply_template_style"
    APPLY_TEMPLATE_FORMATTING = "apply_template_formatting"
    APPLY_TEMPLATE_FONT = "apply_template_font"


class DifferenceLocation(BaseModel):
    section_id: str
    paragraph_index: int | None = None
    run_index: int | None = None
    text_snippet: str | None = None


class FormattingFix(BaseModel):
    """
    Template-sourced values that resolve a difference.

    Only the fields explicitly set on the nested record belong to the fix;
    they can be assigned to the draft paragraph or run as they are.
    """

    type: FixType
    paragraph_formatting: ParagraphFormatting | None = None
    run_formatting: RunFormatting | None = None

    def values(self) -> dict:
        """The attributes this fix assigns, keyed by field name."""
        target = self.paragraph_formatting or self.run_formatting
        if target is None:
            return {}
        return target.model_dump(exclude_unset=True)


class FormattingDifference(BaseModel):
    id: str = Field(default_factory=new_id)
    type: DifferenceType
    description: str
    template_value: str
    draft_value: str
    severity: Severity
    location: DifferenceLocation
    fix: FormattingFix | None = None


# =============================================================================
# Lexical scan
# =============================================================================


class AcronymStatus(str, Enum):
    UNDEFINED = "undefined"
    NEW = "new"
    MISSING = "missing"
    OK = "ok"


class AcronymInfo(BaseModel):
    acronym: str
    occurrences: int = 0
    in_template: bool = False
    in_draft: bool = False
    defined_in_template: bool = False
    defined_in_draft: bool = False
    status: AcronymStatus = AcronymStatus.OK
    suggested_definition: str | None = None
    section_ids: list[str] = Field(default_factory=list)


class JargonAssessment(BaseModel):
    """Language-model verdict on one domain term."""

    is_standard: bool = True
    alternatives: list[str] = Field(default_factory=list)


class JargonInfo(BaseModel):
    term: str
    occurrences: int = 0
    in_template: bool = False
    is_standard: bool = True
    alternatives: list[str] = Field(default_factory=list)
    section_ids: list[str] = Field(default_factory=list)


class FormattingSummary(BaseModel):
    total_formatting_issues: int = 0
    high_priority_issues: int = 0
    undefined_acronyms: int = 0
    non_template_jargon: int = 0
    non_standard_jargon: int = 0


class KeyTerms(BaseModel):
    """Amounts, dates and list-item deliverables found in a document."""

    amounts: list[str] = Field(default_factory=list)
    dates: list[str] = Field(default_factory=list)
    deliverables: list[str] = Field(default_factory=list)


class KeyTermComparison(BaseModel):
    template: KeyTerms = Field(default_factory=KeyTerms)
    draft: KeyTerms = Field(default_factory=KeyTerms)

    @property
    def added_amounts(self) -> list[str]:
        return [a for a in self.draft.amounts if a not in self.template.amounts]

    @property
    def removed_deliverables(self) -> list[str]:
        return [d for d in self.template.deliverables if d not in self.draft.deliverables]


class FormattingAnalysis(BaseModel):
    differences: list[FormattingDifference] = Field(default_factory=list)
    acronyms: list[AcronymInfo] = Field(default_factory=list)
    jargon: list[JargonInfo] = Field(default_factory=list)
    summary: FormattingSummary = Field(default_factory=FormattingSummary)


# =============================================================================
# Review findings
# =============================================================================


class IssueType(str, Enum):
    DELIVERABLE_ADDED = "deliverable_added"
    DELIVERABLE_REMOVED = "deliverable_removed"
    DELIVERABLE_MODIFIED = "deliverable_modified"
    AMOUNT_CHANGED = "amount_changed"
    DATE_CHANGED = "date_changed"
    LEGAL_CLAUSE_CHANGED = "legal_clause_changed"
    SLA_CHANGED = "sla_changed"
    UNDEFINED_ACRONYM = "undefined_acronym"
    VAGUE_LANGUAGE = "vague_language"
    INCONSISTENT_TERMINOLOGY = "inconsistent_terminology"
    MISSING_SECTION = "missing_section"
    EXTRA_SECTION = "extra_section"
    FORMATTING_ISSUE = "formatting_issue"
    BOILERPLATE_MISSING = "boilerplate_missing"
    SCOPE_EXPANSION = "scope_expansion"
    SCOPE_REDUCTION = "scope_reduction"


class IssueCategory(str, Enum):
    LEGAL_RISK = "legal_risk"
    FINANCIAL = "financial"
    DELIVERABLES_SCOPE = "deliverables_scope"
    LANGUAGE_CLARITY = "language_clarity"
    FORMATTING_STRUCTURE = "formatting_structure"


class Issue(BaseModel):
    id: str = Field(default_factory=new_id)
    type: IssueType
    severity: Severity
    section_id: str
    description: str
    old_text_snippet: str | None = None
    new_text_snippet: str | None = None
    suggested_revision: str | None = None
    category: IssueCategory = IssueCategory.DELIVERABLES_SCOPE


class FailureKind(str, Enum):
    """Why a language-model call produced no usable result."""

    RATE_LIMIT = "rate_limit"
    TIMEOUT = "timeout"
    AUTH = "auth"
    MALFORMED_RESPONSE = "malformed_response"
    UNAVAILABLE = "unavailable"
    OTHER = "other"


class AnalysisFailure(BaseModel):
    kind: FailureKind
    message: str


class SectionAnalysis(BaseModel):
    section_id: str
    matched_template_section_id: str | None = None
    severity_overall: Severity = Severity.LOW
    issues: list[Issue] = Field(default_factory=list)
    suggested_revision: str | None = None
    notes_for_legal_review: list[str] = Field(default_factory=list)
    failure: AnalysisFailure | None = None

    @property
    def degraded(self) -> bool:
        return self.failure is not None


class ScopeChange(str, Enum):
    EXPANDED = "expanded"
    REDUCED = "reduced"
    UNCHANGED = "unchanged"


class ValueChange(BaseModel):
    old_value: str | None = None
    new_value: str | None = None
    percent_change: float | None = None


class GlobalAnalysis(BaseModel):
    scope_change: ScopeChange = ScopeChange.UNCHANGED
    scope_change_description: str | None = None
    total_value_change: ValueChange | None = None
    timeline_changes: list[str] = Field(default_factory=list)
    critical_red_flags: list[str] = Field(default_factory=list)
    summary: str = ""
    failure: AnalysisFailure | None = None


class IssueCounts(BaseModel):
    high: int = 0
    medium: int = 0
    low: int = 0


class AnalysisResult(BaseModel):
    id: str = Field(default_factory=new_id)
    template_document_id: str
    draft_document_id: str
    analyzed_at: datetime = Field(default_factory=datetime.utcnow)
    global_analysis: GlobalAnalysis
    section_analyses: list[SectionAnalysis] = Field(default_factory=list)
    all_issues: list[Issue] = Field(default_factory=list)
    issue_counts: IssueCounts = Field(default_factory=IssueCounts)
    category_breakdown: dict[IssueCategory, list[Issue]] = Field(default_factory=dict)


# =============================================================================
# Text diff
# =============================================================================


class DiffPart(BaseModel):
    value: str
    added: bool = False
    removed: bool = False


class TextDiff(BaseModel):
    """Word-level diff of two bodies."""

    parts: list[DiffPart] = Field(default_factory=list)
    added_count: int = 0
    removed_count: int = 0

    @property
    def has_changes(self) -> bool:
        return bool(self.added_count or self.removed_count)


# =============================================================================
# Aggregated report
# =============================================================================


class SectionStatus(str, Enum):
    OK = "ok"
    WARNING = "warning"
    ERROR = "error"
    NEW = "new"


class SectionReport(BaseModel):
    draft_section_id: str
    draft_heading: str
    template_section_id: str | None = None
    template_heading: str | None = None
    match_score: float = 0.0
    status: SectionStatus = SectionStatus.OK
    issues: list[Issue] = Field(default_factory=list)
    formatting_differences: list[FormattingDifference] = Field(default_factory=list)
    text_diff: TextDiff | None = None


class ComparisonReport(BaseModel):
    id: str = Field(default_factory=new_id)
    template_filename: str
    draft_filename: str
    generated_at: datetime = Field(default_factory=datetime.utcnow)
    alignment: AlignmentResult
    sections: list[SectionReport] = Field(default_factory=list)
    removed_template_sections: list[str] = Field(
        default_factory=list, description="Headings of template sections with no draft counterpart"
    )
    analysis: AnalysisResult | None = None
    formatting: FormattingAnalysis = Field(default_factory=FormattingAnalysis)
    key_terms: KeyTermComparison = Field(default_factory=KeyTermComparison)

    @property
    def new_section_count(self) -> int:
        return sum(1 for s in self.sections if s.status == SectionStatus.NEW)
