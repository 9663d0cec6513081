"""
Comparison service.

Coordinates a template/draft comparison:
1. Parse both documents (concurrently)
2. Align draft sections onto template sections
3. Diff formatting of matched pairs, scan acronyms/jargon and key terms
4. Review section pairs and the whole document with the language model
5. Aggregate everything into one report
"""

import asyncio
from collections import defaultdict

import structlog

from sowdiff.alignment.aligner import SectionAligner
from sowdiff.config import Settings, get_settings
from sowdiff.formatting.differ import FormattingDiffer
from sowdiff.formatting.lexicon import (
    analyze_acronyms,
    analyze_jargon,
    extract_acronyms,
    extract_jargon,
    extract_key_terms,
    text_diff,
)
from sowdiff.models.analysis import (
    AcronymStatus,
    AlignmentResult,
    AnalysisResult,
    ComparisonReport,
    FormattingAnalysis,
    FormattingSummary,
    Issue,
    IssueCounts,
    JargonAssessment,
    KeyTermComparison,
    MatchStrategy,
    SectionAnalysis,
    SectionReport,
    SectionStatus,
    Severity,
)
from sowdiff.models.document import ParsedDocument
from sowdiff.services.document_loader import DocumentLoader
from sowdiff.services.review_service import ReviewService

logger = structlog.get_logger(__name__)


def section_status(matched: bool, issues: list[Issue]) -> SectionStatus:
    """Dashboard status of a draft section from its match and review issues."""
    if not matched:
        return SectionStatus.NEW
    if any(i.severity == Severity.HIGH for i in issues):
        return SectionStatus.ERROR
    if issues:
        return SectionStatus.WARNING
    return SectionStatus.OK


class ComparisonService:
    """
    Compares a draft against a template.

    Args:
        review: AI review service; without one, comparisons skip the AI steps
        loader: Document loader
        settings: Application settings
    """

    def __init__(
        self,
        review: ReviewService | None = None,
        loader: DocumentLoader | None = None,
        settings: Settings | None = None,
    ):
        self.review = review
        self.loader = loader or DocumentLoader()
        self.settings = settings or get_settings()
        self.differ = FormattingDiffer()

    # =========================================================================
    # Parsing and alignment
    # =========================================================================

    async def parse_pair(
        self,
        template_data: bytes,
        template_filename: str,
        draft_data: bytes,
        draft_filename: str,
    ) -> tuple[ParsedDocument, ParsedDocument]:
        """Parse template and draft concurrently; a ParseError in either propagates."""
        template, draft = await asyncio.gather(
            asyncio.to_thread(self.loader.load_bytes, template_data, template_filename),
            asyncio.to_thread(self.loader.load_bytes, draft_data, draft_filename),
        )
        return template, draft

    def align(
        self,
        template: ParsedDocument,
        draft: ParsedDocument,
        strategy: MatchStrategy | str = MatchStrategy.LENIENT,
    ) -> AlignmentResult:
        result = SectionAligner.for_strategy(strategy).align(template.sections, draft.sections)
        logger.info(
            "sections_aligned",
            strategy=result.strategy.value,
            matched=result.matched_count,
            new=len(result.edges) - result.matched_count,
            unclaimed=len(result.unclaimed_template_ids),
        )
        return result

    # =========================================================================
    # AI review
    # =========================================================================

    async def analyze(
        self,
        template: ParsedDocument,
        draft: ParsedDocument,
        alignment: AlignmentResult | None = None,
    ) -> AnalysisResult:
        """
        Review every draft section against its match, then the whole document.

        Section requests go out in batches of ``review_batch_size``. A failed
        request yields a neutral analysis and never aborts the batch.
        """
        if self.review is None:
            raise ValueError("AI review is not configured for this comparison service")

        alignment = alignment or self.align(template, draft, MatchStrategy.STRICT)
        mapping = alignment.mapping
        context = {"project_name": draft.metadata.title or "", "company": "Company"}
        batch_size = self.settings.review_batch_size

        section_analyses: list[SectionAnalysis] = []
        for start in range(0, len(draft.sections), batch_size):
            batch = draft.sections[start:start + batch_size]
            results = await asyncio.gather(*(
                self.review.analyze_section(
                    template.section_by_id(mapping[s.id]) if mapping.get(s.id) else None,
                    s,
                    context,
                )
                for s in batch
            ))
            section_analyses.extend(results)

        global_analysis = await self.review.analyze_global(template, draft)

        all_issues = [issue for analysis in section_analyses for issue in analysis.issues]
        breakdown = defaultdict(list)
        for issue in all_issues:
            breakdown[issue.category].append(issue)

        result = AnalysisResult(
            template_document_id=template.id,
            draft_document_id=draft.id,
            global_analysis=global_analysis,
            section_analyses=section_analyses,
            all_issues=all_issues,
            issue_counts=IssueCounts(
                high=sum(1 for i in all_issues if i.severity == Severity.HIGH),
                medium=sum(1 for i in all_issues if i.severity == Severity.MEDIUM),
                low=sum(1 for i in all_issues if i.severity == Severity.LOW),
            ),
            category_breakdown=dict(breakdown),
        )
        logger.info(
            "analysis_completed",
            sections=len(section_analyses),
            issues=len(all_issues),
            degraded=sum(1 for a in section_analyses if a.degraded),
        )
        return result

    # =========================================================================
    # Formatting
    # =========================================================================

    async def analyze_formatting(
        self,
        template: ParsedDocument,
        draft: ParsedDocument,
        alignment: AlignmentResult | None = None,
        include_ai: bool = True,
    ) -> FormattingAnalysis:
        """
        Formatting differences of matched sections plus acronym and jargon scans.

        With a review service and ``include_ai``, draft-only acronyms get
        suggested definitions and draft jargon gets standard-or-not verdicts.
        """
        alignment = alignment or self.align(template, draft)
        differences = self.differ.diff_documents(template.sections, draft.sections, alignment)

        template_text = template.raw_text or template.full_text
        draft_text = draft.raw_text or draft.full_text

        definitions: dict[str, str] = {}
        assessments: dict[str, JargonAssessment] = {}
        if include_ai and self.review is not None:
            unknown = sorted(extract_acronyms(draft_text) - extract_acronyms(template_text))
            definitions, assessments = await asyncio.gather(
                self.review.define_acronyms(unknown, draft_text),
                self.review.assess_jargon(
                    sorted(extract_jargon(draft_text)),
                    sorted(extract_jargon(template_text)),
                    draft_text,
                ),
            )

        acronyms = analyze_acronyms(template_text, draft_text, draft.sections, definitions)
        jargon = analyze_jargon(template_text, draft_text, draft.sections, assessments)

        return FormattingAnalysis(
            differences=differences,
            acronyms=acronyms,
            jargon=jargon,
            summary=FormattingSummary(
                total_formatting_issues=len(differences),
                high_priority_issues=sum(1 for d in differences if d.severity == Severity.HIGH),
                undefined_acronyms=sum(1 for a in acronyms if a.status == AcronymStatus.UNDEFINED),
                non_template_jargon=sum(1 for j in jargon if not j.in_template),
                non_standard_jargon=sum(1 for j in jargon if not j.is_standard),
            ),
        )

    # =========================================================================
    # Full comparison
    # =========================================================================

    async def compare(
        self,
        template: ParsedDocument,
        draft: ParsedDocument,
        strategy: MatchStrategy | str = MatchStrategy.LENIENT,
        include_ai: bool = True,
    ) -> ComparisonReport:
        """Run alignment, formatting and (optionally) AI review into one report."""
        alignment = self.align(template, draft, strategy)
        formatting = await self.analyze_formatting(
            template, draft, alignment, include_ai=include_ai
        )

        analysis = None
        if include_ai and self.review is not None:
            analysis = await self.analyze(template, draft, alignment)

        issues_by_section: dict[str, list[Issue]] = defaultdict(list)
        if analysis is not None:
            for issue in analysis.all_issues:
                issues_by_section[issue.section_id].append(issue)

        differences_by_section = defaultdict(list)
        for difference in formatting.differences:
            differences_by_section[difference.location.section_id].append(difference)

        sections = []
        for draft_section in draft.sections:
            edge = alignment.edge_for(draft_section.id)
            matched = template.section_by_id(edge.template_section_id) if edge.matched else None
            issues = issues_by_section[draft_section.id]
            sections.append(
                SectionReport(
                    draft_section_id=draft_section.id,
                    draft_heading=draft_section.heading,
                    template_section_id=matched.id if matched else None,
                    template_heading=matched.heading if matched else None,
                    match_score=edge.score if matched else 0.0,
                    status=section_status(matched is not None, issues),
                    issues=issues,
                    formatting_differences=differences_by_section[draft_section.id],
                    text_diff=text_diff(matched.body, draft_section.body) if matched else None,
                )
            )

        removed = [
            template.section_by_id(section_id).heading
            for section_id in alignment.unclaimed_template_ids
        ]

        report = ComparisonReport(
            template_filename=template.filename,
            draft_filename=draft.filename,
            alignment=alignment,
            sections=sections,
            removed_template_sections=removed,
            analysis=analysis,
            formatting=formatting,
            key_terms=KeyTermComparison(
                template=extract_key_terms(template.raw_text or template.full_text),
                draft=extract_key_terms(draft.raw_text or draft.full_text),
            ),
        )
        logger.info(
            "comparison_completed",
            template=template.filename,
            draft=draft.filename,
            sections=len(sections),
            new_sections=report.new_section_count,
            removed_sections=len(removed),
            ai=analysis is not None,
        )
        return report
