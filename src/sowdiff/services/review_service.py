"""
AI review of section pairs and whole documents.

Every public call returns a value: when the language model fails, the
result is a neutral or degraded record carrying an ``AnalysisFailure`` that
says why, so callers can tell "no findings" from "not analysed".
"""

import asyncio
import json
from typing import Any

import anthropic
import openai
import structlog
from pydantic import ValidationError
from tenacity import RetryError

from sowdiff.config import Settings, get_settings
from sowdiff.exceptions import ExternalServiceError
from sowdiff.models.analysis import (
    AnalysisFailure,
    FailureKind,
    GlobalAnalysis,
    Issue,
    IssueCategory,
    IssueType,
    JargonAssessment,
    ScopeChange,
    SectionAnalysis,
    Severity,
    ValueChange,
)
from sowdiff.models.document import ParsedDocument, Section
from sowdiff.services.llm_service import LLMService

logger = structlog.get_logger(__name__)


SYSTEM_PROMPT = """You are an expert contract reviewer.
You analyze Statements of Work (SOWs) by comparing a draft SOW against a template/reference SOW section by section.
You must return your analysis in valid JSON only, with no additional text or markdown formatting.

IMPORTANT CONTEXT:
- Project costs, deliverable dates, and timeline specifics are EXPECTED to differ between template and draft as they vary by project scope - do NOT flag these as issues unless they seem unreasonable or inconsistent
- Focus on identifying DISCREPANCIES in legal language, terms, conditions, and structure
- Identify any ACRONYMS used in the draft that are not defined or not present in the template
- Check for missing DELIVERABLES or scope items that were in the template but removed from draft
- Flag any LEGAL CLAUSE changes (liability, termination, IP, indemnification, confidentiality)

Key analysis areas:
1. DELIVERABLES - Flag if deliverables are removed, significantly modified, or have unclear acceptance criteria
2. LEGAL CLAUSES - Any changes to liability caps, indemnification, termination rights, IP ownership, confidentiality
3. TERMS & CONDITIONS - Changes to payment terms structure, warranty periods, support commitments
4. LANGUAGE CLARITY - Undefined acronyms, vague language ("reasonable", "as needed"), inconsistent terminology
5. STRUCTURE - Missing required sections, wrong section ordering, missing standard boilerplate
6. SERVICE LEVELS - Changes to SLAs, KPIs, or performance metrics

Things to IGNORE or mark as LOW severity:
- Different dollar amounts (expected to vary by scope)
- Different dates/timelines (expected to vary by project)
- Minor formatting differences
- Stylistic wording changes that don't affect meaning

Severity guidelines:
- HIGH: Legal clause changes, removed/changed liability protection, missing critical deliverables, undefined key terms
- MEDIUM: Structural issues, vague language in important sections, undefined acronyms, inconsistent terminology
- LOW: Minor formatting issues, stylistic suggestions, informational notes"""

_SEVERITIES = [s.value for s in Severity]
_CATEGORIES = [c.value for c in IssueCategory]

SECTION_ANALYSIS_SCHEMA = {
    "type": "object",
    "properties": {
        "section_id": {"type": "string"},
        "severity_overall": {"type": "string", "enum": _SEVERITIES},
        "issues": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "type": {"type": "string", "enum": [t.value for t in IssueType]},
                    "severity": {"type": "string", "enum": _SEVERITIES},
                    "description": {"type": "string"},
                    "old_text_snippet": {"type": "string"},
                    "new_text_snippet": {"type": "string"},
                    "category": {"type": "string", "enum": _CATEGORIES},
                },
                "required": ["type", "severity", "description", "category"],
            },
        },
        "suggested_revision": {"type": "string"},
        "notes_for_legal_review": {"type": "array", "items": {"type": "string"}},
    },
    "required": ["section_id", "severity_overall", "issues", "notes_for_legal_review"],
}

GLOBAL_ANALYSIS_SCHEMA = {
    "type": "object",
    "properties": {
        "scope_change": {"type": "string", "enum": [s.value for s in ScopeChange]},
        "scope_change_description": {"type": "string"},
        "total_value_change": {
            "type": "object",
            "properties": {
                "old_value": {"type": "string"},
                "new_value": {"type": "string"},
                "percent_change": {"type": "number"},
            },
        },
        "timeline_changes": {"type": "array", "items": {"type": "string"}},
        "critical_red_flags": {"type": "array", "items": {"type": "string"}},
        "summary": {"type": "string"},
    },
    "required": ["scope_change", "critical_red_flags", "summary"],
}

ACRONYM_SYSTEM_PROMPT = (
    "You are an expert at identifying acronym definitions. Return JSON with acronym as key "
    "and likely definition as value. If unsure, provide the most common meaning in a "
    "business/SOW context."
)

JARGON_SYSTEM_PROMPT = (
    "You analyze business/SOW terminology. Return JSON with each term as key and an object "
    "with 'is_standard' (boolean) and 'alternatives' (array of better terms if not standard)."
)

GLOBAL_FAILURE_SUMMARIES = {
    FailureKind.RATE_LIMIT: (
        "Global analysis skipped due to API rate limiting. Please wait a moment and try again."
    ),
    FailureKind.TIMEOUT: "Global analysis timed out. The documents may be too large for analysis.",
    FailureKind.AUTH: (
        "Global analysis failed due to authentication issues. Please check API credentials."
    ),
}


# =============================================================================
# Failure classification
# =============================================================================


def classify_failure(error: BaseException) -> AnalysisFailure:
    """Map an exception from a language-model call to a failure kind."""
    if isinstance(error, RetryError):
        inner = error.last_attempt.exception()
        if inner is not None:
            error = inner

    message = str(error) or type(error).__name__

    if isinstance(error, ExternalServiceError):
        return AnalysisFailure(kind=error.kind, message=message)
    if isinstance(error, (anthropic.RateLimitError, openai.RateLimitError)):
        return AnalysisFailure(kind=FailureKind.RATE_LIMIT, message=message)
    if isinstance(error, (anthropic.APITimeoutError, openai.APITimeoutError, asyncio.TimeoutError)):
        return AnalysisFailure(kind=FailureKind.TIMEOUT, message=message)
    if isinstance(
        error,
        (
            anthropic.AuthenticationError,
            anthropic.PermissionDeniedError,
            openai.AuthenticationError,
            openai.PermissionDeniedError,
        ),
    ):
        return AnalysisFailure(kind=FailureKind.AUTH, message=message)
    if isinstance(error, (json.JSONDecodeError, ValidationError, KeyError, TypeError)):
        return AnalysisFailure(kind=FailureKind.MALFORMED_RESPONSE, message=message)

    lowered = message.lower()
    if "429" in message or "rate" in lowered:
        kind = FailureKind.RATE_LIMIT
    elif "timeout" in lowered or "timed out" in lowered or "ETIMEDOUT" in message:
        kind = FailureKind.TIMEOUT
    elif "401" in message or "403" in message or "auth" in lowered:
        kind = FailureKind.AUTH
    else:
        kind = FailureKind.OTHER
    return AnalysisFailure(kind=kind, message=message)


def global_failure_summary(failure: AnalysisFailure) -> str:
    return GLOBAL_FAILURE_SUMMARIES.get(
        failure.kind,
        f"Global analysis encountered an error: {failure.message[:100]}",
    )


# =============================================================================
# Review service
# =============================================================================


class ReviewService:
    """
    Section-level and document-level AI review.

    Args:
        llm: Language-model service handle owned by the caller
        settings: Review limits; defaults to the process settings
    """

    def __init__(self, llm: LLMService, settings: Settings | None = None):
        self.llm = llm
        self.settings = settings or get_settings()

    def _section_payload(self, section: Section | None) -> dict[str, Any] | None:
        if section is None:
            return None
        return {
            "id": section.id,
            "number": section.number,
            "title": section.title,
            "body": section.body[: self.settings.section_body_char_limit],
        }

    def _document_summary(self, document: ParsedDocument) -> dict[str, Any]:
        preview = self.settings.section_preview_chars
        summary = "\n".join(
            f"{s.number or ''} {s.title or ''}: {s.body[:preview]}..." for s in document.sections
        )
        return {
            "filename": document.filename,
            "metadata": document.metadata.model_dump(exclude_none=True),
            "section_count": len(document.sections),
            "summary": summary[: self.settings.global_summary_char_limit],
        }

    async def analyze_section(
        self,
        template: Section | None,
        draft: Section,
        context: dict[str, str] | None = None,
    ) -> SectionAnalysis:
        """
        Review one draft section against its matched template section.

        Returns a neutral analysis (severity low, no issues) with the failure
        attached when the model call or its response is unusable.
        """
        context = context or {}
        payload = json.dumps({
            "context": {
                "project_name": context.get("project_name") or "SOW Project",
                "company": context.get("company") or "Company",
            },
            "template_section": self._section_payload(template),
            "new_section": self._section_payload(draft),
        })
        user_prompt = (
            "Analyze this SOW section comparison and return JSON matching this schema: "
            f"{json.dumps(SECTION_ANALYSIS_SCHEMA)}\n\nSection data:\n{payload}"
        )

        try:
            parsed, model = await self.llm.generate_json(
                SYSTEM_PROMPT,
                user_prompt,
                max_tokens=self.settings.section_analysis_max_tokens,
            )
            analysis = self._to_section_analysis(parsed, template, draft)
            logger.info(
                "section_analyzed",
                section_id=draft.id,
                issues=len(analysis.issues),
                model=model,
            )
            return analysis
        except Exception as e:
            failure = classify_failure(e)
            logger.warning(
                "section_analysis_failed",
                section_id=draft.id,
                kind=failure.kind.value,
                error=failure.message,
            )
            return SectionAnalysis(
                section_id=draft.id,
                matched_template_section_id=template.id if template else None,
                failure=failure,
            )

    def _to_section_analysis(
        self,
        parsed: Any,
        template: Section | None,
        draft: Section,
    ) -> SectionAnalysis:
        if not isinstance(parsed, dict):
            raise ExternalServiceError("Section analysis was not a JSON object", FailureKind.MALFORMED_RESPONSE)

        issues = []
        for raw in parsed.get("issues") or []:
            category = raw.get("category")
            issues.append(
                Issue(
                    type=raw["type"],
                    severity=raw["severity"],
                    section_id=draft.id,
                    description=raw["description"],
                    old_text_snippet=raw.get("old_text_snippet"),
                    new_text_snippet=raw.get("new_text_snippet"),
                    suggested_revision=raw.get("suggested_revision"),
                    category=(
                        category if category in _CATEGORIES else IssueCategory.DELIVERABLES_SCOPE
                    ),
                )
            )

        return SectionAnalysis(
            section_id=draft.id,
            matched_template_section_id=template.id if template else None,
            severity_overall=parsed.get("severity_overall") or Severity.LOW,
            issues=issues,
            suggested_revision=parsed.get("suggested_revision"),
            notes_for_legal_review=parsed.get("notes_for_legal_review") or [],
        )

    async def analyze_global(
        self,
        template_doc: ParsedDocument,
        draft_doc: ParsedDocument,
    ) -> GlobalAnalysis:
        """
        Document-level verdict comparing the two section summaries.

        On failure the scope is reported unchanged and the summary explains
        what went wrong (rate limit, timeout, credentials or other).
        """
        payload = json.dumps({
            "template_document": self._document_summary(template_doc),
            "new_document": self._document_summary(draft_doc),
        })
        user_prompt = (
            "Perform a global document-level analysis comparing these two SOWs. "
            f"Return JSON matching this schema: {json.dumps(GLOBAL_ANALYSIS_SCHEMA)}"
            f"\n\nDocuments:\n{payload}"
        )

        try:
            parsed, model = await self.llm.generate_json(
                SYSTEM_PROMPT,
                user_prompt,
                max_tokens=self.settings.global_analysis_max_tokens,
            )
            if not isinstance(parsed, dict):
                raise ExternalServiceError("Global analysis was not a JSON object", FailureKind.MALFORMED_RESPONSE)

            value_change = parsed.get("total_value_change")
            result = GlobalAnalysis(
                scope_change=parsed.get("scope_change") or ScopeChange.UNCHANGED,
                scope_change_description=parsed.get("scope_change_description"),
                total_value_change=ValueChange(**value_change) if value_change else None,
                timeline_changes=parsed.get("timeline_changes") or [],
                critical_red_flags=parsed.get("critical_red_flags") or [],
                summary=parsed.get("summary") or "",
            )
            logger.info(
                "global_analysis_completed",
                scope_change=result.scope_change.value,
                red_flags=len(result.critical_red_flags),
                model=model,
            )
            return result
        except Exception as e:
            failure = classify_failure(e)
            logger.error("global_analysis_failed", kind=failure.kind.value, error=failure.message)
            return GlobalAnalysis(
                scope_change=ScopeChange.UNCHANGED,
                summary=global_failure_summary(failure),
                failure=failure,
            )

    async def define_acronyms(self, acronyms: list[str], context: str) -> dict[str, str]:
        """Likely definitions for acronyms; empty when the model is unavailable."""
        if not acronyms:
            return {}

        user_prompt = (
            "Given these acronyms found in an SOW document, provide likely definitions:\n\n"
            f"Acronyms: {', '.join(acronyms)}\n\n"
            f"Document context: {context[: self.settings.acronym_context_chars]}\n\n"
            "Return JSON only."
        )
        try:
            parsed, _ = await self.llm.generate_json(
                ACRONYM_SYSTEM_PROMPT,
                user_prompt,
                max_tokens=self.settings.acronym_analysis_max_tokens,
            )
        except Exception as e:
            failure = classify_failure(e)
            logger.warning("acronym_definitions_failed", kind=failure.kind.value, error=failure.message)
            return {}

        if not isinstance(parsed, dict):
            return {}
        return {str(k): str(v) for k, v in parsed.items() if k in acronyms and v}

    async def assess_jargon(
        self,
        terms: list[str],
        template_terms: list[str],
        context: str,
    ) -> dict[str, JargonAssessment]:
        """Standard-or-not verdicts for draft terms; empty when the model is unavailable."""
        if not terms:
            return {}

        user_prompt = (
            "Analyze these terms from an SOW draft. Compare against template terms and identify "
            "if they're standard or should be replaced.\n\n"
            f"Draft terms: {', '.join(terms)}\n"
            f"Template terms: {', '.join(template_terms)}\n\n"
            f"Context: {context[: self.settings.jargon_context_chars]}\n\n"
            "Return JSON only."
        )
        try:
            parsed, _ = await self.llm.generate_json(
                JARGON_SYSTEM_PROMPT,
                user_prompt,
                max_tokens=self.settings.jargon_analysis_max_tokens,
            )
        except Exception as e:
            failure = classify_failure(e)
            logger.warning("jargon_assessment_failed", kind=failure.kind.value, error=failure.message)
            return {}

        if not isinstance(parsed, dict):
            return {}

        assessments: dict[str, JargonAssessment] = {}
        for term, info in parsed.items():
            if term not in terms or not isinstance(info, dict):
                continue
            alternatives = info.get("alternatives") or []
            assessments[term] = JargonAssessment(
                is_standard=info.get("is_standard", True) is not False,
                alternatives=[str(a) for a in alternatives] if isinstance(alternatives, list) else [],
            )
        return assessments
