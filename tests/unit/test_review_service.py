"""Tests for sowdiff/services/review_service.py: section/global review and failure handling."""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import httpx
import openai
import pytest
from tenacity import RetryError

from sowdiff.exceptions import ExternalServiceError
from sowdiff.models.analysis import (
    AnalysisFailure,
    FailureKind,
    IssueCategory,
    IssueType,
    ScopeChange,
    Severity,
)
from sowdiff.models.document import ParsedDocument
from sowdiff.services.review_service import (
    GLOBAL_FAILURE_SUMMARIES,
    ReviewService,
    classify_failure,
    global_failure_summary,
)


@pytest.fixture
def review(mock_llm, settings):
    return ReviewService(mock_llm, settings)


@pytest.fixture
def section_pair(make_section):
    template = make_section("3", "Payment Terms", body="Invoices are payable within 30 days.")
    draft = make_section("3", "Payment Terms", body="Invoices are payable within 90 days.")
    return template, draft


class TestClassifyFailure:

    def test_service_error_keeps_kind(self):
        failure = classify_failure(ExternalServiceError("bad", FailureKind.MALFORMED_RESPONSE))
        assert failure.kind == FailureKind.MALFORMED_RESPONSE
        assert failure.message == "bad"

    def test_sdk_rate_limit(self):
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        response = httpx.Response(429, request=request)
        error = openai.RateLimitError("slow down", response=response, body=None)
        assert classify_failure(error).kind == FailureKind.RATE_LIMIT

    def test_sdk_timeout(self):
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        assert classify_failure(openai.APITimeoutError(request=request)).kind == FailureKind.TIMEOUT

    def test_asyncio_timeout(self):
        assert classify_failure(asyncio.TimeoutError()).kind == FailureKind.TIMEOUT

    def test_decode_error_is_malformed(self):
        try:
            json.loads("{nope")
        except json.JSONDecodeError as e:
            assert classify_failure(e).kind == FailureKind.MALFORMED_RESPONSE

    @pytest.mark.parametrize("message,kind", [
        ("Error code: 429", FailureKind.RATE_LIMIT),
        ("rate limited by upstream", FailureKind.RATE_LIMIT),
        ("Request timed out", FailureKind.TIMEOUT),
        ("connect ETIMEDOUT", FailureKind.TIMEOUT),
        ("401 Unauthorized", FailureKind.AUTH),
        ("invalid auth header", FailureKind.AUTH),
        ("something else broke", FailureKind.OTHER),
    ])
    def test_message_heuristics(self, message, kind):
        assert classify_failure(Exception(message)).kind == kind

    def test_retry_error_unwrapped(self):
        attempt = MagicMock()
        attempt.exception.return_value = Exception("Error code: 429")
        assert classify_failure(RetryError(attempt)).kind == FailureKind.RATE_LIMIT


class TestGlobalFailureSummary:

    def test_known_kinds(self):
        for kind, summary in GLOBAL_FAILURE_SUMMARIES.items():
            assert global_failure_summary(AnalysisFailure(kind=kind, message="x")) == summary

    def test_rate_limit_message(self):
        summary = global_failure_summary(AnalysisFailure(kind=FailureKind.RATE_LIMIT, message="429"))
        assert "rate limiting" in summary

    def test_other_truncates_message(self):
        failure = AnalysisFailure(kind=FailureKind.OTHER, message="x" * 300)
        summary = global_failure_summary(failure)
        assert summary == "Global analysis encountered an error: " + "x" * 100


class TestAnalyzeSection:

    def test_parses_issues(self, review, mock_llm, section_pair):
        template, draft = section_pair
        mock_llm.generate_json.return_value = ({
            "section_id": draft.id,
            "severity_overall": "high",
            "issues": [
                {
                    "type": "amount_changed",
                    "severity": "high",
                    "description": "Payment window tripled",
                    "old_text_snippet": "30 days",
                    "new_text_snippet": "90 days",
                    "category": "financial",
                },
                {
                    "type": "vague_language",
                    "severity": "low",
                    "description": "Unclear wording",
                    "category": "not_a_category",
                },
            ],
            "notes_for_legal_review": ["Confirm payment terms with finance"],
        }, "mock-model")

        analysis = asyncio.run(review.analyze_section(template, draft))

        assert analysis.section_id == draft.id
        assert analysis.matched_template_section_id == template.id
        assert analysis.severity_overall == Severity.HIGH
        assert not analysis.degraded
        assert [i.type for i in analysis.issues] == [IssueType.AMOUNT_CHANGED, IssueType.VAGUE_LANGUAGE]
        assert analysis.issues[0].category == IssueCategory.FINANCIAL
        assert analysis.issues[1].category == IssueCategory.DELIVERABLES_SCOPE
        assert all(i.section_id == draft.id for i in analysis.issues)
        assert analysis.notes_for_legal_review == ["Confirm payment terms with finance"]

    def test_prompt_carries_truncated_bodies(self, review, mock_llm, make_section, settings):
        draft = make_section("1", "Scope", body="word " * 2000)
        asyncio.run(review.analyze_section(None, draft, {"project_name": "Billing"}))
        system_prompt, user_prompt = mock_llm.generate_json.call_args.args[:2]
        payload = json.loads(user_prompt.split("Section data:\n", 1)[1])
        assert payload["template_section"] is None
        assert len(payload["new_section"]["body"]) == settings.section_body_char_limit
        assert payload["context"]["project_name"] == "Billing"
        assert payload["context"]["company"] == "Company"
        assert "expert contract reviewer" in system_prompt

    def test_failure_returns_neutral_analysis(self, review, mock_llm, section_pair):
        template, draft = section_pair
        mock_llm.generate_json.side_effect = Exception("Error code: 429 rate_limit_error")

        analysis = asyncio.run(review.analyze_section(template, draft))

        assert analysis.severity_overall == Severity.LOW
        assert analysis.issues == []
        assert analysis.degraded
        assert analysis.failure.kind == FailureKind.RATE_LIMIT
        assert analysis.matched_template_section_id == template.id

    def test_invalid_issue_shape_is_malformed(self, review, mock_llm, section_pair):
        template, draft = section_pair
        mock_llm.generate_json.return_value = ({"issues": [{"severity": "high"}]}, "mock-model")
        analysis = asyncio.run(review.analyze_section(template, draft))
        assert analysis.failure.kind == FailureKind.MALFORMED_RESPONSE
        assert analysis.issues == []

    def test_non_object_is_malformed(self, review, mock_llm, section_pair):
        template, draft = section_pair
        mock_llm.generate_json.return_value = (["not", "an", "object"], "mock-model")
        analysis = asyncio.run(review.analyze_section(template, draft))
        assert analysis.failure.kind == FailureKind.MALFORMED_RESPONSE


class TestAnalyzeGlobal:

    def _documents(self, make_section):
        template = ParsedDocument(filename="template.docx", sections=[make_section("1", "Scope", body="a")])
        draft = ParsedDocument(filename="draft.docx", sections=[make_section("1", "Scope", body="b")])
        return template, draft

    def test_parses_verdict(self, review, mock_llm, make_section):
        template, draft = self._documents(make_section)
        mock_llm.generate_json.return_value = ({
            "scope_change": "expanded",
            "scope_change_description": "Adds a support phase",
            "total_value_change": {"old_value": "$100,000", "new_value": "$150,000", "percent_change": 50},
            "critical_red_flags": ["Liability cap removed"],
            "summary": "Draft expands scope.",
        }, "mock-model")

        result = asyncio.run(review.analyze_global(template, draft))

        assert result.scope_change == ScopeChange.EXPANDED
        assert result.total_value_change.percent_change == 50
        assert result.critical_red_flags == ["Liability cap removed"]
        assert result.summary == "Draft expands scope."
        assert result.failure is None

    def test_summary_payload(self, review, mock_llm, make_section):
        template, draft = self._documents(make_section)
        asyncio.run(review.analyze_global(template, draft))
        user_prompt = mock_llm.generate_json.call_args.args[1]
        payload = json.loads(user_prompt.split("Documents:\n", 1)[1])
        assert payload["template_document"]["filename"] == "template.docx"
        assert payload["new_document"]["section_count"] == 1
        assert payload["new_document"]["summary"].startswith("1 Scope: b")

    @pytest.mark.parametrize("message,kind", [
        ("Error code: 429", FailureKind.RATE_LIMIT),
        ("Request timed out", FailureKind.TIMEOUT),
        ("Error code: 401 authentication_error", FailureKind.AUTH),
    ])
    def test_failure_summaries(self, review, mock_llm, make_section, message, kind):
        template, draft = self._documents(make_section)
        mock_llm.generate_json.side_effect = Exception(message)

        result = asyncio.run(review.analyze_global(template, draft))

        assert result.scope_change == ScopeChange.UNCHANGED
        assert result.failure.kind == kind
        assert result.summary == GLOBAL_FAILURE_SUMMARIES[kind]

    def test_other_failure_summary(self, review, mock_llm, make_section):
        template, draft = self._documents(make_section)
        mock_llm.generate_json.side_effect = Exception("Connection reset by peer")
        result = asyncio.run(review.analyze_global(template, draft))
        assert result.summary == "Global analysis encountered an error: Connection reset by peer"


class TestDefineAcronyms:

    def test_returns_requested_definitions(self, review, mock_llm):
        mock_llm.generate_json.return_value = ({
            "SSO": "Single Sign-On",
            "API": "Application Programming Interface",
            "XYZ": "Not requested",
        }, "mock-model")
        result = asyncio.run(review.define_acronyms(["SSO", "API"], "context"))
        assert result == {"SSO": "Single Sign-On", "API": "Application Programming Interface"}

    def test_empty_request_skips_model(self, review, mock_llm):
        assert asyncio.run(review.define_acronyms([], "context")) == {}
        mock_llm.generate_json.assert_not_called()

    def test_failure_returns_empty(self, review, mock_llm):
        mock_llm.generate_json.side_effect = ExternalServiceError("down", FailureKind.UNAVAILABLE)
        assert asyncio.run(review.define_acronyms(["SSO"], "context")) == {}


class TestAssessJargon:

    def test_returns_verdicts_for_requested_terms(self, review, mock_llm):
        mock_llm.generate_json.return_value = ({
            "vendor": {"is_standard": False, "alternatives": ["supplier", "contractor"]},
            "milestone": {"is_standard": True},
            "widget": {"is_standard": False},
            "sprint": "not an object",
        }, "mock-model")
        result = asyncio.run(review.assess_jargon(["milestone", "sprint", "vendor"], ["milestone"], "context"))
        assert set(result) == {"milestone", "vendor"}
        assert not result["vendor"].is_standard
        assert result["vendor"].alternatives == ["supplier", "contractor"]
        assert result["milestone"].is_standard
        assert result["milestone"].alternatives == []

    def test_prompt_lists_both_term_sets(self, review, mock_llm, settings):
        asyncio.run(review.assess_jargon(["vendor"], ["supplier"], "x" * 5000))
        _, user_prompt = mock_llm.generate_json.call_args.args[:2]
        assert "Draft terms: vendor" in user_prompt
        assert "Template terms: supplier" in user_prompt
        assert "x" * (settings.jargon_context_chars + 1) not in user_prompt
        assert mock_llm.generate_json.call_args.kwargs["max_tokens"] == settings.jargon_analysis_max_tokens

    def test_empty_request_skips_model(self, review, mock_llm):
        assert asyncio.run(review.assess_jargon([], ["vendor"], "context")) == {}
        mock_llm.generate_json.assert_not_called()

    def test_failure_returns_empty(self, review, mock_llm):
        mock_llm.generate_json.side_effect = ExternalServiceError("down", FailureKind.UNAVAILABLE)
        assert asyncio.run(review.assess_jargon(["vendor"], [], "context")) == {}

    def test_non_object_returns_empty(self, review, mock_llm):
        mock_llm.generate_json.return_value = (["vendor"], "mock-model")
        assert asyncio.run(review.assess_jargon(["vendor"], [], "context")) == {}
