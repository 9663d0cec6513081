"""Tests for sowdiff/services/llm_service.py: generate, fallback, JSON parsing."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from sowdiff.exceptions import ExternalServiceError
from sowdiff.models.analysis import FailureKind
from sowdiff.services.llm_service import LLMService


@pytest.fixture
def llm_settings(settings):
    return settings.model_copy(update={
        "primary_llm_provider": "anthropic",
        "primary_llm_model": "claude-test",
        "fallback_llm_provider": "openai",
        "fallback_llm_model": "gpt-test",
        "llm_max_tokens": 1024,
        "azure_openai_deployment": "sow-deployment",
    })


@pytest.fixture
def llm_service(llm_settings):
    """LLMService with mocked Anthropic/OpenAI clients."""
    mock_anthropic = MagicMock()
    mock_response = MagicMock()
    mock_response.content = [MagicMock(text="Test response")]
    mock_anthropic.messages.create = AsyncMock(return_value=mock_response)

    mock_openai = MagicMock()
    mock_oi_response = MagicMock()
    mock_oi_response.choices = [MagicMock(message=MagicMock(content="Fallback response"))]
    mock_openai.chat.completions.create = AsyncMock(return_value=mock_oi_response)

    return LLMService(llm_settings, anthropic_client=mock_anthropic, openai_client=mock_openai)


class TestGenerate:

    def test_returns_text(self, llm_service):
        text, model = asyncio.run(llm_service.generate("system", "user"))
        assert text == "Test response"
        assert model == "claude-test"

    def test_anthropic_request(self, llm_service):
        asyncio.run(llm_service.generate("system", "user", max_tokens=50))
        kwargs = llm_service._anthropic.messages.create.call_args.kwargs
        assert kwargs["model"] == "claude-test"
        assert kwargs["max_tokens"] == 50
        assert kwargs["system"] == "system"
        assert kwargs["messages"] == [{"role": "user", "content": "user"}]

    def test_json_mode_instructs_anthropic(self, llm_service):
        asyncio.run(llm_service.generate("system", "user", json_mode=True))
        kwargs = llm_service._anthropic.messages.create.call_args.kwargs
        assert kwargs["system"].startswith("system")
        assert "JSON" in kwargs["system"]
        assert kwargs["max_tokens"] == 1024

    def test_fallback_to_openai(self, llm_service):
        """Primary always fails, fallback succeeds."""
        llm_service._call_anthropic = AsyncMock(side_effect=Exception("Always fails"))
        text, model = asyncio.run(llm_service.generate("system", "user", use_fallback=True))
        assert text == "Fallback response"
        assert model == "gpt-test"

    def test_openai_json_mode(self, llm_service):
        llm_service._call_anthropic = AsyncMock(side_effect=Exception("down"))
        asyncio.run(llm_service.generate("system", "user", json_mode=True))
        kwargs = llm_service._openai.chat.completions.create.call_args.kwargs
        assert kwargs["response_format"] == {"type": "json_object"}
        assert kwargs["messages"][0] == {"role": "system", "content": "system"}

    def test_all_providers_fail(self, llm_service):
        """Both providers fail."""
        llm_service._call_anthropic = AsyncMock(side_effect=Exception("Primary down"))
        llm_service._call_openai = AsyncMock(side_effect=Exception("Fallback down"))
        with pytest.raises(Exception, match="Fallback down"):
            asyncio.run(llm_service.generate("system", "user"))

    def test_no_fallback_reraises_primary(self, llm_service):
        llm_service._call_anthropic = AsyncMock(side_effect=Exception("Primary down"))
        llm_service._call_openai = AsyncMock(return_value="unused")
        with pytest.raises(Exception, match="Primary down"):
            asyncio.run(llm_service.generate("system", "user", use_fallback=False))
        llm_service._call_openai.assert_not_called()

    def test_fallback_only(self, llm_settings):
        svc = LLMService(llm_settings, openai_client=MagicMock())
        svc._call_openai = AsyncMock(return_value="from openai")
        assert asyncio.run(svc.generate("s", "u")) == ("from openai", "gpt-test")

    def test_no_provider_configured(self, llm_settings):
        svc = LLMService(llm_settings)
        with pytest.raises(ExternalServiceError) as exc_info:
            asyncio.run(svc.generate("system", "user"))
        assert exc_info.value.kind == FailureKind.UNAVAILABLE

    def test_azure_uses_deployment(self, llm_settings):
        settings = llm_settings.model_copy(update={"primary_llm_provider": "azure"})
        azure = MagicMock()
        svc = LLMService(settings, azure_client=azure)
        svc._call_openai = AsyncMock(return_value="azure text")
        text, model = asyncio.run(svc.generate("s", "u"))
        assert text == "azure text"
        args = svc._call_openai.call_args.args
        assert args[0] is azure
        assert args[1] == "sow-deployment"


class TestGenerateJson:

    def test_parses_object(self, llm_service):
        llm_service._call_anthropic = AsyncMock(return_value='```json\n{"summary": "ok"}\n```')
        parsed, model = asyncio.run(llm_service.generate_json("system", "user"))
        assert parsed == {"summary": "ok"}
        assert model == "claude-test"

    def test_malformed_raises(self, llm_service):
        llm_service._call_anthropic = AsyncMock(return_value="I cannot help with that.")
        with pytest.raises(ExternalServiceError) as exc_info:
            asyncio.run(llm_service.generate_json("system", "user"))
        assert exc_info.value.kind == FailureKind.MALFORMED_RESPONSE


class TestParseJson:

    def test_plain_json(self, llm_service):
        assert llm_service._parse_json('{"a": 1}') == {"a": 1}

    def test_fenced_json(self, llm_service):
        assert llm_service._parse_json('```json\n{"a": 1}\n```') == {"a": 1}

    def test_bare_fence(self, llm_service):
        assert llm_service._parse_json('```\n[1, 2]\n```') == [1, 2]

    def test_embedded_object(self, llm_service):
        assert llm_service._parse_json('Here you go: {"a": [1, 2]} hope it helps') == {"a": [1, 2]}

    def test_embedded_array(self, llm_service):
        assert llm_service._parse_json("Result: [1, 2, 3]") == [1, 2, 3]

    def test_invalid(self, llm_service):
        assert llm_service._parse_json("not json at all") is None


class TestHealth:

    def test_configured_providers(self, llm_service):
        assert llm_service.health_check() == {"anthropic": True, "openai": True}
        assert llm_service.available

    def test_nothing_configured(self, llm_settings):
        svc = LLMService(llm_settings)
        assert svc.health_check() == {}
        assert not svc.available
