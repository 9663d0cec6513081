"""
LLM service for contract review.

Supports Claude (Anthropic), OpenAI and Azure OpenAI with automatic
fallback. The service is constructed by its owner (CLI command or API
lifespan) and passed to the services that need it.
"""

import json
from typing import Any

import structlog
from anthropic import AsyncAnthropic
from openai import AsyncAzureOpenAI, AsyncOpenAI
from tenacity import retry, stop_after_attempt, wait_exponential

from sowdiff.config import Settings, get_settings
from sowdiff.exceptions import ExternalServiceError
from sowdiff.models.analysis import FailureKind

logger = structlog.get_logger(__name__)


class LLMService:
    """
    LLM service for contract review.

    Routes each request to the primary provider and falls back to the
    secondary one when the primary fails.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        anthropic_client: AsyncAnthropic | None = None,
        openai_client: AsyncOpenAI | None = None,
        azure_client: AsyncAzureOpenAI | None = None,
    ):
        settings = settings or get_settings()
        self.settings = settings

        self._anthropic = anthropic_client
        self._openai = openai_client
        self._azure = azure_client

        if self._anthropic is None and settings.anthropic_api_key:
            self._anthropic = AsyncAnthropic(
                api_key=settings.anthropic_api_key,
                timeout=settings.llm_timeout,
            )
        if self._openai is None and settings.openai_api_key:
            self._openai = AsyncOpenAI(
                api_key=settings.openai_api_key,
                timeout=settings.llm_timeout,
            )
        if self._azure is None and settings.azure_openai_api_key and settings.azure_openai_endpoint:
            self._azure = AsyncAzureOpenAI(
                api_key=settings.azure_openai_api_key,
                azure_endpoint=settings.azure_openai_endpoint,
                api_version=settings.azure_openai_api_version,
                timeout=settings.llm_timeout,
            )

        self.primary_provider = settings.primary_llm_provider
        self.primary_model = settings.primary_llm_model
        self.fallback_provider = settings.fallback_llm_provider
        self.fallback_model = settings.fallback_llm_model

    def is_configured(self, provider: str) -> bool:
        return {
            "anthropic": self._anthropic,
            "openai": self._openai,
            "azure": self._azure,
        }.get(provider) is not None

    @property
    def available(self) -> bool:
        return self.is_configured(self.primary_provider) or self.is_configured(self.fallback_provider)

    def health_check(self) -> dict[str, bool]:
        """Report which providers have a client configured."""
        return {
            provider: self.is_configured(provider)
            for provider in ("anthropic", "openai", "azure")
            if self.is_configured(provider)
        }

    # =========================================================================
    # Core LLM Calls
    # =========================================================================

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
    )
    async def _call_anthropic(
        self,
        model: str,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int | None = None,
        json_mode: bool = False,
    ) -> str:
        """Call Anthropic Claude API."""
        if json_mode:
            system_prompt = f"{system_prompt}\n\nRespond with a single JSON object and nothing else."
        response = await self._anthropic.messages.create(
            model=model,
            max_tokens=max_tokens or self.settings.llm_max_tokens,
            temperature=self.settings.llm_temperature,
            system=system_prompt,
            messages=[{"role": "user", "content": user_prompt}],
        )
        return response.content[0].text

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
    )
    async def _call_openai(
        self,
        client: AsyncOpenAI,
        model: str,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int | None = None,
        json_mode: bool = False,
    ) -> str:
        """Call an OpenAI-compatible chat completions API (OpenAI or Azure)."""
        kwargs: dict[str, Any] = {}
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}
        response = await client.chat.completions.create(
            model=model,
            max_tokens=max_tokens or self.settings.llm_max_tokens,
            temperature=self.settings.llm_temperature,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            **kwargs,
        )
        content = response.choices[0].message.content
        if not content:
            raise ExternalServiceError("Empty response content", FailureKind.MALFORMED_RESPONSE)
        return content

    async def _call(
        self,
        provider: str,
        model: str,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int | None,
        json_mode: bool,
    ) -> str:
        if provider == "anthropic":
            return await self._call_anthropic(model, system_prompt, user_prompt, max_tokens, json_mode)
        if provider == "azure":
            return await self._call_openai(
                self._azure,
                self.settings.azure_openai_deployment,
                system_prompt,
                user_prompt,
                max_tokens,
                json_mode,
            )
        return await self._call_openai(
            self._openai, model, system_prompt, user_prompt, max_tokens, json_mode
        )

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int | None = None,
        json_mode: bool = False,
        use_fallback: bool = True,
    ) -> tuple[str, str]:
        """
        Generate LLM response with automatic fallback.

        Returns (response_text, model_used).
        """
        # Try primary provider
        if self.is_configured(self.primary_provider):
            try:
                response = await self._call(
                    self.primary_provider,
                    self.primary_model,
                    system_prompt,
                    user_prompt,
                    max_tokens,
                    json_mode,
                )
                return response, self.primary_model
            except Exception as e:
                logger.warning(
                    "primary_llm_failed",
                    provider=self.primary_provider,
                    error=str(e),
                )
                if not use_fallback or not self.is_configured(self.fallback_provider):
                    raise

        # Try fallback provider
        if use_fallback and self.is_configured(self.fallback_provider):
            try:
                response = await self._call(
                    self.fallback_provider,
                    self.fallback_model,
                    system_prompt,
                    user_prompt,
                    max_tokens,
                    json_mode,
                )
                return response, self.fallback_model
            except Exception as e:
                logger.error(
                    "fallback_llm_failed",
                    provider=self.fallback_provider,
                    error=str(e),
                )
                raise

        raise ExternalServiceError(
            "No LLM provider available. Set ANTHROPIC_API_KEY, OPENAI_API_KEY or AZURE_OPENAI_API_KEY.",
            FailureKind.UNAVAILABLE,
        )

    async def generate_json(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int | None = None,
    ) -> tuple[Any, str]:
        """Generate a response and parse it as JSON. Raises if no JSON is found."""
        response, model = await self.generate(
            system_prompt, user_prompt, max_tokens=max_tokens, json_mode=True
        )
        parsed = self._parse_json(response)
        if parsed is None:
            raise ExternalServiceError(
                f"Response from {model} was not valid JSON",
                FailureKind.MALFORMED_RESPONSE,
            )
        return parsed, model

    def _parse_json(self, text: str) -> Any:
        """Extract JSON from LLM response text."""
        if "```json" in text:
            start = text.find("```json") + 7
            end = text.find("```", start)
            text = text[start:end].strip()
        elif "```" in text:
            start = text.find("```") + 3
            end = text.find("```", start)
            text = text[start:end].strip()

        try:
            return json.loads(text)
        except json.JSONDecodeError:
            # Try to find JSON object or array
            for opener, closer in [("{", "}"), ("[", "]")]:
                start = text.find(opener)
                end = text.rfind(closer) + 1
                if start >= 0 and end > start:
                    try:
                        return json.loads(text[start:end])
                    except json.JSONDecodeError:
                        continue
            return None
