"""
Configuration management for sowdiff.

Loads settings from environment variables with sensible defaults.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==========================================================================
    # Environment
    # ==========================================================================
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False
    log_level: str = "INFO"

    # ==========================================================================
    # LLM API Keys
    # ==========================================================================
    anthropic_api_key: str = Field(default="", description="Anthropic API key for Claude")
    openai_api_key: str = Field(default="", description="OpenAI API key")
    azure_openai_api_key: str = Field(default="", description="Azure OpenAI API key")
    azure_openai_endpoint: str = Field(default="", description="Azure OpenAI endpoint URL")
    azure_openai_api_version: str = "2024-08-01-preview"
    azure_openai_deployment: str = "gpt-4.1"

    # ==========================================================================
    # LLM Configuration
    # ==========================================================================
    primary_llm_provider: Literal["anthropic", "openai", "azure"] = "anthropic"
    primary_llm_model: str = "claude-sonnet-4-20250514"
    fallback_llm_provider: Literal["anthropic", "openai", "azure"] = "openai"
    fallback_llm_model: str = "gpt-4o"
    llm_temperature: float = 0.3
    llm_max_tokens: int = 2000
    llm_timeout: int = 60

    # ==========================================================================
    # Review Configuration
    # ==========================================================================
    section_analysis_max_tokens: int = 2000
    global_analysis_max_tokens: int = 1500
    acronym_analysis_max_tokens: int = 1000
    jargon_analysis_max_tokens: int = 1000
    review_batch_size: int = Field(default=3, ge=1)
    section_body_char_limit: int = 3000
    global_summary_char_limit: int = 4000
    section_preview_chars: int = 200
    acronym_context_chars: int = 2000
    jargon_context_chars: int = 1500

    # ==========================================================================
    # API Configuration
    # ==========================================================================
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    max_upload_bytes: int = 20 * 1024 * 1024
    cors_origins: list[str] = Field(default_factory=lambda: ["http://localhost:3000"])

    @property
    def ai_configured(self) -> bool:
        """Whether any language-model provider has credentials."""
        return bool(
            self.anthropic_api_key
            or self.openai_api_key
            or (self.azure_openai_api_key and self.azure_openai_endpoint)
        )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
