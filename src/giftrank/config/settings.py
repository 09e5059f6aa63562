# src/giftrank/config/settings.py — v1
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for LLM routing, call parameters, ranking limits
and logging. Cross-field rules are checked in validate_config_consistency.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === LLM PROVIDERS ===
    llm_default_provider: str = "openai"
    llm_default_model: str = "gpt-4o-mini"

    # Provider API keys
    openai_api_key: str = ""
    anthropic_api_key: str = ""
    ollama_base_url: str = "http://localhost:11434"

    # Per-component LLM assignment ("provider:model", highest priority)
    llm_reranker: str = ""
    llm_rationale: str = ""
    llm_preference_extractor: str = ""

    # === Call parameters ===
    llm_timeout_s: float = 30.0
    rerank_temperature: float = 0.0
    rerank_max_tokens: int = 100
    rationale_temperature: float = 0.1
    rationale_max_tokens: int = 200
    preference_temperature: float = 0.1
    preference_max_tokens: int = 1024

    # === Ranking ===
    default_top_n: int = 3
    rerank_working_set_size: int = 30
    rerank_description_max_length: int = 200
    rationale_document_max_length: int = 500
    strict_dislike_filter: bool = False
    dislike_filter_min_weight: float = 0.7
    default_preference_weight: float = 0.7

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @field_validator("default_top_n", "rerank_working_set_size")
    @classmethod
    def validate_positive(cls, v: int) -> int:  # noqa: N805
        if v < 1:
            raise ValueError("must be >= 1")
        return v

    @field_validator("llm_timeout_s")
    @classmethod
    def validate_timeout(cls, v: float) -> float:  # noqa: N805
        if v <= 0:
            raise ValueError("llm_timeout_s must be > 0")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if self.rerank_working_set_size < self.default_top_n:
            errors.append(
                "RERANK_WORKING_SET_SIZE must be >= DEFAULT_TOP_N"
            )

        for name in ("dislike_filter_min_weight", "default_preference_weight"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                errors.append(f"{name.upper()} must be within [0, 1]")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or per-request config).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
