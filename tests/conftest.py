# tests/conftest.py — v1
"""Shared test fixtures for all unit and integration tests.

Provides mock LLM clients, sample gift pools, personas and profiles.
No external dependencies: all backend calls are mocked.
"""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from giftrank.config.settings import Settings
from giftrank.core.models import (
    GiftCandidate,
    GiftMetadata,
    PersonaDescriptor,
    PreferenceItem,
    PreferenceProfile,
)
from giftrank.llm.models import LLMResponse


def make_gift(
    gift_id: str | None,
    name: str,
    category: str = "",
    description: str = "",
    **metadata: object,
) -> GiftCandidate:
    """Build a GiftCandidate with the given name/category/description."""
    return GiftCandidate(
        id=gift_id,
        metadata=GiftMetadata(name=name, category=category, **metadata),
        document=description,
    )


def make_response(content: str) -> LLMResponse:
    return LLMResponse(
        content=content,
        input_tokens=120,
        output_tokens=12,
        model="gpt-4o-mini",
        provider="openai",
        latency_ms=250,
    )


# === FIXTURES: Settings ===


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from any local .env file."""
    return Settings(_env_file=None)


# === FIXTURES: Sample data ===


@pytest.fixture
def golf_wine_pool() -> list[GiftCandidate]:
    """Candle set first, then two golf items and a wine set."""
    return [
        make_gift("g1", "Candle Set", "Home > Fragrance", "Scented soy candles"),
        make_gift("g2", "Golf Balls", "Sports > Golf", "Premium tour golf balls"),
        make_gift("g3", "Wine Glasses", "Kitchen > Bar", "Crystal wine glass pair"),
        make_gift("g4", "Golf Club Cover", "Sports > Golf", "Leather driver head cover"),
    ]


@pytest.fixture
def large_pool() -> list[GiftCandidate]:
    """Ten distinct generic gifts."""
    return [
        make_gift(f"p{i}", f"Gift {i}", "General", f"Description of gift {i}")
        for i in range(10)
    ]


@pytest.fixture
def golf_wine_profile() -> PreferenceProfile:
    return PreferenceProfile(
        likes=[
            PreferenceItem(item="golf", evidence=["loves golf"], weight=0.9),
            PreferenceItem(item="wine", evidence=["collects wine"], weight=0.7),
        ],
        dislikes=[
            PreferenceItem(item="candle", evidence=["hates candle smell"], weight=0.8),
        ],
    )


@pytest.fixture
def sample_persona() -> PersonaDescriptor:
    return PersonaDescriptor(
        rank="Director", gender="male", memo="golf", add_memo="back support",
    )


# === FIXTURES: Mock LLM ===


@pytest.fixture
def mock_llm_response() -> LLMResponse:
    """Standard mock LLM response: a valid index array."""
    return make_response("[1, 0, 2]")


@pytest.fixture
def mock_llm_client(mock_llm_response: LLMResponse) -> AsyncMock:
    """Mock BaseLLMClient with default response."""
    client = AsyncMock()
    client.complete = AsyncMock(return_value=mock_llm_response)
    client.provider_name = "mock"
    return client
