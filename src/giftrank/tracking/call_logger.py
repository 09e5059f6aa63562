# src/giftrank/tracking/call_logger.py — v1
"""LLM call logging: one record per backend call made by the pipeline.

Records are accumulated in memory for a request and can be dumped as
JSON Lines for offline cost and latency analysis.
"""

from __future__ import annotations

import json
import uuid
from datetime import datetime, timezone
from pathlib import Path

from giftrank.llm.models import LLMResponse
from giftrank.tracking.models import LLMCallRecord


class CallLogger:
    """Accumulates LLM call records during a recommendation request."""

    def __init__(self) -> None:
        self._records: list[LLMCallRecord] = []

    def record(self, component: str, response: LLMResponse) -> LLMCallRecord:
        """Record a successful call.

        Args:
            component: Calling component (e.g. "reranker").
            response: LLM response with token usage.
        """
        record = LLMCallRecord(
            call_id=str(uuid.uuid4()),
            timestamp=datetime.now(timezone.utc),
            component=component,
            provider=response.provider,
            model=response.model,
            input_tokens=response.input_tokens,
            output_tokens=response.output_tokens,
            total_tokens=response.input_tokens + response.output_tokens,
            latency_ms=response.latency_ms,
            status="success",
        )
        self._records.append(record)
        return record

    def record_failure(
        self, component: str, provider: str = "unknown", model: str = "unknown",
    ) -> LLMCallRecord:
        """Record a call that raised or timed out."""
        record = LLMCallRecord(
            call_id=str(uuid.uuid4()),
            timestamp=datetime.now(timezone.utc),
            component=component,
            provider=provider,
            model=model,
            status="failed",
        )
        self._records.append(record)
        return record

    @property
    def records(self) -> list[LLMCallRecord]:
        """All recorded calls."""
        return list(self._records)

    @property
    def total_tokens(self) -> int:
        return sum(r.total_tokens for r in self._records)

    @property
    def total_calls(self) -> int:
        return len(self._records)

    @property
    def failed_calls(self) -> int:
        return sum(1 for r in self._records if r.status == "failed")

    def save(self, path: Path) -> None:
        """Save all records to a JSON Lines file."""
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as f:
            for record in self._records:
                f.write(json.dumps(record.model_dump(), default=str) + "\n")
