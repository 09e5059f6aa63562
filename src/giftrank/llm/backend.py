# src/giftrank/llm/backend.py — v1
"""Guarded backend invocation: one call, fixed timeout, typed failure.

Wraps BaseLLMClient.complete() into the plain ``prompt -> text`` shape the
ranking pipeline consumes. Network, auth, rate-limit and timeout failures
are classified and re-raised as BackendUnavailable so callers can apply
their fallback without catching provider-specific exceptions.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from giftrank.llm.models import Message

if TYPE_CHECKING:
    from giftrank.llm.base_client import BaseLLMClient
    from giftrank.tracking.call_logger import CallLogger

logger = logging.getLogger(__name__)


class BackendUnavailable(Exception):
    """The generative backend could not produce a response."""

    def __init__(self, component: str, error_type: str, last_error: BaseException):
        self.component = component
        self.error_type = error_type
        self.last_error = last_error
        super().__init__(
            f"Backend call for '{component}' failed ({error_type}): {last_error}"
        )


def classify_error(error: BaseException) -> str:
    """Classify a backend exception into a coarse error type."""
    msg = str(error).lower()
    name = type(error).__name__.lower()

    if "timeout" in name or "timeout" in msg:
        return "timeout"
    if "429" in msg or "rate" in msg:
        return "rate_limit"
    if "401" in msg or "403" in msg or "auth" in name or "api key" in msg:
        return "auth"
    if any(c in msg for c in ("500", "502", "503", "504", "server")):
        return "server_error"
    if "connect" in name or "connect" in msg:
        return "network"
    return "unknown"


async def complete_text(
    llm: BaseLLMClient,
    prompt: str,
    system: str | None = None,
    temperature: float = 0.2,
    max_tokens: int = 1024,
    timeout_s: float = 30.0,
    component: str = "unknown",
    call_logger: CallLogger | None = None,
) -> str:
    """Run a single completion and return its raw text.

    Args:
        llm: Backend client.
        prompt: User prompt.
        system: Optional system prompt.
        temperature: Sampling temperature.
        max_tokens: Completion token cap.
        timeout_s: Hard timeout for the whole call.
        component: Caller name, used for logs and tracking.
        call_logger: Optional tracker receiving one record per call.

    Returns:
        Raw response text (possibly empty, never validated here).

    Raises:
        BackendUnavailable: On any failure of the call, including timeout.
    """
    try:
        response = await asyncio.wait_for(
            llm.complete(
                messages=[Message(role="user", content=prompt)],
                system=system,
                max_tokens=max_tokens,
                temperature=temperature,
            ),
            timeout=timeout_s,
        )
    except asyncio.CancelledError:
        raise
    except Exception as exc:
        error_type = classify_error(exc)
        logger.warning(
            "Backend call for '%s' failed (%s): %s", component, error_type, exc,
        )
        if call_logger is not None:
            call_logger.record_failure(component, provider=_provider_of(llm))
        raise BackendUnavailable(component, error_type, exc) from exc

    if call_logger is not None:
        call_logger.record(component, response)
    return response.content or ""


def _provider_of(llm: BaseLLMClient) -> str:
    try:
        return str(llm.provider_name)
    except Exception:  # noqa: BLE001
        return "unknown"
