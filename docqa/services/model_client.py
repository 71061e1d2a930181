# =============================================================================
# Model Client — Bounded Retry Around One Provider Call
# =============================================================================
#
# Wraps GenerativeProvider.generate() with the retry policy:
#
#   attempt 1 ──▶ TransientProviderError ──▶ sleep(backoff) ──▶ attempt 2
#       │                                                           │
#       ├── success → ModelReply(text)                              ...
#       └── any other error → propagate untouched
#
#   last attempt still TransientProviderError → degraded ModelReply
#
# DESIGN DECISION: Fixed backoff, not exponential.
# The budget is 3 attempts. Exponential growth only matters when the
# budget is large; here it would just stretch the caller's wait.
#
# DESIGN DECISION: Overload degrades instead of failing.
# When every attempt hits overload, the caller gets a synthesized Answer
# (can_answer=False, confidence=0.0) instead of an exception. Overload is
# a provider-side condition the user can do nothing about, so it is
# reported as an unanswerable question rather than a hard error.
#
# DESIGN DECISION: Per-call deadline.
# Each attempt runs under asyncio.wait_for(timeout). A call that blows the
# deadline is treated like overload (the provider is not keeping up) and
# retried. Worst case per question is bounded by
# attempts × timeout + (attempts − 1) × backoff.
# =============================================================================

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from docqa.agents.types import Answer, ModelReply
from docqa.errors import TransientProviderError
from docqa.services.llm import GenerativeProvider

logger = logging.getLogger(__name__)

OVERLOAD_REASONING = "The AI service is temporarily overloaded"
OVERLOAD_MESSAGE = (
    "The AI service is currently overloaded and could not answer this "
    "question. Please try again in a few moments."
)

_VALIDATION_PROMPT = "Hello, this is a test."


class ModelClient:
    """
    Invoke a provider with bounded retry on transient overload.

    Args:
        provider: The generative provider to call.
        max_attempts: Total attempts per invocation (not retries).
        backoff_seconds: Fixed wait between attempts.
        timeout_seconds: Deadline for a single attempt; None disables it.
        sleep: Awaitable sleep, injectable for tests.
    """

    def __init__(
        self,
        provider: GenerativeProvider,
        max_attempts: int = 3,
        backoff_seconds: float = 2.0,
        timeout_seconds: float | None = 10.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.provider = provider
        self.max_attempts = max_attempts
        self.backoff_seconds = backoff_seconds
        self.timeout_seconds = timeout_seconds
        self._sleep = sleep

    @property
    def model(self) -> str:
        return getattr(self.provider, "model", "unknown")

    async def invoke(self, prompt: str) -> ModelReply:
        """
        Call the provider, retrying only on TransientProviderError.

        Returns:
            ModelReply with the raw text, or a degraded reply when every
            attempt hit overload.

        Raises:
            CredentialsError, QuotaExceededError, SafetyRejectedError,
            ProviderError: Propagated on the first occurrence.
        """
        last_error: TransientProviderError | None = None

        for attempt in range(1, self.max_attempts + 1):
            try:
                text = await self._attempt(prompt)
            except TransientProviderError as e:
                last_error = e
                logger.warning(
                    "Provider attempt %d/%d failed transiently: %s",
                    attempt, self.max_attempts, e.detail,
                )
                if attempt < self.max_attempts:
                    await self._sleep(self.backoff_seconds)
                continue

            if attempt > 1:
                logger.info("Provider call succeeded on attempt %d", attempt)
            return ModelReply(text=text, attempts=attempt, model=self.model)

        logger.warning(
            "Provider still overloaded after %d attempts, returning degraded answer: %s",
            self.max_attempts, last_error.detail if last_error else "n/a",
        )
        return ModelReply(
            text="",
            attempts=self.max_attempts,
            model=self.model,
            degraded_answer=overload_answer(),
        )

    async def validate(self) -> bool:
        """
        Check that the provider accepts our credentials.

        Sends a tiny prompt once, without retry. Never raises.
        """
        try:
            await self._attempt(_VALIDATION_PROMPT)
        except Exception as e:
            logger.warning("Provider validation failed: %s", e)
            return False
        return True

    def model_info(self) -> dict[str, str]:
        """Provider label and model name, for display."""
        return {
            "provider": getattr(self.provider, "name", "unknown"),
            "model": self.model,
        }

    async def _attempt(self, prompt: str) -> str:
        if self.timeout_seconds is None:
            return await self.provider.generate(prompt)
        try:
            return await asyncio.wait_for(
                self.provider.generate(prompt), timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise TransientProviderError(
                f"no response within {self.timeout_seconds:g}s",
                getattr(self.provider, "name", "unknown"),
            ) from e


def overload_answer() -> Answer:
    """The synthesized answer returned when overload exhausts all attempts."""
    return Answer(
        text=OVERLOAD_MESSAGE,
        can_answer=False,
        confidence=0.0,
        reasoning=OVERLOAD_REASONING,
    )
