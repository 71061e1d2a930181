# =============================================================================
# Generative Provider Abstraction — Pluggable AI Backend
# =============================================================================
#
# Provides a common single-shot interface, `generate(prompt) -> str`, with
# concrete implementations for Google Gemini, Anthropic (Claude) and
# OpenAI-compatible APIs (OpenAI, DeepSeek, Qwen, ...).
#
# DESIGN DECISION: Protocol (structural typing) over ABC.
# Any class with the right `generate()` method works, which lets tests pass
# an AsyncMock or a ten-line fake without inheriting from anything.
#
# DESIGN DECISION: Failures are classified HERE, once.
# Each adapter translates its SDK's exceptions into the error taxonomy in
# docqa.errors. The retry policy (model_client.py) only ever sees
# TransientProviderError vs. everything else, never SDK types or messages.
#
# DESIGN DECISION: SDK-level retries are disabled.
# The SDKs retry 429/5xx on their own by default. Left on, a single
# "attempt" in our policy could hide several real calls and the
# 3-attempt budget would be meaningless.
#
# DESIGN DECISION: No process-wide singleton.
# create_provider() builds a fresh instance with explicitly injected
# credentials. The composition root owns the instance's lifetime.
#
# ARCHITECTURE:
#   GenerativeProvider (Protocol)
#   ├── GeminiProvider            — google-genai SDK (default)
#   ├── AnthropicProvider         — native Anthropic SDK
#   ├── OpenAICompatibleProvider  — OpenAI SDK with optional base_url
#   ├── classify_status()         — HTTP status → error type
#   └── create_provider()         — factory, reads from Settings
# =============================================================================

from __future__ import annotations

import logging
from typing import Protocol

from docqa.config import Settings
from docqa.errors import (
    CredentialsError,
    ProviderError,
    QuotaExceededError,
    SafetyRejectedError,
    TransientProviderError,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Protocol Definition
# ---------------------------------------------------------------------------


class GenerativeProvider(Protocol):
    """
    Protocol for the one outbound network call of the query pipeline.

    Implementations must raise TransientProviderError for temporary
    overload, distinguishable from every other failure.
    """

    name: str
    model: str

    async def generate(self, prompt: str) -> str:
        """
        Generate text for a single prompt.

        Raises:
            TransientProviderError: Provider temporarily saturated.
            CredentialsError, QuotaExceededError, SafetyRejectedError,
            ProviderError: Fatal, not retryable.
        """
        ...


# ---------------------------------------------------------------------------
# Status Classification
# ---------------------------------------------------------------------------

# 503 = service unavailable (Gemini "model is overloaded"),
# 529 = Anthropic "overloaded_error".
_OVERLOAD_STATUSES = {503, 529}
_CREDENTIAL_STATUSES = {401, 403}
_QUOTA_STATUSES = {429}


def classify_status(
    status_code: int | None,
    detail: str,
    provider: str,
) -> ProviderError:
    """
    Map an HTTP status from a provider SDK onto the error taxonomy.

    Returns the error instance; the caller raises it (`raise ... from e`)
    so the SDK exception stays attached as the cause.
    """
    lowered = detail.lower()
    if status_code in _OVERLOAD_STATUSES or "overloaded" in lowered:
        return TransientProviderError(detail, provider)
    if status_code in _CREDENTIAL_STATUSES:
        return CredentialsError(detail, provider)
    # Gemini answers an invalid key with 400 INVALID_ARGUMENT
    if status_code == 400 and "api key" in lowered:
        return CredentialsError(detail, provider)
    if status_code in _QUOTA_STATUSES:
        return QuotaExceededError(detail, provider)
    return ProviderError(detail, provider)


# ---------------------------------------------------------------------------
# Implementation 1: Google Gemini
# ---------------------------------------------------------------------------


class GeminiProvider:
    """
    Google Gemini provider using the google-genai SDK's async client.

    Safety blocks are not exceptions in this SDK: a blocked prompt comes
    back with `prompt_feedback.block_reason`, a blocked answer with
    `finish_reason == SAFETY` and no text. Both become
    SafetyRejectedError.
    """

    name = "gemini"

    def __init__(
        self,
        api_key: str,
        model: str,
        temperature: float = 0.1,
        max_tokens: int = 1024,
    ) -> None:
        from google import genai
        from google.genai import types

        self._client = genai.Client(api_key=api_key)
        self._config = types.GenerateContentConfig(
            temperature=temperature,
            max_output_tokens=max_tokens,
        )
        self.model = model

        logger.info("Initialized GeminiProvider (model=%s)", self.model)

    async def generate(self, prompt: str) -> str:
        from google.genai import errors

        try:
            response = await self._client.aio.models.generate_content(
                model=self.model,
                contents=prompt,
                config=self._config,
            )
        except errors.APIError as e:
            detail = e.message or str(e)
            raise classify_status(e.code, detail, self.name) from e

        feedback = response.prompt_feedback
        if feedback is not None and feedback.block_reason:
            raise SafetyRejectedError(
                f"prompt blocked ({feedback.block_reason})", self.name,
            )

        candidates = response.candidates or []
        if candidates and _is_safety_stop(candidates[0].finish_reason):
            raise SafetyRejectedError("response blocked by safety filters", self.name)

        return response.text or ""


def _is_safety_stop(finish_reason: object) -> bool:
    # FinishReason is a str enum; compare by value to stay SDK-version agnostic
    return str(getattr(finish_reason, "value", finish_reason)) == "SAFETY"


# ---------------------------------------------------------------------------
# Implementation 2: Anthropic (Claude)
# ---------------------------------------------------------------------------


class AnthropicProvider:
    """
    Anthropic Claude provider using the native async SDK.

    Overload arrives as HTTP 529 (`overloaded_error`); a refusal arrives
    as a normal response with `stop_reason == "refusal"`.
    """

    name = "anthropic"

    def __init__(
        self,
        api_key: str,
        model: str,
        temperature: float = 0.1,
        max_tokens: int = 1024,
    ) -> None:
        from anthropic import AsyncAnthropic

        self._client = AsyncAnthropic(api_key=api_key, max_retries=0)
        self.model = model
        self._temperature = temperature
        self._max_tokens = max_tokens

        logger.info("Initialized AnthropicProvider (model=%s)", self.model)

    async def generate(self, prompt: str) -> str:
        import anthropic

        try:
            response = await self._client.messages.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                max_tokens=self._max_tokens,
                temperature=self._temperature,
            )
        except anthropic.APIStatusError as e:
            raise classify_status(e.status_code, e.message, self.name) from e
        except anthropic.APITimeoutError as e:
            raise TransientProviderError("request timed out", self.name) from e
        except anthropic.APIConnectionError as e:
            raise ProviderError(f"connection failed: {e}", self.name) from e

        if response.stop_reason == "refusal":
            raise SafetyRejectedError("model refused the request", self.name)

        for block in response.content:
            if block.type == "text":
                return block.text
        return ""


# ---------------------------------------------------------------------------
# Implementation 3: OpenAI-Compatible (OpenAI, DeepSeek, Qwen, etc.)
# ---------------------------------------------------------------------------


class OpenAICompatibleProvider:
    """
    Provider for any API following the OpenAI chat completions spec.

    Switching vendors is a config change:
        LLM_PROVIDER=openai_compatible
        LLM_BASE_URL=https://api.deepseek.com/v1
        LLM_MODEL=deepseek-chat
    """

    name = "openai_compatible"

    _SAFETY_CODES = {"content_filter", "content_policy_violation"}

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str | None = None,
        temperature: float = 0.1,
        max_tokens: int = 1024,
    ) -> None:
        from openai import AsyncOpenAI

        client_kwargs: dict = {"api_key": api_key, "max_retries": 0}
        if base_url:
            client_kwargs["base_url"] = base_url

        self._client = AsyncOpenAI(**client_kwargs)
        self.model = model
        self._temperature = temperature
        self._max_tokens = max_tokens

        logger.info(
            "Initialized OpenAICompatibleProvider (model=%s, base_url=%s)",
            self.model,
            base_url or "https://api.openai.com/v1",
        )

    async def generate(self, prompt: str) -> str:
        import openai

        try:
            response = await self._client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                max_tokens=self._max_tokens,
                temperature=self._temperature,
            )
        except openai.APIStatusError as e:
            if getattr(e, "code", None) in self._SAFETY_CODES:
                raise SafetyRejectedError(e.message, self.name) from e
            raise classify_status(e.status_code, e.message, self.name) from e
        except openai.APITimeoutError as e:
            raise TransientProviderError("request timed out", self.name) from e
        except openai.APIConnectionError as e:
            raise ProviderError(f"connection failed: {e}", self.name) from e

        if not response.choices:
            return ""
        choice = response.choices[0]
        if choice.finish_reason == "content_filter":
            raise SafetyRejectedError("response blocked by content filter", self.name)
        return choice.message.content or ""


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

KNOWN_PROVIDERS = ("gemini", "anthropic", "openai_compatible")

# Provider type → settings field holding its dedicated key
_KEY_FIELDS = {
    "gemini": "gemini_api_key",
    "anthropic": "anthropic_api_key",
    "openai_compatible": "openai_api_key",
}


def resolve_api_key(settings: Settings) -> str:
    """Pick the API key for the configured provider (llm_api_key wins)."""
    if settings.llm_api_key:
        return settings.llm_api_key
    field = _KEY_FIELDS.get(settings.llm_provider)
    return getattr(settings, field) if field else ""


def create_provider(settings: Settings) -> GenerativeProvider:
    """
    Build a fresh provider for `settings.llm_provider`.

    Raises:
        CredentialsError: No API key configured for the provider.
        ValueError: Unknown provider type.
    """
    provider_type = settings.llm_provider
    if provider_type not in KNOWN_PROVIDERS:
        raise ValueError(
            f"Unknown provider type '{provider_type}'. "
            f"Supported types: {list(KNOWN_PROVIDERS)}"
        )

    api_key = resolve_api_key(settings)
    if not api_key:
        raise CredentialsError(
            "No API key configured. Set LLM_API_KEY or "
            f"{_KEY_FIELDS[provider_type].upper()} in .env",
            provider_type,
        )

    common = {
        "api_key": api_key,
        "model": settings.llm_model,
        "temperature": settings.llm_temperature,
        "max_tokens": settings.llm_max_tokens,
    }
    if provider_type == "gemini":
        return GeminiProvider(**common)
    if provider_type == "anthropic":
        return AnthropicProvider(**common)
    return OpenAICompatibleProvider(base_url=settings.llm_base_url, **common)
