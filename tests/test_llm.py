# =============================================================================
# Unit Tests — Generative Providers
# =============================================================================
#
# Covers the factory and the translation of SDK failures into the error
# taxonomy. SDK clients are replaced with fakes, so no network calls.
# =============================================================================

from __future__ import annotations

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock

import anthropic
import httpx
import openai
import pytest

from docqa.config import Settings
from docqa.errors import (
    CredentialsError,
    ProviderError,
    QuotaExceededError,
    SafetyRejectedError,
    TransientProviderError,
)
from docqa.services.llm import (
    AnthropicProvider,
    GeminiProvider,
    OpenAICompatibleProvider,
    classify_status,
    create_provider,
    resolve_api_key,
)


def _run(coro):
    """Helper to run async functions in sync tests."""
    return asyncio.run(coro)


def _settings(**overrides) -> Settings:
    values = {
        "llm_api_key": None,
        "gemini_api_key": "",
        "anthropic_api_key": "",
        "openai_api_key": "",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def _response(status_code: int, url: str) -> httpx.Response:
    return httpx.Response(status_code, request=httpx.Request("POST", url))


# ---------------------------------------------------------------------------
# Test: classify_status
# ---------------------------------------------------------------------------


class TestClassifyStatus:
    @pytest.mark.parametrize(
        "status, detail, expected",
        [
            (503, "The model is overloaded.", TransientProviderError),
            (529, "Overloaded", TransientProviderError),
            (500, "upstream overloaded, try later", TransientProviderError),
            (401, "invalid x-api-key", CredentialsError),
            (403, "permission denied", CredentialsError),
            (400, "API key not valid. Please pass a valid API key.", CredentialsError),
            (429, "Resource has been exhausted", QuotaExceededError),
            (400, "Invalid argument", ProviderError),
            (500, "Internal error", ProviderError),
            (None, "weird", ProviderError),
        ],
    )
    def test_mapping(self, status, detail, expected):
        error = classify_status(status, detail, "gemini")
        assert type(error) is expected
        assert error.provider == "gemini"
        assert error.detail == detail

    def test_overload_is_the_only_transient_kind(self):
        for error_type in (CredentialsError, QuotaExceededError, SafetyRejectedError):
            assert not issubclass(error_type, TransientProviderError)


# ---------------------------------------------------------------------------
# Test: Factory
# ---------------------------------------------------------------------------


class TestCreateProvider:
    def test_unknown_provider(self):
        with pytest.raises(ValueError, match="Unknown provider type"):
            create_provider(_settings(llm_provider="cohere", llm_api_key="k"))

    @pytest.mark.parametrize(
        "provider, env_name",
        [
            ("gemini", "GEMINI_API_KEY"),
            ("anthropic", "ANTHROPIC_API_KEY"),
            ("openai_compatible", "OPENAI_API_KEY"),
        ],
    )
    def test_missing_key(self, provider, env_name):
        with pytest.raises(CredentialsError, match=env_name):
            create_provider(_settings(llm_provider=provider))

    def test_generic_key_wins(self):
        settings = _settings(
            llm_provider="anthropic", llm_api_key="generic", anthropic_api_key="specific",
        )
        assert resolve_api_key(settings) == "generic"

    def test_provider_specific_key(self):
        settings = _settings(llm_provider="anthropic", anthropic_api_key="specific")
        assert resolve_api_key(settings) == "specific"

    def test_builds_anthropic(self):
        provider = create_provider(
            _settings(
                llm_provider="anthropic",
                llm_model="claude-sonnet-4-20250514",
                anthropic_api_key="test-key",
            )
        )
        assert isinstance(provider, AnthropicProvider)
        assert provider.model == "claude-sonnet-4-20250514"

    def test_builds_openai_compatible_with_base_url(self):
        provider = create_provider(
            _settings(
                llm_provider="openai_compatible",
                llm_model="deepseek-chat",
                llm_base_url="https://api.deepseek.com/v1",
                openai_api_key="test-key",
            )
        )
        assert isinstance(provider, OpenAICompatibleProvider)
        assert provider.model == "deepseek-chat"

    def test_builds_gemini(self):
        provider = create_provider(_settings(gemini_api_key="test-key"))
        assert isinstance(provider, GeminiProvider)
        assert provider.model == "gemini-2.0-flash"


# ---------------------------------------------------------------------------
# Test: Anthropic error translation
# ---------------------------------------------------------------------------

ANTHROPIC_URL = "https://api.anthropic.com/v1/messages"


def _anthropic(create: AsyncMock) -> AnthropicProvider:
    provider = AnthropicProvider(api_key="test-key", model="claude-test")
    provider._client = SimpleNamespace(messages=SimpleNamespace(create=create))
    return provider


class TestAnthropicProvider:
    def test_returns_text(self):
        create = AsyncMock(
            return_value=SimpleNamespace(
                stop_reason="end_turn",
                content=[SimpleNamespace(type="text", text="Blue")],
            )
        )
        assert _run(_anthropic(create).generate("q")) == "Blue"
        assert create.await_args.kwargs["messages"] == [{"role": "user", "content": "q"}]

    @pytest.mark.parametrize(
        "status, expected",
        [
            (529, TransientProviderError),
            (401, CredentialsError),
            (429, QuotaExceededError),
            (400, ProviderError),
        ],
    )
    def test_status_errors(self, status, expected):
        error = anthropic.APIStatusError(
            "error", response=_response(status, ANTHROPIC_URL), body=None,
        )
        provider = _anthropic(AsyncMock(side_effect=error))

        with pytest.raises(expected) as exc_info:
            _run(provider.generate("q"))

        assert type(exc_info.value) is expected
        assert exc_info.value.__cause__ is error

    def test_timeout_is_transient(self):
        error = anthropic.APITimeoutError(request=httpx.Request("POST", ANTHROPIC_URL))
        provider = _anthropic(AsyncMock(side_effect=error))
        with pytest.raises(TransientProviderError):
            _run(provider.generate("q"))

    def test_refusal_is_safety(self):
        create = AsyncMock(return_value=SimpleNamespace(stop_reason="refusal", content=[]))
        with pytest.raises(SafetyRejectedError):
            _run(_anthropic(create).generate("q"))


# ---------------------------------------------------------------------------
# Test: OpenAI-compatible error translation
# ---------------------------------------------------------------------------

OPENAI_URL = "https://api.openai.com/v1/chat/completions"


def _openai(create: AsyncMock) -> OpenAICompatibleProvider:
    provider = OpenAICompatibleProvider(api_key="test-key", model="gpt-test")
    provider._client = SimpleNamespace(
        chat=SimpleNamespace(completions=SimpleNamespace(create=create)),
    )
    return provider


def _completion(content: str | None, finish_reason: str = "stop") -> SimpleNamespace:
    return SimpleNamespace(
        choices=[
            SimpleNamespace(
                finish_reason=finish_reason,
                message=SimpleNamespace(content=content),
            )
        ]
    )


class TestOpenAICompatibleProvider:
    def test_returns_content(self):
        provider = _openai(AsyncMock(return_value=_completion("Blue")))
        assert _run(provider.generate("q")) == "Blue"

    def test_none_content_is_empty(self):
        provider = _openai(AsyncMock(return_value=_completion(None)))
        assert _run(provider.generate("q")) == ""

    def test_content_filter_finish_is_safety(self):
        provider = _openai(AsyncMock(return_value=_completion(None, "content_filter")))
        with pytest.raises(SafetyRejectedError):
            _run(provider.generate("q"))

    def test_content_filter_code_is_safety(self):
        error = openai.APIStatusError(
            "blocked",
            response=_response(400, OPENAI_URL),
            body={"code": "content_filter", "message": "blocked"},
        )
        provider = _openai(AsyncMock(side_effect=error))
        with pytest.raises(SafetyRejectedError):
            _run(provider.generate("q"))

    @pytest.mark.parametrize(
        "status, expected",
        [
            (503, TransientProviderError),
            (401, CredentialsError),
            (429, QuotaExceededError),
            (500, ProviderError),
        ],
    )
    def test_status_errors(self, status, expected):
        error = openai.APIStatusError(
            "error", response=_response(status, OPENAI_URL), body=None,
        )
        provider = _openai(AsyncMock(side_effect=error))

        with pytest.raises(expected) as exc_info:
            _run(provider.generate("q"))

        assert type(exc_info.value) is expected


# ---------------------------------------------------------------------------
# Test: Gemini response handling
# ---------------------------------------------------------------------------


def _gemini(generate_content: AsyncMock) -> GeminiProvider:
    provider = GeminiProvider(api_key="test-key", model="gemini-test")
    provider._client = SimpleNamespace(
        aio=SimpleNamespace(models=SimpleNamespace(generate_content=generate_content)),
    )
    return provider


def _gemini_response(text, block_reason=None, finish_reason="STOP") -> SimpleNamespace:
    return SimpleNamespace(
        text=text,
        prompt_feedback=SimpleNamespace(block_reason=block_reason),
        candidates=[SimpleNamespace(finish_reason=finish_reason)],
    )


class TestGeminiProvider:
    def test_returns_text(self):
        generate = AsyncMock(return_value=_gemini_response("Blue"))
        assert _run(_gemini(generate).generate("q")) == "Blue"
        assert generate.await_args.kwargs["model"] == "gemini-test"

    def test_blocked_prompt_is_safety(self):
        generate = AsyncMock(return_value=_gemini_response(None, block_reason="SAFETY"))
        with pytest.raises(SafetyRejectedError, match="prompt blocked"):
            _run(_gemini(generate).generate("q"))

    def test_safety_finish_is_safety(self):
        generate = AsyncMock(return_value=_gemini_response(None, finish_reason="SAFETY"))
        with pytest.raises(SafetyRejectedError):
            _run(_gemini(generate).generate("q"))

    def test_overloaded_api_error_is_transient(self):
        from google.genai import errors

        error = errors.ServerError(
            503,
            {"error": {"code": 503, "message": "The model is overloaded.", "status": "UNAVAILABLE"}},
        )
        with pytest.raises(TransientProviderError):
            _run(_gemini(AsyncMock(side_effect=error)).generate("q"))
