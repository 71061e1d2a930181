# =============================================================================
# Unit Tests — Batch Executor
# =============================================================================
#
# A batch of N valid questions always yields N ordered outcomes; only a
# bad batch shape or an unusable document fails the whole call.
# =============================================================================

from __future__ import annotations

import asyncio
import dataclasses
from unittest.mock import AsyncMock

import pytest

from docqa.agents.batch import BatchExecutor, validate_batch
from docqa.agents.query import QueryExecutor
from docqa.agents.types import DocumentContext
from docqa.errors import CredentialsError, DocumentNotReadyError, InvalidInputError
from docqa.services.model_client import ModelClient


def _run(coro):
    """Helper to run async functions in sync tests."""
    return asyncio.run(coro)


class RoutedProvider:
    """Answers every prompt, except those containing a failing marker."""

    name = "fake"
    model = "fake-model"

    def __init__(self, failures: dict[str, Exception] | None = None):
        self.failures = failures or {}
        self.prompts: list[str] = []

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        for marker, error in self.failures.items():
            if marker in prompt:
                raise error
        return '{"answer": "ok", "canAnswer": true, "confidence": 0.9, "reasoning": "r"}'


def _batch(provider: RoutedProvider) -> BatchExecutor:
    client = ModelClient(provider, backoff_seconds=0, sleep=AsyncMock())
    return BatchExecutor(QueryExecutor(client))


DOC = DocumentContext(document_id="doc_1", text="Some document text.")


class TestExecuteBatch:
    def test_failure_in_the_middle_is_isolated(self):
        provider = RoutedProvider(
            {"Second question?": CredentialsError("API key not valid", "fake")},
        )
        questions = ["First question?", "Second question?", "Third question?"]

        results = _run(_batch(provider).execute_batch(DOC, questions))

        assert [r.success for r in results] == [True, False, True]
        assert [r.question for r in results] == questions
        assert [r.index for r in results] == [0, 1, 2]
        assert results[1].error_type == "CredentialsError"
        assert "API key not valid" in results[1].error
        assert results[0].result.text == "ok"
        assert results[2].result.text == "ok"

    @pytest.mark.parametrize("size", [1, 5, 10])
    def test_preserves_order_and_cardinality(self, size):
        questions = [f"Question number {i}?" for i in range(size)]
        provider = RoutedProvider()

        results = _run(_batch(provider).execute_batch(DOC, questions))

        assert len(results) == size
        assert [r.question for r in results] == questions
        # Sequential: prompts were sent in input order
        for question, prompt in zip(questions, provider.prompts, strict=True):
            assert question in prompt

    def test_invalid_question_fails_only_its_item(self):
        provider = RoutedProvider()

        results = _run(_batch(provider).execute_batch(DOC, ["Valid one?", "x", "Valid two?"]))

        assert [r.success for r in results] == [True, False, True]
        assert results[1].error_type == "InvalidInputError"
        assert len(provider.prompts) == 2

    def test_items_keep_questions_as_submitted(self):
        questions = ["  Padded question?  ", " x ", "Plain question?"]

        results = _run(_batch(RoutedProvider()).execute_batch(DOC, questions))

        assert [r.question for r in results] == questions
        assert [r.success for r in results] == [True, False, True]
        # The answer itself records the trimmed form
        assert results[0].result.question == "Padded question?"

    def test_all_items_failing_still_returns_results(self):
        provider = RoutedProvider({"?": CredentialsError("bad key", "fake")})

        results = _run(_batch(provider).execute_batch(DOC, ["One?", "Two?"]))

        assert len(results) == 2
        assert not any(r.success for r in results)


class TestBatchShape:
    @pytest.mark.parametrize("questions", [[], [f"Question {i}?" for i in range(11)]])
    def test_rejects_bad_sizes(self, questions):
        provider = RoutedProvider()
        with pytest.raises(InvalidInputError):
            _run(_batch(provider).execute_batch(DOC, questions))
        assert provider.prompts == []

    @pytest.mark.parametrize("questions", ["What is this?", None, 3])
    def test_rejects_non_lists(self, questions):
        with pytest.raises(InvalidInputError):
            validate_batch(questions)

    def test_custom_max_size(self):
        with pytest.raises(InvalidInputError, match="between 1 and 2"):
            validate_batch(["a?", "b?", "c?"], max_size=2)

    def test_empty_document_fails_whole_batch(self):
        provider = RoutedProvider()
        document = DocumentContext(document_id="empty", text="  ")
        with pytest.raises(DocumentNotReadyError):
            _run(_batch(provider).execute_batch(document, ["What is this?"]))
        assert provider.prompts == []


class TestResultHook:
    def test_hook_can_replace_result(self):
        async def hook(result):
            return dataclasses.replace(result, record_id=99)

        results = _run(_batch(RoutedProvider()).execute_batch(DOC, ["One?"], on_result=hook))

        assert results[0].result.record_id == 99

    def test_hook_failure_fails_only_that_item(self):
        calls = []

        async def hook(result):
            calls.append(result.question)
            if result.question == "Two?":
                raise RuntimeError("database unavailable")
            return result

        results = _run(
            _batch(RoutedProvider()).execute_batch(DOC, ["One?", "Two?", "Three?"], on_result=hook)
        )

        assert [r.success for r in results] == [True, False, True]
        assert results[1].error == "database unavailable"
        assert results[1].error_type == "RuntimeError"
        assert calls == ["One?", "Two?", "Three?"]
