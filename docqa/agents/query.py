# =============================================================================
# Query Executor — One Question Against One Document
# =============================================================================
#
# FLOW:
#   validate question + document ──▶ build prompt ──▶ ModelClient.invoke
#   (timed) ──▶ parse answer ──▶ estimate tokens ──▶ QueryResult
#
# Validation happens before the prompt is built, so a bad request never
# reaches the provider. Provider errors propagate untouched; persistence
# is the caller's job (see services/qa.py).
# =============================================================================

from __future__ import annotations

import logging
import math
import time

from docqa.agents.parser import parse_answer
from docqa.agents.prompts import DEFAULT_CONTEXT_CHARS, build_answer_prompt
from docqa.agents.types import DocumentContext, QueryResult
from docqa.errors import DocumentNotReadyError, InvalidInputError
from docqa.services.model_client import ModelClient

logger = logging.getLogger(__name__)

MIN_QUESTION_LENGTH = 3
CHARS_PER_TOKEN = 4


def validate_question(question: object, min_length: int = MIN_QUESTION_LENGTH) -> str:
    """
    Check a question and return it trimmed.

    Raises:
        InvalidInputError: Missing, not a string, or shorter than
            `min_length` characters after trimming.
    """
    if not isinstance(question, str) or not question.strip():
        raise InvalidInputError("A question is required")
    trimmed = question.strip()
    if len(trimmed) < min_length:
        raise InvalidInputError(
            f"Question must be at least {min_length} characters long"
        )
    return trimmed


def estimate_tokens(text: str) -> int:
    """Rough token count: ~4 characters per token. Reporting only."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)


class QueryExecutor:
    """Answer a single question about a single document."""

    def __init__(
        self,
        model_client: ModelClient,
        context_chars: int = DEFAULT_CONTEXT_CHARS,
        min_question_length: int = MIN_QUESTION_LENGTH,
    ) -> None:
        self.model_client = model_client
        self.context_chars = context_chars
        self.min_question_length = min_question_length

    async def execute(self, document: DocumentContext, question: str) -> QueryResult:
        """
        Answer `question` from `document`'s text.

        Raises:
            InvalidInputError: Question missing or too short.
            DocumentNotReadyError: Document has no text.
            ProviderError (and subclasses other than transient): from the
                model call, untouched.
        """
        question = validate_question(question, self.min_question_length)
        if not document.has_text:
            raise DocumentNotReadyError(document.document_id)

        prompt = build_answer_prompt(document.text, question, self.context_chars)

        logger.info(
            "Answering question for document %s: '%s'",
            document.document_id, question[:80],
        )

        start = time.monotonic()
        reply = await self.model_client.invoke(prompt)
        processing_time_ms = int((time.monotonic() - start) * 1000)

        if reply.degraded_answer is not None:
            answer = reply.degraded_answer
            tokens = 0  # Nothing was generated
        else:
            answer = parse_answer(reply.text)
            tokens = estimate_tokens(prompt + reply.text)

        logger.info(
            "Answered in %dms (attempts=%d, confidence=%.2f, degraded=%s)",
            processing_time_ms, reply.attempts, answer.confidence, reply.degraded,
        )

        return QueryResult(
            answer=answer,
            question=question,
            document_id=document.document_id,
            processing_time_ms=processing_time_ms,
            estimated_tokens=tokens,
            model=reply.model,
            attempts=reply.attempts,
            degraded=reply.degraded,
        )
