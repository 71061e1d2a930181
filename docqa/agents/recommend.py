# =============================================================================
# Recommendation Generator — Suggested Questions for a Document
# =============================================================================
#
# Asks the model for three questions worth asking about a document, based
# on a short text sample. Advisory only: any failure falls back to a fixed
# list of generic questions and never reaches the caller.
# =============================================================================

from __future__ import annotations

import logging

from docqa.agents.parser import parse_questions
from docqa.agents.prompts import DEFAULT_SAMPLE_CHARS, build_recommendation_prompt
from docqa.services.model_client import ModelClient

logger = logging.getLogger(__name__)

DEFAULT_QUESTIONS: tuple[str, ...] = (
    "What is the main topic of this document?",
    "Can you summarize the key points?",
    "What are the most important findings?",
)


class RecommendationGenerator:
    """Suggest up to three questions about a document's text."""

    def __init__(
        self,
        model_client: ModelClient,
        sample_chars: int = DEFAULT_SAMPLE_CHARS,
    ) -> None:
        self.model_client = model_client
        self.sample_chars = sample_chars

    async def generate(self, document_text: str) -> list[str]:
        """Return 1–3 suggested questions; the defaults on any failure."""
        if not document_text or not document_text.strip():
            return list(DEFAULT_QUESTIONS)

        prompt = build_recommendation_prompt(document_text, self.sample_chars)
        try:
            reply = await self.model_client.invoke(prompt)
            if reply.degraded:
                logger.warning("Provider overloaded, using default questions")
                return list(DEFAULT_QUESTIONS)
            questions = parse_questions(reply.text)
        except Exception as e:
            logger.warning("Failed to generate recommended questions, using defaults: %s", e)
            return list(DEFAULT_QUESTIONS)

        logger.info("Generated %d recommended questions", len(questions))
        return questions
