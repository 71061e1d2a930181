# =============================================================================
# Prompt Templates — Answer and Recommendation Prompts
# =============================================================================
#
# DESIGN DECISION: Character-based truncation of the document excerpt.
# The excerpt is cut to a fixed character budget (2000 for answers, 1000
# for recommendations) and marked with "..." when cut. This bounds latency
# and cost per call; the question itself is never truncated.
#
# DESIGN DECISION: Ask for JSON with exact field names.
# The parser (parser.py) tolerates deviations, but naming the fields here
# keeps the common case on the fast path.
# =============================================================================

from __future__ import annotations

TRUNCATION_MARKER = "..."

DEFAULT_CONTEXT_CHARS = 2000
DEFAULT_SAMPLE_CHARS = 1000

_ANSWER_TEMPLATE = (
    "Document excerpt:\n"
    "{excerpt}\n\n"
    "Question: {question}\n\n"
    "Answer the question using ONLY the document excerpt above. "
    "If the excerpt does not contain the answer, say so and set "
    "canAnswer to false.\n"
    "Respond with a single JSON object and nothing else, using exactly "
    "these fields:\n"
    '{{"answer": "your answer", "canAnswer": true or false, '
    '"confidence": 0.0 to 1.0, "reasoning": "brief explanation"}}'
)

_RECOMMENDATION_TEMPLATE = (
    'Based on this document excerpt: "{excerpt}"\n\n'
    "Generate exactly 3 relevant questions that would help someone "
    "understand this document better.\n"
    "Respond with a single JSON object and nothing else:\n"
    '{{"questions": ["question 1", "question 2", "question 3"]}}'
)


def truncate_text(text: str, max_chars: int) -> str:
    """Cut `text` to `max_chars` characters, appending "..." if anything was cut."""
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + TRUNCATION_MARKER


def build_answer_prompt(
    document_text: str,
    question: str,
    max_chars: int = DEFAULT_CONTEXT_CHARS,
) -> str:
    """
    Build the prompt that answers one question about a document.

    Args:
        document_text: Full extracted text of the document.
        question: The user's question (kept whole).
        max_chars: Character budget for the document excerpt.

    Returns:
        A prompt asking for an {answer, canAnswer, confidence, reasoning}
        JSON object grounded in the excerpt.
    """
    return _ANSWER_TEMPLATE.format(
        excerpt=truncate_text(document_text, max_chars),
        question=question,
    )


def build_recommendation_prompt(
    document_text: str,
    max_chars: int = DEFAULT_SAMPLE_CHARS,
) -> str:
    """Build the prompt that asks for three suggested questions."""
    # Plain slice: the sample is only a topic hint, no marker needed.
    return _RECOMMENDATION_TEMPLATE.format(excerpt=document_text[:max_chars])
