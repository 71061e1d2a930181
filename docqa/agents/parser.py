# =============================================================================
# Response Parser — Model Output → Structured Answer
# =============================================================================
#
# The model is asked for a JSON object but is not contractually bound to
# produce one. Typical deviations:
#   - the object wrapped in ```json ... ``` fences
#   - a sentence of prose before or after the object
#   - plain prose with no object at all
#   - an object with missing or mistyped fields
#
# DESIGN DECISION: parse_answer() is total.
# It never raises. Undecodable output becomes a fallback Answer carrying
# the raw text, and each decoded field is normalised independently, so one
# bad field does not discard the good ones.
#
# DESIGN DECISION: Decoding is stdlib json.
# The payload is four loosely-typed fields; a schema library would have
# to be told to accept every malformed variant we want to recover from.
# =============================================================================

from __future__ import annotations

import json
import logging
import math
import re
from typing import Any

from docqa.agents.types import (
    DEFAULT_CAN_ANSWER,
    DEFAULT_CONFIDENCE,
    DEFAULT_REASONING,
    Answer,
)
from docqa.errors import MalformedProviderOutputError

logger = logging.getLogger(__name__)

FALLBACK_REASONING = "Response generated but not in expected structured format"

MAX_RECOMMENDED_QUESTIONS = 3

# A fence wrapping the whole output. Fences inside the text are content.
_LEADING_FENCE_RE = re.compile(r"^\s*```[\w-]*[ \t]*\n?")
_TRAILING_FENCE_RE = re.compile(r"\n?[ \t]*```\s*$")


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def parse_answer(raw: str) -> Answer:
    """
    Convert raw model output into an Answer.

    Args:
        raw: The model's text output (may be empty or unstructured).

    Returns:
        An Answer with all four fields populated. When the output is not a
        JSON object, the raw text becomes the answer with default
        confidence and can_answer.
    """
    raw = raw or ""
    try:
        decoded = decode_object(raw)
    except MalformedProviderOutputError as e:
        logger.warning("Model output not structured, using fallback: %s", e)
        return Answer(
            text=raw,
            can_answer=DEFAULT_CAN_ANSWER,
            confidence=DEFAULT_CONFIDENCE,
            reasoning=FALLBACK_REASONING,
        )

    return Answer(
        text=_normalise_text(decoded.get("answer"), raw),
        can_answer=_normalise_can_answer(decoded.get("canAnswer")),
        confidence=_normalise_confidence(decoded.get("confidence")),
        reasoning=_normalise_reasoning(decoded.get("reasoning")),
    )


def parse_questions(raw: str) -> list[str]:
    """
    Extract up to three suggested questions from model output.

    Accepts {"questions": [...]} or a bare JSON list.

    Raises:
        MalformedProviderOutputError: If no usable question was found.
    """
    cleaned = strip_code_fences(raw or "")
    try:
        decoded = json.loads(cleaned)
    except json.JSONDecodeError:
        decoded = decode_object(raw)

    items = decoded.get("questions") if isinstance(decoded, dict) else decoded
    if not isinstance(items, list):
        raise MalformedProviderOutputError("no 'questions' list in model output")

    questions = [q.strip() for q in items if isinstance(q, str) and q.strip()]
    if not questions:
        raise MalformedProviderOutputError("'questions' list has no usable entries")
    return questions[:MAX_RECOMMENDED_QUESTIONS]


def strip_code_fences(text: str) -> str:
    """Remove a markdown code fence (```json ... ```) wrapping the text."""
    text = text.strip()
    if not text.startswith("```"):
        return text
    text = _LEADING_FENCE_RE.sub("", text, count=1)
    return _TRAILING_FENCE_RE.sub("", text, count=1).strip()


def decode_object(raw: str) -> dict[str, Any]:
    """
    Decode a JSON object from model output.

    Tries the fence-stripped text first, then the outermost {...} span
    (covers a sentence of prose around the object).

    Raises:
        MalformedProviderOutputError: If no JSON object can be decoded.
    """
    cleaned = strip_code_fences(raw)
    candidates = [cleaned]
    start, end = cleaned.find("{"), cleaned.rfind("}")
    if 0 <= start < end and (start, end) != (0, len(cleaned) - 1):
        candidates.append(cleaned[start:end + 1])

    for candidate in candidates:
        try:
            decoded = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(decoded, dict):
            return decoded

    raise MalformedProviderOutputError(
        f"expected a JSON object, got {len(raw)} chars of unstructured text"
    )


# ---------------------------------------------------------------------------
# Field Normalisation
# ---------------------------------------------------------------------------


def _normalise_text(value: Any, raw: str) -> str:
    if isinstance(value, str) and value.strip():
        return value
    # Numbers are valid answers ("How many pages?" -> 12)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return raw


def _normalise_can_answer(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "yes"):
            return True
        if lowered in ("false", "no"):
            return False
    return DEFAULT_CAN_ANSWER


def _normalise_confidence(value: Any) -> float:
    if isinstance(value, bool) or value is None:
        return DEFAULT_CONFIDENCE
    try:
        confidence = float(value)
    except (TypeError, ValueError):
        return DEFAULT_CONFIDENCE
    if math.isnan(confidence):
        return DEFAULT_CONFIDENCE
    return min(max(confidence, 0.0), 1.0)


def _normalise_reasoning(value: Any) -> str:
    if isinstance(value, str) and value.strip():
        return value
    return DEFAULT_REASONING
