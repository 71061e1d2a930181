# =============================================================================
# Core Value Types — Query Pipeline Records
# =============================================================================
#
# Plain frozen dataclasses shared by the prompt builder, parser, executors
# and stores. They carry no behaviour beyond small derived properties.
# =============================================================================

from __future__ import annotations

from dataclasses import dataclass

# Defaults applied whenever the model omits or garbles a field.
DEFAULT_CONFIDENCE = 0.7
DEFAULT_CAN_ANSWER = True
DEFAULT_REASONING = "Analysis completed"


@dataclass(frozen=True)
class DocumentContext:
    """
    A document as seen by the query pipeline.

    Owned by the DocumentStore; the pipeline only reads it.
    """

    document_id: str
    text: str
    size: int = 0          # Original file size in bytes
    name: str | None = None

    @property
    def has_text(self) -> bool:
        return bool(self.text and self.text.strip())


@dataclass(frozen=True)
class Answer:
    """
    A structured answer to one question.

    All four fields are always populated; the parser substitutes defaults
    for anything the model left out.
    """

    text: str
    can_answer: bool = DEFAULT_CAN_ANSWER
    confidence: float = DEFAULT_CONFIDENCE  # 0.0–1.0
    reasoning: str = DEFAULT_REASONING


@dataclass(frozen=True)
class ModelReply:
    """Outcome of one ModelClient invocation (all attempts included)."""

    text: str
    attempts: int
    model: str
    degraded_answer: Answer | None = None  # Set when overload exhausted retries

    @property
    def degraded(self) -> bool:
        return self.degraded_answer is not None


@dataclass(frozen=True)
class QueryResult:
    """An answered question plus timing and cost metadata."""

    answer: Answer
    question: str
    document_id: str
    processing_time_ms: int   # Wall-clock of the model call, retries included
    estimated_tokens: int     # ~4 chars per token; reporting only
    model: str = "unknown"
    attempts: int = 1
    degraded: bool = False
    record_id: int | None = None  # Set once the history store saved it

    @property
    def text(self) -> str:
        return self.answer.text

    @property
    def confidence(self) -> float:
        return self.answer.confidence

    @property
    def can_answer(self) -> bool:
        return self.answer.can_answer

    @property
    def reasoning(self) -> str:
        return self.answer.reasoning


@dataclass(frozen=True)
class BatchItemResult:
    """One entry of a batch: either a QueryResult or an error description."""

    index: int
    question: str  # As submitted, untrimmed, so callers can match by value
    result: QueryResult | None = None
    error: str | None = None
    error_type: str | None = None

    @property
    def success(self) -> bool:
        return self.result is not None

    @classmethod
    def succeeded(cls, index: int, question: str, result: QueryResult) -> BatchItemResult:
        return cls(index=index, question=question, result=result)

    @classmethod
    def failed(cls, index: int, question: str, error: Exception) -> BatchItemResult:
        return cls(
            index=index,
            question=question,
            error=str(error),
            error_type=type(error).__name__,
        )
