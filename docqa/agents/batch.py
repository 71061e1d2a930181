# =============================================================================
# Batch Executor — Several Questions, Isolated Failures
# =============================================================================
#
# A caller submitting N questions gets N outcomes back, in order, each
# independently a success or a failure. Only a structurally bad request
# (wrong batch shape, document without text) fails the batch as a whole.
#
# DESIGN DECISION: Strictly sequential.
# Questions run one at a time, in input order. This keeps the load on the
# provider bounded and predictable and makes each failure easy to
# attribute. Parallelising later must keep results ordered by index, not
# by completion time.
# =============================================================================

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Sequence

from docqa.agents.query import QueryExecutor
from docqa.agents.types import BatchItemResult, DocumentContext, QueryResult
from docqa.errors import DocumentNotReadyError, InvalidInputError

logger = logging.getLogger(__name__)

MAX_BATCH_SIZE = 10

# Hook run after each successful answer (e.g., persistence). Its failure
# fails only that item.
ResultHook = Callable[[QueryResult], Awaitable[QueryResult]]


def validate_batch(questions: object, max_size: int = MAX_BATCH_SIZE) -> list:
    """
    Check the batch shape.

    Raises:
        InvalidInputError: Not a list, empty, or larger than `max_size`.
    """
    if isinstance(questions, (str, bytes)) or not isinstance(questions, Sequence):
        raise InvalidInputError("questions must be a list")
    if not 1 <= len(questions) <= max_size:
        raise InvalidInputError(
            f"Please provide between 1 and {max_size} questions "
            f"(got {len(questions)})"
        )
    return list(questions)


class BatchExecutor:
    """Run a QueryExecutor over an ordered list of questions."""

    def __init__(self, query_executor: QueryExecutor, max_size: int = MAX_BATCH_SIZE) -> None:
        self.query_executor = query_executor
        self.max_size = max_size

    async def execute_batch(
        self,
        document: DocumentContext,
        questions: Sequence[str],
        on_result: ResultHook | None = None,
    ) -> list[BatchItemResult]:
        """
        Answer every question in order, isolating per-question failures.

        Args:
            document: The document all questions are asked against.
            questions: 1..max_size questions.
            on_result: Optional hook awaited after each success; may
                return an updated QueryResult (e.g., with record_id).

        Returns:
            One BatchItemResult per question, in input order.

        Raises:
            InvalidInputError: Bad batch shape.
            DocumentNotReadyError: Document has no text.
        """
        items = validate_batch(questions, self.max_size)
        if not document.has_text:
            raise DocumentNotReadyError(document.document_id)

        logger.info(
            "Batch of %d questions for document %s",
            len(items), document.document_id,
        )

        results: list[BatchItemResult] = []
        for index, question in enumerate(items):
            try:
                result = await self.query_executor.execute(document, question)
                if on_result is not None:
                    result = await on_result(result)
            except Exception as e:
                logger.exception(
                    "Batch item %d failed (question=%r): %s", index, question, e,
                )
                results.append(BatchItemResult.failed(index, question, e))
                continue
            results.append(BatchItemResult.succeeded(index, question, result))

        succeeded = sum(1 for r in results if r.success)
        logger.info(
            "Batch complete: %d succeeded, %d failed",
            succeeded, len(results) - succeeded,
        )
        return results
