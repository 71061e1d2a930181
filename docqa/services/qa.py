# =============================================================================
# Document Q&A Service — Caller-Facing Operations
# =============================================================================
#
# The transport-agnostic surface of the system:
#
#   answer_one(document_id, question)       → QueryResult
#   answer_batch(document_id, questions)    → list[BatchItemResult]
#   recommend_questions(document_id)        → list[str]
#   history(document_id, limit)             → list[HistoryEntry]
#   stats()                                 → QueryStats
#
# FLOW (answer_one):
#   1. Validate the question (no store or provider call on bad input)
#   2. Resolve the document through the DocumentStore
#   3. Run the QueryExecutor
#   4. Persist through the QueryHistoryStore, attach the record id
#
# A web layer, CLI, or worker wraps this class; it holds no transport
# concerns itself.
# =============================================================================

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Sequence

from docqa.agents.batch import BatchExecutor, validate_batch
from docqa.agents.query import QueryExecutor, validate_question
from docqa.agents.recommend import RecommendationGenerator
from docqa.agents.types import BatchItemResult, QueryResult
from docqa.config import Settings, get_settings
from docqa.services.llm import create_provider
from docqa.services.model_client import ModelClient
from docqa.services.stores import (
    DocumentStore,
    HistoryEntry,
    InMemoryDocumentStore,
    InMemoryQueryHistoryStore,
    QueryHistoryStore,
    QueryStats,
    SqlDocumentStore,
    SqlQueryHistoryStore,
)

logger = logging.getLogger(__name__)


class DocumentQAService:
    """Answer questions about stored documents and record the answers."""

    def __init__(
        self,
        documents: DocumentStore,
        history_store: QueryHistoryStore,
        model_client: ModelClient,
        query_executor: QueryExecutor | None = None,
        batch_executor: BatchExecutor | None = None,
        recommender: RecommendationGenerator | None = None,
        history_limit: int = 20,
    ) -> None:
        self.documents = documents
        self.history_store = history_store
        self.model_client = model_client
        self.query_executor = query_executor or QueryExecutor(model_client)
        self.batch_executor = batch_executor or BatchExecutor(self.query_executor)
        self.recommender = recommender or RecommendationGenerator(model_client)
        self.history_limit = history_limit

    async def answer_one(self, document_id: str, question: str) -> QueryResult:
        """
        Answer one question and persist it.

        Raises:
            InvalidInputError: Bad question.
            DocumentNotFoundError: Unknown document.
            DocumentNotReadyError: Document has no text.
            ProviderError (non-transient subclasses): from the provider.
        """
        validate_question(question, self.query_executor.min_question_length)
        document = await self.documents.get_document(document_id)
        result = await self.query_executor.execute(document, question)
        return await self._record(result)

    async def answer_batch(
        self,
        document_id: str,
        questions: Sequence[str],
    ) -> list[BatchItemResult]:
        """
        Answer 1..max_batch_size questions, persisting each success.

        Only a bad batch shape or an unusable document raises; every
        per-question failure (persistence included) is reported in place.
        """
        validate_batch(questions, self.batch_executor.max_size)
        document = await self.documents.get_document(document_id)
        return await self.batch_executor.execute_batch(
            document, questions, on_result=self._record,
        )

    async def recommend_questions(self, document_id: str) -> list[str]:
        """Suggest up to three questions for a document. Raises only for an unknown id."""
        text = await self.documents.get_text(document_id)
        return await self.recommender.generate(text)

    async def history(self, document_id: str, limit: int | None = None) -> list[HistoryEntry]:
        """Recorded queries for a document, newest first."""
        return await self.history_store.list_for_document(
            document_id, limit or self.history_limit,
        )

    async def stats(self) -> QueryStats:
        """Query aggregates plus the number of stored documents."""
        stats = await self.history_store.stats()
        return dataclasses.replace(stats, total_documents=await self.documents.count())

    async def check_provider(self) -> bool:
        """True when the configured provider accepts our credentials."""
        return await self.model_client.validate()

    def model_info(self) -> dict[str, str]:
        return self.model_client.model_info()

    async def _record(self, result: QueryResult) -> QueryResult:
        record_id = await self.history_store.save(
            result.document_id, result.question, result,
        )
        return dataclasses.replace(result, record_id=record_id)


# ---------------------------------------------------------------------------
# Composition Root
# ---------------------------------------------------------------------------


def build_model_client(settings: Settings) -> ModelClient:
    """Provider + retry policy from configuration."""
    return ModelClient(
        provider=create_provider(settings),
        max_attempts=settings.llm_max_attempts,
        backoff_seconds=settings.llm_retry_backoff_seconds,
        timeout_seconds=settings.llm_timeout_seconds,
    )


def build_stores(settings: Settings) -> tuple[DocumentStore, QueryHistoryStore]:
    """Document and history stores for `settings.storage_backend`."""
    if settings.storage_backend == "memory":
        return InMemoryDocumentStore(), InMemoryQueryHistoryStore()
    if settings.storage_backend != "sql":
        raise ValueError(
            f"Unknown storage backend '{settings.storage_backend}'. "
            "Supported: 'sql', 'memory'"
        )

    from docqa.db.engine import get_session_factory

    session_factory = get_session_factory(settings.database_url, echo=settings.debug)
    return SqlDocumentStore(session_factory), SqlQueryHistoryStore(session_factory)


def build_qa_service(
    settings: Settings | None = None,
    documents: DocumentStore | None = None,
    history_store: QueryHistoryStore | None = None,
) -> DocumentQAService:
    """
    Wire a DocumentQAService from configuration.

    Explicit stores override the configured backend (used by scripts that
    load a document into memory first).
    """
    settings = settings or get_settings()
    model_client = build_model_client(settings)

    if documents is None or history_store is None:
        default_documents, default_history = build_stores(settings)
        documents = documents or default_documents
        history_store = history_store or default_history

    query_executor = QueryExecutor(
        model_client,
        context_chars=settings.prompt_context_chars,
        min_question_length=settings.min_question_length,
    )

    logger.info(
        "Built DocumentQAService (provider=%s, model=%s, storage=%s)",
        settings.llm_provider, settings.llm_model, settings.storage_backend,
    )

    return DocumentQAService(
        documents=documents,
        history_store=history_store,
        model_client=model_client,
        query_executor=query_executor,
        batch_executor=BatchExecutor(query_executor, max_size=settings.max_batch_size),
        recommender=RecommendationGenerator(
            model_client, sample_chars=settings.recommendation_sample_chars,
        ),
        history_limit=settings.history_default_limit,
    )
