# =============================================================================
# Stores — Document Lookup and Query History
# =============================================================================
#
# The query pipeline depends on two collaborators:
#   - DocumentStore: resolve a document id to its extracted text
#   - QueryHistoryStore: append one record per answered query
#
# DESIGN DECISION: Protocol (structural typing) over ABC.
# Anything with the right async methods works, so tests and scripts can
# pass the in-memory implementations or their own fakes.
#
# ARCHITECTURE:
#   DocumentStore (Protocol)
#   ├── InMemoryDocumentStore     — dict-backed, for scripts and tests
#   └── SqlDocumentStore          — reads the `documents` table
#   QueryHistoryStore (Protocol)
#   ├── InMemoryQueryHistoryStore — list-backed, for scripts and tests
#   └── SqlQueryHistoryStore      — appends to `query_records`
# =============================================================================

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Protocol

from sqlalchemy import distinct, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from docqa.agents.types import DocumentContext, QueryResult
from docqa.db.models import Document, QueryRecord
from docqa.errors import DocumentNotFoundError

logger = logging.getLogger(__name__)

RECENT_QUERIES = 5


# ---------------------------------------------------------------------------
# Data Structures
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class HistoryEntry:
    """A persisted query as read back from the history store."""

    record_id: int
    document_id: str
    question: str
    answer: str
    can_answer: bool
    confidence: float
    reasoning: str
    processing_time_ms: int
    estimated_tokens: int
    degraded: bool
    created_at: datetime


@dataclass(frozen=True)
class QueryStats:
    """Aggregate figures over all persisted queries."""

    total_queries: int
    documents_queried: int
    average_confidence: float
    average_processing_time_ms: float
    recent: list[HistoryEntry] = field(default_factory=list)
    # All stored documents, queried or not. Filled in by DocumentQAService.stats()
    total_documents: int = 0


# ---------------------------------------------------------------------------
# Protocol Definitions
# ---------------------------------------------------------------------------


class DocumentStore(Protocol):
    """Resolves document ids to their extracted text. Read-only."""

    async def get_document(self, document_id: str) -> DocumentContext:
        """
        Raises:
            DocumentNotFoundError: Unknown id.
        """
        ...

    async def get_text(self, document_id: str) -> str:
        """Extracted text only; may be empty. Raises DocumentNotFoundError."""
        ...

    async def count(self) -> int:
        """Number of stored documents."""
        ...


class QueryHistoryStore(Protocol):
    """Append-only record of answered queries."""

    async def save(self, document_id: str, question: str, result: QueryResult) -> int:
        """Persist one answered query and return its record id."""
        ...

    async def list_for_document(self, document_id: str, limit: int = 20) -> list[HistoryEntry]:
        """Most recent queries for a document, newest first."""
        ...

    async def stats(self) -> QueryStats:
        ...


# ---------------------------------------------------------------------------
# Implementation 1: In-Memory
# ---------------------------------------------------------------------------


class InMemoryDocumentStore:
    """Dict-backed document store. Not shared across processes."""

    def __init__(self) -> None:
        self._documents: dict[str, DocumentContext] = {}
        self._ids = itertools.count(1)

    def add(
        self,
        text: str,
        name: str | None = None,
        size: int | None = None,
        document_id: str | None = None,
    ) -> DocumentContext:
        """Register a document and return its context."""
        document_id = document_id or f"doc_{next(self._ids)}"
        document = DocumentContext(
            document_id=document_id,
            text=text,
            size=len(text.encode("utf-8")) if size is None else size,
            name=name,
        )
        self._documents[document_id] = document
        return document

    async def get_document(self, document_id: str) -> DocumentContext:
        try:
            return self._documents[document_id]
        except KeyError:
            raise DocumentNotFoundError(document_id) from None

    async def get_text(self, document_id: str) -> str:
        return (await self.get_document(document_id)).text

    async def count(self) -> int:
        return len(self._documents)


class InMemoryQueryHistoryStore:
    """List-backed history store. Insertion order is creation order."""

    def __init__(self) -> None:
        self._entries: list[HistoryEntry] = []
        self._ids = itertools.count(1)

    async def save(self, document_id: str, question: str, result: QueryResult) -> int:
        entry = HistoryEntry(
            record_id=next(self._ids),
            document_id=document_id,
            question=question,
            answer=result.text,
            can_answer=result.can_answer,
            confidence=result.confidence,
            reasoning=result.reasoning,
            processing_time_ms=result.processing_time_ms,
            estimated_tokens=result.estimated_tokens,
            degraded=result.degraded,
            created_at=datetime.now(UTC),
        )
        self._entries.append(entry)
        return entry.record_id

    async def list_for_document(self, document_id: str, limit: int = 20) -> list[HistoryEntry]:
        matches = [e for e in reversed(self._entries) if e.document_id == document_id]
        return matches[:limit]

    async def stats(self) -> QueryStats:
        total = len(self._entries)
        if not total:
            return QueryStats(0, 0, 0.0, 0.0, [])
        return QueryStats(
            total_queries=total,
            documents_queried=len({e.document_id for e in self._entries}),
            average_confidence=sum(e.confidence for e in self._entries) / total,
            average_processing_time_ms=(
                sum(e.processing_time_ms for e in self._entries) / total
            ),
            recent=list(reversed(self._entries[-RECENT_QUERIES:])),
        )


# ---------------------------------------------------------------------------
# Implementation 2: SQL (SQLAlchemy async)
# ---------------------------------------------------------------------------


class SqlDocumentStore:
    """Reads documents written by the upload/extraction service."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_document(self, document_id: str) -> DocumentContext:
        async with self._session_factory() as session:
            document = await session.get(Document, document_id)
        if document is None:
            raise DocumentNotFoundError(document_id)
        return DocumentContext(
            document_id=document.id,
            text=document.extracted_text or "",
            size=document.file_size,
            name=document.original_name,
        )

    async def get_text(self, document_id: str) -> str:
        return (await self.get_document(document_id)).text

    async def count(self) -> int:
        async with self._session_factory() as session:
            return (await session.execute(select(func.count(Document.id)))).scalar_one()


class SqlQueryHistoryStore:
    """Appends QueryRecord rows; one short-lived session per operation."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def save(self, document_id: str, question: str, result: QueryResult) -> int:
        record = QueryRecord(
            document_id=document_id,
            question=question,
            answer=result.text,
            can_answer=result.can_answer,
            confidence=result.confidence,
            reasoning=result.reasoning,
            processing_time_ms=result.processing_time_ms,
            estimated_tokens=result.estimated_tokens,
            model=result.model,
            attempts=result.attempts,
            degraded=result.degraded,
        )
        async with self._session_factory() as session:
            session.add(record)
            # Read the id before commit; commit may expire the instance
            await session.flush()
            record_id = record.id
            await session.commit()
        logger.debug("Saved query record %s for document %s", record_id, document_id)
        return record_id

    async def list_for_document(self, document_id: str, limit: int = 20) -> list[HistoryEntry]:
        stmt = (
            select(QueryRecord)
            .where(QueryRecord.document_id == document_id)
            .order_by(QueryRecord.created_at.desc(), QueryRecord.id.desc())
            .limit(limit)
        )
        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).scalars().all()
        return [_to_entry(row) for row in rows]

    async def stats(self) -> QueryStats:
        totals_stmt = select(
            func.count(QueryRecord.id),
            func.count(distinct(QueryRecord.document_id)),
            func.avg(QueryRecord.confidence),
            func.avg(QueryRecord.processing_time_ms),
        )
        recent_stmt = (
            select(QueryRecord)
            .order_by(QueryRecord.created_at.desc(), QueryRecord.id.desc())
            .limit(RECENT_QUERIES)
        )
        async with self._session_factory() as session:
            total, documents, avg_confidence, avg_time = (
                await session.execute(totals_stmt)
            ).one()
            recent = (await session.execute(recent_stmt)).scalars().all()

        return QueryStats(
            total_queries=total,
            documents_queried=documents,
            average_confidence=float(avg_confidence or 0.0),
            average_processing_time_ms=float(avg_time or 0.0),
            recent=[_to_entry(row) for row in recent],
        )


def _to_entry(row: QueryRecord) -> HistoryEntry:
    return HistoryEntry(
        record_id=row.id,
        document_id=row.document_id,
        question=row.question,
        answer=row.answer,
        can_answer=row.can_answer,
        confidence=row.confidence,
        reasoning=row.reasoning,
        processing_time_ms=row.processing_time_ms,
        estimated_tokens=row.estimated_tokens,
        degraded=row.degraded,
        created_at=row.created_at,
    )
