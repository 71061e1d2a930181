# =============================================================================
# Database Models — SQLAlchemy ORM
# =============================================================================
#
# SCHEMA OVERVIEW:
#
# ┌──────────────────┐       ┌──────────────────────────────────────┐
# │  documents       │       │  query_records                       │
# ├──────────────────┤       ├──────────────────────────────────────┤
# │ id (PK)          │──1:N─▶│ id (PK)                              │
# │ original_name    │       │ document_id (FK → documents.id)      │
# │ mime_type        │       │ question, answer, reasoning (text)   │
# │ file_size        │       │ can_answer, confidence               │
# │ extracted_text   │       │ processing_time_ms, estimated_tokens │
# │ uploaded_at      │       │ model, attempts, degraded            │
# └──────────────────┘       │ created_at                           │
#                            └──────────────────────────────────────┘
#
# The query pipeline only READS documents (the upload/extraction service
# writes them) and only APPENDS query_records.
#
# DESIGN DECISION: Portable column types only.
# No JSONB or other dialect types, so the same models run on PostgreSQL
# (production) and SQLite (tests, local runs).
# =============================================================================

import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """SQLAlchemy declarative base class for all ORM models."""

    pass


class Document(Base):
    """
    An uploaded document and its extracted text.

    `extracted_text` may be empty when extraction found nothing; such a
    document exists but cannot be queried.
    """

    __tablename__ = "documents"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4()),
    )
    original_name: Mapped[str] = mapped_column(String(500), nullable=False)
    mime_type: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # File size in bytes
    file_size: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    extracted_text: Mapped[str] = mapped_column(Text, nullable=False, default="")

    uploaded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    # Deleting a document removes its query history
    queries: Mapped[list["QueryRecord"]] = relationship(
        "QueryRecord",
        back_populates="document",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Document(id={self.id}, original_name='{self.original_name}')>"


class QueryRecord(Base):
    """One answered question, stored verbatim from its QueryResult."""

    __tablename__ = "query_records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    document_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("documents.id", ondelete="CASCADE"),
        nullable=False,
    )

    question: Mapped[str] = mapped_column(Text, nullable=False)
    answer: Mapped[str] = mapped_column(Text, nullable=False)
    can_answer: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    confidence: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    reasoning: Mapped[str] = mapped_column(Text, nullable=False, default="")

    processing_time_ms: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    estimated_tokens: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    model: Mapped[str | None] = mapped_column(String(100), nullable=True)
    attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    # True when the answer was synthesized because the provider was overloaded
    degraded: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    document: Mapped["Document"] = relationship("Document", back_populates="queries")

    __table_args__ = (
        # History is always read per document, newest first
        Index("ix_query_records_document_created", "document_id", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<QueryRecord(id={self.id}, document_id={self.document_id}, "
            f"confidence={self.confidence})>"
        )
