# =============================================================================
# Database Package
# =============================================================================
# Provides the async SQLAlchemy engine, session factory, and ORM models.
#
# Key exports:
#   - get_session_factory: lazily built async session factory
#   - Base: SQLAlchemy declarative base for ORM models
#   - Document, QueryRecord: documents and their answered queries
# =============================================================================
