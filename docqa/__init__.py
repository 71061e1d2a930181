# =============================================================================
# Document Q&A Core
# =============================================================================
# Answers natural-language questions about an uploaded document's text by
# delegating to an external generative model, with bounded retry on
# overload, a total response parser, and per-question failure isolation
# for batches.
#
# Package structure:
#   docqa/
#   ├── agents/    → prompt building, parsing, single/batch execution,
#   │                question recommendations
#   ├── db/        → async SQLAlchemy engine and ORM models
#   ├── services/  → provider adapters, model client, stores, facade
#   ├── config.py  → pydantic-settings configuration
#   └── errors.py  → error taxonomy
# =============================================================================
