# =============================================================================
# Services Package — Providers, Stores, and the Q&A Facade
# =============================================================================
#   - llm.py: generative provider abstraction (Gemini, Anthropic,
#     OpenAI-compatible) with typed failure classification
#   - model_client.py: bounded retry and overload degradation
#   - stores.py: DocumentStore / QueryHistoryStore (in-memory and SQL)
#   - qa.py: DocumentQAService, the caller-facing operations
# =============================================================================
