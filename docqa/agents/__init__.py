# =============================================================================
# Agents Package — Query Answering Pipeline
# =============================================================================
#   - prompts.py: answer / recommendation prompt templates with truncation
#   - parser.py: total parser from model output to structured Answer
#   - query.py: QueryExecutor — one question against one document
#   - batch.py: BatchExecutor — ordered questions, isolated failures
#   - recommend.py: RecommendationGenerator — suggested questions
#   - types.py: shared value types (Answer, QueryResult, ...)
# =============================================================================
