# =============================================================================
# Error Taxonomy
# =============================================================================
#
# Every failure the query pipeline can surface is one of these types.
#
#   DocQAError
#   ├── InvalidInputError            — bad caller input, never retried
#   │   ├── DocumentNotFoundError    — unknown document id
#   │   └── DocumentNotReadyError    — document has no extractable text
#   ├── ProviderError                — fatal provider failure
#   │   ├── TransientProviderError   — overload / deadline, retried
#   │   ├── CredentialsError         — missing or rejected API key
#   │   ├── QuotaExceededError       — quota or rate limit exhausted
#   │   └── SafetyRejectedError      — blocked by the provider's filters
#   └── MalformedProviderOutputError — resolved by the parser fallback
#
# DESIGN DECISION: Retryability is a property of the type, not of the
# error message. Provider adapters classify SDK failures once, at the
# boundary, and everything downstream dispatches on `isinstance`.
# =============================================================================

from __future__ import annotations


class DocQAError(Exception):
    """Base class for all errors raised by the document Q&A core."""


# ---------------------------------------------------------------------------
# Caller Input
# ---------------------------------------------------------------------------


class InvalidInputError(DocQAError):
    """The caller supplied a request of the wrong shape or length."""


class DocumentNotFoundError(InvalidInputError):
    """The document id does not resolve to a stored document."""

    def __init__(self, document_id: str) -> None:
        super().__init__(f"Document '{document_id}' does not exist")
        self.document_id = document_id


class DocumentNotReadyError(InvalidInputError):
    """The document exists but has no extractable text content."""

    def __init__(self, document_id: str) -> None:
        super().__init__(
            f"Document '{document_id}' has no extractable text content"
        )
        self.document_id = document_id


# ---------------------------------------------------------------------------
# Provider Failures
# ---------------------------------------------------------------------------


class ProviderError(DocQAError):
    """
    The generative provider failed and the failure is not retryable.

    Subclasses narrow the reason. `detail` keeps the provider-supplied
    message so callers can surface it verbatim.
    """

    def __init__(self, detail: str, provider: str = "unknown") -> None:
        super().__init__(f"{provider}: {detail}")
        self.detail = detail
        self.provider = provider


class TransientProviderError(ProviderError):
    """The provider is temporarily saturated; the call may be retried."""


class CredentialsError(ProviderError):
    """The API key is missing, invalid, or lacks permission."""


class QuotaExceededError(ProviderError):
    """The account's quota or rate limit is exhausted."""


class SafetyRejectedError(ProviderError):
    """The prompt or the response was blocked by content-safety filters."""


# ---------------------------------------------------------------------------
# Model Output
# ---------------------------------------------------------------------------


class MalformedProviderOutputError(DocQAError):
    """The model's output is not the structured object that was requested."""
