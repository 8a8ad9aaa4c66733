"""Error taxonomy shared by every pipeline stage."""

from __future__ import annotations


class KBAssistantError(Exception):
    """Base class for all errors raised by the assistant."""


class ConfigurationError(KBAssistantError):
    """Required settings are missing or inconsistent."""


class UpstreamServiceError(KBAssistantError):
    """An external collaborator (fetch, embedding, completion, store) failed.

    Parameters
    ----------
    message:
        Human-readable description of the failure.
    stage:
        Pipeline stage that raised, e.g. ``"fetch"`` or ``"embed"``.
    item:
        Identifier of the offending item (URL, vector id, text preview).
    """

    stage = "upstream"

    def __init__(self, message: str, *, item: str | None = None) -> None:
        super().__init__(message)
        self.item = item

    def __str__(self) -> str:
        base = super().__str__()
        if self.item:
            return f"[{self.stage}] {base} (item={self.item})"
        return f"[{self.stage}] {base}"


class FetchError(UpstreamServiceError):
    stage = "fetch"


class EmbeddingError(UpstreamServiceError):
    stage = "embed"


class VectorStoreError(UpstreamServiceError):
    stage = "vector_store"


class CompletionError(UpstreamServiceError):
    stage = "completion"


class HistoryStoreError(KBAssistantError):
    """The chat-history store could not be read or written."""
