"""Domain models for vector records, retrieval matches, and assembled context."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class MetadataFilter(BaseModel):
    """Declarative metadata filter for vector-store queries.

    Attributes
    ----------
    field:
        The metadata key to filter on (e.g. ``"content_hash"``).
    operator:
        Comparison operator; only ``eq`` is supported.
    value:
        The value to compare against.
    """

    field: str
    operator: str = "eq"
    value: Any = None

    @classmethod
    def equals(cls, field: str, value: Any) -> MetadataFilter:
        return cls(field=field, operator="eq", value=value)


class VectorMetadata(BaseModel):
    """Metadata stored alongside every chunk vector."""

    origin_url: str
    label: str
    content_hash: str
    chunk_index: int
    total_chunks: int
    chunk_text: str
    scraped_at: str
    word_count: int


class VectorRecord(BaseModel):
    """One embedded chunk ready for upsert.

    ``vector_id`` is ``"{content_hash}_chunk_{chunk_index}"`` so that
    re-ingesting unchanged content reproduces the same IDs.
    """

    model_config = ConfigDict(frozen=True)

    vector_id: str
    embedding: list[float]
    metadata: VectorMetadata

    @staticmethod
    def make_id(content_hash: str, chunk_index: int) -> str:
        return f"{content_hash}_chunk_{chunk_index}"


class RetrievalMatch(BaseModel):
    """A similarity-query hit; raw vector values are never included."""

    vector_id: str
    score: float = Field(ge=0.0, le=1.0)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def url(self) -> str:
        return self.metadata.get("origin_url", "")

    @property
    def label(self) -> str:
        return self.metadata.get("label", "")

    @property
    def text(self) -> str:
        return self.metadata.get("chunk_text", "")


class SourceRef(BaseModel):
    url: str
    label: str
    score: float


class ContextResult(BaseModel):
    """Output of the context assembler.

    ``usable`` is ``False`` when no match cleared the score threshold;
    that is the "not enough information" branch, not an error.
    ``confidence`` is the top retrieved score and ``chunks_used`` the
    number of retrieved matches, both taken before the threshold filter.
    """

    context: str = ""
    sources: list[SourceRef] = Field(default_factory=list)
    usable: bool = False
    confidence: float = 0.0
    chunks_used: int = 0


class UpsertResult(BaseModel):
    upserted: int = 0
    skipped: int = 0
    degraded_checks: int = 0
    message: str = ""


class StoreStats(BaseModel):
    total_vector_count: int = 0
