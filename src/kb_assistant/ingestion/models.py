"""Domain models for the ingestion path."""

from __future__ import annotations

import hashlib
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, computed_field


def content_hash(origin_id: str, cleaned_text: str) -> str:
    """Deterministic digest of a page's origin and cleaned text."""
    return hashlib.md5((origin_id + cleaned_text).encode("utf-8")).hexdigest()


def word_count(text: str) -> int:
    return len(text.split(" "))


class PageSpec(BaseModel):
    """A page to ingest."""

    url: str
    label: str


class PageContent(BaseModel):
    """Cleaned text of one fetched page.

    Attributes
    ----------
    origin_id:
        The page URL.
    label:
        Human-readable page label, e.g. ``"Alaska"``.
    cleaned_text:
        Whitespace-normalised body text.
    content_hash:
        :func:`content_hash` of ``(origin_id, cleaned_text)``.
    scraped_at:
        ISO-8601 UTC timestamp of the fetch.
    """

    origin_id: str
    label: str
    cleaned_text: str
    content_hash: str
    scraped_at: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    @classmethod
    def from_text(cls, url: str, label: str, text: str, *, scraped_at: str | None = None) -> PageContent:
        data = {
            "origin_id": url,
            "label": label,
            "cleaned_text": text,
            "content_hash": content_hash(url, text),
        }
        if scraped_at is not None:
            data["scraped_at"] = scraped_at
        return cls(**data)

    @property
    def word_count(self) -> int:
        return word_count(self.cleaned_text)


class Chunk(BaseModel):
    """Contiguous slice of a page's text — the unit of embedding and citation."""

    model_config = ConfigDict(frozen=True)

    text: str
    index: int
    total_in_page: int


class PageFailure(BaseModel):
    url: str
    label: str
    stage: str
    error: str


class IngestReport(BaseModel):
    """Aggregate statistics of one ingestion run.

    ``total_chunks`` counts every chunk cut from a fetched page, including
    pages whose embedding later failed; ``total_vectors`` counts only the
    records handed to the gateway.
    """

    total_pages: int = 0
    succeeded: int = 0
    failed: int = 0
    failed_pages: list[PageFailure] = Field(default_factory=list)
    total_chunks: int = 0
    total_vectors: int = 0
    upserted: int = 0
    skipped: int = 0
    degraded_checks: int = 0
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    @computed_field  # type: ignore[prop-decorator]
    @property
    def message(self) -> str:
        return f"Successfully processed {self.succeeded} pages into {self.total_chunks} chunks"
