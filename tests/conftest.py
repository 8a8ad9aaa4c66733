"""Shared pytest configuration and fixtures.

Every fake here stands in for an external service (vector store,
embedding model, chat model) so the unit suite runs without network
access.
"""

from __future__ import annotations

from typing import Any, Sequence

import pytest
from langchain_core.embeddings import DeterministicFakeEmbedding, Embeddings

from kb_assistant.agent.llm import CompletionClient
from kb_assistant.exceptions import CompletionError
from kb_assistant.ingestion.models import PageContent, PageSpec
from kb_assistant.retrieval.base import VectorStoreBase
from kb_assistant.retrieval.models import MetadataFilter, RetrievalMatch, StoreStats, VectorRecord


# ── Vector store ────────────────────────────────────────────────────────


class FakeVectorStore(VectorStoreBase):
    """In-memory store with equality filters and canned search hits."""

    def __init__(self, hits: list[RetrievalMatch] | None = None) -> None:
        super().__init__("test-collection")
        self.records: dict[str, VectorRecord] = {}
        self.hits = hits
        self.upsert_calls: list[list[str]] = []
        self.query_calls = 0
        self.fail_queries = False
        self.fail_upsert = False
        self.fail_stats = False

    def upsert(self, records: Sequence[VectorRecord]) -> None:
        if self.fail_upsert:
            raise ConnectionError("store unreachable")
        self.upsert_calls.append([r.vector_id for r in records])
        for rec in records:
            self.records[rec.vector_id] = rec

    def query(
        self,
        embedding: list[float],
        *,
        top_k: int = 5,
        filters: list[MetadataFilter] | None = None,
    ) -> list[RetrievalMatch]:
        self.query_calls += 1
        if self.fail_queries:
            raise ConnectionError("store unreachable")
        if filters is None and self.hits is not None:
            return self.hits[:top_k]

        matches: list[RetrievalMatch] = []
        for rec in self.records.values():
            meta = rec.metadata.model_dump()
            if all(meta.get(f.field) == f.value for f in filters or []):
                matches.append(RetrievalMatch(vector_id=rec.vector_id, score=1.0, metadata=meta))
        return matches[:top_k]

    def describe_stats(self) -> StoreStats:
        if self.fail_stats:
            raise ConnectionError("stats unavailable")
        return StoreStats(total_vector_count=len(self.records))


# ── Embeddings ──────────────────────────────────────────────────────────


class FailingEmbeddings(Embeddings):
    """Embeds like the deterministic fake but fails on texts containing *poison*."""

    def __init__(self, poison: str = "POISON", size: int = 8) -> None:
        self.poison = poison
        self.inner = DeterministicFakeEmbedding(size=size)
        self.seen: list[str] = []

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        return [self.embed_query(t) for t in texts]

    def embed_query(self, text: str) -> list[float]:
        self.seen.append(text)
        if self.poison in text:
            raise RuntimeError("rate limited")
        return self.inner.embed_query(text)


# ── Completion ──────────────────────────────────────────────────────────


class FakeCompletion(CompletionClient):
    """Records prompts; fails the first *fail_times* calls."""

    def __init__(self, answers: list[str] | None = None, fail_times: int = 0) -> None:
        super().__init__()
        self.answers = list(answers or ["fake answer"])
        self.fail_times = fail_times
        self.calls: list[dict[str, Any]] = []

    async def complete(self, system_prompt: str, user_prompt: str, *, temperature: float, max_tokens: int) -> str:
        self.calls.append(
            {"system": system_prompt, "user": user_prompt, "temperature": temperature, "max_tokens": max_tokens}
        )
        if len(self.calls) <= self.fail_times:
            raise CompletionError("model overloaded")
        return self.answers[min(len(self.calls) - 1, len(self.answers) - 1)]


# ── Fetcher ─────────────────────────────────────────────────────────────


class FakeFetcher:
    """Returns canned page texts keyed by URL; unknown URLs fail."""

    def __init__(self, texts: dict[str, str]) -> None:
        self.texts = texts
        self.fetched: list[str] = []

    def fetch(self, page: PageSpec) -> PageContent:
        from kb_assistant.exceptions import FetchError

        self.fetched.append(page.url)
        if page.url not in self.texts:
            raise FetchError(f"Failed to scrape {page.url}: 404", item=page.url)
        return PageContent.from_text(page.url, page.label, self.texts[page.url], scraped_at="2024-01-01T00:00:00+00:00")


def make_match(score: float, url: str = "https://example.com/a", label: str = "A", text: str = "chunk") -> RetrievalMatch:
    return RetrievalMatch(
        vector_id=f"{url}-{score}",
        score=score,
        metadata={"origin_url": url, "label": label, "chunk_text": text},
    )


@pytest.fixture()
def fake_store() -> FakeVectorStore:
    return FakeVectorStore()


@pytest.fixture()
def fake_embeddings() -> DeterministicFakeEmbedding:
    return DeterministicFakeEmbedding(size=8)
