"""Unit tests for the retrieval layer — models, Chroma backend, and SemanticRetriever."""

from __future__ import annotations

import asyncio
from unittest.mock import MagicMock, patch

import pytest
from conftest import FakeVectorStore, make_match
from langchain_core.embeddings import DeterministicFakeEmbedding

from kb_assistant.exceptions import VectorStoreError
from kb_assistant.ingestion.embedder import EmbeddingClient
from kb_assistant.retrieval.chroma_store import ChromaVectorStore, _build_chroma_where, _distance_to_score
from kb_assistant.retrieval.gateway import VectorStoreGateway
from kb_assistant.retrieval.models import MetadataFilter, RetrievalMatch, VectorMetadata, VectorRecord
from kb_assistant.retrieval.retriever import SemanticRetriever

# ── Model tests ─────────────────────────────────────────────────────────


class TestModels:
    def test_vector_id_scheme(self) -> None:
        assert VectorRecord.make_id("abc123", 4) == "abc123_chunk_4"

    def test_match_accessors(self) -> None:
        m = make_match(0.8, url="https://x/a", label="A", text="body")
        assert (m.url, m.label, m.text) == ("https://x/a", "A", "body")

    def test_match_score_bounds(self) -> None:
        with pytest.raises(ValueError):
            RetrievalMatch(vector_id="x", score=1.5)

    def test_equals_factory(self) -> None:
        f = MetadataFilter.equals("content_hash", "abc")
        assert (f.field, f.operator, f.value) == ("content_hash", "eq", "abc")


# ── Chroma backend ──────────────────────────────────────────────────────


class TestChromaWhere:
    def test_single_clause(self) -> None:
        assert _build_chroma_where([MetadataFilter.equals("content_hash", "h")]) == {"content_hash": {"$eq": "h"}}

    def test_multiple_clauses_are_anded(self) -> None:
        where = _build_chroma_where(
            [MetadataFilter.equals("content_hash", "h"), MetadataFilter.equals("chunk_index", 2)]
        )
        assert where == {"$and": [{"content_hash": {"$eq": "h"}}, {"chunk_index": {"$eq": 2}}]}

    def test_empty(self) -> None:
        assert _build_chroma_where([]) is None

    def test_unknown_operator(self) -> None:
        with pytest.raises(ValueError, match="Unsupported filter operator"):
            _build_chroma_where([MetadataFilter(field="x", operator="like", value="y")])

    def test_distance_to_score_is_clamped(self) -> None:
        assert _distance_to_score(0.0) == 1.0
        assert _distance_to_score(0.25) == 0.75
        assert _distance_to_score(1.6) == 0.0


class TestChromaVectorStore:
    def _store(self) -> tuple[ChromaVectorStore, MagicMock]:
        collection = MagicMock()
        collection.count.return_value = 3
        client = MagicMock()
        client.get_or_create_collection.return_value = collection
        with patch("kb_assistant.retrieval.chroma_store.chromadb.HttpClient", return_value=client) as http:
            store = ChromaVectorStore("kb", host="chroma", port=1234)
            # Nothing connects until first use.
            http.assert_not_called()
            store.describe_stats()
            http.assert_called_once_with(host="chroma", port=1234)
        return store, collection

    def test_collection_uses_cosine_space(self) -> None:
        collection = MagicMock()
        collection.count.return_value = 0
        client = MagicMock()
        client.get_or_create_collection.return_value = collection
        with patch("kb_assistant.retrieval.chroma_store.chromadb.HttpClient", return_value=client):
            ChromaVectorStore("kb").describe_stats()
        client.get_or_create_collection.assert_called_once_with(name="kb", metadata={"hnsw:space": "cosine"})

    def test_upsert_splits_text_from_metadata(self) -> None:
        store, collection = self._store()
        record = VectorRecord(
            vector_id="h_chunk_0",
            embedding=[0.1, 0.2],
            metadata=VectorMetadata(
                origin_url="https://x",
                label="X",
                content_hash="h",
                chunk_index=0,
                total_chunks=1,
                chunk_text="hello",
                scraped_at="2024-01-01T00:00:00+00:00",
                word_count=1,
            ),
        )
        store.upsert([record])
        kwargs = collection.upsert.call_args.kwargs
        assert kwargs["ids"] == ["h_chunk_0"]
        assert kwargs["documents"] == ["hello"]
        assert "chunk_text" not in kwargs["metadatas"][0]
        assert kwargs["metadatas"][0]["content_hash"] == "h"

    def test_query_converts_distances(self) -> None:
        store, collection = self._store()
        collection.query.return_value = {
            "ids": [["b", "a"]],
            "documents": [["text b", "text a"]],
            "metadatas": [[{"origin_url": "u2"}, {"origin_url": "u1"}]],
            "distances": [[0.4, 0.1]],
        }
        matches = store.query([0.1, 0.2], top_k=2, filters=[MetadataFilter.equals("label", "A")])
        assert [m.vector_id for m in matches] == ["a", "b"]
        assert matches[0].score == pytest.approx(0.9)
        assert matches[0].text == "text a"
        assert collection.query.call_args.kwargs["where"] == {"label": {"$eq": "A"}}

    def test_stats(self) -> None:
        store, _ = self._store()
        assert store.describe_stats().total_vector_count == 3

    def test_unreachable_server_surfaces_as_store_error(self) -> None:
        with patch(
            "kb_assistant.retrieval.chroma_store.chromadb.HttpClient", side_effect=ConnectionError("refused")
        ):
            gateway = VectorStoreGateway(ChromaVectorStore("kb"))
            with pytest.raises(VectorStoreError, match="refused"):
                gateway.query([0.1])
            assert gateway.describe_stats().degraded


# ── SemanticRetriever ───────────────────────────────────────────────────


@pytest.fixture()
def retriever(fake_embeddings: DeterministicFakeEmbedding) -> SemanticRetriever:
    store = FakeVectorStore(hits=[make_match(0.92), make_match(0.87), make_match(0.45)])
    return SemanticRetriever(EmbeddingClient(fake_embeddings), VectorStoreGateway(store), default_k=5)


class TestSemanticRetriever:
    def test_search_returns_matches(self, retriever: SemanticRetriever) -> None:
        matches = asyncio.run(retriever.search("What is the best Alaska itinerary?"))
        assert [m.score for m in matches] == [0.92, 0.87, 0.45]

    def test_explicit_k_overrides_default(self, retriever: SemanticRetriever) -> None:
        assert len(asyncio.run(retriever.search("anything", k=1))) == 1

    def test_empty_store_returns_empty(self, fake_embeddings: DeterministicFakeEmbedding) -> None:
        retriever = SemanticRetriever(EmbeddingClient(fake_embeddings), VectorStoreGateway(FakeVectorStore(hits=[])))
        assert asyncio.run(retriever.search("anything")) == []

    def test_store_failure_propagates(self, fake_embeddings: DeterministicFakeEmbedding) -> None:
        store = FakeVectorStore()
        store.fail_queries = True
        retriever = SemanticRetriever(EmbeddingClient(fake_embeddings), VectorStoreGateway(store))
        with pytest.raises(VectorStoreError):
            asyncio.run(retriever.search("anything"))
