"""Chroma implementation of the vector-store abstraction."""

from __future__ import annotations

import logging
from typing import Any, Sequence

import chromadb

from kb_assistant.config import settings
from kb_assistant.resources import LazyResource
from kb_assistant.retrieval.base import VectorStoreBase
from kb_assistant.retrieval.models import MetadataFilter, RetrievalMatch, StoreStats, VectorRecord

logger = logging.getLogger(__name__)

_OP_MAP = {"eq": "$eq"}


def _build_chroma_where(filters: list[MetadataFilter]) -> dict[str, Any] | None:
    """Convert a list of :class:`MetadataFilter` to Chroma ``where`` syntax."""
    if not filters:
        return None

    clauses: list[dict[str, Any]] = []
    for f in filters:
        chroma_op = _OP_MAP.get(f.operator)
        if chroma_op is None:
            raise ValueError(f"Unsupported filter operator: {f.operator!r}")
        clauses.append({f.field: {chroma_op: f.value}})

    if len(clauses) == 1:
        return clauses[0]
    return {"$and": clauses}


def _distance_to_score(distance: float) -> float:
    # Cosine space: distance = 1 - cosine similarity.
    return min(1.0, max(0.0, 1.0 - distance))


class ChromaVectorStore(VectorStoreBase):
    """Chroma-backed vector store.

    The HTTP client and collection are created lazily on first use, so
    constructing the store never touches the network.

    Parameters
    ----------
    collection_name:
        Name of the Chroma collection.
    host:
        Chroma server hostname.
    port:
        Chroma server port.
    """

    max_upsert_batch = 5000

    def __init__(
        self,
        collection_name: str = settings.chroma_collection,
        *,
        host: str = settings.chroma_host,
        port: int = settings.chroma_port,
    ) -> None:
        super().__init__(collection_name)
        self._host = host
        self._port = port
        self._client = LazyResource(f"Chroma client {host}:{port}", self._connect)
        self._collection = LazyResource(f"Chroma collection {collection_name!r}", self._open_collection)

    def _connect(self) -> Any:
        return chromadb.HttpClient(host=self._host, port=self._port)

    def _open_collection(self) -> Any:
        collection = self._client.get().get_or_create_collection(
            name=self.collection_name,
            metadata={"hnsw:space": "cosine"},
        )
        try:
            logger.info(
                "Connected to Chroma collection %s (%d vectors)", self.collection_name, collection.count()
            )
        except Exception:
            logger.info("Connected to Chroma collection %s (stats unavailable)", self.collection_name)
        return collection

    # -- VectorStoreBase overrides --------------------------------------------

    def upsert(self, records: Sequence[VectorRecord]) -> None:
        ids: list[str] = []
        embeddings: list[list[float]] = []
        documents: list[str] = []
        metadatas: list[dict[str, Any]] = []
        for rec in records:
            ids.append(rec.vector_id)
            embeddings.append(rec.embedding)
            documents.append(rec.metadata.chunk_text)
            metadatas.append(rec.metadata.model_dump(exclude={"chunk_text"}))

        self._collection.get().upsert(
            ids=ids,
            embeddings=embeddings,
            documents=documents,
            metadatas=metadatas,
        )

    def query(
        self,
        embedding: list[float],
        *,
        top_k: int = 5,
        filters: list[MetadataFilter] | None = None,
    ) -> list[RetrievalMatch]:
        where = _build_chroma_where(filters) if filters else None

        results = self._collection.get().query(
            query_embeddings=[embedding],
            n_results=top_k,
            where=where,
            include=["documents", "metadatas", "distances"],
        )

        ids = (results.get("ids") or [[]])[0]
        docs = (results.get("documents") or [[]])[0]
        metas = (results.get("metadatas") or [[]])[0]
        distances = (results.get("distances") or [[]])[0]

        matches: list[RetrievalMatch] = []
        for vector_id, content, meta, dist in zip(ids, docs, metas, distances):
            metadata = dict(meta or {})
            metadata["chunk_text"] = content or ""
            matches.append(RetrievalMatch(vector_id=vector_id, score=_distance_to_score(dist), metadata=metadata))
        matches.sort(key=lambda m: m.score, reverse=True)
        return matches

    def describe_stats(self) -> StoreStats:
        return StoreStats(total_vector_count=self._collection.get().count())
