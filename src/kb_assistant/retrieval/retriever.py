"""Semantic retriever — question in, ranked matches out.

Usage::

    retriever = SemanticRetriever(embedder, gateway)
    matches   = await retriever.search("Which ports does an Alaska cruise visit?")
    context   = assemble(matches, score_threshold=0.7)
"""

from __future__ import annotations

import asyncio
import logging

from kb_assistant.config import settings
from kb_assistant.ingestion.embedder import EmbeddingClient
from kb_assistant.retrieval.gateway import VectorStoreGateway
from kb_assistant.retrieval.models import MetadataFilter, RetrievalMatch

logger = logging.getLogger(__name__)


class SemanticRetriever:
    """Embeds a query and runs a top-*k* search through the gateway.

    Parameters
    ----------
    embedder:
        Client used to embed the query text.
    gateway:
        Vector-store gateway to search.
    default_k:
        Default number of results returned by :meth:`search`.
    """

    def __init__(
        self,
        embedder: EmbeddingClient,
        gateway: VectorStoreGateway,
        *,
        default_k: int = settings.retrieval_top_k,
    ) -> None:
        self._embedder = embedder
        self._gateway = gateway
        self.default_k = default_k

    async def search(
        self,
        query: str,
        *,
        k: int | None = None,
        filters: list[MetadataFilter] | None = None,
    ) -> list[RetrievalMatch]:
        """Return up to *k* matches for *query*, highest score first."""
        embedding = await self._embedder.embed_one(query)
        return await self.search_by_embedding(embedding, k=k, filters=filters)

    async def search_by_embedding(
        self,
        embedding: list[float],
        *,
        k: int | None = None,
        filters: list[MetadataFilter] | None = None,
    ) -> list[RetrievalMatch]:
        """Same as :meth:`search` but accepts a pre-computed embedding."""
        k = k or self.default_k
        matches = await asyncio.to_thread(self._gateway.query, embedding, k, filters)
        logger.debug("Retrieved %d matches (k=%d)", len(matches), k)
        return matches
