"""Abstract base class for vector-store backends.

Adding a new backend (Pinecone, Weaviate, Qdrant …) only requires
subclassing :class:`VectorStoreBase` and implementing the abstract
methods.  Deduplication, batching, and error wrapping live in
:class:`~kb_assistant.retrieval.gateway.VectorStoreGateway`, so the rest
of the retrieval stack is backend-agnostic.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence

from kb_assistant.retrieval.models import MetadataFilter, RetrievalMatch, StoreStats, VectorRecord


class VectorStoreBase(ABC):
    """Backend-agnostic vector-store interface.

    Parameters
    ----------
    collection_name:
        Logical name of the collection / index / namespace.
    """

    #: Largest number of records accepted by a single :meth:`upsert` call.
    max_upsert_batch: int | None = None

    def __init__(self, collection_name: str) -> None:
        self.collection_name = collection_name

    # -- required overrides ---------------------------------------------------

    @abstractmethod
    def upsert(self, records: Sequence[VectorRecord]) -> None:
        """Insert or overwrite *records* by ``vector_id``."""
        ...

    @abstractmethod
    def query(
        self,
        embedding: list[float],
        *,
        top_k: int = 5,
        filters: list[MetadataFilter] | None = None,
    ) -> list[RetrievalMatch]:
        """Return the *top_k* closest records, highest score first.

        Scores are similarities in ``[0, 1]``; metadata only, no vectors.
        """
        ...

    @abstractmethod
    def describe_stats(self) -> StoreStats:
        """Return index statistics."""
        ...
