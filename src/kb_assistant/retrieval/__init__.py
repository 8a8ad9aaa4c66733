"""
Retrieval — vector storage, similarity search, and context assembly.

This package wraps the vector store behind a clean interface so that
the answer layer never needs to know which DB is backing retrieval.

Public surface
--------------
- :class:`VectorStoreBase` — abstract backend (subclass for Pinecone, etc.).
- :class:`ChromaVectorStore` — default Chroma backend.
- :class:`VectorStoreGateway` — dedup/upsert/query policies over a backend.
- :class:`SemanticRetriever` — question → ranked matches.
- :func:`assemble` — score filtering and citation-labelled context.
"""

from kb_assistant.retrieval.base import VectorStoreBase
from kb_assistant.retrieval.gateway import VectorStoreGateway
from kb_assistant.retrieval.models import (
    ContextResult,
    MetadataFilter,
    RetrievalMatch,
    SourceRef,
    UpsertResult,
    VectorMetadata,
    VectorRecord,
)
from kb_assistant.retrieval.ranker import assemble, confidence
from kb_assistant.retrieval.retriever import SemanticRetriever

__all__ = [
    "ChromaVectorStore",
    "ContextResult",
    "MetadataFilter",
    "RetrievalMatch",
    "SemanticRetriever",
    "SourceRef",
    "UpsertResult",
    "VectorMetadata",
    "VectorRecord",
    "VectorStoreBase",
    "VectorStoreGateway",
    "assemble",
    "confidence",
]


def __getattr__(name: str):  # noqa: ANN001
    """Lazy-import ChromaVectorStore to avoid pulling in chromadb at import time."""
    if name == "ChromaVectorStore":
        from kb_assistant.retrieval.chroma_store import ChromaVectorStore

        return ChromaVectorStore
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
