"""
Ingestion — page fetching, chunking, embedding, and indexing.

This package is responsible for the ETL-like pipeline that converts web
pages into embedded chunks stored in a vector database:

    PageFetcher → chunk_page → EmbeddingClient → VectorStoreGateway.upsert

:class:`~kb_assistant.ingestion.orchestrator.IngestionOrchestrator`
runs that sequence and reports per-page failures.
"""
