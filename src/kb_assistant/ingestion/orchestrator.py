"""Ingestion orchestrator — fetch → chunk → embed → dedupe/upsert.

Pages are processed one after another.  A page that fails to fetch or
embed is recorded with the failing stage and the run moves on; only a
failure of the final vector-store write aborts the run.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol, Sequence

from kb_assistant.config import settings
from kb_assistant.exceptions import UpstreamServiceError
from kb_assistant.ingestion.chunker import chunk_page, chunk_text
from kb_assistant.ingestion.embedder import EmbeddingClient
from kb_assistant.ingestion.models import (
    Chunk,
    IngestReport,
    PageContent,
    PageFailure,
    PageSpec,
    word_count,
)
from kb_assistant.retrieval.gateway import VectorStoreGateway
from kb_assistant.retrieval.models import VectorMetadata, VectorRecord

logger = logging.getLogger(__name__)


class Fetcher(Protocol):
    def fetch(self, page: PageSpec) -> PageContent: ...


def build_records(page: PageContent, chunks: Sequence[Chunk], embeddings: Sequence[list[float]]) -> list[VectorRecord]:
    """Pair chunks with their embeddings under deterministic IDs."""
    return [
        VectorRecord(
            vector_id=VectorRecord.make_id(page.content_hash, chunk.index),
            embedding=list(vector),
            metadata=VectorMetadata(
                origin_url=page.origin_id,
                label=page.label,
                content_hash=page.content_hash,
                chunk_index=chunk.index,
                total_chunks=chunk.total_in_page,
                chunk_text=chunk.text,
                scraped_at=page.scraped_at,
                word_count=word_count(chunk.text),
            ),
        )
        for chunk, vector in zip(chunks, embeddings)
    ]


class IngestionOrchestrator:
    """Coordinates one ingestion run.

    Parameters
    ----------
    fetcher:
        Anything with a ``fetch(PageSpec) -> PageContent`` method.
    embedder:
        Batch embedding client.
    gateway:
        Vector-store gateway receiving the records.
    chunk_size / chunk_overlap:
        Chunker window and overlap, in characters.
    """

    def __init__(
        self,
        fetcher: Fetcher,
        embedder: EmbeddingClient,
        gateway: VectorStoreGateway,
        *,
        chunk_size: int = settings.chunk_size,
        chunk_overlap: int = settings.chunk_overlap,
    ) -> None:
        # Validate the window up front so a bad setting fails before any fetch.
        chunk_text("", chunk_size, chunk_overlap)
        self._fetcher = fetcher
        self._embedder = embedder
        self._gateway = gateway
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap

    async def ingest(self, pages: Sequence[PageSpec]) -> IngestReport:
        """Run the pipeline over *pages* and return aggregate statistics."""
        logger.info("Starting ingestion of %d pages", len(pages))
        records, failures, total_chunks = await self._fold_pages(pages)

        report = IngestReport(
            total_pages=len(pages),
            succeeded=len(pages) - len(failures),
            failed=len(failures),
            failed_pages=failures,
            total_chunks=total_chunks,
            total_vectors=len(records),
        )
        if records:
            logger.info("Upserting %d vectors to %s", len(records), self._gateway.store.collection_name)
            result = await asyncio.to_thread(self._gateway.upsert, records)
            report.upserted = result.upserted
            report.skipped = result.skipped
            report.degraded_checks = result.degraded_checks

        logger.info(
            "Ingestion finished: %d/%d pages, %d chunks, %d upserted, %d skipped",
            report.succeeded,
            report.total_pages,
            report.total_chunks,
            report.upserted,
            report.skipped,
        )
        return report

    async def _fold_pages(
        self, pages: Sequence[PageSpec]
    ) -> tuple[list[VectorRecord], list[PageFailure], int]:
        records: list[VectorRecord] = []
        failures: list[PageFailure] = []
        total_chunks = 0

        for page in pages:
            try:
                content = await asyncio.to_thread(self._fetcher.fetch, page)
            except UpstreamServiceError as exc:
                logger.error("Error scraping %s: %s", page.url, exc)
                failures.append(PageFailure(url=page.url, label=page.label, stage=exc.stage, error=str(exc)))
                continue

            chunks = chunk_page(content, self.chunk_size, self.chunk_overlap)
            total_chunks += len(chunks)
            logger.info("Processing %d chunks for %s", len(chunks), content.label)
            try:
                embeddings = await self._embedder.embed([c.text for c in chunks])
            except UpstreamServiceError as exc:
                logger.error("Error embedding %s: %s", page.url, exc)
                failures.append(PageFailure(url=page.url, label=page.label, stage=exc.stage, error=str(exc)))
                continue

            records.extend(build_records(content, chunks, embeddings))

        return records, failures, total_chunks
