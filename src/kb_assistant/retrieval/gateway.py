"""Vector-store gateway — deduplicating upsert and similarity query.

The gateway is the only caller of a :class:`VectorStoreBase` backend.
It owns three policies:

* **Content-based dedup.**  Before writing, each candidate is looked up
  by the dedup key fields of its metadata (``content_hash`` and
  ``chunk_index`` by default).  A hit means the chunk is already stored
  and the candidate is skipped.  A failed lookup is logged and the
  candidate is written anyway.
* **Batched writes.**  Survivors go to the backend in one call, or in
  slices of ``upsert_batch_size`` when the backend caps payload size.
* **Error wrapping.**  Any backend failure on the write or query path
  is re-raised as :class:`~kb_assistant.exceptions.VectorStoreError`,
  so an empty result always means "no matches", never "store down".
"""

from __future__ import annotations

import logging
from typing import Sequence

from kb_assistant.config import settings
from kb_assistant.exceptions import VectorStoreError
from kb_assistant.resources import BestEffort
from kb_assistant.retrieval.base import VectorStoreBase
from kb_assistant.retrieval.models import (
    MetadataFilter,
    RetrievalMatch,
    StoreStats,
    UpsertResult,
    VectorRecord,
)

logger = logging.getLogger(__name__)


class VectorStoreGateway:
    """Dedup + upsert + query front for a vector-store backend.

    Parameters
    ----------
    store:
        Concrete backend.
    dedup_fields:
        Metadata fields that identify an already-stored chunk.
    upsert_batch_size:
        Maximum records per backend write; the backend's own
        ``max_upsert_batch`` wins when it is smaller.
    """

    def __init__(
        self,
        store: VectorStoreBase,
        *,
        dedup_fields: Sequence[str] = tuple(settings.dedup_fields),
        upsert_batch_size: int = settings.upsert_batch_size,
    ) -> None:
        if not dedup_fields:
            raise ValueError("dedup_fields must name at least one metadata field")
        self.store = store
        self.dedup_fields = tuple(dedup_fields)
        limit = store.max_upsert_batch
        self.upsert_batch_size = min(upsert_batch_size, limit) if limit else upsert_batch_size

    # -- write path -----------------------------------------------------------

    def exists(self, record: VectorRecord) -> BestEffort[bool]:
        """Check whether *record*'s content is already stored.

        A failed check yields a degraded ``False``.
        """
        meta = record.metadata.model_dump()
        filters = [MetadataFilter.equals(name, meta[name]) for name in self.dedup_fields]
        try:
            matches = self.store.query(record.embedding, top_k=1, filters=filters)
        except Exception as exc:
            logger.warning("Could not check for existing vector %s: %s", record.vector_id, exc)
            return BestEffort.fallback(False, exc)
        return BestEffort.ok(bool(matches))

    def upsert(self, records: Sequence[VectorRecord]) -> UpsertResult:
        """Write the records that are not already stored."""
        fresh: list[VectorRecord] = []
        skipped = 0
        degraded = 0
        for rec in records:
            check = self.exists(rec)
            degraded += check.degraded
            if check.value:
                skipped += 1
            else:
                fresh.append(rec)

        if not fresh:
            logger.info("All %d vectors already exist", skipped)
            return UpsertResult(
                upserted=0, skipped=skipped, degraded_checks=degraded, message="All vectors already exist"
            )

        logger.info("Upserting %d vectors (%d skipped)", len(fresh), skipped)
        for start in range(0, len(fresh), self.upsert_batch_size):
            batch = fresh[start : start + self.upsert_batch_size]
            try:
                self.store.upsert(batch)
            except Exception as exc:
                logger.error("Error upserting vectors %d-%d: %s", start, start + len(batch), exc)
                raise VectorStoreError(f"Failed to upsert vectors: {exc}", item=batch[0].vector_id) from exc

        return UpsertResult(
            upserted=len(fresh),
            skipped=skipped,
            degraded_checks=degraded,
            message=f"Upserted {len(fresh)} vectors",
        )

    # -- read path ------------------------------------------------------------

    def query(
        self,
        embedding: list[float],
        top_k: int = settings.retrieval_top_k,
        filters: list[MetadataFilter] | None = None,
    ) -> list[RetrievalMatch]:
        """Top-*k* similarity query, highest score first."""
        try:
            matches = self.store.query(embedding, top_k=top_k, filters=filters)
        except Exception as exc:
            logger.error("Error searching vectors: %s", exc)
            raise VectorStoreError(f"Failed to search vectors: {exc}") from exc
        return sorted(matches, key=lambda m: m.score, reverse=True)

    def describe_stats(self) -> BestEffort[StoreStats]:
        """Index statistics; a failure is reported as degraded, never raised."""
        try:
            return BestEffort.ok(self.store.describe_stats())
        except Exception as exc:
            logger.warning("Vector store stats unavailable: %s", exc)
            return BestEffort.fallback(StoreStats(), exc)
