"""Service facade — wires ingestion, retrieval, answering, and history.

:func:`build_assistant` assembles the production collaborators from
:mod:`kb_assistant.config`; tests construct :class:`KnowledgeBaseAssistant`
directly with fakes.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Sequence

from kb_assistant.agent.graph import AnswerGenerator
from kb_assistant.agent.llm import CompletionClient
from kb_assistant.agent.nodes import AnswerNodes
from kb_assistant.agent.state import AnswerRecord
from kb_assistant.config import Settings, settings
from kb_assistant.exceptions import HistoryStoreError
from kb_assistant.history.base import HistoryStore
from kb_assistant.ingestion.models import IngestReport, PageSpec
from kb_assistant.ingestion.orchestrator import IngestionOrchestrator
from kb_assistant.resources import BestEffort
from kb_assistant.retrieval.gateway import VectorStoreGateway
from kb_assistant.retrieval.models import StoreStats

logger = logging.getLogger(__name__)


class KnowledgeBaseAssistant:
    """Entry point used by the HTTP app and the CLI."""

    def __init__(
        self,
        orchestrator: IngestionOrchestrator,
        generator: AnswerGenerator,
        gateway: VectorStoreGateway,
        history: HistoryStore,
        *,
        default_pages: Sequence[PageSpec] = (),
    ) -> None:
        self.orchestrator = orchestrator
        self.generator = generator
        self.gateway = gateway
        self.history = history
        self.default_pages = list(default_pages)

    async def ingest(self, pages: Sequence[PageSpec] | None = None) -> IngestReport:
        return await self.orchestrator.ingest(list(pages) if pages else self.default_pages)

    async def ask(self, question: str) -> AnswerRecord:
        """Answer *question* and log it; logging failures never affect the answer."""
        question = question.strip()
        logger.info("Processing chat request: %r", question)
        record = await self.generator.ask(question)
        try:
            await asyncio.to_thread(self.history.append, record)
        except HistoryStoreError as exc:
            logger.error("Failed to save chat to database: %s", exc)
        return record

    def history_list(self, limit: int = settings.history_limit) -> list[AnswerRecord]:
        return self.history.list(limit)

    def history_clear(self) -> int:
        return self.history.clear_all()

    def stats(self) -> BestEffort[StoreStats]:
        return self.gateway.describe_stats()


def build_assistant(config: Settings = settings) -> KnowledgeBaseAssistant:
    """Build the production assistant from *config*.

    No network or database I/O happens here; every external handle is
    acquired on first use.
    """
    from kb_assistant.history.sql_store import SQLHistoryStore
    from kb_assistant.ingestion.embedder import EmbeddingClient
    from kb_assistant.ingestion.fetcher import DEFAULT_PAGES, PageFetcher
    from kb_assistant.retrieval.chroma_store import ChromaVectorStore
    from kb_assistant.retrieval.retriever import SemanticRetriever

    store = ChromaVectorStore(config.chroma_collection, host=config.chroma_host, port=config.chroma_port)
    gateway = VectorStoreGateway(
        store, dedup_fields=config.dedup_fields, upsert_batch_size=config.upsert_batch_size
    )
    embedder = EmbeddingClient(
        config=config,
        max_input_chars=config.embedding_max_input_chars,
        batch_size=config.embedding_batch_size,
        batch_delay=config.embedding_batch_delay,
    )
    orchestrator = IngestionOrchestrator(
        PageFetcher(timeout=config.fetch_timeout, max_retries=config.fetch_max_retries),
        embedder,
        gateway,
        chunk_size=config.chunk_size,
        chunk_overlap=config.chunk_overlap,
    )
    retriever = SemanticRetriever(embedder, gateway, default_k=config.retrieval_top_k)
    nodes = AnswerNodes(
        retriever,
        CompletionClient(config=config),
        score_threshold=config.score_threshold,
        top_k=config.retrieval_top_k,
        grounded_temperature=config.grounded_temperature,
        grounded_max_tokens=config.grounded_max_tokens,
        fallback_temperature=config.fallback_temperature,
        fallback_max_tokens=config.fallback_max_tokens,
    )
    return KnowledgeBaseAssistant(
        orchestrator,
        AnswerGenerator(nodes),
        gateway,
        SQLHistoryStore(config.history_database_url, model_name=config.llm_model_name),
        default_pages=DEFAULT_PAGES,
    )
