"""Embedding client — text to vectors through an external embedding model."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Sequence

from kb_assistant.config import Settings, settings
from kb_assistant.exceptions import ConfigurationError, EmbeddingError
from kb_assistant.resources import LazyResource

if TYPE_CHECKING:
    from langchain_core.embeddings import Embeddings

logger = logging.getLogger(__name__)


def get_embedding_function(config: Settings = settings) -> Embeddings:
    """Return the configured LangChain embeddings model.

    ``embedding_provider="openai"`` uses the OpenAI embeddings API and
    requires ``OPENAI_API_KEY``; ``"huggingface"`` runs a local
    sentence-transformer.
    """
    provider = config.embedding_provider.lower()
    if provider == "openai":
        if not config.openai_api_key:
            raise ConfigurationError(
                "OPENAI_API_KEY is not set; it is required for embedding_provider='openai'."
            )
        from langchain_openai import OpenAIEmbeddings

        kwargs: dict = {"model": config.embedding_model, "api_key": config.openai_api_key}
        if config.llm_base_url:
            kwargs["base_url"] = config.llm_base_url
        return OpenAIEmbeddings(**kwargs)
    if provider == "huggingface":
        from langchain_huggingface import HuggingFaceEmbeddings

        return HuggingFaceEmbeddings(model_name=config.embedding_model)
    raise ConfigurationError(f"Unsupported embedding_provider={config.embedding_provider!r}")


def _preview(text: str, width: int = 60) -> str:
    return text[:width] + ("…" if len(text) > width else "")


class EmbeddingClient:
    """Order-preserving, rate-limited batch embedder.

    Parameters
    ----------
    embeddings:
        A LangChain :class:`Embeddings` instance.  When *None*, the model
        from :func:`get_embedding_function` is built from *config* on first
        use.
    max_input_chars:
        Texts are truncated to this many characters before submission.
    batch_size:
        Number of texts embedded concurrently per batch.
    batch_delay:
        Seconds to pause between batches.
    config:
        Settings used to build the default model.
    """

    def __init__(
        self,
        embeddings: Embeddings | None = None,
        *,
        max_input_chars: int = settings.embedding_max_input_chars,
        batch_size: int = settings.embedding_batch_size,
        batch_delay: float = settings.embedding_batch_delay,
        config: Settings = settings,
    ) -> None:
        if batch_size <= 0:
            raise ConfigurationError(f"batch_size ({batch_size}) must be positive")
        if embeddings is not None:
            self._model = LazyResource("embedding model", lambda: embeddings)
        else:
            self._model = LazyResource("embedding model", lambda: get_embedding_function(config))
        self.max_input_chars = max_input_chars
        self.batch_size = batch_size
        self.batch_delay = batch_delay

    async def embed_one(self, text: str) -> list[float]:
        """Embed a single text (a chunk or a question)."""
        model = self._model.get()
        try:
            return await model.aembed_query(text[: self.max_input_chars])
        except Exception as exc:
            logger.error("Error generating embedding for %r: %s", _preview(text), exc)
            raise EmbeddingError(f"Failed to generate embedding: {exc}", item=_preview(text)) from exc

    async def embed(self, texts: Sequence[str]) -> list[list[float]]:
        """Embed *texts* in concurrent batches; ``output[i]`` belongs to ``texts[i]``."""
        vectors: list[list[float]] = []
        for start in range(0, len(texts), self.batch_size):
            batch = texts[start : start + self.batch_size]
            try:
                vectors.extend(await asyncio.gather(*(self.embed_one(t) for t in batch)))
            except EmbeddingError:
                logger.error("Error in batch %d-%d", start, start + len(batch))
                raise
            logger.debug("  embedded %d / %d", len(vectors), len(texts))
            if start + self.batch_size < len(texts) and self.batch_delay > 0:
                await asyncio.sleep(self.batch_delay)
        return vectors
