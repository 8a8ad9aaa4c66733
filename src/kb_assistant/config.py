"""Shared configuration loaded from environment / .env file."""

from __future__ import annotations

import logging

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application-wide settings, populated from env vars or .env file."""

    environment: str = Field(
        default="development",
        description="'production' hides internal error detail from HTTP responses",
    )
    log_level: str = "INFO"

    # LLM
    openai_api_key: str = Field(default="", description="OpenAI API key (or dummy value for local vLLM)")
    llm_model_name: str = Field(default="gpt-4o-mini", description="Chat model identifier")
    llm_base_url: str = Field(
        default="",
        description=(
            "Base URL for the LLM API. Leave empty to use OpenAI cloud. "
            "Set to any OpenAI-compatible endpoint for self-hosted serving."
        ),
    )
    grounded_temperature: float = 0.3
    grounded_max_tokens: int = 1000
    fallback_temperature: float = 0.7
    fallback_max_tokens: int = 500

    # Embedding
    embedding_provider: str = Field(default="openai", description="'openai' or 'huggingface'")
    embedding_model: str = "text-embedding-ada-002"
    embedding_max_input_chars: int = 8000
    embedding_batch_size: int = 10
    embedding_batch_delay: float = 1.0

    # Vector store
    chroma_host: str = "localhost"
    chroma_port: int = 8000
    chroma_collection: str = "knowledge_base"
    upsert_batch_size: int = 1000
    dedup_fields: list[str] = Field(default_factory=lambda: ["content_hash", "chunk_index"])

    # Ingestion
    chunk_size: int = 1000
    chunk_overlap: int = 100
    fetch_timeout: float = 30.0
    fetch_max_retries: int = 2

    # Retrieval
    retrieval_top_k: int = 5
    score_threshold: float = 0.7

    # History
    history_database_url: str = "sqlite:///./chat_history.db"
    history_limit: int = 50

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


def configure_logging(level: str | None = None) -> None:
    """Apply the configured log level to the root logger."""
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# Singleton — import `settings` wherever needed.
settings = Settings()
