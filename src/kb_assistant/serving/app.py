"""FastAPI application exposing ingestion and question answering as a REST API."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from kb_assistant.agent.state import AnswerRecord
from kb_assistant.config import configure_logging, settings
from kb_assistant.exceptions import ConfigurationError, KBAssistantError, UpstreamServiceError
from kb_assistant.ingestion.models import IngestReport, PageSpec
from kb_assistant.retrieval.models import SourceRef
from kb_assistant.service import KnowledgeBaseAssistant, build_assistant

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    configure_logging()
    yield


app = FastAPI(
    title="Knowledge Base Assistant API",
    version="0.1.0",
    description="Ingest web pages and answer questions with cited sources.",
    lifespan=lifespan,
)


@lru_cache(maxsize=1)
def get_assistant() -> KnowledgeBaseAssistant:
    """Process-wide assistant, built on first request."""
    return build_assistant()


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


# ── Request / Response schemas ────────────────────────────────────────
class IngestRequest(BaseModel):
    """Pages to ingest; the default page list is used when omitted."""

    pages: list[PageSpec] | None = None


class AskRequest(BaseModel):
    """Incoming question from the user."""

    question: str


class AnswerMetadata(BaseModel):
    confidence: float
    chunks_used: int
    is_simple_response: bool
    timestamp: datetime


class AskResponse(BaseModel):
    """Answer returned by the assistant."""

    success: bool = True
    question: str
    answer: str
    sources: list[SourceRef] = []
    metadata: AnswerMetadata

    @classmethod
    def from_record(cls, record: AnswerRecord) -> AskResponse:
        return cls(
            question=record.question,
            answer=record.answer,
            sources=record.sources,
            metadata=AnswerMetadata(
                confidence=record.confidence,
                chunks_used=record.chunks_used,
                is_simple_response=record.is_simple_response,
                timestamp=record.timestamp,
            ),
        )


class IngestResponse(BaseModel):
    success: bool = True
    report: IngestReport


class HistoryResponse(BaseModel):
    success: bool = True
    history: list[AnswerRecord]
    count: int
    timestamp: str


# ── Error handling ────────────────────────────────────────────────────
def _error_body(error: str, exc: Exception) -> dict[str, Any]:
    message = "Something went wrong" if settings.is_production else str(exc)
    return {"error": error, "message": message, "timestamp": _now()}


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(_: Request, exc: ConfigurationError) -> JSONResponse:
    logger.error("Configuration error: %s", exc)
    return JSONResponse(
        status_code=503,
        content={"error": "Service not configured", "message": str(exc), "timestamp": _now()},
    )


@app.exception_handler(UpstreamServiceError)
async def upstream_error_handler(_: Request, exc: UpstreamServiceError) -> JSONResponse:
    logger.error("Upstream failure in stage %s: %s", exc.stage, exc)
    return JSONResponse(status_code=502, content=_error_body("Upstream service failed", exc))


@app.exception_handler(KBAssistantError)
async def assistant_error_handler(_: Request, exc: KBAssistantError) -> JSONResponse:
    logger.error("Request failed: %s", exc)
    return JSONResponse(status_code=500, content=_error_body("Internal server error", exc))


# ── Routes ────────────────────────────────────────────────────────────
@app.get("/health")
async def health() -> dict[str, str]:
    """Liveness probe."""
    return {"status": "ok", "service": "Knowledge Base Assistant API", "timestamp": _now()}


@app.get("/stats")
def stats(assistant: KnowledgeBaseAssistant = Depends(get_assistant)) -> dict[str, Any]:
    """Vector-store statistics; ``degraded`` is true when they are unavailable."""
    result = assistant.stats()
    return {
        "total_vector_count": result.value.total_vector_count,
        "degraded": result.degraded,
    }


@app.post("/ingest", response_model=IngestResponse)
async def ingest(
    request: IngestRequest | None = None,
    assistant: KnowledgeBaseAssistant = Depends(get_assistant),
) -> IngestResponse:
    """Scrape, chunk, embed, and store the requested pages."""
    report = await assistant.ingest(request.pages if request else None)
    if report.total_pages and report.succeeded == 0:
        raise HTTPException(
            status_code=400,
            detail={
                "error": "No pages were successfully scraped",
                "details": [f.model_dump() for f in report.failed_pages],
            },
        )
    return IngestResponse(report=report)


@app.post("/ask", response_model=AskResponse)
async def ask(request: AskRequest, assistant: KnowledgeBaseAssistant = Depends(get_assistant)) -> AskResponse:
    """Answer a question from the knowledge base."""
    if not request.question.strip():
        raise HTTPException(status_code=400, detail="Question is required and must be a non-empty string")
    record = await assistant.ask(request.question)
    return AskResponse.from_record(record)


@app.get("/history", response_model=HistoryResponse)
def history(
    limit: int = Query(default=settings.history_limit, ge=1, le=500),
    assistant: KnowledgeBaseAssistant = Depends(get_assistant),
) -> HistoryResponse:
    """Most recent answered questions, newest first."""
    records = assistant.history_list(limit)
    return HistoryResponse(history=records, count=len(records), timestamp=_now())


@app.delete("/history")
def clear_history(assistant: KnowledgeBaseAssistant = Depends(get_assistant)) -> dict[str, Any]:
    """Delete every stored chat record."""
    deleted = assistant.history_clear()
    return {
        "success": True,
        "message": "Chat history cleared successfully",
        "deleted": deleted,
        "timestamp": _now(),
    }
