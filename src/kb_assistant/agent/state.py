"""Answer-graph state and the answer record it produces.

The state is the *single source of truth* that flows through every node
of the answer graph.  Each field is documented so that new nodes can be
added without guessing what data is available.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, TypedDict

from pydantic import BaseModel, ConfigDict, Field, field_validator

from kb_assistant.retrieval.models import ContextResult, RetrievalMatch, SourceRef


class AnswerRecord(BaseModel):
    """Final, immutable result of one question."""

    model_config = ConfigDict(frozen=True)

    question: str
    answer: str
    sources: list[SourceRef] = Field(default_factory=list)
    confidence: float = 0.0
    chunks_used: int = 0
    is_simple_response: bool = False
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("sources")
    @classmethod
    def _unique_urls(cls, sources: list[SourceRef]) -> list[SourceRef]:
        urls = [s.url for s in sources]
        if len(urls) != len(set(urls)):
            raise ValueError("sources must not repeat a url")
        return sources


def _append_list(existing: list[str], new: list[str]) -> list[str]:
    """Reducer that appends *new* items to the *existing* list."""
    return existing + new


class AnswerState(TypedDict, total=False):
    """Typed state that flows through the answer graph.

    Attributes
    ----------
    question:
        The user's (trimmed) question.
    matches:
        Raw retrieval matches, highest score first.
    context:
        Assembled context; present from the start when the caller
        supplies it, otherwise produced by the ``assemble`` node.
    errors:
        Messages of failures that were degraded rather than raised
        (retrieval failure, grounded completion failure).
    record:
        The final :class:`AnswerRecord`.
    """

    question: str
    matches: list[RetrievalMatch]
    context: ContextResult
    errors: Annotated[list[str], _append_list]
    record: AnswerRecord
