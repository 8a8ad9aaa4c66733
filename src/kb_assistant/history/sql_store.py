"""SQLAlchemy-backed chat history."""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, Float, Integer, String, Text, create_engine, delete, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool

from kb_assistant.agent.state import AnswerRecord
from kb_assistant.config import settings
from kb_assistant.exceptions import HistoryStoreError
from kb_assistant.history.base import HistoryStore
from kb_assistant.resources import LazyResource
from kb_assistant.retrieval.models import SourceRef

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


class ChatHistoryRow(Base):
    """One answered question."""

    __tablename__ = "chat_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    question: Mapped[str] = mapped_column(Text, nullable=False)
    answer: Mapped[str] = mapped_column(Text, nullable=False)
    sources: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    confidence: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    chunks_used: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_simple_response: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    model: Mapped[str] = mapped_column(String(128), nullable=False, default="")

    def to_record(self) -> AnswerRecord:
        return AnswerRecord(
            question=self.question,
            answer=self.answer,
            sources=[SourceRef(**s) for s in self.sources or []],
            confidence=self.confidence,
            chunks_used=self.chunks_used,
            is_simple_response=self.is_simple_response,
            timestamp=self.timestamp,
        )


def make_engine(url: str) -> Engine:
    """Create an engine; in-memory SQLite shares a single connection."""
    if url in ("sqlite://", "sqlite:///:memory:"):
        return create_engine(url, connect_args={"check_same_thread": False}, poolclass=StaticPool)
    return create_engine(url, pool_pre_ping=True)


class SQLHistoryStore(HistoryStore):
    """Chat history in any SQLAlchemy-supported database.

    Parameters
    ----------
    url:
        SQLAlchemy database URL.  The table is created on first use, so an
        unreachable database surfaces as :class:`HistoryStoreError` from
        the individual calls instead of failing construction.
    """

    def __init__(self, url: str = settings.history_database_url, *, model_name: str = settings.llm_model_name) -> None:
        self._engine = make_engine(url)
        self._sessions = sessionmaker(bind=self._engine, expire_on_commit=False)
        self._model_name = model_name
        self._schema = LazyResource("history schema", lambda: Base.metadata.create_all(self._engine))

    def _session(self) -> Session:
        self._schema.get()
        return self._sessions()

    def append(self, record: AnswerRecord) -> None:
        row = ChatHistoryRow(
            question=record.question,
            answer=record.answer,
            sources=[s.model_dump() for s in record.sources],
            confidence=record.confidence,
            chunks_used=record.chunks_used,
            is_simple_response=record.is_simple_response,
            timestamp=record.timestamp,
            model=self._model_name,
        )
        try:
            with self._session() as session, session.begin():
                session.add(row)
        except SQLAlchemyError as exc:
            raise HistoryStoreError(f"Failed to save chat to database: {exc}") from exc

    def list(self, limit: int = settings.history_limit) -> list[AnswerRecord]:
        stmt = select(ChatHistoryRow).order_by(ChatHistoryRow.timestamp.desc(), ChatHistoryRow.id.desc()).limit(limit)
        try:
            with self._session() as session:
                return [row.to_record() for row in session.scalars(stmt)]
        except SQLAlchemyError as exc:
            raise HistoryStoreError(f"Failed to fetch chat history: {exc}") from exc

    def clear_all(self) -> int:
        try:
            with self._session() as session, session.begin():
                result = session.execute(delete(ChatHistoryRow))
                return result.rowcount or 0
        except SQLAlchemyError as exc:
            raise HistoryStoreError(f"Failed to clear chat history: {exc}") from exc
