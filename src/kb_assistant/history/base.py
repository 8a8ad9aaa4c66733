"""Abstract chat-history store."""

from __future__ import annotations

from abc import ABC, abstractmethod

from kb_assistant.agent.state import AnswerRecord


class HistoryStore(ABC):
    """Append-only log of answer records."""

    @abstractmethod
    def append(self, record: AnswerRecord) -> None:
        """Persist *record*."""
        ...

    @abstractmethod
    def list(self, limit: int = 50) -> list[AnswerRecord]:
        """Return at most *limit* records, newest first."""
        ...

    @abstractmethod
    def clear_all(self) -> int:
        """Delete every record and return how many were removed."""
        ...
