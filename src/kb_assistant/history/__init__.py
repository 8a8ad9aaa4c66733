"""
History — persistence of answered questions.

- :class:`HistoryStore` — abstract append / list / clear interface.
- :class:`SQLHistoryStore` — SQLAlchemy implementation.
"""

from kb_assistant.history.base import HistoryStore
from kb_assistant.history.sql_store import SQLHistoryStore

__all__ = ["HistoryStore", "SQLHistoryStore"]
