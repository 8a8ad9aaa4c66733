"""
Agent — answer generation built with LangGraph.

This package contains **zero** infrastructure dependencies.  The
retriever and the completion client are injected, so the workflow can
be tested locally without Chroma or OpenAI.

Public API
----------
- :class:`AnswerGenerator` — run the workflow for one question.
- :class:`AnswerNodes` — node implementations bound to collaborators.
- :func:`build_graph` — compile the workflow.
- :class:`AnswerRecord` — the immutable result.
"""

from kb_assistant.agent.graph import AnswerGenerator, build_graph
from kb_assistant.agent.nodes import AnswerNodes
from kb_assistant.agent.state import AnswerRecord, AnswerState

__all__ = [
    "AnswerGenerator",
    "AnswerNodes",
    "AnswerRecord",
    "AnswerState",
    "build_graph",
]
