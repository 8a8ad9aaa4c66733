"""LangGraph graph definition — the answer workflow.

This module wires the nodes of :mod:`kb_assistant.agent.nodes` into a
compiled :class:`StateGraph`:

1. **Retrieve** the top-k matches for the question.
2. **Assemble** a numbered context from matches above the threshold.
3. **Generate** a grounded, cited answer, or
4. **Fall back** to a context-free answer when the context is unusable
   or grounded generation failed.

The graph can be tested locally without Chroma or OpenAI by injecting a
fake retriever and completion client (see tests).
"""

from __future__ import annotations

from typing import Any

from langgraph.graph import END, START, StateGraph

from kb_assistant.agent.nodes import AnswerNodes, route_after_grounded, route_context, route_entry
from kb_assistant.agent.state import AnswerRecord, AnswerState
from kb_assistant.retrieval.models import ContextResult


def build_graph(nodes: AnswerNodes) -> Any:
    """Construct and return the compiled answer graph.

    Graph topology::

                 [ START ]
                     │  context supplied? ──────────────┐
                     ▼                                  │
              ┌────────────┐                            │
              │  retrieve   │                            │
              └─────┬──────┘                            │
                    ▼                                   │
              ┌────────────┐   usable=false             │
              │  assemble   ├────────────────┐          │
              └─────┬──────┘                 │          │
                    │ usable                 ▼          │
                    ▼                ┌───────────────┐  │
          ┌───────────────────┐ err  │generate_fallback│◄┘
          │ generate_grounded ├─────►└───────┬───────┘
          └─────────┬─────────┘              │
                    ▼                        ▼
                 [ END ] ◄───────────────────┘

    Returns
    -------
    CompiledGraph
        A compiled LangGraph workflow ready for ``.ainvoke()``.
    """
    workflow = StateGraph(AnswerState)

    # -- Nodes ---------------------------------------------------------------
    workflow.add_node("retrieve", nodes.retrieve)
    workflow.add_node("assemble", nodes.assemble)
    workflow.add_node("generate_grounded", nodes.generate_grounded)
    workflow.add_node("generate_fallback", nodes.generate_fallback)

    # -- Edges ---------------------------------------------------------------
    workflow.add_conditional_edges(
        START,
        route_entry,
        {
            "retrieve": "retrieve",
            "generate_grounded": "generate_grounded",
            "generate_fallback": "generate_fallback",
        },
    )
    workflow.add_edge("retrieve", "assemble")
    workflow.add_conditional_edges(
        "assemble",
        route_context,
        {
            "generate_grounded": "generate_grounded",
            "generate_fallback": "generate_fallback",
        },
    )
    workflow.add_conditional_edges(
        "generate_grounded",
        route_after_grounded,
        {
            END: END,
            "generate_fallback": "generate_fallback",
        },
    )
    workflow.add_edge("generate_fallback", END)

    return workflow.compile()


class AnswerGenerator:
    """Runs the answer graph for one question at a time.

    Usage::

        generator = AnswerGenerator(AnswerNodes(retriever, CompletionClient()))
        record = await generator.ask("Best time to cruise Alaska?")
    """

    def __init__(self, nodes: AnswerNodes) -> None:
        self.nodes = nodes
        self.graph = build_graph(nodes)

    async def ask(self, question: str) -> AnswerRecord:
        """Retrieve, assemble, and answer *question*."""
        result = await self.graph.ainvoke({"question": question, "errors": []})
        return result["record"]

    async def answer(self, question: str, context: ContextResult) -> AnswerRecord:
        """Answer *question* from an already assembled *context*."""
        result = await self.graph.ainvoke({"question": question, "context": context, "errors": []})
        return result["record"]
