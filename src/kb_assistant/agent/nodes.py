"""Graph nodes — each method is one step of the answer workflow.

Node contract
-------------
* Accepts the full :class:`AnswerState` dict.
* Returns a *partial* dict with **only the keys that changed**.
* Collaborators (retriever, completion client) are injected through
  :class:`AnswerNodes` so every node is testable with fakes.
"""

from __future__ import annotations

import logging
from typing import Any

from langgraph.graph import END

from kb_assistant.agent.llm import CompletionClient
from kb_assistant.agent.prompts import build_fallback_prompt, build_grounded_prompt
from kb_assistant.agent.state import AnswerRecord, AnswerState
from kb_assistant.config import settings
from kb_assistant.exceptions import KBAssistantError
from kb_assistant.retrieval.ranker import assemble
from kb_assistant.retrieval.retriever import SemanticRetriever

logger = logging.getLogger(__name__)


class AnswerNodes:
    """Node implementations bound to their collaborators.

    Parameters
    ----------
    retriever:
        Used by :meth:`retrieve`; may be *None* when the graph is only
        ever invoked with a pre-assembled context.
    completion:
        Chat completion client used by both generation paths.
    score_threshold:
        Minimum similarity (exclusive) for a match to enter the context.
    top_k:
        Number of matches requested from the retriever.
    grounded_temperature / grounded_max_tokens:
        Sampling settings for the grounded path.
    fallback_temperature / fallback_max_tokens:
        Sampling settings for the fallback path.
    """

    def __init__(
        self,
        retriever: SemanticRetriever | None,
        completion: CompletionClient,
        *,
        score_threshold: float = settings.score_threshold,
        top_k: int = settings.retrieval_top_k,
        grounded_temperature: float = settings.grounded_temperature,
        grounded_max_tokens: int = settings.grounded_max_tokens,
        fallback_temperature: float = settings.fallback_temperature,
        fallback_max_tokens: int = settings.fallback_max_tokens,
    ) -> None:
        self.retriever = retriever
        self.completion = completion
        self.score_threshold = score_threshold
        self.top_k = top_k
        self.grounded_temperature = grounded_temperature
        self.grounded_max_tokens = grounded_max_tokens
        self.fallback_temperature = fallback_temperature
        self.fallback_max_tokens = fallback_max_tokens

    # ── 1. RETRIEVE ───────────────────────────────────────────────────

    async def retrieve(self, state: AnswerState) -> dict[str, Any]:
        """Embed the question and fetch the top-k matches.

        A retrieval failure is not fatal: it leaves ``matches`` empty so
        the graph takes the fallback path.
        """
        if self.retriever is None:
            return {"matches": [], "errors": ["no retriever configured"]}
        try:
            matches = await self.retriever.search(state["question"], k=self.top_k)
        except KBAssistantError as exc:
            logger.warning("Retrieval failed, falling back to simple response: %s", exc)
            return {"matches": [], "errors": [str(exc)]}
        return {"matches": matches}

    # ── 2. ASSEMBLE ───────────────────────────────────────────────────

    def assemble(self, state: AnswerState) -> dict[str, Any]:
        """Filter by score and build the numbered context block."""
        return {"context": assemble(state.get("matches", []), self.score_threshold)}

    # ── 3a. GROUNDED ANSWER ───────────────────────────────────────────

    async def generate_grounded(self, state: AnswerState) -> dict[str, Any]:
        """Answer strictly from the context, citing ``[n]`` markers."""
        context = state["context"]
        system, user = build_grounded_prompt(state["question"], context.context)
        try:
            answer = await self.completion.complete(
                system,
                user,
                temperature=self.grounded_temperature,
                max_tokens=self.grounded_max_tokens,
            )
        except KBAssistantError as exc:
            logger.warning("RAG response failed, falling back to simple response: %s", exc)
            return {"errors": [str(exc)]}

        record = AnswerRecord(
            question=state["question"],
            answer=answer,
            sources=context.sources,
            confidence=context.confidence,
            chunks_used=context.chunks_used,
            is_simple_response=False,
        )
        return {"record": record}

    # ── 3b. FALLBACK ANSWER ───────────────────────────────────────────

    async def generate_fallback(self, state: AnswerState) -> dict[str, Any]:
        """Context-free answer that tells the user nothing was found.

        Failures here are not recovered; they propagate to the caller.
        """
        system, user = build_fallback_prompt(state["question"])
        answer = await self.completion.complete(
            system,
            user,
            temperature=self.fallback_temperature,
            max_tokens=self.fallback_max_tokens,
        )
        record = AnswerRecord(
            question=state["question"],
            answer=answer,
            sources=[],
            confidence=0.0,
            chunks_used=0,
            is_simple_response=True,
        )
        return {"record": record}


# ── ROUTING (conditional edges) ───────────────────────────────────────


def route_entry(state: AnswerState) -> str:
    """Skip retrieval when the caller already supplied a context."""
    if "context" in state:
        return route_context(state)
    return "retrieve"


def route_context(state: AnswerState) -> str:
    """``generate_grounded`` for a usable context, else ``generate_fallback``."""
    context = state.get("context")
    if context is not None and context.usable:
        return "generate_grounded"
    return "generate_fallback"


def route_after_grounded(state: AnswerState) -> str:
    """Finish, or recover through the fallback path when grounding failed."""
    if "record" in state:
        return END
    return "generate_fallback"
