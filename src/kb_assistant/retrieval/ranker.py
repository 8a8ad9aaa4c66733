"""Score filtering, citation numbering, and source deduplication."""

from __future__ import annotations

from typing import Sequence

from kb_assistant.config import settings
from kb_assistant.retrieval.models import ContextResult, RetrievalMatch, SourceRef


def confidence(matches: Sequence[RetrievalMatch]) -> float:
    """Score of the top-ranked match, or ``0.0`` when there is none."""
    return matches[0].score if matches else 0.0


def format_context(matches: Sequence[RetrievalMatch]) -> str:
    """Render matches as ``[n] label (url):`` blocks, numbered from 1."""
    return "\n\n".join(
        f"[{i}] {m.label} ({m.url}):\n{m.text}" for i, m in enumerate(matches, 1)
    )


def dedupe_sources(matches: Sequence[RetrievalMatch]) -> list[SourceRef]:
    """One source per URL, keeping the first (highest-scoring) occurrence."""
    seen: set[str] = set()
    sources: list[SourceRef] = []
    for m in matches:
        if m.url in seen:
            continue
        seen.add(m.url)
        sources.append(SourceRef(url=m.url, label=m.label, score=m.score))
    return sources


def assemble(
    matches: Sequence[RetrievalMatch],
    score_threshold: float = settings.score_threshold,
) -> ContextResult:
    """Build the citation-labelled context block for answer generation.

    Only matches scoring strictly above *score_threshold* enter the
    context and the source list, in the order given.  When none survive,
    the result is marked unusable and carries an empty context.
    """
    kept = [m for m in matches if m.score > score_threshold]
    if not kept:
        return ContextResult(usable=False, confidence=confidence(matches))

    return ContextResult(
        context=format_context(kept),
        sources=dedupe_sources(kept),
        usable=True,
        confidence=confidence(matches),
        chunks_used=len(matches),
    )
