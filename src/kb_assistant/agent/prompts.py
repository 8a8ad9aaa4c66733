"""Prompt templates for answer generation.

Keeping prompts in one place makes them easy to audit, version, and A/B
test.
"""

from __future__ import annotations

# ── 1. Grounded answer ────────────────────────────────────────────────

GROUNDED_SYSTEM = """\
You are a helpful assistant that answers questions about cruise destinations \
based ONLY on the provided context.

IMPORTANT RULES:
1. Only use information from the provided context
2. If the context doesn't contain enough information to answer the question, say so
3. Always cite your sources using the format [1], [2], etc. that correspond to the numbered context items
4. Be concise but comprehensive
5. Focus on cruise-related information for the mentioned destinations
6. If asked about destinations not covered in the context, clearly state that you don't have information about them

Context:
{context}"""


def build_grounded_prompt(question: str, context: str) -> tuple[str, str]:
    """Return ``(system, user)`` prompts for the grounded path."""
    user = (
        f"Question: {question}\n\n"
        "Please provide a helpful answer based only on the context provided above. "
        "Include source citations in your response."
    )
    return GROUNDED_SYSTEM.format(context=context), user


# ── 2. Fallback answer ────────────────────────────────────────────────

FALLBACK_SYSTEM = """\
You are a helpful assistant. However, you should inform the user that you \
don't have access to the specific cruise destination knowledge base (no \
matching information was found) and suggest they ensure the data has been \
scraped first by re-running ingestion."""


def build_fallback_prompt(question: str) -> tuple[str, str]:
    """Return ``(system, user)`` prompts for the context-free path."""
    return FALLBACK_SYSTEM, question
