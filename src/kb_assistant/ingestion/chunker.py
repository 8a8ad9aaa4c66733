"""Fixed-width, overlapping character chunking."""

from __future__ import annotations

from kb_assistant.exceptions import ConfigurationError
from kb_assistant.ingestion.models import Chunk, PageContent


def chunk_text(text: str, max_size: int = 1000, overlap: int = 100) -> list[str]:
    """Split *text* into windows of *max_size* characters.

    Consecutive windows share *overlap* characters.  Boundaries are raw
    character offsets; they do not respect words or sentences.

    Parameters
    ----------
    text:
        Cleaned page text.
    max_size:
        Window width in characters.
    overlap:
        Characters shared by consecutive windows.  Must be smaller than
        *max_size*.

    Returns
    -------
    list[str]
        ``[text]`` when it already fits, otherwise the windows in order.
        The last window ends exactly at ``len(text)``.
    """
    if max_size <= 0:
        raise ConfigurationError(f"max_size ({max_size}) must be positive")
    if overlap < 0 or overlap >= max_size:
        raise ConfigurationError(f"overlap ({overlap}) must be >= 0 and < max_size ({max_size})")

    if len(text) <= max_size:
        return [text]

    stride = max_size - overlap
    chunks: list[str] = []
    start = 0
    while True:
        end = start + max_size
        chunks.append(text[start:end])
        if end >= len(text):
            break
        start += stride
    return chunks


def chunk_page(page: PageContent, max_size: int = 1000, overlap: int = 100) -> list[Chunk]:
    """Chunk a page's cleaned text, keeping the chunk order."""
    pieces = chunk_text(page.cleaned_text, max_size, overlap)
    return [Chunk(text=piece, index=i, total_in_page=len(pieces)) for i, piece in enumerate(pieces)]
