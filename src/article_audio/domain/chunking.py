"""
Splits narration text into bounded, ordered chunks for synthesis.

Chunks are contiguous and non-overlapping: joining their texts in index order
gives back the input exactly. A split lands at the start of a token so no
word is cut; whitespace at the split point stays with the earlier chunk.
"""

import re
from typing import List, Optional

from article_audio.domain.models import TextChunk
from article_audio.errors import InvalidInputError

DEFAULT_MAX_CHUNK_SIZE = 5000

_TOKEN_BOUNDARY = re.compile(r"\s+(?=\S)")
_SENTENCE_END = re.compile(r"[.!?][\"'”’)\]]*$")


def _find_split(text: str, start: int, max_chunk_size: int) -> int:
    """Return the end offset (exclusive) of the chunk that begins at `start`."""
    limit = start + max_chunk_size
    # Prefer sentence/paragraph ends, but not if they would halve the chunk.
    min_preferred = start + max_chunk_size // 2
    last_boundary: Optional[int] = None
    last_preferred: Optional[int] = None

    for match in _TOKEN_BOUNDARY.finditer(text, start, limit + 1):
        end = match.end()
        if end > limit:
            break
        if match.start() == start:
            # Leading whitespace; cutting here would leave an empty chunk.
            continue
        last_boundary = end
        if "\n" in match.group() or _SENTENCE_END.search(
            text, max(start, match.start() - 8), match.start()
        ):
            last_preferred = end

    if last_preferred is not None and last_preferred >= min_preferred:
        return last_preferred
    if last_boundary is not None:
        return last_boundary
    # A single token longer than the limit.
    return limit


def chunk_text(text: str, max_chunk_size: int = DEFAULT_MAX_CHUNK_SIZE) -> List[TextChunk]:
    """Split `text` into chunks of at most `max_chunk_size` characters."""
    if isinstance(max_chunk_size, bool) or not isinstance(max_chunk_size, int) or max_chunk_size <= 0:
        raise InvalidInputError(f"max_chunk_size must be a positive integer, got {max_chunk_size!r}")
    if not text or not text.strip():
        raise InvalidInputError("Article text is empty")

    chunks: List[TextChunk] = []
    start = 0
    while start < len(text):
        if len(text) - start <= max_chunk_size:
            end = len(text)
        else:
            end = _find_split(text, start, max_chunk_size)
        piece = text[start:end]
        if not piece.strip():
            raise InvalidInputError(
                f"Chunk {len(chunks)} contains only whitespace (offset {start})"
            )
        chunks.append(TextChunk(index=len(chunks), text=piece))
        start = end
    return chunks
