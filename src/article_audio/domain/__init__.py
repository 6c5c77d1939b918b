"""Domain models, value objects and text chunking."""

from article_audio.domain.chunking import chunk_text
from article_audio.domain.models import (
    ArticleDocument,
    AssembledAudio,
    AudioSegment,
    PipelineState,
    PublishedArtifact,
    RunResult,
    StagedSegmentRef,
    TextChunk,
)

__all__ = [
    "ArticleDocument",
    "AssembledAudio",
    "AudioSegment",
    "PipelineState",
    "PublishedArtifact",
    "RunResult",
    "StagedSegmentRef",
    "TextChunk",
    "chunk_text",
]
