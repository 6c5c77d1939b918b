"""
Port interfaces (SOLID – Dependency Inversion).
Implement these in adapters; the application layer depends only on these abstractions.
"""

from abc import ABC, abstractmethod
from typing import List, Sequence

from article_audio.domain.models import (
    ArticleDocument,
    AssembledAudio,
    AudioSegment,
    PublishedArtifact,
    StagedSegmentRef,
    TextChunk,
)


class IArticleSource(ABC):
    """Turns a URL into an article. Treated as a black box by the pipeline."""

    @abstractmethod
    def fetch(self, url: str) -> ArticleDocument:
        """Return the parsed article or raise FetchError."""
        pass


class ISpeechSynthesizer(ABC):
    """Text-to-speech for one chunk with a fixed voice/encoding configuration.

    Called concurrently from worker threads; implementations must not keep
    per-call mutable state.
    """

    @abstractmethod
    def synthesize(self, chunk: TextChunk) -> AudioSegment:
        """Return audio for `chunk` (same index) or raise SynthesisError."""
        pass


class ISegmentStore(ABC):
    """Scratch storage for synthesized segments of the current run."""

    @abstractmethod
    def clear(self) -> None:
        """Remove everything left over from earlier runs."""
        pass

    @abstractmethod
    def stage(self, segment: AudioSegment) -> StagedSegmentRef:
        """Write one segment; re-staging an index overwrites it."""
        pass

    @abstractmethod
    def staged_refs(self) -> List[StagedSegmentRef]:
        """List what is currently staged, sorted by index."""
        pass


class IAssembler(ABC):
    """Concatenates staged segments into a single stream."""

    @abstractmethod
    def assemble(self, refs: Sequence[StagedSegmentRef]) -> AssembledAudio:
        pass


class IPublisher(ABC):
    """Uploads the assembled audio under an id derived from the article URL."""

    @abstractmethod
    def publish(self, audio: AssembledAudio, doc: ArticleDocument) -> PublishedArtifact:
        pass
