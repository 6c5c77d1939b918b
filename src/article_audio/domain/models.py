"""Domain models – immutable records passed between pipeline stages."""

import enum
from dataclasses import dataclass, field
from typing import Dict, List, Optional


@dataclass(frozen=True)
class ArticleDocument:
    """A parsed article. `body` is plain text, already stripped of HTML."""
    title: str
    body: str
    source_url: str
    author: Optional[str] = None
    published_date: Optional[str] = None
    excerpt: Optional[str] = None
    lead_image_url: Optional[str] = None
    domain: Optional[str] = None


@dataclass(frozen=True)
class TextChunk:
    index: int
    text: str


@dataclass(frozen=True)
class AudioSegment:
    """Synthesized audio for the chunk with the same index."""
    index: int
    data: bytes = field(repr=False)


@dataclass(frozen=True)
class StagedSegmentRef:
    """Durable handle to a staged segment. Ordering comes from `index` only."""
    index: int
    location: str


@dataclass(frozen=True)
class AssembledAudio:
    data: bytes = field(repr=False)
    segment_count: int
    content_type: str = "audio/mpeg"


@dataclass(frozen=True)
class PublishedArtifact:
    object_id: str
    content_type: str
    metadata: Dict[str, str]
    location: Optional[str] = None

    def to_dict(self) -> Dict[str, object]:
        return {
            "object_id": self.object_id,
            "content_type": self.content_type,
            "location": self.location,
            "metadata": dict(self.metadata),
        }


class PipelineState(str, enum.Enum):
    IDLE = "Idle"
    CLEANING = "Cleaning"
    FETCHING = "Fetching"
    CHUNKING = "Chunking"
    SYNTHESIZING = "Synthesizing"
    STAGING = "Staging"
    ASSEMBLING = "Assembling"
    PUBLISHING = "Publishing"
    DONE = "Done"
    FAILED = "Failed"


@dataclass
class RunResult:
    """Outcome of one run: `Done` with an artifact, or `Failed(stage, error)`."""
    state: PipelineState
    artifact: Optional[PublishedArtifact] = None
    failed_stage: Optional[PipelineState] = None
    error: Optional[Exception] = None
    history: List[PipelineState] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.state is PipelineState.DONE
