import random
import threading
import time
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import pytest

from article_audio.application.pipeline import ArticleAudioPipeline
from article_audio.domain.models import (
    ArticleDocument,
    AssembledAudio,
    AudioSegment,
    PublishedArtifact,
    StagedSegmentRef,
    TextChunk,
)
from article_audio.adapters.publisher import article_metadata, derive_object_id
from article_audio.errors import SynthesisError
from article_audio.ports.interfaces import (
    IArticleSource,
    IAssembler,
    IPublisher,
    ISpeechSynthesizer,
)

ARTICLE_URL = "https://example.com/news/long-read"


def make_doc(body: str, url: str = ARTICLE_URL, title: str = "A Long Read") -> ArticleDocument:
    return ArticleDocument(
        title=title,
        body=body,
        source_url=url,
        author="Jane Writer",
        published_date="2018-01-02T10:00:00.000Z",
        excerpt="An excerpt.",
        lead_image_url="https://example.com/lead.jpg",
        domain="example.com",
    )


def sentences(count: int) -> str:
    return "".join(f"Sentence number {i} is here. " for i in range(count))


class FakeArticleSource(IArticleSource):
    def __init__(self, doc: Optional[ArticleDocument] = None, error: Optional[Exception] = None):
        self.doc = doc
        self.error = error
        self.calls: List[str] = []

    def fetch(self, url: str) -> ArticleDocument:
        self.calls.append(url)
        if self.error is not None:
            raise self.error
        return self.doc


class FakeSynthesizer(ISpeechSynthesizer):
    """Encodes each chunk as `<index|text>` bytes, optionally slow or failing."""

    def __init__(
        self,
        fail_on: Sequence[int] = (),
        delays: Optional[Dict[int, float]] = None,
        error: Optional[Exception] = None,
    ):
        self.fail_on = set(fail_on)
        self.delays = delays or {}
        self.error = error
        self.calls: List[int] = []
        self.active = 0
        self.max_active = 0
        self._lock = threading.Lock()

    def synthesize(self, chunk: TextChunk) -> AudioSegment:
        with self._lock:
            self.calls.append(chunk.index)
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            time.sleep(self.delays.get(chunk.index, 0))
            if chunk.index in self.fail_on:
                if self.error is not None:
                    raise self.error
                raise SynthesisError("quota exceeded", chunk_index=chunk.index)
            return AudioSegment(index=chunk.index, data=f"<{chunk.index}|{chunk.text}>".encode())
        finally:
            with self._lock:
                self.active -= 1


class ConcatAssembler(IAssembler):
    """Joins staged bytes in the order received and remembers that order."""

    def __init__(self, error: Optional[Exception] = None):
        self.error = error
        self.received: List[List[int]] = []

    def assemble(self, refs: Sequence[StagedSegmentRef]) -> AssembledAudio:
        self.received.append([ref.index for ref in refs])
        if self.error is not None:
            raise self.error
        data = b"".join(Path(ref.location).read_bytes() for ref in refs)
        return AssembledAudio(data=data, segment_count=len(refs))


class MemoryPublisher(IPublisher):
    """Bucket stand-in keyed by object id; later publishes overwrite earlier ones."""

    def __init__(self, error: Optional[Exception] = None):
        self.error = error
        self.objects: Dict[str, bytes] = {}
        self.calls = 0

    def publish(self, audio: AssembledAudio, doc: ArticleDocument) -> PublishedArtifact:
        self.calls += 1
        if self.error is not None:
            raise self.error
        object_id = derive_object_id(doc.source_url)
        self.objects[object_id] = audio.data
        return PublishedArtifact(
            object_id=object_id,
            content_type=audio.content_type,
            metadata=article_metadata(doc),
            location=f"memory://{object_id}",
        )


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    return tmp_path / "workspace"


@pytest.fixture
def build_pipeline(workspace: Path):
    def build(
        body: str = "Short article body.",
        *,
        source: Optional[IArticleSource] = None,
        synthesizer: Optional[ISpeechSynthesizer] = None,
        assembler: Optional[IAssembler] = None,
        publisher: Optional[IPublisher] = None,
        **kwargs,
    ):
        pipeline = ArticleAudioPipeline(
            article_source=source or FakeArticleSource(make_doc(body)),
            synthesizer=synthesizer or FakeSynthesizer(),
            assembler=assembler or ConcatAssembler(),
            publisher=publisher or MemoryPublisher(),
            workspace_dir=kwargs.pop("workspace_dir", workspace),
            **kwargs,
        )
        return pipeline

    return build


@pytest.fixture
def random_delays():
    def make(count: int, seed: int) -> Dict[int, float]:
        rng = random.Random(seed)
        return {i: rng.uniform(0, 0.02) for i in range(count)}

    return make

