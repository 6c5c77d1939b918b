"""
Article audio pipeline – single responsibility: orchestrate
clean → fetch → chunk → synthesize → stage → assemble → publish.
Depends only on port interfaces (SOLID – Dependency Inversion).

Each run walks the states Idle → Cleaning → Fetching → Chunking →
Synthesizing → Staging → Assembling → Publishing → Done, or stops in Failed
at the first stage that raises. No state is re-entered and nothing is retried.
"""

import contextlib
import logging
import threading
import uuid
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Optional, Type, Union
from urllib.parse import urlparse

from article_audio.application.fanout import run_bounded
from article_audio.domain.chunking import chunk_text
from article_audio.domain.models import (
    AudioSegment,
    PipelineState,
    PublishedArtifact,
    RunResult,
    StagedSegmentRef,
    TextChunk,
)
from article_audio.errors import (
    AssemblyError,
    ConfigError,
    FetchError,
    InvalidInputError,
    PipelineError,
    PublishError,
    SegmentIOError,
    SynthesisError,
)
from article_audio.ports.interfaces import (
    IArticleSource,
    IAssembler,
    IPublisher,
    ISegmentStore,
    ISpeechSynthesizer,
)

logger = logging.getLogger(__name__)

# Error class used when a stage raises something outside the taxonomy.
STAGE_ERRORS: Dict[PipelineState, Type[PipelineError]] = {
    PipelineState.IDLE: InvalidInputError,
    PipelineState.CLEANING: SegmentIOError,
    PipelineState.FETCHING: FetchError,
    PipelineState.CHUNKING: InvalidInputError,
    PipelineState.SYNTHESIZING: SynthesisError,
    PipelineState.STAGING: SegmentIOError,
    PipelineState.ASSEMBLING: AssemblyError,
    PipelineState.PUBLISHING: PublishError,
}

_STEPS = [
    PipelineState.CLEANING,
    PipelineState.FETCHING,
    PipelineState.CHUNKING,
    PipelineState.SYNTHESIZING,
    PipelineState.STAGING,
    PipelineState.ASSEMBLING,
    PipelineState.PUBLISHING,
]

_workspace_locks: Dict[str, threading.Lock] = {}
_workspace_locks_guard = threading.Lock()


def _workspace_lock(path: Path) -> threading.Lock:
    """One lock per resolved workspace path, shared by every pipeline in the process."""
    key = str(path.resolve())
    with _workspace_locks_guard:
        return _workspace_locks.setdefault(key, threading.Lock())


def validate_url(url) -> str:
    if not isinstance(url, str) or not url.strip():
        raise InvalidInputError("No url provided!", stage=PipelineState.IDLE.value)
    url = url.strip()
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise InvalidInputError(f"Invalid url: {url!r}", stage=PipelineState.IDLE.value)
    return url


class ArticleAudioPipeline:
    """
    Converts one article URL into one published audio object per `run()`.
    All external collaborators are injected (ports); no concrete clients here.
    """

    def __init__(
        self,
        *,
        article_source: IArticleSource,
        synthesizer: ISpeechSynthesizer,
        assembler: IAssembler,
        publisher: IPublisher,
        workspace_dir: Union[str, Path],
        max_chunk_size: int = 5000,
        max_concurrency: int = 4,
        isolate_runs: bool = False,
        store_factory: Optional[Callable[[Path], ISegmentStore]] = None,
        audio_extension: str = "mp3",
    ):
        problems = []
        if not workspace_dir:
            problems.append("workspace_dir is required")
        if not isinstance(max_chunk_size, int) or max_chunk_size <= 0:
            problems.append(f"max_chunk_size must be a positive integer, got {max_chunk_size!r}")
        if not isinstance(max_concurrency, int) or max_concurrency <= 0:
            problems.append(f"max_concurrency must be a positive integer, got {max_concurrency!r}")
        if problems:
            raise ConfigError(problems)

        self._source = article_source
        self._tts = synthesizer
        self._assembler = assembler
        self._publisher = publisher
        self.workspace_dir = Path(workspace_dir)
        self.max_chunk_size = max_chunk_size
        self.max_concurrency = max_concurrency
        self.isolate_runs = isolate_runs
        if store_factory is None:
            from article_audio.adapters.store import LocalSegmentStore

            def store_factory(root: Path) -> ISegmentStore:
                return LocalSegmentStore(root, extension=audio_extension)
        self._store_factory = store_factory

    @classmethod
    def from_settings(cls, settings, **overrides) -> "ArticleAudioPipeline":
        """Build the pipeline and its default adapters from validated settings."""
        from article_audio.adapters import default_adapters, segment_format

        settings.validate()
        store_factory = overrides.pop("store_factory", None)
        adapters = default_adapters(settings, **overrides)
        return cls(
            **adapters,
            workspace_dir=settings.workspace_dir,
            max_chunk_size=settings.max_chunk_size,
            max_concurrency=settings.max_concurrency,
            isolate_runs=settings.isolate_runs,
            store_factory=store_factory,
            audio_extension=segment_format(adapters["synthesizer"]),
        )

    def run(self, url: str) -> RunResult:
        """Run the whole pipeline for `url`. Never raises for stage failures."""
        result = RunResult(state=PipelineState.IDLE, history=[PipelineState.IDLE])
        try:
            url = validate_url(url)
            logger.info("Converting article to audio: %s", url)
            with self._workspace() as store:
                result.artifact = self._run_stages(url, store, result)
            self._enter(result, PipelineState.DONE)
            logger.info("✅ Published %s", result.artifact.object_id)
        except Exception as e:
            self._fail(result, e)
        return result

    def _run_stages(self, url: str, store: ISegmentStore, result: RunResult) -> PublishedArtifact:
        self._enter(result, PipelineState.CLEANING)
        store.clear()

        self._enter(result, PipelineState.FETCHING)
        doc = self._source.fetch(url)
        if not doc.title:
            raise FetchError("Article has no title")
        logger.info("Fetched %r (%d characters)", doc.title, len(doc.body))

        self._enter(result, PipelineState.CHUNKING)
        chunks = chunk_text(doc.body, self.max_chunk_size)
        logger.info("Split article into %d chunk(s) of at most %d characters", len(chunks), self.max_chunk_size)

        self._enter(result, PipelineState.SYNTHESIZING)
        segments = self._synthesize(chunks)

        self._enter(result, PipelineState.STAGING)
        refs = self._stage(store, segments)

        self._enter(result, PipelineState.ASSEMBLING)
        audio = self._assembler.assemble(refs)

        self._enter(result, PipelineState.PUBLISHING)
        return self._publisher.publish(audio, doc)

    def _synthesize(self, chunks: List[TextChunk]) -> List[AudioSegment]:
        segments = run_bounded(
            chunks,
            self._synthesize_one,
            max_workers=self.max_concurrency,
            name="synthesize",
        )
        logger.info("Synthesized %d segment(s)", len(segments))
        return segments

    def _synthesize_one(self, chunk: TextChunk) -> AudioSegment:
        try:
            segment = self._tts.synthesize(chunk)
        except SynthesisError as e:
            if e.chunk_index is not None:
                raise
            raise SynthesisError(str(e), chunk_index=chunk.index, cause=e) from e
        except Exception as e:
            raise SynthesisError(str(e) or type(e).__name__, chunk_index=chunk.index, cause=e) from e
        if segment.index != chunk.index:
            raise SynthesisError(
                f"synthesizer returned index {segment.index}", chunk_index=chunk.index
            )
        return segment

    def _stage(self, store: ISegmentStore, segments: List[AudioSegment]) -> List[StagedSegmentRef]:
        refs = run_bounded(
            segments,
            store.stage,
            max_workers=self.max_concurrency,
            name="stage",
        )
        logger.info("Staged %d segment(s)", len(refs))
        return refs

    @contextlib.contextmanager
    def _workspace(self) -> Iterator[ISegmentStore]:
        """Yield the store for this run, holding the workspace exclusively."""
        if self.isolate_runs:
            arena = self.workspace_dir / f"run-{uuid.uuid4().hex}"
            store = self._store_factory(arena)
            try:
                yield store
            finally:
                remove = getattr(store, "remove", None)
                if remove is not None:
                    remove()
            return

        with _workspace_lock(self.workspace_dir):
            yield self._store_factory(self.workspace_dir)

    @staticmethod
    def _enter(result: RunResult, state: PipelineState) -> None:
        result.state = state
        result.history.append(state)
        if state in _STEPS:
            logger.info("[%d/%d] %s", _STEPS.index(state) + 1, len(_STEPS), state.value)

    @staticmethod
    def _fail(result: RunResult, error: Exception) -> None:
        stage = result.state
        if isinstance(error, PipelineError):
            # The state the run was in when it raised is the failing stage.
            error.stage = stage.value
        else:
            wrapper = STAGE_ERRORS.get(stage, PipelineError)
            error = wrapper(f"{type(error).__name__}: {error}", stage=stage.value, cause=error)
        result.failed_stage = stage
        result.error = error
        result.state = PipelineState.FAILED
        result.history.append(PipelineState.FAILED)
        logger.error("❌ Run failed %s", error.describe())
