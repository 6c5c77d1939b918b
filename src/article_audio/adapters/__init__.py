"""
Adapters – concrete implementations of ports.
Swap any of them through `default_adapters(settings, <port_name>=...)`.
"""

from article_audio.adapters.article import ParserArticleSource
from article_audio.adapters.assembler import PydubAssembler
from article_audio.adapters.publisher import GCSPublisher, LocalPublisher
from article_audio.adapters.store import LocalSegmentStore
from article_audio.adapters.tts import build_synthesizer


def default_adapters(settings, **overrides):
    """
    Build adapter instances from settings.
    Overrides: article_source=..., synthesizer=..., assembler=..., publisher=...
    Ports that are overridden are never constructed (no client/credential lookup).
    """
    factories = {
        "article_source": lambda: ParserArticleSource(
            api_url=settings.article_api_url,
            api_key=settings.article_api_key,
            timeout=settings.article_api_timeout,
        ),
        "synthesizer": lambda: build_synthesizer(settings),
        "assembler": lambda: PydubAssembler(
            audio_format=settings.audio_format,
            segment_format=segment_format(adapters["synthesizer"]),
        ),
        "publisher": lambda: _build_publisher(settings),
    }
    adapters = {}
    for name, factory in factories.items():
        adapters[name] = overrides.pop(name) if name in overrides else factory()
    if overrides:
        raise TypeError(f"Unknown adapter override(s): {', '.join(sorted(overrides))}")
    return adapters


def segment_format(synthesizer) -> str:
    """Encoding of the bytes `synthesizer` returns (MP3 unless it says otherwise)."""
    return getattr(synthesizer, "audio_format", "mp3")


def _build_publisher(settings):
    if settings.publish_target == "local":
        return LocalPublisher(settings.output_dir, extension=settings.audio_format)
    return GCSPublisher(
        bucket_name=settings.gcs_bucket_name,
        project_id=settings.gcp_project_id,
        make_public=settings.gcs_public,
        extension=settings.audio_format,
    )


__all__ = [
    "GCSPublisher",
    "LocalPublisher",
    "LocalSegmentStore",
    "ParserArticleSource",
    "PydubAssembler",
    "build_synthesizer",
    "default_adapters",
    "segment_format",
]
