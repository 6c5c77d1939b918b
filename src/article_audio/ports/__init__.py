"""Ports (interfaces) – depend on these, implement in adapters."""

from article_audio.ports.interfaces import (
    IArticleSource,
    IAssembler,
    IPublisher,
    ISegmentStore,
    ISpeechSynthesizer,
)

__all__ = [
    "IArticleSource",
    "IAssembler",
    "IPublisher",
    "ISegmentStore",
    "ISpeechSynthesizer",
]
