"""Application layer – use cases and pipeline orchestration."""

from article_audio.application.handler import handle_request
from article_audio.application.pipeline import ArticleAudioPipeline

__all__ = ["ArticleAudioPipeline", "handle_request"]
