"""Request entry point: `{"url": ...}` in, `(status_code, message)` out."""

import json
import logging
from typing import Any, Mapping, Optional, Tuple

from article_audio.application.pipeline import ArticleAudioPipeline
from article_audio.domain.models import PipelineState, RunResult

logger = logging.getLogger(__name__)

FAILURE_MESSAGES = {
    PipelineState.CLEANING: "Failed to clean working directory.",
    PipelineState.FETCHING: "Something went wrong while fetching article data.",
    PipelineState.CHUNKING: "Article text could not be split for synthesis.",
    PipelineState.SYNTHESIZING: "TTS conversion failed.",
    PipelineState.STAGING: "Failed to write audio segment(s) to disk.",
    PipelineState.ASSEMBLING: "Failed to concatenate audio files.",
    PipelineState.PUBLISHING: "Could not send audio to storage.",
}


def describe_result(result: RunResult) -> Tuple[int, str]:
    """Map a run outcome to the status code and text reported to the caller."""
    if result.ok:
        body = json.dumps(result.artifact.to_dict(), indent=2, ensure_ascii=False)
        return 200, "File successfully sent to storage:\n" + body

    stage = result.failed_stage or PipelineState.IDLE
    cause = str(result.error) if result.error is not None else "unknown error"
    if result.error is not None and result.error.__cause__ is not None:
        inner = str(result.error.__cause__)
        if inner and inner not in cause:
            cause = f"{cause}: {inner}"
    if stage is PipelineState.IDLE:
        return 400, cause
    return 400, f"{FAILURE_MESSAGES.get(stage, 'Pipeline failed.')}\n[{stage.value}] {cause}"


def handle_request(
    body: Optional[Mapping[str, Any]],
    pipeline: ArticleAudioPipeline,
) -> Tuple[int, str]:
    """Handle one conversion request. Exactly one outcome is reported per call."""
    url = body.get("url") if isinstance(body, Mapping) else None
    if url is None:
        return 400, "No url provided!"
    result = pipeline.run(url)
    status, message = describe_result(result)
    logger.info("Request for %s finished with %d", url, status)
    return status, message
