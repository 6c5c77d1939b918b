"""
Error taxonomy for a pipeline run.

Every stage failure is fatal to the run. Each stage maps anything it raises to
one of the classes below; the orchestrator reports the first one it sees.
"""

from typing import Optional


class PipelineError(RuntimeError):
    """Base for all run failures. `stage` is filled in by the orchestrator."""

    default_stage: Optional[str] = None

    def __init__(
        self,
        message: str,
        *,
        stage: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.stage = stage or self.default_stage
        if cause is not None:
            self.__cause__ = cause

    def describe(self) -> str:
        """Stage-tagged, user-facing description."""
        message = str(self)
        cause = self.__cause__
        if cause is not None and str(cause) and str(cause) not in message:
            message = f"{message}: {cause}"
        if self.stage:
            return f"[{self.stage}] {message}"
        return message


class InvalidInputError(PipelineError):
    """Bad or missing URL, or article text that cannot be synthesized."""


class FetchError(PipelineError):
    """Article source unreachable or its response unusable."""

    default_stage = "Fetching"


class SynthesisError(PipelineError):
    """A chunk failed to convert to audio."""

    default_stage = "Synthesizing"

    def __init__(self, message: str, *, chunk_index: Optional[int] = None, **kwargs):
        if chunk_index is not None and f"chunk {chunk_index}" not in message:
            message = f"chunk {chunk_index}: {message}"
        super().__init__(message, **kwargs)
        self.chunk_index = chunk_index


class SegmentIOError(PipelineError):
    """A staging write (or workspace cleanup) could not complete."""

    default_stage = "Staging"


class AssemblyError(PipelineError):
    """Staged segments could not be concatenated."""

    default_stage = "Assembling"


class PublishError(PipelineError):
    """Upload of the assembled audio failed."""

    default_stage = "Publishing"


class ConfigError(ValueError):
    """Raised when settings are missing or invalid. Lists every problem."""

    def __init__(self, problems):
        self.problems = list(problems)
        super().__init__("Invalid configuration: " + "; ".join(self.problems))
