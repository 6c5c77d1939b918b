"""IAssembler adapter: concatenates staged segments with pydub."""

import io
import logging
from pathlib import Path
from typing import Sequence

import pydub
from pydub.exceptions import CouldntDecodeError

from article_audio.domain.models import AssembledAudio, StagedSegmentRef
from article_audio.errors import AssemblyError
from article_audio.ports.interfaces import IAssembler

logger = logging.getLogger(__name__)

CONTENT_TYPES = {
    "mp3": "audio/mpeg",
    "wav": "audio/wav",
    "ogg": "audio/ogg",
}


def ordered_refs(refs: Sequence[StagedSegmentRef]) -> list:
    """Sort refs by index and require exactly 0..n-1."""
    ordered = sorted(refs, key=lambda ref: ref.index)
    indexes = [ref.index for ref in ordered]
    if indexes != list(range(len(ordered))):
        raise AssemblyError(f"Staged segment indexes are not contiguous from 0: {indexes}")
    return ordered


class PydubAssembler(IAssembler):
    """
    Staged segments are read as `segment_format` (what the synthesizer emits).
    One segment already in `audio_format` is passed through byte-for-byte;
    otherwise segments are decoded, joined in index order and exported once
    in `audio_format`.
    """

    def __init__(self, audio_format: str = "mp3", segment_format: str = "mp3", bitrate: str = "192k"):
        self.audio_format = audio_format
        self.segment_format = segment_format
        self.bitrate = bitrate
        self.content_type = CONTENT_TYPES.get(audio_format, f"audio/{audio_format}")

    def assemble(self, refs: Sequence[StagedSegmentRef]) -> AssembledAudio:
        if not refs:
            raise AssemblyError("No staged segments to assemble")
        ordered = ordered_refs(refs)

        if len(ordered) == 1 and self.segment_format == self.audio_format:
            data = self._read(ordered[0])
        else:
            data = self._concatenate(ordered)

        if not data:
            raise AssemblyError("Concatenation produced an empty result")
        logger.info("Assembled %d segment(s) into %d bytes", len(ordered), len(data))
        return AssembledAudio(data=data, segment_count=len(ordered), content_type=self.content_type)

    @staticmethod
    def _read(ref: StagedSegmentRef) -> bytes:
        try:
            return Path(ref.location).read_bytes()
        except OSError as e:
            raise AssemblyError(f"Segment {ref.index} is unreadable", cause=e) from e

    def _concatenate(self, ordered: Sequence[StagedSegmentRef]) -> bytes:
        combined = pydub.AudioSegment.empty()
        for ref in ordered:
            data = self._read(ref)
            try:
                combined += pydub.AudioSegment.from_file(io.BytesIO(data), format=self.segment_format)
            except Exception as e:
                raise AssemblyError(f"Segment {ref.index} could not be decoded", cause=e) from e

        if len(combined) == 0:
            raise AssemblyError("Concatenated audio has zero duration")

        buffer = io.BytesIO()
        try:
            if self.audio_format == "mp3":
                combined.export(buffer, format="mp3", bitrate=self.bitrate)
            else:
                combined.export(buffer, format=self.audio_format)
        except (CouldntDecodeError, OSError) as e:
            raise AssemblyError("Export of concatenated audio failed", cause=e) from e
        return buffer.getvalue()
