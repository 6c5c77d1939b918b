"""ISegmentStore adapter backed by a local scratch directory."""

import logging
import os
import re
import shutil
import tempfile
from pathlib import Path
from typing import List, Union

from article_audio.domain.models import AudioSegment, StagedSegmentRef
from article_audio.errors import SegmentIOError
from article_audio.ports.interfaces import ISegmentStore

logger = logging.getLogger(__name__)

SEGMENT_PREFIX = "segment_"
INDEX_WIDTH = 5


class LocalSegmentStore(ISegmentStore):
    """
    Stages segments as `segment_00000.mp3`, `segment_00001.mp3`, ...

    Names are zero-padded so a plain sort of the directory matches index
    order, but callers order by the index carried in each ref.
    """

    def __init__(self, root: Union[str, Path], extension: str = "mp3"):
        self.root = Path(root)
        self.extension = extension.lstrip(".")
        self._name_pattern = re.compile(
            rf"^{SEGMENT_PREFIX}(\d+)\.{re.escape(self.extension)}$"
        )

    def segment_path(self, index: int) -> Path:
        if index < 0:
            raise ValueError(f"segment index must be non-negative, got {index}")
        return self.root / f"{SEGMENT_PREFIX}{index:0{INDEX_WIDTH}d}.{self.extension}"

    def clear(self) -> None:
        """Delete everything under the workspace root (the root itself is kept)."""
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            for entry in self.root.iterdir():
                if entry.is_dir() and not entry.is_symlink():
                    shutil.rmtree(entry)
                else:
                    entry.unlink()
        except OSError as e:
            raise SegmentIOError(
                f"Could not clean workspace {self.root}", stage="Cleaning", cause=e
            ) from e
        logger.debug("Cleared workspace %s", self.root)

    def remove(self) -> None:
        """Delete the workspace root entirely (used for per-run arenas)."""
        shutil.rmtree(self.root, ignore_errors=True)

    def stage(self, segment: AudioSegment) -> StagedSegmentRef:
        path = self.segment_path(segment.index)
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            # Write beside the target then rename, so a re-stage replaces the
            # old file in one step and a failed write leaves nothing behind.
            fd, tmp_name = tempfile.mkstemp(dir=self.root, prefix=".staging-", suffix=".tmp")
            try:
                with os.fdopen(fd, "wb") as handle:
                    handle.write(segment.data)
                os.replace(tmp_name, path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except OSError as e:
            raise SegmentIOError(
                f"Failed to write segment {segment.index} to {path}", cause=e
            ) from e
        return StagedSegmentRef(index=segment.index, location=str(path))

    def staged_refs(self) -> List[StagedSegmentRef]:
        if not self.root.is_dir():
            return []
        refs = []
        for entry in self.root.iterdir():
            match = self._name_pattern.match(entry.name)
            if match and entry.is_file():
                refs.append(StagedSegmentRef(index=int(match.group(1)), location=str(entry)))
        return sorted(refs, key=lambda ref: ref.index)
