"""IPublisher adapters: Google Cloud Storage bucket or a local output directory."""

import hashlib
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Dict, Optional, Union

from article_audio.domain.models import ArticleDocument, AssembledAudio, PublishedArtifact
from article_audio.errors import PublishError
from article_audio.ports.interfaces import IPublisher

logger = logging.getLogger(__name__)

AUDIO_EXTENSION = "mp3"


def derive_object_id(source_url: str, extension: str = AUDIO_EXTENSION) -> str:
    """Stable object name for an article: md5 of its URL plus the audio extension."""
    digest = hashlib.md5(source_url.encode("utf-8")).hexdigest()
    return f"{digest}.{extension}"


def article_metadata(doc: ArticleDocument) -> Dict[str, str]:
    """Custom object metadata copied from the article; empty fields are left out."""
    fields = {
        "title": doc.title,
        "author": doc.author,
        "excerpt": doc.excerpt,
        "url": doc.source_url,
        "datePublished": doc.published_date,
        "leadImageUrl": doc.lead_image_url,
    }
    return {key: str(value) for key, value in fields.items() if value}


class GCSPublisher(IPublisher):
    """Uploads to `gs://<bucket>/<md5(url)>.mp3` in a single request."""

    def __init__(
        self,
        bucket_name: str,
        project_id: Optional[str] = None,
        make_public: bool = True,
        extension: str = AUDIO_EXTENSION,
        client=None,
    ):
        if client is None:
            from google.cloud import storage
            client = storage.Client(project=project_id)
        self._client = client
        self._bucket_name = bucket_name
        self._make_public = make_public
        self._extension = extension

    def publish(self, audio: AssembledAudio, doc: ArticleDocument) -> PublishedArtifact:
        object_id = derive_object_id(doc.source_url, self._extension)
        metadata = article_metadata(doc)
        logger.info("Uploading %d bytes to gs://%s/%s", len(audio.data), self._bucket_name, object_id)
        try:
            blob = self._client.bucket(self._bucket_name).blob(object_id)
            blob.metadata = metadata
            # ACL goes with the upload so a rejected ACL leaves the previous object.
            blob.upload_from_string(
                audio.data,
                content_type=audio.content_type,
                predefined_acl="publicRead" if self._make_public else None,
            )
        except Exception as e:
            raise PublishError(f"Upload of {object_id} failed: {e}", cause=e) from e

        location = blob.public_url if self._make_public else f"gs://{self._bucket_name}/{object_id}"
        return PublishedArtifact(
            object_id=object_id,
            content_type=audio.content_type,
            metadata=metadata,
            location=location,
        )


class LocalPublisher(IPublisher):
    """Writes `<output_dir>/<md5(url)>.mp3` plus a `.json` metadata sidecar."""

    def __init__(self, output_dir: Union[str, Path], extension: str = AUDIO_EXTENSION):
        self.output_dir = Path(output_dir)
        self._extension = extension

    def publish(self, audio: AssembledAudio, doc: ArticleDocument) -> PublishedArtifact:
        object_id = derive_object_id(doc.source_url, self._extension)
        metadata = article_metadata(doc)
        target = self.output_dir / object_id
        sidecar = self.output_dir / f"{object_id}.json"
        sidecar_body = json.dumps(
            {"contentType": audio.content_type, "metadata": metadata}, indent=2, ensure_ascii=False
        ).encode("utf-8")
        temps = []
        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            # Both files are fully written before either is swapped in.
            temps.append(self._write_temp(sidecar_body))
            temps.append(self._write_temp(audio.data))
            os.replace(temps[0], sidecar)
            os.replace(temps[1], target)
        except OSError as e:
            raise PublishError(f"Could not write {target}", cause=e) from e
        finally:
            for tmp_name in temps:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)

        logger.info("Saved %s (%d bytes)", target, len(audio.data))
        return PublishedArtifact(
            object_id=object_id,
            content_type=audio.content_type,
            metadata=metadata,
            location=str(target),
        )

    def _write_temp(self, data: bytes) -> str:
        fd, tmp_name = tempfile.mkstemp(dir=self.output_dir, prefix=".publish-", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(data)
        except BaseException:
            os.unlink(tmp_name)
            raise
        return tmp_name
