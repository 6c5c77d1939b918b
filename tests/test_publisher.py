import hashlib
import json
from pathlib import Path
from typing import Dict

import pytest

from article_audio.adapters.publisher import (
    GCSPublisher,
    LocalPublisher,
    article_metadata,
    derive_object_id,
)
from article_audio.domain.models import AssembledAudio
from article_audio.errors import PublishError

from conftest import ARTICLE_URL, make_doc


class FakeBlob:
    def __init__(self, bucket: "FakeBucket", name: str):
        self.bucket = bucket
        self.name = name
        self.metadata = None

    @property
    def public_url(self) -> str:
        return f"https://storage.googleapis.com/{self.bucket.name}/{self.name}"

    def upload_from_string(self, data: bytes, content_type: str, predefined_acl=None) -> None:
        if self.bucket.fail_uploads:
            raise ConnectionError("network down")
        if predefined_acl and self.bucket.uniform_access:
            raise PermissionError(
                "Cannot use ACL API to set object policy when uniform bucket-level access is enabled"
            )
        if predefined_acl == "publicRead":
            self.bucket.public.add(self.name)
        self.bucket.objects[self.name] = {
            "data": data,
            "content_type": content_type,
            "metadata": dict(self.metadata or {}),
        }


class FakeBucket:
    def __init__(self, name: str):
        self.name = name
        self.objects: Dict[str, dict] = {}
        self.public = set()
        self.fail_uploads = False
        self.uniform_access = False

    def blob(self, name: str) -> FakeBlob:
        return FakeBlob(self, name)


class FakeStorageClient:
    def __init__(self):
        self.buckets: Dict[str, FakeBucket] = {}

    def bucket(self, name: str) -> FakeBucket:
        return self.buckets.setdefault(name, FakeBucket(name))


def test_object_id_is_md5_of_url_plus_extension() -> None:
    expected = hashlib.md5(ARTICLE_URL.encode()).hexdigest() + ".mp3"
    assert derive_object_id(ARTICLE_URL) == expected
    assert derive_object_id(ARTICLE_URL) == derive_object_id(ARTICLE_URL)
    assert derive_object_id(ARTICLE_URL + "?page=2") != expected


def test_metadata_copies_article_fields_and_drops_empty_ones() -> None:
    doc = make_doc("body")
    metadata = article_metadata(doc)
    assert metadata == {
        "title": "A Long Read",
        "author": "Jane Writer",
        "excerpt": "An excerpt.",
        "url": ARTICLE_URL,
        "datePublished": "2018-01-02T10:00:00.000Z",
        "leadImageUrl": "https://example.com/lead.jpg",
    }

    from dataclasses import replace
    assert "author" not in article_metadata(replace(doc, author=None))


def test_gcs_upload_sets_content_type_metadata_and_acl() -> None:
    client = FakeStorageClient()
    publisher = GCSPublisher("audio-bucket", client=client)

    artifact = publisher.publish(AssembledAudio(data=b"mp3", segment_count=1), make_doc("body"))

    stored = client.buckets["audio-bucket"].objects[artifact.object_id]
    assert stored["data"] == b"mp3"
    assert stored["content_type"] == "audio/mpeg"
    assert stored["metadata"]["title"] == "A Long Read"
    assert artifact.object_id in client.buckets["audio-bucket"].public
    assert artifact.location.endswith(f"/audio-bucket/{artifact.object_id}")


def test_gcs_private_upload_reports_gs_location() -> None:
    client = FakeStorageClient()
    publisher = GCSPublisher("audio-bucket", make_public=False, client=client)

    artifact = publisher.publish(AssembledAudio(data=b"mp3", segment_count=1), make_doc("body"))

    assert artifact.location == f"gs://audio-bucket/{artifact.object_id}"
    assert not client.buckets["audio-bucket"].public


def test_gcs_republish_overwrites_same_object() -> None:
    client = FakeStorageClient()
    publisher = GCSPublisher("audio-bucket", client=client)
    doc = make_doc("body")

    first = publisher.publish(AssembledAudio(data=b"v1", segment_count=1), doc)
    second = publisher.publish(AssembledAudio(data=b"v2", segment_count=1), doc)

    objects = client.buckets["audio-bucket"].objects
    assert first.object_id == second.object_id
    assert list(objects) == [first.object_id]
    assert objects[first.object_id]["data"] == b"v2"


def test_gcs_failure_raises_publish_error_and_keeps_previous_object() -> None:
    client = FakeStorageClient()
    publisher = GCSPublisher("audio-bucket", client=client)
    doc = make_doc("body")
    first = publisher.publish(AssembledAudio(data=b"v1", segment_count=1), doc)

    client.buckets["audio-bucket"].fail_uploads = True
    with pytest.raises(PublishError, match="network down"):
        publisher.publish(AssembledAudio(data=b"v2", segment_count=1), doc)

    assert client.buckets["audio-bucket"].objects[first.object_id]["data"] == b"v1"


def test_local_publisher_writes_audio_and_sidecar(tmp_path: Path) -> None:
    publisher = LocalPublisher(tmp_path / "out")
    doc = make_doc("body")

    first = publisher.publish(AssembledAudio(data=b"v1", segment_count=2), doc)
    second = publisher.publish(AssembledAudio(data=b"v2", segment_count=2), doc)

    assert first.object_id == second.object_id
    target = Path(second.location)
    assert target.read_bytes() == b"v2"
    sidecar = json.loads((tmp_path / "out" / f"{second.object_id}.json").read_text())
    assert sidecar["contentType"] == "audio/mpeg"
    assert sidecar["metadata"]["url"] == ARTICLE_URL
    assert sorted(p.name for p in (tmp_path / "out").iterdir()) == [
        second.object_id,
        f"{second.object_id}.json",
    ]


def test_local_publisher_failure_raises_publish_error(tmp_path: Path) -> None:
    blocker = tmp_path / "out"
    blocker.write_text("not a directory")
    with pytest.raises(PublishError):
        LocalPublisher(blocker).publish(AssembledAudio(data=b"x", segment_count=1), make_doc("body"))


def test_rejected_public_acl_keeps_previous_object() -> None:
    client = FakeStorageClient()
    publisher = GCSPublisher("audio-bucket", client=client)
    doc = make_doc("body")
    first = publisher.publish(AssembledAudio(data=b"OLD", segment_count=1), doc)

    client.buckets["audio-bucket"].uniform_access = True
    with pytest.raises(PublishError, match="uniform bucket-level access"):
        publisher.publish(AssembledAudio(data=b"NEW", segment_count=1), doc)

    assert client.buckets["audio-bucket"].objects == {
        first.object_id: {
            "data": b"OLD",
            "content_type": "audio/mpeg",
            "metadata": article_metadata(doc),
        }
    }


def test_local_sidecar_failure_keeps_previous_audio(tmp_path: Path) -> None:
    out = tmp_path / "out"
    publisher = LocalPublisher(out)
    doc = make_doc("body")
    first = publisher.publish(AssembledAudio(data=b"OLD", segment_count=1), doc)
    sidecar = out / f"{first.object_id}.json"
    sidecar.unlink()
    sidecar.mkdir()

    with pytest.raises(PublishError):
        publisher.publish(AssembledAudio(data=b"NEW", segment_count=1), doc)

    assert (out / first.object_id).read_bytes() == b"OLD"
    assert sorted(p.name for p in out.iterdir()) == [first.object_id, f"{first.object_id}.json"]
