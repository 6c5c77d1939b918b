import json

from article_audio.adapters.publisher import derive_object_id
from article_audio.application.handler import FAILURE_MESSAGES, describe_result, handle_request
from article_audio.domain.models import PipelineState, RunResult
from article_audio.errors import FetchError

from conftest import ARTICLE_URL, FakeArticleSource, FakeSynthesizer, MemoryPublisher


def test_missing_url_is_rejected_without_running(build_pipeline) -> None:
    source = FakeArticleSource()
    pipeline = build_pipeline(source=source)

    assert handle_request({}, pipeline) == (400, "No url provided!")
    assert handle_request(None, pipeline) == (400, "No url provided!")
    assert source.calls == []


def test_blank_url_reports_the_validation_message(build_pipeline) -> None:
    assert handle_request({"url": "  "}, build_pipeline()) == (400, "No url provided!")
    assert PipelineState.IDLE not in FAILURE_MESSAGES


def test_success_reports_the_stored_object(build_pipeline) -> None:
    publisher = MemoryPublisher()
    status, message = handle_request({"url": ARTICLE_URL}, build_pipeline(publisher=publisher))

    assert status == 200
    header, _, payload = message.partition("\n")
    assert header == "File successfully sent to storage:"
    artifact = json.loads(payload)
    assert artifact["object_id"] == derive_object_id(ARTICLE_URL)
    assert artifact["content_type"] == "audio/mpeg"
    assert artifact["metadata"]["url"] == ARTICLE_URL


def test_synthesis_failure_names_the_stage(build_pipeline) -> None:
    pipeline = build_pipeline(synthesizer=FakeSynthesizer(fail_on=[0]))
    status, message = handle_request({"url": ARTICLE_URL}, pipeline)

    assert status == 400
    first_line, second_line = message.split("\n")
    assert first_line == "TTS conversion failed."
    assert second_line.startswith("[Synthesizing] chunk 0: quota exceeded")


def test_fetch_failure_includes_the_underlying_cause() -> None:
    error = FetchError("Article parser request failed", cause=ConnectionError("dns failure"))
    result = RunResult(
        state=PipelineState.FAILED,
        failed_stage=PipelineState.FETCHING,
        error=error,
        history=[PipelineState.IDLE, PipelineState.FETCHING, PipelineState.FAILED],
    )

    status, message = describe_result(result)

    assert status == 400
    assert message == (
        "Something went wrong while fetching article data.\n"
        "[Fetching] Article parser request failed: dns failure"
    )
