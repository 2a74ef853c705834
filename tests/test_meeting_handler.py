import asyncio

import pytest
from conftest import (
    PROTOCOL_JSON,
    FakeGenerationProvider,
    FakeTranscriptionBackend,
    RecordingSleep,
    run_until,
)

from meeting_pipeline.domain import (
    LifecycleState,
    ProtocolSynthesizer,
    TranscriptionStatusPoller,
    UploadRouter,
)
from meeting_pipeline.exceptions import TranscriptionJobFailedError, UnknownJobError
from meeting_pipeline.handlers import MeetingHandler

DONE_PAYLOAD = {
    "status": "completed",
    "transcript": "Vi släpper på fredag och Alice skriver release notes.",
    "speakerStatus": "done",
    "speakerNames": {"speaker_0": "Alice", "speaker_1": "Talare 2"},
    "segments": [
        {"speaker": "speaker_0", "text": "Vi släpper på fredag."},
        {"speaker": "speaker_1", "text": "Jag skriver release notes."},
        {"speaker": "speaker_0", "text": "Bra."},
    ],
}


def _handler(backend, provider=None):
    return MeetingHandler(
        UploadRouter("https://asr.test/transcribe", relay_url="https://relay.test/upload"),
        backend,
        TranscriptionStatusPoller(backend, interval_seconds=0),
        ProtocolSynthesizer(provider or FakeGenerationProvider(), model="m", sleep=RecordingSleep()),
    )


def test_process_runs_all_steps():
    backend = FakeTranscriptionBackend({"job-1": [{"status": "processing"}, DONE_PAYLOAD]})
    provider = FakeGenerationProvider([PROTOCOL_JSON])

    result = asyncio.run(
        _handler(backend, provider).process(b"audio", "weekly.wav", title="Weekly", agenda="1. Release")
    )

    upload = backend.uploads[0]
    assert upload["target"].use_relay is True
    assert upload["language"] == "sv"
    assert upload["title"] == "Weekly"
    assert upload["trace_id"]
    assert result.job_id == "job-1"
    assert result.protocol.title == "Weekly sync"
    assert [(s.token, s.name) for s in result.speakers] == [
        ("speaker_0", "Alice"),
        ("speaker_1", "Talare 2"),
    ]
    assert "1. Release" in provider.calls[0]["prompt"]


def test_failed_transcription_raises_with_reason():
    backend = FakeTranscriptionBackend({"job-1": [{"status": "failed", "error": "Silent audio"}]})

    with pytest.raises(TranscriptionJobFailedError) as excinfo:
        asyncio.run(_handler(backend).process(b"audio", "weekly.wav"))

    assert excinfo.value.reason == "Silent audio"


def test_background_run_completes_after_push_event():
    backend = FakeTranscriptionBackend()
    handler = _handler(backend)

    async def scenario():
        job_id = await handler.start(b"audio", "weekly.wav", title="Weekly")
        first = handler.get_progress(job_id)
        accepted = handler.notify_status(job_id, DONE_PAYLOAD)
        await run_until(lambda: handler.get_progress(job_id).phase == "completed")
        return first, accepted, handler.get_progress(job_id), handler.get_result(job_id)

    first, accepted, progress, result = asyncio.run(scenario())

    assert first.phase == "transcribing"
    assert accepted is True
    assert progress.result is not None
    assert result.protocol.decisions == ["Ship on Friday"]


def test_background_run_records_transcription_failure():
    backend = FakeTranscriptionBackend({"job-1": [{"status": "error", "error": "Bad codec"}]})
    handler = _handler(backend)

    async def scenario():
        job_id = await handler.start(b"audio", "weekly.wav")
        await run_until(lambda: handler.get_progress(job_id).phase == "failed")
        return handler.get_progress(job_id)

    progress = asyncio.run(scenario())

    assert progress.error_message == "Bad codec"
    assert progress.result is None


def test_abandon_stops_processing():
    backend = FakeTranscriptionBackend()
    handler = _handler(backend)

    async def scenario():
        job_id = await handler.start(b"audio", "weekly.wav")
        await asyncio.sleep(0)
        handler.abandon(job_id)
        for _ in range(5):
            await asyncio.sleep(0)
        return handler.get_progress(job_id), handler.notify_status(job_id, DONE_PAYLOAD)

    progress, accepted = asyncio.run(scenario())

    assert progress.phase == "abandoned"
    assert accepted is False


def test_unknown_job_ids_are_rejected():
    handler = _handler(FakeTranscriptionBackend())

    with pytest.raises(UnknownJobError):
        handler.get_progress("missing")
    with pytest.raises(UnknownJobError):
        handler.notify_status("missing", DONE_PAYLOAD)
    with pytest.raises(UnknownJobError):
        handler.abandon("missing")


def test_wait_for_transcript_releases_poller_state():
    backend = FakeTranscriptionBackend({"job-1": [DONE_PAYLOAD]})
    poller = TranscriptionStatusPoller(backend, interval_seconds=0)
    handler = MeetingHandler(
        UploadRouter("https://asr.test/transcribe"),
        backend,
        poller,
        ProtocolSynthesizer(FakeGenerationProvider(), model="m", sleep=RecordingSleep()),
    )

    job = asyncio.run(handler.wait_for_transcript("job-1"))

    assert job.transcript_text == DONE_PAYLOAD["transcript"]
    assert poller.get_job("job-1") is None


def test_wait_for_transcript_survives_unexpected_poll_error():
    backend = FakeTranscriptionBackend({"job-1": [RuntimeError("boom"), DONE_PAYLOAD]})

    job = asyncio.run(asyncio.wait_for(_handler(backend).wait_for_transcript("job-1"), 1.0))

    assert job.transcript_text == DONE_PAYLOAD["transcript"]
    assert backend.fetch_calls["job-1"] == 2


def test_finished_run_keeps_progress_and_can_be_discarded():
    backend = FakeTranscriptionBackend({"job-1": [DONE_PAYLOAD]})
    handler = _handler(backend)

    async def scenario():
        job_id = await handler.start(b"audio", "weekly.wav")
        await run_until(lambda: handler.get_progress(job_id).phase == "completed")
        progress = handler.get_progress(job_id)
        late_push = handler.notify_status(job_id, DONE_PAYLOAD)
        handler.abandon(job_id)
        return job_id, progress, late_push

    job_id, progress, late_push = asyncio.run(scenario())

    assert progress.lifecycle_state is LifecycleState.DONE
    assert late_push is False
    with pytest.raises(UnknownJobError):
        handler.get_progress(job_id)
