import pytest

from meeting_pipeline.domain import LifecycleState, normalize_status
from meeting_pipeline.domain.status_adapter import is_speaker_stage_settled
from meeting_pipeline.exceptions import InvalidStatusPayloadError


def test_completed_with_transcript_is_done():
    status = normalize_status({"status": "Completed", "transcript": "Hej allihop"})

    assert status.lifecycle_state is LifecycleState.DONE
    assert status.transcript_text == "Hej allihop"
    assert status.raw_status == "Completed"


def test_field_aliases_and_settled_sub_stage():
    status = normalize_status(
        {"state": "finished", "transcriptText": "text", "sisStatus": "no_samples"}
    )

    assert status.lifecycle_state is LifecycleState.DONE
    assert status.speaker_stage == "no_samples"


def test_completed_without_transcript_reads_as_transcribing():
    assert normalize_status({"status": "done"}).lifecycle_state is LifecycleState.TRANSCRIBING
    assert (
        normalize_status({"status": "done", "transcript": "   "}).lifecycle_state
        is LifecycleState.TRANSCRIBING
    )


def test_completed_with_pending_speaker_stage_reads_as_speaker_processing():
    status = normalize_status(
        {"status": "completed", "transcript": "text", "speakerStatus": {"status": "processing"}}
    )

    assert status.lifecycle_state is LifecycleState.SPEAKER_PROCESSING


def test_failed_keeps_message_verbatim():
    status = normalize_status({"status": "error", "errorMessage": "Audio file is corrupt"})

    assert status.lifecycle_state is LifecycleState.FAILED
    assert status.error_message == "Audio file is corrupt"


def test_failed_without_message_gets_default():
    assert normalize_status({"status": "failed"}).error_message == "Transcription failed"


def test_stage_refines_in_progress_status():
    status = normalize_status({"status": "processing", "stage": "diarizing"})

    assert status.lifecycle_state is LifecycleState.SPEAKER_PROCESSING
    assert status.stage_label == "diarizing"


def test_unknown_or_missing_status_is_queued():
    assert normalize_status({}).lifecycle_state is LifecycleState.QUEUED
    assert normalize_status({}).stage_label == "queued"
    assert normalize_status({"status": "mystery"}).lifecycle_state is LifecycleState.QUEUED


def test_non_mapping_payload_is_rejected():
    with pytest.raises(InvalidStatusPayloadError):
        normalize_status(["completed"])


def test_aliases_keep_only_string_names():
    status = normalize_status(
        {"status": "processing", "speakerNames": {"speaker_0": "Alice", "speaker_1": 3}}
    )

    assert status.speaker_aliases == {"speaker_0": "Alice"}


def test_segments_are_parsed_and_speakerless_items_skipped():
    status = normalize_status(
        {
            "status": "processing",
            "utterances": [
                {"speaker": "speaker_0", "text": "Hej", "start": 0, "end": 1.5},
                {"text": "no speaker"},
                "not an object",
            ],
        }
    )

    assert len(status.segments) == 1
    assert status.segments[0].speaker == "speaker_0"
    assert status.segments[0].end == 1.5


def test_absent_sub_stage_counts_as_settled():
    assert is_speaker_stage_settled(None) is True
    assert is_speaker_stage_settled("skipped") is True
    assert is_speaker_stage_settled("processing") is False
