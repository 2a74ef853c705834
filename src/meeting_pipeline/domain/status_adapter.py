"""Normalization of raw job status payloads into JobStatus."""

from collections.abc import Mapping
from typing import Any

from meeting_pipeline.exceptions import InvalidStatusPayloadError

from .models import JobStatus, LifecycleState, TranscriptSegment

DEFAULT_FAILURE_MESSAGE = "Transcription failed"

_STATUS_KEYS = ("status", "state", "jobStatus")
_STAGE_KEYS = ("stage", "stageLabel", "currentStage")
_TRANSCRIPT_KEYS = ("transcript", "transcriptText", "text")
_ALIAS_KEYS = ("speakerNames", "speaker_names", "speakerAliases", "lyraSpeakerNames")
_SPEAKER_STAGE_KEYS = (
    "speakerStatus",
    "sisStatus",
    "lyraStatus",
    "diarizationStatus",
    "speaker_processing_status",
)
_ERROR_KEYS = ("error", "errorMessage", "error_message")
_SEGMENT_KEYS = ("transcriptSegments", "segments", "utterances")
_SEGMENT_SPEAKER_KEYS = ("speaker", "speakerId", "speaker_id", "label")

_STATUS_FAMILIES: dict[str, LifecycleState] = {
    **dict.fromkeys(
        ("completed", "complete", "done", "finished", "success", "succeeded"),
        LifecycleState.DONE,
    ),
    **dict.fromkeys(("error", "failed", "failure"), LifecycleState.FAILED),
    **dict.fromkeys(("queued", "pending", "waiting", "created"), LifecycleState.QUEUED),
    **dict.fromkeys(("uploading", "uploaded", "receiving"), LifecycleState.UPLOADING),
    **dict.fromkeys(
        ("processing", "transcribing", "running", "in_progress", "started"),
        LifecycleState.TRANSCRIBING,
    ),
    **dict.fromkeys(
        (
            "speaker_processing",
            "sis_processing",
            "diarizing",
            "diarization",
            "identifying_speakers",
        ),
        LifecycleState.SPEAKER_PROCESSING,
    ),
}

# Sub-stage values meaning speaker processing is over or will never run.
_SPEAKER_STAGE_SETTLED = frozenset(
    {
        "done",
        "completed",
        "complete",
        "disabled",
        "no_samples",
        "no_qualifying_samples",
        "skipped",
        "not_applicable",
    }
)

_IN_PROGRESS_STATES = (
    LifecycleState.UPLOADING,
    LifecycleState.TRANSCRIBING,
    LifecycleState.SPEAKER_PROCESSING,
)


def _first(payload: Mapping[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        value = payload.get(key)
        if value is not None and value != "":
            return value
    return None


def _word(value: Any) -> str:
    return str(value).strip().lower().replace("-", "_").replace(" ", "_")


def _speaker_stage(payload: Mapping[str, Any]) -> str | None:
    value = _first(payload, _SPEAKER_STAGE_KEYS)
    if isinstance(value, Mapping):
        value = value.get("status")
    if value is None or value == "":
        return None
    return _word(value)


def _aliases(payload: Mapping[str, Any]) -> dict[str, str]:
    value = _first(payload, _ALIAS_KEYS)
    if not isinstance(value, Mapping):
        return {}
    return {str(key): name for key, name in value.items() if isinstance(name, str)}


def _segments(payload: Mapping[str, Any]) -> list[TranscriptSegment]:
    value = _first(payload, _SEGMENT_KEYS)
    if not isinstance(value, list):
        return []

    segments: list[TranscriptSegment] = []
    for item in value:
        if not isinstance(item, Mapping):
            continue
        speaker = _first(item, _SEGMENT_SPEAKER_KEYS)
        if speaker is None:
            continue
        text = item.get("text")
        start = item.get("start")
        end = item.get("end")
        segments.append(
            TranscriptSegment(
                speaker=str(speaker),
                text=text if isinstance(text, str) else "",
                start=float(start) if isinstance(start, (int, float)) else None,
                end=float(end) if isinstance(end, (int, float)) else None,
            )
        )
    return segments


def is_speaker_stage_settled(speaker_stage: str | None) -> bool:
    """
    Returns True when speaker processing no longer blocks completion.

    An absent sub-stage means the backend does not report diarization at all.
    """
    return speaker_stage is None or speaker_stage in _SPEAKER_STAGE_SETTLED


def normalize_status(payload: Any) -> JobStatus:
    """
    Converts a raw status payload into a JobStatus.

    A job is done only when the status is in the completed family, a
    non-empty transcript is present and the speaker sub-stage is settled.
    A completed status without a transcript reads as transcribing, and one
    with a pending sub-stage reads as speaker processing.

    Args:
        payload: Decoded JSON body of a status response or push event.

    Returns:
        The normalized JobStatus.

    Raises:
        InvalidStatusPayloadError: If the payload is not a JSON object.
    """
    if not isinstance(payload, Mapping):
        raise InvalidStatusPayloadError(
            f"expected an object, got {type(payload).__name__}"
        )

    raw_status = _first(payload, _STATUS_KEYS)
    raw_stage = _first(payload, _STAGE_KEYS)
    family = _STATUS_FAMILIES.get(_word(raw_status)) if raw_status is not None else None
    stage_family = _STATUS_FAMILIES.get(_word(raw_stage)) if raw_stage is not None else None

    transcript = next(
        (payload[key] for key in _TRANSCRIPT_KEYS if isinstance(payload.get(key), str) and payload[key]),
        None,
    )
    speaker_stage = _speaker_stage(payload)
    error_message = None

    if family is LifecycleState.FAILED:
        state = LifecycleState.FAILED
        error = _first(payload, _ERROR_KEYS)
        error_message = str(error) if error is not None else DEFAULT_FAILURE_MESSAGE
    elif family is LifecycleState.DONE:
        if not transcript or not transcript.strip():
            state = LifecycleState.TRANSCRIBING
        elif not is_speaker_stage_settled(speaker_stage):
            state = LifecycleState.SPEAKER_PROCESSING
        else:
            state = LifecycleState.DONE
    elif family in (None, LifecycleState.TRANSCRIBING) and stage_family in _IN_PROGRESS_STATES:
        state = stage_family
    else:
        state = family or LifecycleState.QUEUED

    return JobStatus(
        lifecycle_state=state,
        stage_label=str(raw_stage) if raw_stage is not None else state.value,
        transcript_text=transcript,
        speaker_aliases=_aliases(payload),
        speaker_stage=speaker_stage,
        segments=_segments(payload),
        error_message=error_message,
        raw_status=str(raw_status) if raw_status is not None else None,
    )
