"""AssemblyAI implementation of the TranscriptionBackend interface."""

import asyncio
import os
import tempfile
from typing import Any

import assemblyai as aai

from meeting_pipeline.domain.models import UploadTarget
from meeting_pipeline.exceptions import JobStatusFetchError, UploadError
from meeting_pipeline.logging import setup_logging

from .interfaces import TranscriptionBackend

logger = setup_logging()


def speaker_token(label: str | None) -> str:
    """Maps AssemblyAI utterance letters (A, B, ...) to ``speaker_0``, ``speaker_1``, ..."""
    if label and len(label) == 1 and label.isalpha():
        return f"speaker_{ord(label.upper()) - ord('A')}"
    return label or "speaker_0"


def _ms_to_seconds(value: int | None) -> float | None:
    return value / 1000 if value is not None else None


def transcript_payload(transcript: aai.Transcript) -> dict[str, Any]:
    """Converts an AssemblyAI transcript into a raw status payload."""
    payload: dict[str, Any] = {
        "status": transcript.status.value,
        "transcript": transcript.text or "",
        "segments": [
            {
                "speaker": speaker_token(u.speaker),
                "text": u.text,
                "start": _ms_to_seconds(u.start),
                "end": _ms_to_seconds(u.end),
            }
            for u in transcript.utterances or []
        ],
    }
    if transcript.error:
        payload["error"] = transcript.error
    return payload


class AssemblyAITranscriptionBackend(TranscriptionBackend):
    """
    Submits audio to AssemblyAI and reads job state back by transcript id.

    The SDK picks its own upload path, so the routed target is only logged.
    """

    def __init__(self, transcriber: aai.Transcriber, speaker_labels: bool = True):
        self._transcriber = transcriber
        self._speaker_labels = speaker_labels

    async def upload(
        self,
        audio: bytes,
        file_name: str,
        *,
        target: UploadTarget,
        language: str,
        title: str | None = None,
        trace_id: str | None = None,
    ) -> str:
        """
        Writes the audio to a temp file (required by the AssemblyAI SDK) and
        submits it without waiting for the transcription to finish.
        """
        config = aai.TranscriptionConfig(
            speaker_labels=self._speaker_labels, language_code=language
        )
        suffix = os.path.splitext(file_name)[1] or ".wav"
        try:
            with tempfile.NamedTemporaryFile(suffix=suffix, delete=True) as temp_file:
                temp_file.write(audio)
                temp_file.flush()
                transcript = await asyncio.to_thread(
                    self._transcriber.submit, temp_file.name, config
                )
        except Exception as e:
            logger.exception("AssemblyAI submit failed", extra={"file_name": file_name})
            raise UploadError(file_name, "AssemblyAI submit failed", cause=e) from e

        if transcript.status == aai.TranscriptStatus.error:
            raise UploadError(file_name, transcript.error or "AssemblyAI rejected the audio")

        logger.info(
            "Audio submitted to AssemblyAI",
            extra={
                "file_name": file_name,
                "job_id": transcript.id,
                "trace_id": trace_id,
                "routed_via_relay": target.use_relay,
            },
        )
        return transcript.id

    async def fetch_status(self, job_id: str) -> dict[str, Any]:
        try:
            transcript = await asyncio.to_thread(aai.Transcript.get_by_id, job_id)
        except Exception as e:
            raise JobStatusFetchError(job_id, cause=e) from e
        return transcript_payload(transcript)
