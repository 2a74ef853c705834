"""Abstract interface for speech recognition backends."""

from abc import ABC, abstractmethod
from typing import Any

from meeting_pipeline.domain.models import UploadTarget


class TranscriptionBackend(ABC):
    """Abstract base class for services that transcribe uploaded meeting audio."""

    @abstractmethod
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
        Uploads audio and starts a transcription job.

        Args:
            audio: Raw audio file bytes.
            file_name: Original file name, forwarded to the service.
            target: Upload path chosen for this attempt.
            language: Spoken language code, e.g. ``sv``.
            title: Optional meeting title.
            trace_id: Optional correlation id for this upload.

        Returns:
            The job id assigned by the service.

        Raises:
            UploadError: If the upload is rejected or no job id is returned.
        """
        pass

    @abstractmethod
    async def fetch_status(self, job_id: str) -> dict[str, Any]:
        """
        Fetches the raw status payload of a job.

        Raises:
            JobStatusFetchError: If the request fails at the transport level.
        """
        pass
