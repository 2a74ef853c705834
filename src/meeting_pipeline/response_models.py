"""Response models for the meetings API."""

from pydantic import BaseModel

from meeting_pipeline.domain import (
    LifecycleState,
    MeetingPhase,
    MeetingProgress,
    ProtocolDraft,
    SpeakerSummary,
)


class UploadResponse(BaseModel):
    """Response returned after a successful meeting upload."""

    message: str
    job_id: str


class MeetingStatusResponse(BaseModel):
    """Current state of a meeting, with its protocol once ready."""

    job_id: str
    phase: MeetingPhase
    lifecycle_state: LifecycleState
    stage_label: str
    error_message: str | None = None
    speakers: list[SpeakerSummary] = []
    protocol: ProtocolDraft | None = None

    @classmethod
    def from_progress(cls, progress: MeetingProgress) -> "MeetingStatusResponse":
        result = progress.result
        return cls(
            job_id=progress.job_id,
            phase=progress.phase,
            lifecycle_state=progress.lifecycle_state,
            stage_label=progress.stage_label,
            error_message=progress.error_message,
            speakers=result.speakers if result else [],
            protocol=result.protocol if result else None,
        )


class EventAcceptedResponse(BaseModel):
    """Whether an out-of-band status event changed the job."""

    accepted: bool
