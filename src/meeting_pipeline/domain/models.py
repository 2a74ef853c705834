"""Domain models for the meeting processing pipeline."""

from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field


class UploadTarget(BaseModel, frozen=True):
    """Where one upload attempt sends its audio."""

    use_relay: bool
    endpoint_url: str
    max_relay_bytes: int


class LifecycleState(str, Enum):
    """Canonical lifecycle of a transcription job."""

    QUEUED = "queued"
    UPLOADING = "uploading"
    TRANSCRIBING = "transcribing"
    SPEAKER_PROCESSING = "speaker_processing"
    DONE = "done"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (LifecycleState.DONE, LifecycleState.FAILED)


class TranscriptSegment(BaseModel, frozen=True):
    """A transcript fragment attributed to one speaker token."""

    speaker: str
    text: str = ""
    start: float | None = None
    end: float | None = None


class JobStatus(BaseModel, frozen=True):
    """A status payload after normalization at the service boundary."""

    lifecycle_state: LifecycleState
    stage_label: str
    transcript_text: str | None = None
    speaker_aliases: dict[str, str] = Field(default_factory=dict)
    speaker_stage: str | None = None
    segments: list[TranscriptSegment] = Field(default_factory=list)
    error_message: str | None = None
    raw_status: str | None = None


class TranscriptionJob(BaseModel):
    """
    Tracked state of one transcription job.

    Mutated only by the poller coordinator that owns it. Once ``notified`` is
    set the job is terminal and never changes again.
    """

    job_id: str
    lifecycle_state: LifecycleState = LifecycleState.QUEUED
    stage_label: str = LifecycleState.QUEUED.value
    transcript_text: str | None = None
    speaker_aliases: dict[str, str] = Field(default_factory=dict)
    segments: list[TranscriptSegment] = Field(default_factory=list)
    error_message: str | None = None
    notified: bool = False
    stopped: bool = False
    polls: int = 0


class SpeakerToken(BaseModel, frozen=True):
    """A raw speaker identifier parsed into an index and a canonical key."""

    raw: str
    index: int | None
    key: str


class SpeakerSummary(BaseModel, frozen=True):
    """A speaker as presented to protocol synthesis."""

    token: str
    name: str
    segments: int


Priority = Literal["critical", "high", "medium", "low"]


class ActionItem(BaseModel, frozen=True):
    """A follow-up task extracted from the meeting."""

    title: str
    description: str = ""
    owner: str = ""
    deadline: str = ""
    priority: Priority = "medium"


class ProtocolDraft(BaseModel, frozen=True):
    """Structured meeting protocol produced by one synthesis call."""

    title: str
    summary: str
    main_points: list[str] = Field(default_factory=list)
    decisions: list[str] = Field(default_factory=list)
    action_items: list[ActionItem] = Field(default_factory=list)
    next_meeting_suggestions: list[str] = Field(default_factory=list)
    used_fallbacks: list[str] = Field(default_factory=list)


class SynthesisContext(BaseModel, frozen=True):
    """Optional material that shapes the protocol prompt."""

    meeting_name: str | None = None
    agenda: str | None = None
    speakers: list[SpeakerSummary] = Field(default_factory=list)


class FailureClass(str, Enum):
    """Whether a failed attempt is worth repeating."""

    TRANSIENT = "transient"
    FATAL = "fatal"


class RetryAttempt(BaseModel, frozen=True):
    """One failed attempt recorded during a single synthesis call."""

    attempt_number: int
    classified_cause: FailureClass
    delay_seconds: float


class LengthTier(BaseModel, frozen=True):
    """Output size targets for one transcript word-count bucket."""

    min_words: int
    summary_length: str
    main_points_count: str
    main_points_detail: str
    decisions_detail: str
    action_items_count: str
    action_items_detail: str
    next_meeting_count: str


class MeetingResult(BaseModel, frozen=True):
    """A finished transcription together with its protocol."""

    job_id: str
    transcript: str
    speakers: list[SpeakerSummary]
    protocol: ProtocolDraft


MeetingPhase = Literal["transcribing", "synthesizing", "completed", "failed", "abandoned"]


class MeetingProgress(BaseModel, frozen=True):
    """Progress of a meeting processed in the background."""

    job_id: str
    phase: MeetingPhase
    lifecycle_state: LifecycleState
    stage_label: str
    error_message: str | None = None
    result: MeetingResult | None = None
