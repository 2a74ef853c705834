"""Domain layer exports."""

from .models import (
    ActionItem,
    FailureClass,
    JobStatus,
    LengthTier,
    LifecycleState,
    MeetingPhase,
    MeetingProgress,
    MeetingResult,
    ProtocolDraft,
    RetryAttempt,
    SpeakerSummary,
    SpeakerToken,
    SynthesisContext,
    TranscriptionJob,
    TranscriptSegment,
    UploadTarget,
)
from .prompt_builder import LENGTH_TIERS, build_protocol_prompt, select_length_tier
from .protocol_parser import parse_protocol
from .protocol_synthesizer import ProtocolSynthesizer, synthesize_protocol
from .retry import RetryPolicy, attempt_with_retry, classify_failure, exponential_backoff
from .speaker_resolver import (
    SpeakerIdentityResolver,
    compute_offset,
    is_generic_speaker_name,
    normalize_speaker_key,
    parse_speaker_index,
    parse_speaker_token,
    placeholder_speaker_name,
    resolve_speaker_name,
    summarize_speakers,
)
from .status_adapter import normalize_status
from .status_poller import TranscriptionStatusPoller
from .upload_router import UploadRouter, choose_upload_target

__all__ = [
    "ActionItem",
    "FailureClass",
    "JobStatus",
    "LengthTier",
    "LifecycleState",
    "MeetingPhase",
    "MeetingProgress",
    "MeetingResult",
    "ProtocolDraft",
    "RetryAttempt",
    "SpeakerSummary",
    "SpeakerToken",
    "SynthesisContext",
    "TranscriptionJob",
    "TranscriptSegment",
    "UploadTarget",
    "LENGTH_TIERS",
    "build_protocol_prompt",
    "select_length_tier",
    "parse_protocol",
    "ProtocolSynthesizer",
    "synthesize_protocol",
    "RetryPolicy",
    "attempt_with_retry",
    "classify_failure",
    "exponential_backoff",
    "SpeakerIdentityResolver",
    "compute_offset",
    "is_generic_speaker_name",
    "normalize_speaker_key",
    "parse_speaker_index",
    "parse_speaker_token",
    "placeholder_speaker_name",
    "resolve_speaker_name",
    "summarize_speakers",
    "normalize_status",
    "TranscriptionStatusPoller",
    "UploadRouter",
    "choose_upload_target",
]
