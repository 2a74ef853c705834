"""Custom exceptions for the meeting pipeline."""


class UploadError(Exception):
    """Raised when an audio upload is rejected or cannot be delivered."""

    def __init__(self, file_name: str, reason: str, cause: Exception | None = None):
        self.file_name = file_name
        self.reason = reason
        self.cause = cause
        super().__init__(f"Failed to upload '{file_name}': {reason}")


class JobStatusFetchError(Exception):
    """Raised when a single status request fails at the transport level."""

    def __init__(self, job_id: str, cause: Exception | None = None):
        self.job_id = job_id
        self.cause = cause
        super().__init__(f"Failed to fetch status for job '{job_id}'")


class InvalidStatusPayloadError(Exception):
    """Raised when a status payload cannot be normalized."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Invalid status payload: {reason}")


class TranscriptionJobFailedError(Exception):
    """Raised when the transcription service reports a job as failed."""

    def __init__(self, job_id: str, reason: str):
        self.job_id = job_id
        self.reason = reason
        super().__init__(f"Transcription job '{job_id}' failed: {reason}")


class UnknownJobError(Exception):
    """Raised when a job id is not tracked by the pipeline."""

    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"Unknown job '{job_id}'")


class GenerationProviderError(Exception):
    """Raised by a generation provider when a single call fails."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        error_code: str | None = None,
        cause: Exception | None = None,
    ):
        self.status_code = status_code
        self.error_code = error_code
        self.cause = cause
        super().__init__(message)


class ProviderTimeoutError(GenerationProviderError):
    """Raised when a generation call exceeds its timeout."""


class ProviderConnectionError(GenerationProviderError):
    """Raised when the generation endpoint cannot be reached."""


class RetriesExhaustedError(Exception):
    """Raised when every attempt allowed by a retry policy failed transiently."""

    def __init__(self, attempts: int, cause: Exception | None = None):
        self.attempts = attempts
        self.cause = cause
        super().__init__(f"Operation failed after {attempts} attempts")


class ProtocolSynthesisError(Exception):
    """Base class for terminal protocol synthesis failures."""

    user_message = "The protocol could not be generated."

    def __init__(self, message: str, cause: Exception | None = None):
        self.cause = cause
        super().__init__(message)


class ProviderUnreachableError(ProtocolSynthesisError):
    """Raised when the provider kept failing transiently until attempts ran out."""

    user_message = "The AI service is busy right now. Please try again later."

    def __init__(self, attempts: int, cause: Exception | None = None):
        self.attempts = attempts
        super().__init__(
            f"Generation provider could not be reached after {attempts} attempts",
            cause=cause,
        )


class ProviderAuthError(ProtocolSynthesisError):
    """Raised when the provider rejects the credentials."""

    user_message = "Your session has expired. Please log in again."


class ProviderRequestError(ProtocolSynthesisError):
    """Raised when the provider rejects the request itself."""

    user_message = "The protocol request was rejected."


class InvalidModelOutputError(ProtocolSynthesisError):
    """Raised when the model output cannot be read as a protocol."""

    user_message = "The AI returned something we could not read. Please try again."


class SynthesisCancelledError(ProtocolSynthesisError):
    """Raised when the caller aborts an in-flight synthesis."""

    user_message = "Protocol generation was cancelled."

    def __init__(self):
        super().__init__("Protocol synthesis was cancelled by the caller")


class TranscriptTooShortError(ProtocolSynthesisError):
    """Raised when a transcript is too short to summarize."""

    user_message = "The transcript is too short to generate a protocol."

    def __init__(self, length: int, minimum: int):
        self.length = length
        self.minimum = minimum
        super().__init__(
            f"Transcript has {length} characters, at least {minimum} are required"
        )
