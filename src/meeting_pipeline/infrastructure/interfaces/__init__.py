"""Infrastructure interface exports."""

from .generation_provider import GenerationProvider
from .transcription_backend import TranscriptionBackend

__all__ = ["GenerationProvider", "TranscriptionBackend"]
