"""Infrastructure layer exports."""

from .assemblyai_backend import AssemblyAITranscriptionBackend
from .gemini_provider import GeminiGenerationProvider
from .http_generation_provider import HttpGenerationProvider
from .http_transcription_backend import HttpTranscriptionBackend

__all__ = [
    "AssemblyAITranscriptionBackend",
    "GeminiGenerationProvider",
    "HttpGenerationProvider",
    "HttpTranscriptionBackend",
]
