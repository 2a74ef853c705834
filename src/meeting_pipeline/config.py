"""Application configuration loaded from environment variables."""

import os
from typing import Literal

from pydantic import BaseModel

DEFAULT_RELAY_MAX_BYTES = 20 * 1024 * 1024


class UploadConfig(BaseModel, frozen=True):
    """Audio upload endpoints and credentials."""

    direct_url: str
    relay_url: str | None = None
    relay_key: str | None = None
    auth_token: str = ""
    max_relay_bytes: int = DEFAULT_RELAY_MAX_BYTES
    timeout_seconds: float = 30 * 60


class PollingConfig(BaseModel, frozen=True):
    """Job status polling configuration."""

    status_url: str
    interval_seconds: float = 4.0
    max_polls: int | None = 450


class TranscriptionConfig(BaseModel, frozen=True):
    """Speech recognition backend selection."""

    backend: Literal["http", "assemblyai"] = "http"
    language: str = "sv"
    assemblyai_api_key: str = ""
    speaker_labels: bool = True


class GenerationConfig(BaseModel, frozen=True):
    """Text generation provider configuration."""

    provider: Literal["http", "gemini"] = "http"
    endpoint_url: str = ""
    api_key: str = ""
    gemini_api_key: str = ""
    model_name: str = "gemini-2.5-flash-lite"
    timeout_seconds: float = 300.0
    max_attempts: int = 3
    temperature: float = 0.2
    max_output_tokens: int = 8192
    language: str = "Swedish"


class AppConfig(BaseModel, frozen=True):
    """Root application configuration."""

    upload: UploadConfig
    polling: PollingConfig
    transcription: TranscriptionConfig
    generation: GenerationConfig


def _optional_int(value: str | None) -> int | None:
    if value is None or value.strip() == "" or value.strip().lower() == "none":
        return None
    return int(value)


def load_config() -> AppConfig:
    """Loads configuration from environment variables."""
    return AppConfig(
        upload=UploadConfig(
            direct_url=os.getenv("ASR_DIRECT_URL", "https://api.tivly.se/asr/transcribe"),
            relay_url=os.getenv("ASR_RELAY_URL") or None,
            relay_key=os.getenv("ASR_RELAY_KEY") or None,
            auth_token=os.getenv("ASR_AUTH_TOKEN", ""),
            max_relay_bytes=int(
                os.getenv("ASR_RELAY_MAX_BYTES", str(DEFAULT_RELAY_MAX_BYTES))
            ),
        ),
        polling=PollingConfig(
            status_url=os.getenv("ASR_STATUS_URL", "https://api.tivly.se/asr/status"),
            interval_seconds=float(os.getenv("ASR_POLL_INTERVAL_SECONDS", "4")),
            max_polls=_optional_int(os.getenv("ASR_MAX_POLLS", "450")),
        ),
        transcription=TranscriptionConfig(
            backend=os.getenv("TRANSCRIPTION_BACKEND", "http"),
            language=os.getenv("TRANSCRIPTION_LANGUAGE", "sv"),
            assemblyai_api_key=os.getenv("ASSEMBLYAI_API_KEY", ""),
        ),
        generation=GenerationConfig(
            provider=os.getenv("GENERATION_PROVIDER", "http"),
            endpoint_url=os.getenv("GENERATION_URL", ""),
            api_key=os.getenv("GENERATION_API_KEY", ""),
            gemini_api_key=os.getenv("GEMINI_API_KEY", ""),
            model_name=os.getenv("GENERATION_MODEL", "gemini-2.5-flash-lite"),
            timeout_seconds=float(os.getenv("GENERATION_TIMEOUT_SECONDS", "300")),
            max_attempts=int(os.getenv("GENERATION_MAX_ATTEMPTS", "3")),
            language=os.getenv("PROTOCOL_LANGUAGE", "Swedish"),
        ),
    )
