"""Dependency injection configuration for the meeting pipeline."""

import assemblyai as aai
import httpx
from google import genai

from meeting_pipeline.config import AppConfig, load_config
from meeting_pipeline.domain import (
    ProtocolSynthesizer,
    RetryPolicy,
    TranscriptionStatusPoller,
    UploadRouter,
)
from meeting_pipeline.handlers import MeetingHandler
from meeting_pipeline.infrastructure import (
    AssemblyAITranscriptionBackend,
    GeminiGenerationProvider,
    HttpGenerationProvider,
    HttpTranscriptionBackend,
)
from meeting_pipeline.infrastructure.interfaces import (
    GenerationProvider,
    TranscriptionBackend,
)
from meeting_pipeline.logging import setup_logging

logger = setup_logging()


def _build_backend(config: AppConfig, http_client: httpx.AsyncClient) -> TranscriptionBackend:
    if config.transcription.backend == "assemblyai":
        aai.settings.api_key = config.transcription.assemblyai_api_key
        return AssemblyAITranscriptionBackend(
            aai.Transcriber(), speaker_labels=config.transcription.speaker_labels
        )
    return HttpTranscriptionBackend(
        http_client,
        status_url=config.polling.status_url,
        auth_token=config.upload.auth_token,
        relay_key=config.upload.relay_key,
        upload_timeout_seconds=config.upload.timeout_seconds,
    )


def _build_provider(config: AppConfig, http_client: httpx.AsyncClient) -> GenerationProvider:
    generation = config.generation
    if generation.provider == "gemini":
        return GeminiGenerationProvider(
            genai.Client(api_key=generation.gemini_api_key),
            temperature=generation.temperature,
            max_output_tokens=generation.max_output_tokens,
        )
    return HttpGenerationProvider(
        http_client,
        endpoint_url=generation.endpoint_url,
        api_key=generation.api_key,
        temperature=generation.temperature,
        max_output_tokens=generation.max_output_tokens,
    )


def build_handler(config: AppConfig, http_client: httpx.AsyncClient) -> MeetingHandler:
    """Composes a MeetingHandler from configuration."""
    backend = _build_backend(config, http_client)
    poller = TranscriptionStatusPoller(
        backend,
        interval_seconds=config.polling.interval_seconds,
        max_polls=config.polling.max_polls,
    )
    synthesizer = ProtocolSynthesizer(
        _build_provider(config, http_client),
        model=config.generation.model_name,
        policy=RetryPolicy(max_attempts=config.generation.max_attempts),
        timeout_seconds=config.generation.timeout_seconds,
        language=config.generation.language,
    )
    logger.info(
        "Meeting handler configured",
        extra={
            "transcription_backend": config.transcription.backend,
            "generation_provider": config.generation.provider,
            "relay_enabled": bool(config.upload.relay_url),
        },
    )
    return MeetingHandler(
        UploadRouter(
            config.upload.direct_url,
            relay_url=config.upload.relay_url,
            max_relay_bytes=config.upload.max_relay_bytes,
        ),
        backend,
        poller,
        synthesizer,
        language=config.transcription.language,
    )


_http_client: httpx.AsyncClient | None = None
_handler: MeetingHandler | None = None


def get_handler() -> MeetingHandler:
    """Returns the configured meeting handler, composing it on first use."""
    global _http_client, _handler
    if _handler is None:
        _http_client = httpx.AsyncClient(timeout=httpx.Timeout(30.0))
        _handler = build_handler(load_config(), _http_client)
    return _handler


async def close_clients() -> None:
    """Stops all polling and closes the shared HTTP client."""
    global _http_client, _handler
    if _handler is not None:
        _handler.shutdown()
    if _http_client is not None:
        await _http_client.aclose()
    _http_client = None
    _handler = None
