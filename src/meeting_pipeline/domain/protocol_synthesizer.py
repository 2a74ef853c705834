"""Protocol synthesis from a finished transcript."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

from meeting_pipeline.exceptions import (
    GenerationProviderError,
    ProviderAuthError,
    ProviderRequestError,
    ProviderTimeoutError,
    ProviderUnreachableError,
    RetriesExhaustedError,
    SynthesisCancelledError,
    TranscriptTooShortError,
)
from meeting_pipeline.infrastructure.interfaces import GenerationProvider
from meeting_pipeline.logging import setup_logging

from .models import ProtocolDraft, SynthesisContext
from .prompt_builder import build_protocol_prompt, count_words
from .protocol_parser import parse_protocol
from .retry import RetryPolicy, attempt_with_retry

logger = setup_logging()

T = TypeVar("T")

MIN_TRANSCRIPT_CHARS = 10
DEFAULT_TIMEOUT_SECONDS = 300.0
_AUTH_STATUS_CODES = (401, 403)


async def _until_aborted(operation: Awaitable[T], abort: asyncio.Event | None) -> T:
    """Awaits ``operation`` unless ``abort`` is set first, in which case it is cancelled."""
    if abort is None:
        return await operation

    task = asyncio.ensure_future(operation)
    waiter = asyncio.ensure_future(abort.wait())
    try:
        done, _ = await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        waiter.cancel()
        if not task.done():
            task.cancel()

    if task in done:
        return task.result()

    await asyncio.wait({task})
    raise SynthesisCancelledError()


class ProtocolSynthesizer:
    """
    Turns a transcript into a ProtocolDraft with one provider call.

    Transient provider failures are retried according to the policy; every
    terminal failure surfaces as a ProtocolSynthesisError subclass.
    """

    def __init__(
        self,
        provider: GenerationProvider,
        model: str,
        policy: RetryPolicy | None = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        language: str = "Swedish",
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ):
        self._provider = provider
        self._model = model
        self._policy = policy or RetryPolicy()
        self._timeout = timeout_seconds
        self._language = language
        self._sleep = sleep

    async def synthesize(
        self,
        transcript: str,
        context: SynthesisContext | None = None,
        abort: asyncio.Event | None = None,
        cost_hint: str | None = None,
    ) -> ProtocolDraft:
        """
        Generates a protocol for a transcript.

        Args:
            transcript: Full transcript text.
            context: Meeting name, agenda and speakers for the prompt.
            abort: When set, cancels the in-flight call or backoff sleep.
            cost_hint: Forwarded to the provider unchanged.

        Returns:
            The parsed ProtocolDraft.

        Raises:
            TranscriptTooShortError: If the transcript is too short to summarize.
            ProviderUnreachableError: If every attempt failed transiently.
            ProviderAuthError: If the provider rejected the credentials.
            ProviderRequestError: If the provider rejected the request.
            InvalidModelOutputError: If the output cannot be parsed.
            SynthesisCancelledError: If ``abort`` was set.
        """
        context = context or SynthesisContext()
        length = len("".join(transcript.split()))
        if length < MIN_TRANSCRIPT_CHARS:
            raise TranscriptTooShortError(length, MIN_TRANSCRIPT_CHARS)
        if abort is not None and abort.is_set():
            raise SynthesisCancelledError()

        prompt = build_protocol_prompt(transcript, context, language=self._language)
        logger.info(
            "Protocol synthesis started",
            extra={
                "model": self._model,
                "word_count": count_words(transcript),
                "speakers": len(context.speakers),
            },
        )

        async def call() -> str:
            try:
                return await asyncio.wait_for(
                    self._provider.generate(prompt, model=self._model, cost_hint=cost_hint),
                    timeout=self._timeout,
                )
            except asyncio.TimeoutError as e:
                raise ProviderTimeoutError(
                    f"Generation timed out after {self._timeout} seconds", cause=e
                ) from e

        try:
            raw = await _until_aborted(
                attempt_with_retry(call, self._policy, sleep=self._sleep), abort
            )
        except RetriesExhaustedError as e:
            raise ProviderUnreachableError(e.attempts, cause=e.cause) from e
        except GenerationProviderError as e:
            if e.status_code in _AUTH_STATUS_CODES:
                raise ProviderAuthError(str(e), cause=e) from e
            raise ProviderRequestError(str(e), cause=e) from e

        protocol = parse_protocol(raw, meeting_name=context.meeting_name)
        logger.info(
            "Protocol synthesis completed",
            extra={
                "main_points": len(protocol.main_points),
                "action_items": len(protocol.action_items),
                "fallbacks": protocol.used_fallbacks,
            },
        )
        return protocol


async def synthesize_protocol(
    transcript: str,
    context: SynthesisContext | None,
    *,
    provider: GenerationProvider,
    model: str,
    policy: RetryPolicy | None = None,
    abort: asyncio.Event | None = None,
    language: str = "Swedish",
) -> ProtocolDraft:
    """Runs a single protocol synthesis with a throwaway synthesizer."""
    synthesizer = ProtocolSynthesizer(provider, model, policy=policy, language=language)
    return await synthesizer.synthesize(transcript, context, abort=abort)
