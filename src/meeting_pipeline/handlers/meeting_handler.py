"""Handler orchestrating upload, transcription and protocol synthesis."""

import asyncio
import uuid
from collections.abc import Callable
from typing import Any

from meeting_pipeline.domain import (
    LifecycleState,
    MeetingPhase,
    MeetingProgress,
    MeetingResult,
    ProtocolSynthesizer,
    SynthesisContext,
    TranscriptionJob,
    TranscriptionStatusPoller,
    UploadRouter,
    summarize_speakers,
)
from meeting_pipeline.domain.status_adapter import DEFAULT_FAILURE_MESSAGE
from meeting_pipeline.exceptions import (
    ProtocolSynthesisError,
    TranscriptionJobFailedError,
    UnknownJobError,
)
from meeting_pipeline.infrastructure.interfaces import TranscriptionBackend
from meeting_pipeline.logging import setup_logging

logger = setup_logging()


class _MeetingRun:
    """In-memory state of one background meeting run."""

    def __init__(self, title: str | None, agenda: str | None):
        self.title = title
        self.agenda = agenda
        self.abort = asyncio.Event()
        self.phase: MeetingPhase = "transcribing"
        self.task: asyncio.Task | None = None
        self.result: MeetingResult | None = None
        self.error_message: str | None = None
        self.lifecycle_state = LifecycleState.QUEUED
        self.stage_label = LifecycleState.QUEUED.value

    def track(self, job: TranscriptionJob) -> None:
        self.lifecycle_state = job.lifecycle_state
        self.stage_label = job.stage_label

    @property
    def finished(self) -> bool:
        return self.phase in ("completed", "failed", "abandoned")


class MeetingHandler:
    """Handles meetings from raw audio to a finished protocol."""

    def __init__(
        self,
        router: UploadRouter,
        backend: TranscriptionBackend,
        poller: TranscriptionStatusPoller,
        synthesizer: ProtocolSynthesizer,
        language: str = "sv",
    ):
        self._router = router
        self._backend = backend
        self._poller = poller
        self._synthesizer = synthesizer
        self._language = language
        self._runs: dict[str, _MeetingRun] = {}

    async def submit(
        self,
        audio: bytes,
        file_name: str,
        title: str | None = None,
        language: str | None = None,
    ) -> str:
        """
        Routes and uploads meeting audio.

        Returns:
            The job id assigned by the transcription service.

        Raises:
            UploadError: If the upload fails.
        """
        target = self._router.choose_upload_target(len(audio))
        return await self._backend.upload(
            audio,
            file_name,
            target=target,
            language=language or self._language,
            title=title,
            trace_id=uuid.uuid4().hex,
        )

    def _watch(
        self, job_id: str, run: _MeetingRun | None = None
    ) -> tuple[asyncio.Future[TranscriptionJob], Callable[[], None]]:
        outcome: asyncio.Future[TranscriptionJob] = asyncio.get_running_loop().create_future()

        def on_update(job: TranscriptionJob) -> None:
            if run is not None:
                run.track(job)
            self._log_update(job)

        def on_done(job: TranscriptionJob) -> None:
            if run is not None:
                run.track(job)
            if not outcome.done():
                outcome.set_result(job)

        def on_fail(job: TranscriptionJob) -> None:
            if run is not None:
                run.track(job)
            if not outcome.done():
                outcome.set_exception(
                    TranscriptionJobFailedError(
                        job.job_id, job.error_message or DEFAULT_FAILURE_MESSAGE
                    )
                )

        stop = self._poller.start_polling(
            job_id, on_update=on_update, on_done=on_done, on_fail=on_fail
        )
        return outcome, stop

    async def wait_for_transcript(self, job_id: str) -> TranscriptionJob:
        """
        Polls a job until it is done or failed.

        Polling stops when the caller is cancelled.

        Raises:
            TranscriptionJobFailedError: If the job failed, with the reason
                reported by the service.
        """
        return await self._await_transcript(job_id, *self._watch(job_id))

    async def _await_transcript(
        self,
        job_id: str,
        outcome: asyncio.Future[TranscriptionJob],
        stop: Callable[[], None],
    ) -> TranscriptionJob:
        try:
            return await outcome
        except asyncio.CancelledError:
            stop()
            raise
        finally:
            self._poller.forget(job_id)

    async def build_protocol(
        self,
        job: TranscriptionJob,
        meeting_name: str | None = None,
        agenda: str | None = None,
        abort: asyncio.Event | None = None,
    ) -> MeetingResult:
        """
        Resolves speaker names and synthesizes the protocol for a finished job.

        Raises:
            ProtocolSynthesisError: If synthesis fails.
        """
        speakers = summarize_speakers(job.segments, job.speaker_aliases)
        context = SynthesisContext(meeting_name=meeting_name, agenda=agenda, speakers=speakers)
        transcript = job.transcript_text or ""
        protocol = await self._synthesizer.synthesize(transcript, context, abort=abort)
        return MeetingResult(
            job_id=job.job_id,
            transcript=transcript,
            speakers=speakers,
            protocol=protocol,
        )

    async def process(
        self,
        audio: bytes,
        file_name: str,
        title: str | None = None,
        agenda: str | None = None,
        language: str | None = None,
        abort: asyncio.Event | None = None,
    ) -> MeetingResult:
        """
        Uploads audio, waits for the transcript and generates the protocol.

        Raises:
            UploadError: If the upload fails.
            TranscriptionJobFailedError: If transcription fails.
            ProtocolSynthesisError: If synthesis fails.
        """
        job_id = await self.submit(audio, file_name, title=title, language=language)
        job = await self.wait_for_transcript(job_id)
        return await self.build_protocol(job, meeting_name=title, agenda=agenda, abort=abort)

    async def start(
        self,
        audio: bytes,
        file_name: str,
        title: str | None = None,
        agenda: str | None = None,
        language: str | None = None,
    ) -> str:
        """
        Uploads audio and continues processing in the background.

        Returns:
            The job id, usable with get_progress, notify_status and abandon.
        """
        job_id = await self.submit(audio, file_name, title=title, language=language)
        run = _MeetingRun(title, agenda)
        self._runs[job_id] = run
        outcome, stop = self._watch(job_id, run)
        run.task = asyncio.get_running_loop().create_task(
            self._run(job_id, run, outcome, stop), name=f"meeting-{job_id}"
        )
        return job_id

    def get_result(self, job_id: str) -> MeetingResult | None:
        """Returns the finished result, or None while processing is ongoing."""
        return self._get_run(job_id).result

    def get_progress(self, job_id: str) -> MeetingProgress:
        run = self._get_run(job_id)
        return MeetingProgress(
            job_id=job_id,
            phase=run.phase,
            lifecycle_state=run.lifecycle_state,
            stage_label=run.stage_label,
            error_message=run.error_message,
            result=run.result,
        )

    def notify_status(self, job_id: str, payload: Any) -> bool:
        """
        Forwards an out-of-band status push to the poller.

        Returns:
            False once transcription has settled or was abandoned.

        Raises:
            UnknownJobError: If the job is not tracked.
            InvalidStatusPayloadError: If the payload is not a JSON object.
        """
        self._get_run(job_id)
        if self._poller.get_job(job_id) is None:
            return False
        return self._poller.notify_status(job_id, payload)

    def abandon(self, job_id: str) -> None:
        """
        Stops polling and aborts synthesis for a background run.

        A run that already finished is discarded along with its result.
        """
        run = self._get_run(job_id)
        if run.finished:
            del self._runs[job_id]
            logger.info("Meeting discarded", extra={"job_id": job_id, "phase": run.phase})
            return

        self._poller.forget(job_id)
        run.abort.set()
        if run.task is not None and not run.task.done():
            run.task.cancel()
        run.phase = "abandoned"
        logger.info("Meeting abandoned", extra={"job_id": job_id})

    def shutdown(self) -> None:
        """Stops every poll and background run."""
        self._poller.stop_all()
        for run in self._runs.values():
            run.abort.set()
            if run.task is not None and not run.task.done():
                run.task.cancel()

    async def _run(
        self,
        job_id: str,
        run: _MeetingRun,
        outcome: asyncio.Future[TranscriptionJob],
        stop: Callable[[], None],
    ) -> None:
        try:
            job = await self._await_transcript(job_id, outcome, stop)
            run.phase = "synthesizing"
            run.result = await self.build_protocol(
                job, meeting_name=run.title, agenda=run.agenda, abort=run.abort
            )
            run.phase = "completed"
            logger.info("Meeting processed", extra={"job_id": job_id})
        except TranscriptionJobFailedError as e:
            run.phase = "failed"
            run.error_message = e.reason
            logger.error("Transcription failed", extra={"job_id": job_id, "error": e.reason})
        except ProtocolSynthesisError as e:
            run.phase = "abandoned" if run.abort.is_set() else "failed"
            run.error_message = e.user_message
            logger.error(
                "Protocol synthesis failed",
                extra={"job_id": job_id, "error": str(e), "error_type": type(e).__name__},
            )
        except Exception:
            run.phase = "failed"
            run.error_message = "Meeting processing failed"
            logger.exception("Meeting processing failed", extra={"job_id": job_id})

    def _get_run(self, job_id: str) -> _MeetingRun:
        run = self._runs.get(job_id)
        if run is None:
            raise UnknownJobError(job_id)
        return run

    @staticmethod
    def _log_update(job: TranscriptionJob) -> None:
        logger.info(
            "Transcription progress",
            extra={
                "job_id": job.job_id,
                "state": job.lifecycle_state.value,
                "stage": job.stage_label,
                "polls": job.polls,
            },
        )
