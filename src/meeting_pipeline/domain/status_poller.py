"""Polling coordinator that drives transcription jobs to a terminal state."""

import asyncio
from collections.abc import Callable
from typing import Any, NamedTuple

from meeting_pipeline.exceptions import (
    InvalidStatusPayloadError,
    JobStatusFetchError,
    UnknownJobError,
)
from meeting_pipeline.infrastructure.interfaces import TranscriptionBackend
from meeting_pipeline.logging import setup_logging

from .models import JobStatus, LifecycleState, TranscriptionJob
from .status_adapter import normalize_status

logger = setup_logging()

JobCallback = Callable[[TranscriptionJob], None]


class _Callbacks(NamedTuple):
    on_update: JobCallback
    on_done: JobCallback
    on_fail: JobCallback


def _current_task() -> asyncio.Task | None:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None


class TranscriptionStatusPoller:
    """
    Owns every polled job, keyed by job id.

    Each job gets its own polling task. A job fires exactly one terminal
    notification, whichever of the poll loop or an out-of-band status push
    observes the terminal state first; everything after that is a no-op.
    """

    def __init__(
        self,
        backend: TranscriptionBackend,
        interval_seconds: float = 4.0,
        max_polls: int | None = 450,
    ):
        self._backend = backend
        self._interval = interval_seconds
        self._max_polls = max_polls
        self._jobs: dict[str, TranscriptionJob] = {}
        self._callbacks: dict[str, _Callbacks] = {}
        self._tasks: dict[str, asyncio.Task] = {}

    def start_polling(
        self,
        job_id: str,
        on_update: JobCallback,
        on_done: JobCallback,
        on_fail: JobCallback,
    ) -> Callable[[], None]:
        """
        Starts polling a job on the running event loop.

        Args:
            job_id: Id returned by the upload.
            on_update: Called with a snapshot on every non-terminal observation.
            on_done: Called once when the job is done.
            on_fail: Called once when the job failed.

        Returns:
            A function that stops polling this job.
        """
        if job_id in self._tasks:
            logger.warning("Job is already being polled", extra={"job_id": job_id})
            return lambda: self.stop(job_id)

        job = TranscriptionJob(job_id=job_id)
        self._jobs[job_id] = job
        self._callbacks[job_id] = _Callbacks(on_update, on_done, on_fail)
        self._tasks[job_id] = asyncio.get_running_loop().create_task(
            self._poll_loop(job), name=f"poll-{job_id}"
        )
        logger.info(
            "Polling started",
            extra={"job_id": job_id, "interval_seconds": self._interval},
        )
        return lambda: self.stop(job_id)

    def notify_status(self, job_id: str, payload: Any) -> bool:
        """
        Applies an out-of-band status observation, such as a push event.

        Returns:
            False when the job already reached a terminal state or was stopped.

        Raises:
            UnknownJobError: If the job is not tracked.
            InvalidStatusPayloadError: If the payload cannot be normalized.
        """
        job = self._jobs.get(job_id)
        if job is None:
            raise UnknownJobError(job_id)
        return self._apply(job, normalize_status(payload), source="push")

    def stop(self, job_id: str) -> None:
        """Stops polling a job; no further polls or notifications happen."""
        job = self._jobs.get(job_id)
        if job is None or job.stopped:
            return
        job.stopped = True
        self._cancel_task(job_id)
        logger.info("Polling stopped", extra={"job_id": job_id})

    def forget(self, job_id: str) -> None:
        """Stops a job if it is still running and drops its state."""
        job = self._jobs.get(job_id)
        if job is not None and not job.notified:
            self.stop(job_id)
        self._jobs.pop(job_id, None)
        self._callbacks.pop(job_id, None)

    def stop_all(self) -> None:
        for job_id in list(self._jobs):
            self.stop(job_id)

    def get_job(self, job_id: str) -> TranscriptionJob | None:
        """Returns a snapshot of the job, or None when it is not tracked."""
        job = self._jobs.get(job_id)
        return job.model_copy(deep=True) if job is not None else None

    def is_polling(self, job_id: str) -> bool:
        return job_id in self._tasks

    async def _poll_loop(self, job: TranscriptionJob) -> None:
        try:
            while not job.notified and not job.stopped:
                if self._max_polls is not None and job.polls >= self._max_polls:
                    self._finish(
                        job,
                        LifecycleState.FAILED,
                        source="poll",
                        error_message=f"Polling timed out after {job.polls} attempts",
                    )
                    return

                job.polls += 1
                try:
                    payload = await self._backend.fetch_status(job.job_id)
                    status = normalize_status(payload)
                except (JobStatusFetchError, InvalidStatusPayloadError) as e:
                    logger.warning(
                        "Status poll failed, retrying on next tick",
                        extra={"job_id": job.job_id, "poll": job.polls, "error": str(e)},
                    )
                except Exception:
                    logger.exception(
                        "Unexpected status poll error, retrying on next tick",
                        extra={"job_id": job.job_id, "poll": job.polls},
                    )
                else:
                    self._apply(job, status, source="poll")

                if job.notified or job.stopped:
                    return
                await asyncio.sleep(self._interval)
        finally:
            if self._tasks.get(job.job_id) is _current_task():
                self._tasks.pop(job.job_id, None)

    def _apply(self, job: TranscriptionJob, status: JobStatus, source: str) -> bool:
        if job.notified or job.stopped:
            logger.info(
                "Ignoring status for settled job",
                extra={"job_id": job.job_id, "source": source},
            )
            return False

        job.lifecycle_state = status.lifecycle_state
        job.stage_label = status.stage_label
        if status.transcript_text is not None:
            job.transcript_text = status.transcript_text
        if status.speaker_aliases:
            job.speaker_aliases = dict(status.speaker_aliases)
        if status.segments:
            job.segments = list(status.segments)

        if status.lifecycle_state.is_terminal:
            self._finish(
                job,
                status.lifecycle_state,
                source=source,
                error_message=status.error_message,
            )
        else:
            self._emit("on_update", job)
        return True

    def _finish(
        self,
        job: TranscriptionJob,
        state: LifecycleState,
        source: str,
        error_message: str | None = None,
    ) -> None:
        if job.notified:
            return
        job.notified = True
        job.lifecycle_state = state
        if error_message is not None:
            job.error_message = error_message
        self._cancel_task(job.job_id)

        logger.info(
            "Job reached terminal state",
            extra={
                "job_id": job.job_id,
                "state": state.value,
                "source": source,
                "polls": job.polls,
                "error": job.error_message,
            },
        )
        self._emit("on_done" if state is LifecycleState.DONE else "on_fail", job)

    def _cancel_task(self, job_id: str) -> None:
        task = self._tasks.pop(job_id, None)
        if task is not None and task is not _current_task():
            task.cancel()

    def _emit(self, name: str, job: TranscriptionJob) -> None:
        callbacks = self._callbacks.get(job.job_id)
        if callbacks is None:
            return
        try:
            getattr(callbacks, name)(job.model_copy(deep=True))
        except Exception:
            logger.exception(
                "Job callback failed", extra={"job_id": job.job_id, "callback": name}
            )
