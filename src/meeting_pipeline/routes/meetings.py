"""Meeting upload and status endpoints."""

from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, Form, HTTPException, UploadFile

from meeting_pipeline.dependencies import get_handler
from meeting_pipeline.exceptions import (
    InvalidStatusPayloadError,
    UnknownJobError,
    UploadError,
)
from meeting_pipeline.handlers import MeetingHandler
from meeting_pipeline.logging import setup_logging
from meeting_pipeline.response_models import (
    EventAcceptedResponse,
    MeetingStatusResponse,
    UploadResponse,
)

logger = setup_logging()

router = APIRouter(prefix="/meetings", tags=["meetings"])

HandlerDep = Annotated[MeetingHandler, Depends(get_handler)]

_FINISHED_PHASES = ("completed", "failed", "abandoned")


@router.post("/upload", response_model=UploadResponse)
async def upload_meeting(
    file: UploadFile,
    handler: HandlerDep,
    title: str | None = Form(None),
    agenda: str | None = Form(None),
    language: str | None = Form(None, min_length=2),
) -> UploadResponse:
    """
    Uploads a meeting recording.

    Sends the audio to the transcription service and starts background
    processing that ends with a protocol.
    """
    audio = await file.read()
    if not audio:
        raise HTTPException(status_code=422, detail="File is empty")

    logger.info(
        "Received upload request",
        extra={"file_name": file.filename, "size_bytes": len(audio), "title": title},
    )

    try:
        job_id = await handler.start(
            audio,
            file.filename or "meeting-audio",
            title=title,
            agenda=agenda,
            language=language,
        )
    except UploadError:
        raise HTTPException(status_code=502, detail="Audio upload failed")

    return UploadResponse(
        message="Meeting uploaded successfully, processing started",
        job_id=job_id,
    )


@router.get("/{job_id}", response_model=MeetingStatusResponse)
async def get_meeting(job_id: str, handler: HandlerDep) -> MeetingStatusResponse:
    """Returns the processing state of a meeting and its protocol when ready."""
    try:
        progress = handler.get_progress(job_id)
    except UnknownJobError:
        raise HTTPException(status_code=404, detail="Meeting not found")
    return MeetingStatusResponse.from_progress(progress)


@router.post(
    "/{job_id}/events", response_model=EventAcceptedResponse, status_code=202
)
async def push_status_event(
    job_id: str,
    handler: HandlerDep,
    payload: Annotated[dict[str, Any], Body()],
) -> EventAcceptedResponse:
    """Applies a status event pushed by the transcription service."""
    try:
        accepted = handler.notify_status(job_id, payload)
    except UnknownJobError:
        raise HTTPException(status_code=404, detail="Meeting not found")
    except InvalidStatusPayloadError:
        raise HTTPException(status_code=422, detail="Invalid status payload")
    return EventAcceptedResponse(accepted=accepted)


@router.delete("/{job_id}", response_model=MeetingStatusResponse)
async def abandon_meeting(job_id: str, handler: HandlerDep) -> MeetingStatusResponse:
    """Stops processing a meeting, or discards it once it has finished."""
    try:
        progress = handler.get_progress(job_id)
        handler.abandon(job_id)
        if progress.phase not in _FINISHED_PHASES:
            progress = handler.get_progress(job_id)
    except UnknownJobError:
        raise HTTPException(status_code=404, detail="Meeting not found")
    return MeetingStatusResponse.from_progress(progress)
