"""HTTP implementation of the TranscriptionBackend interface."""

import mimetypes
from collections.abc import Mapping
from typing import Any

import httpx

from meeting_pipeline.domain.models import UploadTarget
from meeting_pipeline.exceptions import (
    InvalidStatusPayloadError,
    JobStatusFetchError,
    UploadError,
)
from meeting_pipeline.logging import setup_logging

from .interfaces import TranscriptionBackend

logger = setup_logging()

_JOB_ID_KEYS = ("meetingId", "meeting_id", "id")


def _job_id(body: Any) -> str | None:
    if not isinstance(body, Mapping):
        return None
    for key in _JOB_ID_KEYS:
        value = body.get(key)
        if value is not None and str(value).strip():
            return str(value)
    return None


class HttpTranscriptionBackend(TranscriptionBackend):
    """
    Talks to the speech recognition service over HTTP.

    Uploads go either to the relay, which authenticates with its own key and
    forwards the backend token as a form field, or straight to the ingest
    endpoint with the backend token as a bearer token.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        status_url: str,
        auth_token: str = "",
        relay_key: str | None = None,
        upload_timeout_seconds: float = 30 * 60,
    ):
        self._client = client
        self._status_url = status_url
        self._auth_token = auth_token
        self._relay_key = relay_key
        self._upload_timeout = upload_timeout_seconds

    def _upload_request(
        self, target: UploadTarget, form: dict[str, str]
    ) -> tuple[dict[str, str], dict[str, str]]:
        headers: dict[str, str] = {}
        if target.use_relay:
            if self._relay_key:
                headers["apikey"] = self._relay_key
                headers["Authorization"] = f"Bearer {self._relay_key}"
            if self._auth_token:
                form["backendAuthToken"] = self._auth_token
        elif self._auth_token:
            headers["Authorization"] = f"Bearer {self._auth_token}"
        return headers, form

    async def upload(
        self,
        audio: bytes,
        file_name: str,
        *,
        target: UploadTarget,
        language: str,
        title: str | None = None,
        trace_id: str | None = None,
    ) -> str:
        form = {"language": language}
        if title:
            form["title"] = title
        if trace_id:
            form["traceId"] = trace_id
        headers, form = self._upload_request(target, form)
        content_type = mimetypes.guess_type(file_name)[0] or "application/octet-stream"

        logger.info(
            "Uploading audio",
            extra={
                "file_name": file_name,
                "size_bytes": len(audio),
                "via_relay": target.use_relay,
                "trace_id": trace_id,
            },
        )
        try:
            response = await self._client.post(
                target.endpoint_url,
                files={"audio": (file_name, audio, content_type)},
                data=form,
                headers=headers,
                timeout=self._upload_timeout,
            )
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPStatusError as e:
            logger.exception("Upload rejected", extra={"file_name": file_name})
            raise UploadError(
                file_name, f"service answered {e.response.status_code}", cause=e
            ) from e
        except httpx.HTTPError as e:
            logger.exception("Upload request failed", extra={"file_name": file_name})
            raise UploadError(file_name, "request failed", cause=e) from e
        except ValueError as e:
            raise UploadError(file_name, "response is not JSON", cause=e) from e

        job_id = _job_id(body)
        if job_id is None:
            raise UploadError(file_name, "response carried no job id")

        logger.info("Upload accepted", extra={"file_name": file_name, "job_id": job_id})
        return job_id

    async def fetch_status(self, job_id: str) -> dict[str, Any]:
        headers = {"Authorization": f"Bearer {self._auth_token}"} if self._auth_token else {}
        try:
            response = await self._client.get(
                self._status_url, params={"meetingId": job_id}, headers=headers
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise JobStatusFetchError(job_id, cause=e) from e

        try:
            return response.json()
        except ValueError as e:
            raise InvalidStatusPayloadError("response body is not JSON") from e
