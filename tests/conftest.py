import asyncio
from typing import Any

import pytest

from meeting_pipeline.domain import UploadTarget
from meeting_pipeline.infrastructure.interfaces import GenerationProvider, TranscriptionBackend

PROTOCOL_JSON = (
    '{"title": "Weekly sync", "summary": "The team reviewed the release.", '
    '"mainPoints": ["Release is on track"], "decisions": ["Ship on Friday"], '
    '"actionItems": [{"title": "Write release notes", "owner": "Alice"}], '
    '"nextMeetingSuggestions": ["Retrospective"]}'
)


class FakeTranscriptionBackend(TranscriptionBackend):
    """Returns scripted status payloads per job; an Exception entry is raised."""

    def __init__(self, statuses: dict[str, list[Any]] | None = None, job_id: str = "job-1"):
        self.statuses = statuses or {}
        self.job_id = job_id
        self.fetch_calls: dict[str, int] = {}
        self.uploads: list[dict[str, Any]] = []
        self.gate: asyncio.Event | None = None

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
        self.uploads.append(
            {
                "audio": audio,
                "file_name": file_name,
                "target": target,
                "language": language,
                "title": title,
                "trace_id": trace_id,
            }
        )
        return self.job_id

    async def fetch_status(self, job_id: str) -> dict[str, Any]:
        self.fetch_calls[job_id] = self.fetch_calls.get(job_id, 0) + 1
        if self.gate is not None:
            await self.gate.wait()
        script = self.statuses.get(job_id) or [{"status": "processing"}]
        item = script.pop(0) if len(script) > 1 else script[0]
        if isinstance(item, Exception):
            raise item
        return item


class FakeGenerationProvider(GenerationProvider):
    """Returns scripted responses in order; an Exception entry is raised."""

    def __init__(self, responses: list[Any] | None = None):
        self.responses = list(responses if responses is not None else [PROTOCOL_JSON])
        self.calls: list[dict[str, Any]] = []

    async def generate(self, prompt: str, *, model: str, cost_hint: str | None = None) -> str:
        self.calls.append({"prompt": prompt, "model": model, "cost_hint": cost_hint})
        item = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(item, Exception):
            raise item
        return item


class RecordingSleep:
    """Stand-in for asyncio.sleep that records delays and returns immediately."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


async def run_until(predicate, max_iterations: int = 1000) -> None:
    """Yields to the event loop until ``predicate()`` holds."""
    for _ in range(max_iterations):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition not reached")


@pytest.fixture
def backend() -> FakeTranscriptionBackend:
    return FakeTranscriptionBackend()


@pytest.fixture
def provider() -> FakeGenerationProvider:
    return FakeGenerationProvider()
