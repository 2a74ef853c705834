import asyncio
import json

import httpx
import pytest

from meeting_pipeline.domain import UploadTarget
from meeting_pipeline.exceptions import (
    GenerationProviderError,
    InvalidStatusPayloadError,
    JobStatusFetchError,
    ProviderConnectionError,
    ProviderTimeoutError,
    UploadError,
)
from meeting_pipeline.infrastructure import HttpGenerationProvider, HttpTranscriptionBackend
from meeting_pipeline.infrastructure.http_generation_provider import extract_generated_text

RELAY_TARGET = UploadTarget(
    use_relay=True, endpoint_url="https://relay.test/upload", max_relay_bytes=100
)
DIRECT_TARGET = UploadTarget(
    use_relay=False, endpoint_url="https://asr.test/transcribe", max_relay_bytes=100
)


def _backend(handler, **kwargs):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    kwargs.setdefault("auth_token", "backend-token")
    kwargs.setdefault("relay_key", "relay-key")
    return HttpTranscriptionBackend(client, status_url="https://asr.test/status", **kwargs)


def _upload(backend, target=RELAY_TARGET):
    return asyncio.run(
        backend.upload(
            b"RIFF....", "meeting.wav", target=target, language="sv", title="Weekly", trace_id="t-1"
        )
    )


def test_relay_upload_sends_relay_credentials_and_backend_token():
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(200, json={"meetingId": "job-42"})

    job_id = _upload(_backend(handler))

    request = requests[0]
    body = request.read()
    assert job_id == "job-42"
    assert str(request.url) == "https://relay.test/upload"
    assert request.headers["apikey"] == "relay-key"
    assert request.headers["authorization"] == "Bearer relay-key"
    assert b'name="backendAuthToken"' in body
    assert b"backend-token" in body
    assert b'name="traceId"' in body
    assert b'name="audio"; filename="meeting.wav"' in body


def test_direct_upload_uses_bearer_token():
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(200, json={"id": 7})

    job_id = _upload(_backend(handler), target=DIRECT_TARGET)

    assert job_id == "7"
    assert requests[0].headers["authorization"] == "Bearer backend-token"
    assert "apikey" not in requests[0].headers
    assert b"backendAuthToken" not in requests[0].read()


def test_upload_without_job_id_fails():
    with pytest.raises(UploadError):
        _upload(_backend(lambda request: httpx.Response(200, json={"ok": True})))


def test_rejected_upload_fails():
    with pytest.raises(UploadError) as excinfo:
        _upload(_backend(lambda request: httpx.Response(413, json={"error": "too large"})))

    assert "413" in excinfo.value.reason


def test_fetch_status_queries_by_meeting_id():
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(200, json={"status": "processing"})

    payload = asyncio.run(_backend(handler).fetch_status("job-42"))

    assert payload == {"status": "processing"}
    assert requests[0].url.params["meetingId"] == "job-42"


def test_fetch_status_transport_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(JobStatusFetchError):
        asyncio.run(_backend(handler).fetch_status("job-42"))


def test_fetch_status_non_json_body():
    with pytest.raises(InvalidStatusPayloadError):
        asyncio.run(
            _backend(lambda request: httpx.Response(200, text="<html>")).fetch_status("job-42")
        )


def _provider(handler, **kwargs):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpGenerationProvider(client, "https://llm.test/generate", api_key="key", **kwargs)


def _generate(provider, cost_hint=None):
    return asyncio.run(provider.generate("prompt", model="gemini-2.5-flash-lite", cost_hint=cost_hint))


def test_generation_request_shape():
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(
            200, json={"candidates": [{"content": {"parts": [{"text": "{\"summary\": \"s\"}"}]}}]}
        )

    text = _generate(_provider(handler), cost_hint="low")

    sent = json.loads(requests[0].read())
    assert text == '{"summary": "s"}'
    assert sent == {
        "prompt": "prompt",
        "model": "gemini-2.5-flash-lite",
        "temperature": 0.2,
        "maxOutputTokens": 8192,
        "costHint": "low",
    }
    assert requests[0].headers["authorization"] == "Bearer key"


def test_server_error_carries_status_and_code():
    def handler(request):
        return httpx.Response(503, json={"error": "overloaded", "code": "upstream_generation_failed"})

    with pytest.raises(GenerationProviderError) as excinfo:
        _generate(_provider(handler))

    assert excinfo.value.status_code == 503
    assert excinfo.value.error_code == "upstream_generation_failed"
    assert str(excinfo.value) == "overloaded"


def test_error_body_on_success_status_is_an_error():
    def handler(request):
        return httpx.Response(200, json={"error": {"message": "model failed", "code": "gemini_error"}})

    with pytest.raises(GenerationProviderError) as excinfo:
        _generate(_provider(handler))

    assert excinfo.value.status_code is None
    assert excinfo.value.error_code == "gemini_error"


def test_timeout_and_connection_errors_are_typed():
    def slow(request):
        raise httpx.ReadTimeout("slow", request=request)

    def down(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(ProviderTimeoutError):
        _generate(_provider(slow))
    with pytest.raises(ProviderConnectionError):
        _generate(_provider(down))


@pytest.mark.parametrize(
    "body",
    [
        {"candidates": [{"content": {"parts": [{"text": "A"}]}}]},
        {"response": {"candidates": [{"content": {"parts": [{"text": "A"}]}}]}},
        {"content": {"parts": [{"text": "A"}]}},
        {"output": {"text": "A"}},
        {"text": "A"},
    ],
)
def test_generated_text_shapes(body):
    assert extract_generated_text(body) == "A"


def test_generated_text_missing():
    assert extract_generated_text({"candidates": []}) is None
    assert extract_generated_text(None) is None
