"""HTTP implementation of the GenerationProvider interface."""

from collections.abc import Mapping
from typing import Any

import httpx

from meeting_pipeline.exceptions import (
    GenerationProviderError,
    ProviderConnectionError,
    ProviderTimeoutError,
)
from meeting_pipeline.logging import setup_logging

from .interfaces import GenerationProvider

logger = setup_logging()

_TEXT_PATHS: tuple[tuple[str | int, ...], ...] = (
    ("candidates", 0, "content", "parts", 0, "text"),
    ("response", "candidates", 0, "content", "parts", 0, "text"),
    ("content", "parts", 0, "text"),
    ("output", "text"),
    ("text",),
)


def _dig(data: Any, path: tuple[str | int, ...]) -> Any:
    for step in path:
        try:
            data = data[step]
        except (KeyError, IndexError, TypeError):
            return None
    return data


def extract_generated_text(body: Any) -> str | None:
    """
    Pulls the generated text out of a response body.

    Reads the candidate text first, at the top level or nested under
    ``response``, then the older ``content`` and ``output`` shapes, then a
    plain ``text`` field.
    """
    for path in _TEXT_PATHS:
        text = _dig(body, path)
        if isinstance(text, str) and text.strip():
            return text
    return None


def _error_details(body: Any) -> tuple[str | None, str | None]:
    if not isinstance(body, Mapping):
        return None, None

    error = body.get("error")
    message = body.get("message")
    code = body.get("code") or body.get("errorCode")
    if isinstance(error, Mapping):
        message = error.get("message") or message
        code = error.get("code") or code
    elif isinstance(error, str):
        message = error
    return (
        str(message) if message else None,
        str(code) if code is not None else None,
    )


class HttpGenerationProvider(GenerationProvider):
    """Calls the generation endpoint with a JSON request per prompt."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        endpoint_url: str,
        api_key: str = "",
        temperature: float = 0.2,
        max_output_tokens: int = 8192,
    ):
        self._client = client
        self._endpoint_url = endpoint_url
        self._api_key = api_key
        self._temperature = temperature
        self._max_output_tokens = max_output_tokens

    async def generate(
        self, prompt: str, *, model: str, cost_hint: str | None = None
    ) -> str:
        payload: dict[str, Any] = {
            "prompt": prompt,
            "model": model,
            "temperature": self._temperature,
            "maxOutputTokens": self._max_output_tokens,
        }
        if cost_hint:
            payload["costHint"] = cost_hint
        headers = {"Authorization": f"Bearer {self._api_key}"} if self._api_key else {}

        try:
            response = await self._client.post(
                self._endpoint_url, json=payload, headers=headers, timeout=None
            )
        except httpx.TimeoutException as e:
            raise ProviderTimeoutError("Generation request timed out", cause=e) from e
        except httpx.RequestError as e:
            raise ProviderConnectionError(
                f"Generation endpoint unreachable: {e}", cause=e
            ) from e

        try:
            body = response.json()
        except ValueError:
            body = None

        message, code = _error_details(body)
        if response.is_error:
            raise GenerationProviderError(
                message or f"Generation endpoint answered {response.status_code}",
                status_code=response.status_code,
                error_code=code,
            )
        if isinstance(body, Mapping) and body.get("error") and not body.get("success"):
            raise GenerationProviderError(
                message or "Generation endpoint reported an error", error_code=code
            )

        text = extract_generated_text(body)
        if text is None:
            raise GenerationProviderError(
                "Generation response contained no text", error_code="empty_response"
            )

        logger.info(
            "Generation call completed",
            extra={"model": model, "output_chars": len(text)},
        )
        return text
