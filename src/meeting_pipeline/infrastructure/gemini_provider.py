"""Gemini implementation of the GenerationProvider interface."""

import httpx
from google import genai
from google.genai import errors, types

from meeting_pipeline.exceptions import (
    GenerationProviderError,
    ProviderConnectionError,
    ProviderTimeoutError,
)
from meeting_pipeline.logging import setup_logging

from .interfaces import GenerationProvider

logger = setup_logging()


class GeminiGenerationProvider(GenerationProvider):
    """Generation provider using the Google Gemini async client."""

    def __init__(
        self,
        client: genai.Client,
        temperature: float = 0.2,
        max_output_tokens: int = 8192,
    ):
        self._client = client
        self._config = types.GenerateContentConfig(
            temperature=temperature,
            max_output_tokens=max_output_tokens,
        )

    async def generate(
        self, prompt: str, *, model: str, cost_hint: str | None = None
    ) -> str:
        """
        Generates text with Gemini.

        Raises:
            GenerationProviderError: With the HTTP status of the Gemini API
                error as ``status_code``.
        """
        try:
            response = await self._client.aio.models.generate_content(
                model=model,
                contents=prompt,
                config=self._config,
            )
        except errors.APIError as e:
            logger.warning(
                "Gemini API call failed",
                extra={"model": model, "code": e.code, "status": e.status},
            )
            raise GenerationProviderError(
                f"Gemini call failed: {e.message}",
                status_code=e.code,
                error_code=e.status,
                cause=e,
            ) from e
        except httpx.TimeoutException as e:
            raise ProviderTimeoutError("Gemini call timed out", cause=e) from e
        except httpx.RequestError as e:
            raise ProviderConnectionError(f"Gemini unreachable: {e}", cause=e) from e

        if not response.text:
            raise GenerationProviderError(
                "Gemini returned empty response", error_code="gemini_error"
            )
        logger.info("Gemini generation completed", extra={"model": model})
        return response.text
