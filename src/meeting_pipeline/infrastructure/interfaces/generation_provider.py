"""Abstract interface for text generation providers."""

from abc import ABC, abstractmethod


class GenerationProvider(ABC):
    """Abstract base class for LLM backends that turn a prompt into text."""

    @abstractmethod
    async def generate(
        self, prompt: str, *, model: str, cost_hint: str | None = None
    ) -> str:
        """
        Runs one generation call.

        Args:
            prompt: Full prompt text.
            model: Model name to generate with.
            cost_hint: Optional hint forwarded for billing or routing.

        Returns:
            The generated text.

        Raises:
            GenerationProviderError: If the call fails. ``status_code`` and
                ``error_code`` carry whatever the provider reported.
        """
        pass
