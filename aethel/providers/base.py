"""Capability interfaces for the three external model calls."""

from abc import ABC, abstractmethod
from typing import Any

from aethel.models import AnalysisResponse


class ProviderError(Exception):
    """Raised when a provider call fails."""

    def __init__(self, provider_name: str, message: str) -> None:
        self.provider_name = provider_name
        super().__init__(f"[{provider_name}] {message}")


class _Provider(ABC):
    @abstractmethod
    def name(self) -> str:
        """Return the short role name (e.g. 'analysis', 'image')."""
        ...

    @abstractmethod
    def model_string(self) -> str:
        """Return the actual model identifier string."""
        ...


class TextAnalyzer(_Provider):
    """Structured, search-grounded text generation."""

    @abstractmethod
    async def analyze(self, prompt: str, schema: dict[str, Any] | None = None) -> AnalysisResponse:
        """Generate a response for the given prompt.

        Args:
            prompt: The full prompt text to send.
            schema: JSON response schema. None requests free text.

        Returns:
            AnalysisResponse with raw text and any grounding chunks.

        Raises:
            ProviderError: On API failure, timeout, or empty response.
        """
        ...


class ImageSynthesizer(_Provider):
    @abstractmethod
    async def synthesize(self, prompt: str) -> bytes | None:
        """Return the first inline image payload, or None if the model sent none.

        Raises:
            ProviderError: On API failure or timeout.
        """
        ...


class SpeechSynthesizer(_Provider):
    @abstractmethod
    async def synthesize(self, text: str) -> bytes | None:
        """Return raw 24kHz mono PCM16 for the utterance, or None.

        Raises:
            ProviderError: On API failure or timeout.
        """
        ...
