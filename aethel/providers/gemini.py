"""Gemini bindings for analysis, image and speech using google-genai SDK with native async."""

import asyncio
import logging
import os
import time
from typing import Any

from google import genai
from google.genai import types as genai_types

from config.config_loader import ModelConfig
from aethel.models import AnalysisResponse
from aethel.providers.base import ImageSynthesizer, ProviderError, SpeechSynthesizer, TextAnalyzer

logger = logging.getLogger(__name__)


class _GeminiModel:
    """Shared client setup and call wrapper for one configured Gemini model."""

    def __init__(self, config: ModelConfig) -> None:
        self._config = config
        api_key = os.environ.get(config.api_key_env, "").strip()
        if not api_key:
            raise ProviderError(config.name, f"Missing API key: {config.api_key_env}")
        self._client = genai.Client(api_key=api_key)

    def name(self) -> str:
        return self._config.name

    def model_string(self) -> str:
        return self._config.model

    async def _generate(self, contents: Any, config: genai_types.GenerateContentConfig) -> Any:
        try:
            return await asyncio.wait_for(
                self._client.aio.models.generate_content(
                    model=self._config.model,
                    contents=contents,
                    config=config,
                ),
                timeout=self._config.timeout_sec,
            )
        except TimeoutError as exc:
            raise ProviderError(self._config.name, f"Request timed out after {self._config.timeout_sec}s") from exc
        except Exception as exc:
            raise ProviderError(self._config.name, f"API call failed: {exc}") from exc


def _first_inline_data(response: Any) -> bytes | None:
    candidates = response.candidates or []
    if not candidates or candidates[0].content is None:
        return None
    for part in candidates[0].content.parts or []:
        if part.inline_data is not None and part.inline_data.data:
            return part.inline_data.data
    return None


class GeminiTextAnalyzer(_GeminiModel, TextAnalyzer):
    """Structured JSON analysis with Google Search grounding."""

    async def analyze(self, prompt: str, schema: dict[str, Any] | None = None) -> AnalysisResponse:
        options = self._config.options
        config_kwargs: dict[str, Any] = {}
        if options.get("google_search", True):
            config_kwargs["tools"] = [genai_types.Tool(google_search=genai_types.GoogleSearch())]
        if options.get("thinking_budget") is not None:
            config_kwargs["thinking_config"] = genai_types.ThinkingConfig(
                thinking_budget=int(options["thinking_budget"]),
            )
        if schema is not None:
            config_kwargs["response_mime_type"] = "application/json"
            config_kwargs["response_schema"] = schema

        start = time.monotonic()
        response = await self._generate(prompt, genai_types.GenerateContentConfig(**config_kwargs))
        latency = time.monotonic() - start

        if not response.text:
            raise ProviderError(self._config.name, "Empty response text")

        token_count: int | None = None
        if response.usage_metadata:
            token_count = response.usage_metadata.total_token_count

        chunks: list[dict[str, Any]] = []
        candidates = response.candidates or []
        metadata = candidates[0].grounding_metadata if candidates else None
        if metadata is not None:
            for chunk in metadata.grounding_chunks or []:
                if chunk.web is not None:
                    chunks.append({"web": {"title": chunk.web.title, "uri": chunk.web.uri}})

        logger.info(
            "Gemini analysis: %.2fs, %s tokens, %d grounding chunks",
            latency,
            token_count,
            len(chunks),
        )

        return AnalysisResponse(
            text=response.text,
            grounding_chunks=chunks,
            latency_sec=latency,
            token_count=token_count,
        )


class GeminiImageSynthesizer(_GeminiModel, ImageSynthesizer):
    async def synthesize(self, prompt: str) -> bytes | None:
        options = self._config.options
        config = genai_types.GenerateContentConfig(
            image_config=genai_types.ImageConfig(
                aspect_ratio=options.get("aspect_ratio", "16:9"),
                image_size=options.get("image_size", "1K"),
            ),
        )
        start = time.monotonic()
        response = await self._generate(
            genai_types.Content(role="user", parts=[genai_types.Part(text=prompt)]),
            config,
        )
        data = _first_inline_data(response)
        logger.info(
            "Gemini image: %.2fs, %s",
            time.monotonic() - start,
            f"{len(data)} bytes" if data else "no inline image",
        )
        return data


class GeminiSpeechSynthesizer(_GeminiModel, SpeechSynthesizer):
    async def synthesize(self, text: str) -> bytes | None:
        voice = self._config.options.get("voice_name", "Kore")
        config = genai_types.GenerateContentConfig(
            response_modalities=["AUDIO"],
            speech_config=genai_types.SpeechConfig(
                voice_config=genai_types.VoiceConfig(
                    prebuilt_voice_config=genai_types.PrebuiltVoiceConfig(voice_name=voice),
                ),
            ),
        )
        start = time.monotonic()
        response = await self._generate(
            [genai_types.Content(role="user", parts=[genai_types.Part(text=text)])],
            config,
        )
        data = _first_inline_data(response)
        logger.info(
            "Gemini speech (%s): %.2fs, %s",
            voice,
            time.monotonic() - start,
            f"{len(data)} bytes" if data else "no audio",
        )
        return data
