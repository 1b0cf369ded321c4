"""Unit tests for aethel/providers/gemini.py — SDK client replaced by mocks."""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from config.config_loader import ModelConfig
from aethel.providers.base import ProviderError
from aethel.providers.gemini import GeminiImageSynthesizer, GeminiSpeechSynthesizer, GeminiTextAnalyzer
from aethel.resonance import ANALYSIS_SCHEMA


def _config(role: str, model: str, timeout_sec=None, **options) -> ModelConfig:
    return ModelConfig(name=role, model=model, api_key_env="TEST_GEMINI_KEY", timeout_sec=timeout_sec, options=options)


def _with_response(provider, response) -> AsyncMock:
    provider._client = MagicMock()
    provider._client.aio.models.generate_content = AsyncMock(return_value=response)
    return provider._client.aio.models.generate_content


def _inline_candidate(*parts) -> SimpleNamespace:
    return SimpleNamespace(content=SimpleNamespace(parts=list(parts)), grounding_metadata=None)


@pytest.fixture(autouse=True)
def gemini_key(monkeypatch):
    monkeypatch.setenv("TEST_GEMINI_KEY", "test-key")


def test_missing_key_raises(monkeypatch):
    monkeypatch.delenv("TEST_GEMINI_KEY")
    with pytest.raises(ProviderError, match="Missing API key: TEST_GEMINI_KEY"):
        GeminiTextAnalyzer(_config("analysis", "gemini-3-pro-preview"))


async def test_analyze_returns_text_and_grounding():
    provider = GeminiTextAnalyzer(_config("analysis", "gemini-3-pro-preview", thinking_budget=4000))
    response = SimpleNamespace(
        text='{"integrity": 90}',
        usage_metadata=SimpleNamespace(total_token_count=321),
        candidates=[
            SimpleNamespace(
                content=None,
                grounding_metadata=SimpleNamespace(
                    grounding_chunks=[
                        SimpleNamespace(web=SimpleNamespace(title="Cage", uri="https://example.org/cage")),
                        SimpleNamespace(web=None),
                    ]
                ),
            )
        ],
    )
    call = _with_response(provider, response)

    result = await provider.analyze("prompt", ANALYSIS_SCHEMA)

    assert result.text == '{"integrity": 90}'
    assert result.token_count == 321
    assert result.grounding_chunks == [{"web": {"title": "Cage", "uri": "https://example.org/cage"}}]

    kwargs = call.call_args.kwargs
    assert kwargs["model"] == "gemini-3-pro-preview"
    assert kwargs["contents"] == "prompt"
    config = kwargs["config"]
    assert config.response_mime_type == "application/json"
    assert config.thinking_config.thinking_budget == 4000
    assert config.tools[0].google_search is not None


async def test_analyze_without_schema_is_free_text():
    provider = GeminiTextAnalyzer(_config("analysis", "gemini-3-pro-preview", google_search=False))
    call = _with_response(provider, SimpleNamespace(text="OK", usage_metadata=None, candidates=[]))

    result = await provider.analyze("ping")

    assert result.grounding_chunks == []
    config = call.call_args.kwargs["config"]
    assert config.response_mime_type is None
    assert config.tools is None


async def test_analyze_empty_text_raises():
    provider = GeminiTextAnalyzer(_config("analysis", "gemini-3-pro-preview"))
    _with_response(provider, SimpleNamespace(text=None, usage_metadata=None, candidates=[]))
    with pytest.raises(ProviderError, match="Empty response text"):
        await provider.analyze("prompt", ANALYSIS_SCHEMA)


async def test_api_error_wrapped():
    provider = GeminiTextAnalyzer(_config("analysis", "gemini-3-pro-preview"))
    provider._client = MagicMock()
    provider._client.aio.models.generate_content = AsyncMock(side_effect=RuntimeError("500 INTERNAL"))
    with pytest.raises(ProviderError, match="API call failed: 500 INTERNAL"):
        await provider.analyze("prompt")


async def test_timeout_when_configured():
    provider = GeminiTextAnalyzer(_config("analysis", "gemini-3-pro-preview", timeout_sec=0.05))

    async def hang(*args, **kwargs):
        await asyncio.sleep(9999)

    provider._client = MagicMock()
    provider._client.aio.models.generate_content = AsyncMock(side_effect=hang)
    with pytest.raises(ProviderError, match="timed out"):
        await provider.analyze("prompt")


async def test_image_returns_first_inline_payload():
    provider = GeminiImageSynthesizer(_config("image", "gemini-3-pro-image-preview", aspect_ratio="16:9", image_size="1K"))
    response = SimpleNamespace(
        candidates=[
            _inline_candidate(
                SimpleNamespace(inline_data=None, text="Here is your image"),
                SimpleNamespace(inline_data=SimpleNamespace(data=b"first")),
                SimpleNamespace(inline_data=SimpleNamespace(data=b"second")),
            )
        ]
    )
    call = _with_response(provider, response)

    assert await provider.synthesize("rings of light") == b"first"
    config = call.call_args.kwargs["config"]
    assert config.image_config.aspect_ratio == "16:9"
    assert config.image_config.image_size == "1K"


async def test_image_no_candidates_returns_none():
    provider = GeminiImageSynthesizer(_config("image", "gemini-3-pro-image-preview"))
    _with_response(provider, SimpleNamespace(candidates=None))
    assert await provider.synthesize("rings") is None


async def test_speech_uses_voice_and_returns_pcm():
    provider = GeminiSpeechSynthesizer(_config("speech", "gemini-2.5-flash-preview-tts", voice_name="Kore"))
    response = SimpleNamespace(candidates=[_inline_candidate(SimpleNamespace(inline_data=SimpleNamespace(data=b"\x00\x01")))])
    call = _with_response(provider, response)

    assert await provider.synthesize("Resonance established.") == b"\x00\x01"
    config = call.call_args.kwargs["config"]
    assert config.speech_config.voice_config.prebuilt_voice_config.voice_name == "Kore"
    assert config.response_modalities == ["AUDIO"]
