"""Shared pytest fixtures."""

import json
from pathlib import Path
from unittest.mock import AsyncMock

import numpy as np
import pytest

from config.config_loader import AppConfig, DefaultsConfig, ModelConfig, PromptsConfig
from aethel.models import AnalysisResponse, AuthVoid, ResonanceResult, WitInput
from aethel.providers.base import ImageSynthesizer, SpeechSynthesizer, TextAnalyzer


SAMPLE_ANALYSIS = {
    "integrity": 92,
    "modality": "stable",
    "resonanceScore": 78,
    "insight": "Silence is the frame in which music becomes audible.",
    "logicCheck": "X ∩ Y = temporal structure; ¬(X ∪ Y) = noise. XNOR holds.",
    "visualPrompt": "Concentric rings of light dissolving into a dark field",
}


@pytest.fixture
def sample_prompts_config() -> PromptsConfig:
    return PromptsConfig(
        analysis='Compare Vector X: "{x}" and Vector Y: "{y}". JSON only.',
        image="Visualize: {visual_prompt}. Style: ethereal.",
        speech="Resonance established. {insight}",
    )


@pytest.fixture
def sample_defaults_config(tmp_path: Path) -> DefaultsConfig:
    return DefaultsConfig(
        history_limit=10,
        sample_rate=24000,
        channels=1,
        output_dir=tmp_path / "output",
    )


@pytest.fixture
def sample_app_config(
    sample_defaults_config: DefaultsConfig,
    sample_prompts_config: PromptsConfig,
) -> AppConfig:
    def model(role: str, name: str) -> ModelConfig:
        return ModelConfig(name=role, model=name, api_key_env="TEST_GEMINI_KEY")

    return AppConfig(
        defaults=sample_defaults_config,
        models={
            "analysis": model("analysis", "gemini-3-pro-preview"),
            "image": model("image", "gemini-3-pro-image-preview"),
            "speech": model("speech", "gemini-2.5-flash-preview-tts"),
        },
        prompts=sample_prompts_config,
        available_models={"analysis", "image", "speech"},
    )


@pytest.fixture
def sample_analysis_text() -> str:
    return json.dumps(SAMPLE_ANALYSIS)


@pytest.fixture
def sample_auth_void() -> AuthVoid:
    return AuthVoid.from_dict(SAMPLE_ANALYSIS)


@pytest.fixture
def sample_result(sample_auth_void: AuthVoid) -> ResonanceResult:
    return ResonanceResult(
        x=WitInput(data="Silence"),
        y=WitInput(data="Music"),
        auth_void=sample_auth_void,
        timestamp=1_700_000_000_000.0,
    )


@pytest.fixture
def pcm_bytes() -> bytes:
    """Short 24kHz mono sine wave as little-endian int16 PCM."""
    t = np.arange(2400) / 24000
    samples = (np.sin(2 * np.pi * 440 * t) * 12000).astype("<i2")
    return samples.tobytes()


class MockAnalyzer(TextAnalyzer):
    """Test double TextAnalyzer."""

    def __init__(self, text: str = json.dumps(SAMPLE_ANALYSIS), chunks: list | None = None) -> None:
        # Shadow the class method with an AsyncMock at the instance level.
        self.analyze = AsyncMock(  # type: ignore[assignment]
            return_value=AnalysisResponse(text=text, grounding_chunks=list(chunks or []), latency_sec=0.1)
        )

    def name(self) -> str:
        return "analysis"

    def model_string(self) -> str:
        return "mock-analysis"

    async def analyze(self, prompt, schema=None) -> AnalysisResponse:  # type: ignore[override]
        """Default implementation; replaced by AsyncMock in __init__."""
        return AnalysisResponse(text="")


class MockImage(ImageSynthesizer):
    def __init__(self, data: bytes | None = b"\x89PNG\r\n\x1a\nfake") -> None:
        self.synthesize = AsyncMock(return_value=data)  # type: ignore[assignment]

    def name(self) -> str:
        return "image"

    def model_string(self) -> str:
        return "mock-image"

    async def synthesize(self, prompt) -> bytes | None:  # type: ignore[override]
        return None


class MockSpeech(SpeechSynthesizer):
    def __init__(self, data: bytes | None = b"\x00\x01\x00\x02") -> None:
        self.synthesize = AsyncMock(return_value=data)  # type: ignore[assignment]

    def name(self) -> str:
        return "speech"

    def model_string(self) -> str:
        return "mock-speech"

    async def synthesize(self, text) -> bytes | None:  # type: ignore[override]
        return None


class FakeStream:
    """Stands in for a sounddevice OutputStream."""

    def __init__(self, sample_rate: int, channels: int) -> None:
        self.sample_rate = sample_rate
        self.channels = channels
        self.started = False
        self.closed = False
        self.written: list[np.ndarray] = []

    def start(self) -> None:
        self.started = True

    def stop(self) -> None:
        self.started = False

    def close(self) -> None:
        self.closed = True

    def write(self, data: np.ndarray) -> None:
        self.written.append(data)


@pytest.fixture
def mock_analyzer() -> MockAnalyzer:
    return MockAnalyzer()


@pytest.fixture
def mock_image() -> MockImage:
    return MockImage()


@pytest.fixture
def mock_speech() -> MockSpeech:
    return MockSpeech()
