"""Resonance pipeline: required analysis call, then best-effort image and speech enrichment."""

import base64
import logging
from typing import Any

from config.config_loader import PromptsConfig
from aethel.extractor import ParseError, parse_auth_void
from aethel.models import AuthVoid, GroundingSource, WitInput
from aethel.providers.base import ImageSynthesizer, ProviderError, SpeechSynthesizer, TextAnalyzer

logger = logging.getLogger(__name__)

ANALYSIS_FAILURE_MESSAGE = "Critical Logic Failure: Synthesis Unstable"

# Raised by the image model when the key cannot reach the requested model
_KEY_SELECTION_ERROR = "Requested entity was not found"

ANALYSIS_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "integrity": {"type": "NUMBER"},
        "modality": {"type": "STRING"},
        "resonanceScore": {"type": "NUMBER"},
        "insight": {"type": "STRING"},
        "logicCheck": {"type": "STRING"},
        "visualPrompt": {"type": "STRING"},
    },
    "required": ["integrity", "modality", "resonanceScore", "insight", "logicCheck", "visualPrompt"],
}


class AnalysisFailure(Exception):
    """The required analysis step failed. Carries the fixed user-facing message."""

    def __init__(self, message: str = ANALYSIS_FAILURE_MESSAGE) -> None:
        super().__init__(message)


def _map_sources(chunks: list[dict[str, Any]]) -> list[GroundingSource]:
    """Keep only web citations from grounding metadata."""
    sources: list[GroundingSource] = []
    for chunk in chunks:
        web = chunk.get("web")
        if not web:
            continue
        sources.append(GroundingSource(title=web.get("title") or "", uri=web.get("uri") or ""))
    return sources


class ResonanceClient:
    """Runs one resonance analysis across the three model capabilities."""

    def __init__(
        self,
        analyzer: TextAnalyzer,
        prompts: PromptsConfig,
        image: ImageSynthesizer | None = None,
        speech: SpeechSynthesizer | None = None,
    ) -> None:
        self._analyzer = analyzer
        self._prompts = prompts
        self._image = image
        self._speech = speech

    async def analyze(self, x: WitInput, y: WitInput) -> AuthVoid:
        """Analyze the resonance between two inputs.

        Only the analysis call is load-bearing. Image and speech failures are
        logged and leave the corresponding field unset.

        Raises:
            AnalysisFailure: The analysis call failed or its output was unusable.
        """
        auth_void = await self._run_analysis(x, y)

        if self._image is not None:
            await self._enrich_image(auth_void)
        if self._speech is not None:
            await self._enrich_speech(auth_void)

        return auth_void

    async def _run_analysis(self, x: WitInput, y: WitInput) -> AuthVoid:
        prompt = self._prompts.analysis.format(x=x.data, y=y.data)
        logger.info("Running analysis via %s", self._analyzer.model_string())
        try:
            response = await self._analyzer.analyze(prompt, ANALYSIS_SCHEMA)
            auth_void = parse_auth_void(response.text)
        except (ProviderError, ParseError) as exc:
            logger.error("Analysis failed: %s", exc)
            raise AnalysisFailure() from exc
        except Exception as exc:
            logger.exception("Unexpected analysis error")
            raise AnalysisFailure() from exc

        sources = _map_sources(response.grounding_chunks)
        if sources:
            auth_void.sources = sources
        logger.debug(
            "Analysis parsed: modality=%s score=%s sources=%d",
            auth_void.modality,
            auth_void.resonance_score,
            len(auth_void.sources),
        )
        return auth_void

    async def _enrich_image(self, auth_void: AuthVoid) -> None:
        prompt = self._prompts.image.format(visual_prompt=auth_void.visual_prompt)
        try:
            data = await self._image.synthesize(prompt)
        except Exception as exc:
            logger.warning("Visual generation bypassed: %s", exc)
            if _KEY_SELECTION_ERROR in str(exc):
                logger.warning(
                    "Image model %s is not reachable with this API key; select a key with access to it",
                    self._image.model_string(),
                )
            return

        if data:
            auth_void.image_url = "data:image/png;base64," + base64.b64encode(data).decode("ascii")

    async def _enrich_speech(self, auth_void: AuthVoid) -> None:
        text = self._prompts.speech.format(insight=auth_void.insight)
        try:
            data = await self._speech.synthesize(text)
        except Exception as exc:
            logger.warning("Audio synthesis bypassed: %s", exc)
            return

        if data:
            auth_void.audio_data = base64.b64encode(data).decode("ascii")
