"""Pure dataclasses for the resonance pipeline. Wire names are camelCase JSON keys."""

from dataclasses import dataclass, field
from typing import Any

MODALITIES = ("perfect", "stable", "volatile", "void")

MODALITY_COLORS: dict[str, str] = {
    "perfect": "#0ea5e9",
    "stable": "#10b981",
    "volatile": "#f59e0b",
    "void": "#64748b",
}

REQUIRED_FIELDS = (
    "integrity",
    "modality",
    "resonanceScore",
    "insight",
    "logicCheck",
    "visualPrompt",
)


def modality_color(modality: str) -> str:
    """Display color for a modality; unknown labels fall back to 'stable'."""
    return MODALITY_COLORS.get(modality, MODALITY_COLORS["stable"])


@dataclass(frozen=True)
class WitInput:
    data: str
    context: str | None = None


@dataclass(frozen=True)
class GroundingSource:
    title: str
    uri: str


@dataclass
class AuthVoid:
    integrity: float
    modality: str          # not validated; rendered as-is
    resonance_score: float
    insight: str
    logic_check: str
    visual_prompt: str
    thinking_process: str | None = None
    image_url: str | None = None   # data URI
    audio_data: str | None = None  # base64 PCM, 24kHz mono
    sources: list[GroundingSource] = field(default_factory=list)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "AuthVoid":
        """Build from the analysis JSON. Raises KeyError/TypeError/ValueError on bad input.

        Only analysis fields are read. imageUrl, audioData and sources are set by
        the enrichment steps, so any the model emits are ignored.
        """
        return cls(
            integrity=_number(raw["integrity"], "integrity"),
            modality=str(raw["modality"]),
            resonance_score=_number(raw["resonanceScore"], "resonanceScore"),
            insight=str(raw["insight"]),
            logic_check=str(raw["logicCheck"]),
            visual_prompt=str(raw["visualPrompt"]),
            thinking_process=raw.get("thinkingProcess"),
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "integrity": self.integrity,
            "modality": self.modality,
            "resonanceScore": self.resonance_score,
            "insight": self.insight,
            "logicCheck": self.logic_check,
            "visualPrompt": self.visual_prompt,
        }
        if self.thinking_process is not None:
            out["thinkingProcess"] = self.thinking_process
        if self.image_url is not None:
            out["imageUrl"] = self.image_url
        if self.audio_data is not None:
            out["audioData"] = self.audio_data
        if self.sources:
            out["sources"] = [{"title": s.title, "uri": s.uri} for s in self.sources]
        return out


@dataclass
class AnalysisResponse:
    text: str
    grounding_chunks: list[dict[str, Any]] = field(default_factory=list)  # [{"web": {"title", "uri"}}]
    latency_sec: float = 0.0
    token_count: int | None = None


@dataclass(frozen=True)
class ResonanceResult:
    x: WitInput
    y: WitInput
    auth_void: AuthVoid
    timestamp: float       # epoch milliseconds


def _number(value: Any, name: str) -> float:
    # bool is an int subclass but never a valid percentage
    if isinstance(value, bool):
        raise TypeError(f"{name} must be a number, got bool")
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        return float(value)
    raise TypeError(f"{name} must be a number, got {type(value).__name__}")
