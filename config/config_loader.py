"""Load settings.yaml into typed dataclasses. Records which models have API keys."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

_SETTINGS_PATH = Path(__file__).parent / "settings.yaml"


@dataclass
class ModelConfig:
    name: str              # "analysis", "image" or "speech"
    model: str
    api_key_env: str
    timeout_sec: int | None = None
    options: dict = field(default_factory=dict)


@dataclass
class PromptsConfig:
    analysis: str
    image: str
    speech: str


@dataclass
class DefaultsConfig:
    history_limit: int
    sample_rate: int
    channels: int
    output_dir: Path


@dataclass
class AppConfig:
    defaults: DefaultsConfig
    models: dict[str, ModelConfig]
    prompts: PromptsConfig
    available_models: set[str] = field(default_factory=set)


def load_config(settings_path: Path = _SETTINGS_PATH) -> AppConfig:
    """Load and validate configuration from settings.yaml.

    Raises FileNotFoundError if settings file missing.
    Logs missing API keys but does not raise; callers check
    available_models before building providers.
    """
    if not settings_path.exists():
        raise FileNotFoundError(f"Settings file not found: {settings_path}")

    with settings_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)

    defaults_raw = raw["defaults"]
    defaults = DefaultsConfig(
        history_limit=int(defaults_raw.get("history_limit", 10)),
        sample_rate=int(defaults_raw.get("sample_rate", 24000)),
        channels=int(defaults_raw.get("channels", 1)),
        output_dir=Path(defaults_raw["output_dir"]),
    )

    prompts_raw = raw["prompts"]
    prompts = PromptsConfig(
        analysis=prompts_raw["analysis"],
        image=prompts_raw["image"],
        speech=prompts_raw["speech"],
    )

    models: dict[str, ModelConfig] = {}
    available_models: set[str] = set()

    for role, model_raw in raw["models"].items():
        timeout_raw = model_raw.get("timeout_sec")
        model_cfg = ModelConfig(
            name=role,
            model=model_raw["model"],
            api_key_env=model_raw["api_key_env"],
            timeout_sec=int(timeout_raw) if timeout_raw is not None else None,
            options=dict(model_raw.get("options") or {}),
        )
        models[role] = model_cfg

        api_key = os.environ.get(model_raw["api_key_env"], "").strip()
        if api_key:
            available_models.add(role)
            logger.debug("Model available: %s (%s)", role, model_cfg.model)
        else:
            logger.info(
                "Model skipped (no API key): %s, set %s in .env",
                role,
                model_raw["api_key_env"],
            )

    return AppConfig(
        defaults=defaults,
        models=models,
        prompts=prompts,
        available_models=available_models,
    )
