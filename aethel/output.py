"""Rich console rendering and markdown/PNG/WAV export for resonance results."""

import base64
import binascii
import logging
import re
from datetime import datetime
from pathlib import Path

from rich.console import Console
from rich.markdown import Markdown
from rich.markup import escape
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table
from rich.text import Text

from aethel.audio import DecodeError, decode_base64_audio, save_wav
from aethel.models import ResonanceResult, modality_color

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)

_HIGH_THRESHOLD = 70
_LOW_THRESHOLD = 30
_PREVIEW_CHARS = 15

_TRUTH_ROWS = {
    "high": ("TRUE", "FALSE", "TRUE"),
    "mid": ("FALSE", "FALSE", "FALSE"),
    "low": ("FALSE", "TRUE", "TRUE"),
}


def _slug(text: str, max_len: int = 40) -> str:
    """Convert text to a filename-safe slug."""
    slug = re.sub(r"[^\w\s-]", "", text.lower())
    slug = re.sub(r"[\s_-]+", "-", slug).strip("-")
    return slug[:max_len]


def _preview(text: str, chars: int = _PREVIEW_CHARS) -> str:
    return text[:chars] + "..."


def score_band(score: float) -> str:
    """Which truth-table row a resonance score lights up."""
    if score > _HIGH_THRESHOLD:
        return "high"
    if score < _LOW_THRESHOLD:
        return "low"
    return "mid"


def _format_time(timestamp_ms: float) -> str:
    return datetime.fromtimestamp(timestamp_ms / 1000).strftime("%H:%M:%S")


def print_truth_table(score: float) -> None:
    """Print the boolean equivalence matrix with the active row highlighted."""
    active = score_band(score)
    table = Table(title="Internal Logic Matrix", title_style="dim", show_lines=False)
    table.add_column("X ∩ Y")
    table.add_column("¬(X ∪ Y)")
    table.add_column("RES")
    styles = {"high": "bold sky_blue1", "mid": "bold dark_orange", "low": "bold grey70"}
    for band, row in _TRUTH_ROWS.items():
        table.add_row(*row, style=styles[band] if band == active else "grey37")
    console.print(table)


def print_result(result: ResonanceResult) -> None:
    """Print the full analysis for one result."""
    av = result.auth_void
    color = modality_color(av.modality)

    console.print(Rule(f"[bold {color}]Auth-Void // Logic Synthesis[/bold {color}]"))
    console.print(
        Text(
            f"X: {_preview(result.x.data, 40)} | Y: {_preview(result.y.data, 40)} | "
            f"{_format_time(result.timestamp)}",
            style="dim",
        )
    )
    console.print(Panel(Markdown(f"*{av.insight}*"), title="Wit Insight", border_style=color))

    metrics = Table.grid(padding=(0, 4))
    metrics.add_row(
        f"[bold]Score[/bold] {av.resonance_score}%",
        f"[bold]Modality[/bold] [{color}]{escape(av.modality.upper())}[/{color}]",
        f"[bold]Integrity[/bold] [green]{av.integrity}%[/green]",
    )
    console.print(metrics)

    console.print(Panel(Text(av.logic_check), title="XNOR Synthesis", border_style="dim"))
    print_truth_table(av.resonance_score)

    extras: list[str] = [f"Visual prompt: {av.visual_prompt}"]
    extras.append("Image: generated" if av.image_url else "Image: none")
    extras.append("Audio: available" if av.audio_data else "Audio: none")
    console.print(Text("\n".join(extras), style="dim"))

    if av.sources:
        console.print(Rule("[dim]Knowledge Graph Grounding[/dim]"))
        for source in av.sources:
            console.print(f"  [link={source.uri}]{escape(source.title or source.uri)}[/link] [dim]{escape(source.uri)}[/dim]")


def print_history(history: list[ResonanceResult]) -> None:
    """Print the recent-history list, most recent first, numbered from 1."""
    if not history:
        console.print("[dim]No resonance logs yet.[/dim]")
        return
    table = Table(title="Historical Resonance Logs")
    table.add_column("#", justify="right")
    table.add_column("")
    table.add_column("Inputs")
    table.add_column("Time", style="dim")
    table.add_column("Score", justify="right", style="bold sky_blue1")
    for index, item in enumerate(history, start=1):
        color = modality_color(item.auth_void.modality)
        table.add_row(
            str(index),
            f"[{color}]●[/{color}]",
            Text(f"{_preview(item.x.data)} ∩ {_preview(item.y.data)}"),
            _format_time(item.timestamp),
            f"{item.auth_void.resonance_score}%",
        )
    console.print(table)


def save_to_file(
    result: ResonanceResult,
    output_dir: Path,
    slug_override: str | None = None,
    sample_rate: int = 24000,
    channels: int = 1,
) -> Path:
    """Save the result as a markdown report, with image and audio beside it.

    Args:
        result: The completed ResonanceResult.
        output_dir: Directory to save files in.
        slug_override: If provided, use this as the filename stem instead of
            deriving one from the inputs.
        sample_rate: Sample rate of the speech payload.
        channels: Channel count of the speech payload.

    Returns:
        Path to the saved markdown file.
    """
    output_dir.mkdir(parents=True, exist_ok=True)

    av = result.auth_void
    timestamp = datetime.fromtimestamp(result.timestamp / 1000).strftime("%Y%m%d_%H%M%S")
    slug = slug_override if slug_override is not None else _slug(f"{result.x.data} {result.y.data}")
    stem = f"{timestamp}_{slug}"
    filepath = output_dir / f"{stem}.md"

    lines: list[str] = [
        "# Aethel Resonance",
        "",
        f"**Date:** {datetime.fromtimestamp(result.timestamp / 1000).strftime('%Y-%m-%d %H:%M:%S')}",
        f"**Vector X:** {result.x.data}",
        f"**Vector Y:** {result.y.data}",
        f"**Resonance Score:** {av.resonance_score}%",
        f"**Modality:** {av.modality}",
        f"**Integrity:** {av.integrity}%",
        "",
        "---",
        "",
        "## Wit Insight",
        "",
        av.insight,
        "",
        "## XNOR Synthesis",
        "",
        av.logic_check,
        "",
        "## Visual Prompt",
        "",
        av.visual_prompt,
        "",
    ]

    if av.image_url:
        image_path = output_dir / f"{stem}.png"
        try:
            _, marker, encoded = av.image_url.partition("base64,")
            if not marker:
                raise ValueError(f"not a base64 data URI: {av.image_url[:40]}")
            image_path.write_bytes(base64.b64decode(encoded, validate=True))
        except (binascii.Error, ValueError) as exc:
            logger.warning("Image not exported: %s", exc)
        else:
            lines += [f"![Resonance]({image_path.name})", ""]

    if av.audio_data:
        audio_path = output_dir / f"{stem}.wav"
        try:
            save_wav(decode_base64_audio(av.audio_data, sample_rate, channels), audio_path)
        except DecodeError as exc:
            logger.warning("Audio not exported: %s", exc)
        else:
            lines += [f"**Audio:** [{audio_path.name}]({audio_path.name})", ""]

    if av.sources:
        lines += ["## Sources", ""]
        lines += [f"- [{s.title or s.uri}]({s.uri})" for s in av.sources]
        lines.append("")

    filepath.write_text("\n".join(lines), encoding="utf-8")
    logger.info("Resonance saved to: %s", filepath)
    return filepath
