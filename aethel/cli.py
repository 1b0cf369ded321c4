"""Click CLI: config loading, model selection, health check, one-shot or interactive session."""

import asyncio
import contextlib
import itertools
import logging
import sys
from pathlib import Path

import click
from dotenv import load_dotenv
from rich.logging import RichHandler
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

from config.config_loader import AppConfig, ModelConfig, load_config
from aethel.healthcheck import ping_analyzer
from aethel.models import ResonanceResult
from aethel.output import console, print_history, print_result, save_to_file
from aethel.playback import AudioPlayer
from aethel.providers.base import ImageSynthesizer, SpeechSynthesizer, TextAnalyzer
from aethel.providers.gemini import GeminiImageSynthesizer, GeminiSpeechSynthesizer, GeminiTextAnalyzer
from aethel.resonance import ResonanceClient
from aethel.session import SessionState

logger = logging.getLogger(__name__)

PROVIDER_CLASSES: dict[str, type] = {
    "analysis": GeminiTextAnalyzer,
    "image": GeminiImageSynthesizer,
    "speech": GeminiSpeechSynthesizer,
}

_STATUSES = (
    "λ-CALCULUS: INITIALIZING...",
    "EXTRACTING SEMANTIC VECTORS...",
    "X ∩ Y: CALCULATING INTERSECTION...",
    "¬(X ∪ Y): CALCULATING VOID SPACE...",
    "XNOR SYNTHESIS: EVALUATING MODALITY...",
    "GROUNDING VIA GOOGLE KNOWLEDGE GRAPH...",
    "VOICING WIT-PRIME DEDUCTION...",
)
_STATUS_INTERVAL_SEC = 2.5

_INTERACTIVE_HELP = (
    "Commands: :history, :select N, :play, :save, :quit. "
    "Press Enter to keep the current input."
)


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )


def _build_provider(config: AppConfig, role: str):
    """Instantiate the provider for a role, or None when it is unavailable."""
    if role not in config.available_models:
        return None
    model_cfg: ModelConfig = config.models[role]
    try:
        return PROVIDER_CLASSES[role](model_cfg)
    except Exception as exc:
        logger.warning("Failed to instantiate %s model '%s': %s", role, model_cfg.model, exc)
        return None


def _build_client(config: AppConfig, use_image: bool, use_speech: bool) -> tuple[TextAnalyzer, ResonanceClient]:
    analyzer: TextAnalyzer | None = _build_provider(config, "analysis")
    if analyzer is None:
        console.print("[bold red]Error:[/bold red] Analysis model unavailable. Check API keys in .env.")
        sys.exit(1)

    image: ImageSynthesizer | None = _build_provider(config, "image") if use_image else None
    speech: SpeechSynthesizer | None = _build_provider(config, "speech") if use_speech else None
    if use_image and image is None:
        logger.warning("Image synthesis disabled: no usable image model")
    if use_speech and speech is None:
        logger.warning("Speech synthesis disabled: no usable speech model")

    client = ResonanceClient(analyzer=analyzer, prompts=config.prompts, image=image, speech=speech)
    return analyzer, client


def _check_analyzer(analyzer: TextAnalyzer) -> None:
    """Ping the analysis model; ask the user whether to go on if it fails."""
    console.print("\n[bold]Checking analysis model...[/bold]")
    name = analyzer.model_string()
    ok, err = asyncio.run(ping_analyzer(analyzer))
    if ok:
        console.print(f"  [green]OK  [/green] {name}\n")
        return
    short_err = err.splitlines()[0][:120] if err else "unknown error"
    console.print(f"  [red]FAIL[/red] {name}: {escape(short_err)}")

    if not click.confirm("Continue anyway?", default=False):
        sys.exit(1)
    console.print()


async def _cycle_status(progress: Progress, task_id) -> None:
    for status in itertools.cycle(_STATUSES):
        progress.update(task_id, description=status)
        await asyncio.sleep(_STATUS_INTERVAL_SEC)


async def _submit_with_progress(session: SessionState) -> ResonanceResult | None:
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    ) as progress:
        task_id = progress.add_task(_STATUSES[0], total=None)
        ticker = asyncio.create_task(_cycle_status(progress, task_id))
        try:
            return await session.submit()
        finally:
            ticker.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await ticker


def _save(session: SessionState, config: AppConfig, output_dir: Path) -> None:
    if session.current is None:
        console.print("[dim]Nothing to save yet.[/dim]")
        return
    saved_path = save_to_file(
        session.current,
        output_dir,
        sample_rate=config.defaults.sample_rate,
        channels=config.defaults.channels,
    )
    console.print(f"[dim]Saved to: {saved_path}[/dim]")


async def _run_once(
    session: SessionState,
    config: AppConfig,
    save: bool,
    output_dir: Path,
) -> int:
    result = await _submit_with_progress(session)
    if result is None:
        console.print(f"[bold red]Error:[/bold red] {escape(session.error or '')}")
        return 1

    print_result(result)
    if save:
        _save(session, config, output_dir)
    return 0


async def _run_interactive(session: SessionState, config: AppConfig, output_dir: Path) -> None:
    """Read-eval loop over one session; history lives until the process exits."""
    console.print(f"[bold cyan]AETHEL_[/bold cyan] interactive session. [dim]{_INTERACTIVE_HELP}[/dim]\n")

    while True:
        line = click.prompt("Stream Alpha", default=session.input_x, show_default=False).strip()

        if line in (":quit", ":q"):
            return
        if line == ":history":
            print_history(session.history)
            continue
        if line.startswith(":select"):
            _, _, arg = line.partition(" ")
            try:
                index = int(arg)
                if index < 1:
                    raise IndexError(index)
                item = session.history[index - 1]
            except (ValueError, IndexError):
                console.print(f"[red]No history entry '{escape(arg)}'[/red] ({len(session.history)} stored)")
                continue
            session.select_history(item)
            print_result(item)
            continue
        if line == ":play":
            if session.replay_audio() is None:
                console.print("[dim]No audio for the current result.[/dim]")
            continue
        if line == ":save":
            _save(session, config, output_dir)
            continue
        if line.startswith(":"):
            console.print(f"[red]Unknown command {escape(line)}[/red]. {_INTERACTIVE_HELP}")
            continue

        session.input_x = line
        session.input_y = click.prompt("Stream Beta", default=session.input_y, show_default=False).strip()
        if not session.can_submit:
            console.print("[yellow]Both streams need text.[/yellow]")
            continue

        result = await _submit_with_progress(session)
        if result is None:
            console.print(f"[bold red]Error:[/bold red] {escape(session.error or '')}")
            continue
        print_result(result)


@click.command()
@click.argument("stream_x", required=False)
@click.argument("stream_y", required=False)
@click.option("--interactive", "-i", is_flag=True, help="Keep a session open with history and replay")
@click.option("--no-image", is_flag=True, help="Skip image synthesis")
@click.option("--no-speech", is_flag=True, help="Skip speech synthesis")
@click.option("--play/--no-play", default=True, help="Play the spoken insight when it arrives (default: play)")
@click.option("--save", is_flag=True, help="Save the result as markdown (plus PNG/WAV) in the output directory")
@click.option("--output", "output_path", default=None, help="Output directory (default: from config)")
@click.option("--verbose", is_flag=True, help="Enable DEBUG-level logging")
@click.option("--skip-health-check", is_flag=True, default=False,
              help="Skip the API connectivity check at startup")
def main(
    stream_x: str | None,
    stream_y: str | None,
    interactive: bool,
    no_image: bool,
    no_speech: bool,
    play: bool,
    save: bool,
    output_path: str | None,
    verbose: bool,
    skip_health_check: bool,
) -> None:
    """Aethel -- resonance analysis between two streams of text.

    \b
    Examples:
      aethel "Silence" "Music"
      aethel "Entropy" "Memory" --save --no-play
      aethel "Ocean" "Desert" --no-image --no-speech
      aethel --interactive
    """
    # Model responses carry λ, ∩ and friends; keep the Windows console from choking on them.
    if sys.platform == "win32":
        if hasattr(sys.stdout, "reconfigure"):
            sys.stdout.reconfigure(encoding="utf-8", errors="replace")
        if hasattr(sys.stderr, "reconfigure"):
            sys.stderr.reconfigure(encoding="utf-8", errors="replace")

    load_dotenv()
    _setup_logging(verbose)

    try:
        config = load_config()
    except FileNotFoundError as exc:
        console.print(f"[bold red]Config error:[/bold red] {exc}")
        sys.exit(1)

    if not interactive and not (stream_x and stream_y):
        console.print("[bold red]Error:[/bold red] Provide STREAM_X and STREAM_Y, or use --interactive.")
        sys.exit(1)

    effective_output = Path(output_path) if output_path else config.defaults.output_dir

    analyzer, client = _build_client(config, use_image=not no_image, use_speech=not no_speech)

    if not skip_health_check:
        _check_analyzer(analyzer)

    player = AudioPlayer(sample_rate=config.defaults.sample_rate, channels=config.defaults.channels) if play else None
    session = SessionState(client, player=player, history_limit=config.defaults.history_limit)

    if interactive:
        session.input_x = stream_x or ""
        session.input_y = stream_y or ""
        try:
            asyncio.run(_run_interactive(session, config, effective_output))
        except (click.Abort, EOFError):
            console.print()
        return

    session.input_x = stream_x
    session.input_y = stream_y
    exit_code = asyncio.run(_run_once(session, config, save, effective_output))

    # Playback is fire-and-forget inside the session; wait here so the process outlives it.
    if session.last_playback is not None:
        session.last_playback.join()
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
