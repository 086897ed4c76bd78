"""CLI-facing alignment orchestration."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager, nullcontext
from pathlib import Path

import typer
from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from audio_matcher.audio.decoders import get_decoder
from audio_matcher.audio.streams import SampleStream
from audio_matcher.config import MatcherConfig, OutputConfig, UIConfig
from audio_matcher.errors import (
    AlignmentCancelled,
    DecodeError,
    InvalidConfiguration,
    SampleRateMismatch,
)
from audio_matcher.formatting import get_formatter_spec
from audio_matcher.labels import format_labels, map_labels, read_labels, write_labels
from audio_matcher.matching.engine import align_with_retry, relaxation_schedule
from audio_matcher.matching.models import Alignment
from audio_matcher.utils.cancel import install_signal_handlers
from audio_matcher.utils.file_utils import get_unique_filename, is_supported_audio
from audio_matcher.utils.logging_config import configure_logging

logger = logging.getLogger(__name__)


def _display_settings(  # pragma: no cover - formatting helper
    reference: Path,
    target: Path,
    decoder: str,
    sample_rate: int,
    matcher_config: MatcherConfig,
    output_config: OutputConfig,
    min_coverage: float,
    retries: int,
) -> None:
    """Render the effective configuration as a Rich table."""
    console = Console()
    table = Table(title="CLI Settings", show_header=True, header_style="bold magenta")
    table.add_column("Category", style="cyan", no_wrap=True)
    table.add_column("Setting", style="green")
    table.add_column("Value", style="yellow")

    table.add_row("Input", "Reference", str(reference))
    table.add_row("Input", "Target", str(target))
    table.add_row("Input", "Decoder", decoder)
    table.add_row("Input", "Sample Rate (Hz)", str(sample_rate))

    table.add_row("Chunking", "Chunk Duration (s)", str(matcher_config.chunk_duration))
    table.add_row("Chunking", "Overlap", str(matcher_config.overlap))
    table.add_row("Chunking", "Search Window (s)", str(matcher_config.search_window))

    peak = matcher_config.peak
    table.add_row("Peaks", "Threshold", str(peak.threshold))
    table.add_row("Peaks", "Prominence", str(peak.prominence))
    table.add_row("Peaks", "Distance (s)", str(peak.distance))
    table.add_row("Peaks", "Max Candidates", str(peak.max_candidates))

    table.add_row("Assembly", "Refine Block (s)", str(matcher_config.refine_block))
    table.add_row("Assembly", "Lag Tolerance (s)", str(matcher_config.lag_tolerance))
    table.add_row("Assembly", "Backtrack (s)", str(matcher_config.effective_backtrack))
    table.add_row("Assembly", "Min Coverage", f"{min_coverage:.0%}")
    table.add_row("Assembly", "Retries", str(retries))

    workers = matcher_config.workers or "auto"
    table.add_row("Performance", "Workers", str(workers))
    table.add_row("Performance", "Max In Flight", str(matcher_config.max_in_flight))

    table.add_row("Output", "Directory", str(output_config.output_dir))
    table.add_row("Output", "Format", output_config.output_format)
    table.add_row("Output", "Timeline", output_config.timeline)
    table.add_row("Output", "Overwrite", str(output_config.overwrite))
    table.add_row("Output", "Dry Run", str(output_config.dry_run))

    console.print(table)


def _display_summary(alignment: Alignment) -> None:  # pragma: no cover - formatting helper
    """Print one row per segment plus the overall coverage."""
    console = Console()
    table = Table(title="Alignment", show_header=True, header_style="bold magenta")
    table.add_column("Kind", style="cyan", no_wrap=True)
    table.add_column("Reference", style="green")
    table.add_column("Target", style="green")
    table.add_column("Confidence", style="yellow", justify="right")

    for seg in alignment.segments:
        target = seg.target_range
        table.add_row(
            seg.kind.value,
            f"{seg.ref_range.start:9.3f} - {seg.ref_range.end:9.3f}",
            "" if target is None else f"{target.start:9.3f} - {target.end:9.3f}",
            f"{seg.confidence:.3f}",
        )
    console.print(table)
    console.print(f"Coverage: [bold]{alignment.coverage:.1%}[/bold]")


@contextmanager
def _open_streams(
    decoder_name: str, sample_rate: int, *paths: Path
) -> Iterator[list[SampleStream]]:
    """Decode *paths* and close file-backed streams afterwards."""
    try:
        decoder = get_decoder(decoder_name, sample_rate)
    except ValueError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    streams: list[SampleStream] = []
    try:
        for path in paths:
            if not is_supported_audio(path):
                logger.warning(f"{path.name}: unrecognised extension, trying to decode anyway")
            streams.append(decoder.open(path))
        yield streams
    except DecodeError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    finally:
        for stream in streams:
            close = getattr(stream, "close", None)
            if close is not None:
                close()


def _run_alignment(
    reference: SampleStream,
    target: SampleStream,
    matcher_config: MatcherConfig,
    ui_config: UIConfig,
    min_coverage: float,
    retries: int,
) -> Alignment:
    cancel_event = threading.Event()
    if threading.current_thread() is threading.main_thread():
        install_signal_handlers(cancel_event)

    progress_cm = (
        nullcontext()
        if ui_config.no_progress or ui_config.quiet
        else Progress(
            SpinnerColumn(),
            BarColumn(bar_width=None),
            TaskProgressColumn(),
            TimeElapsedColumn(),
            TextColumn("[progress.description]{task.description}"),
            transient=False,
        )
    )
    with progress_cm as progress:
        task = None if progress is None else progress.add_task("Aligning...", total=None)

        def on_progress(done: int, total: int) -> None:
            if progress is not None:
                progress.update(task, completed=done, total=total)

        try:
            return align_with_retry(
                reference,
                target,
                relaxation_schedule(matcher_config, retries),
                min_coverage,
                cancel_event=cancel_event,
                progress_callback=on_progress,
            )
        except (InvalidConfiguration, SampleRateMismatch) as exc:
            typer.echo(f"Error: {exc}", err=True)
            raise typer.Exit(code=1) from exc
        except AlignmentCancelled as exc:
            typer.echo(f"Cancelled: {exc}", err=True)
            raise typer.Exit(code=130) from exc


def _emit(text: str, path: Path, output_config: OutputConfig, quiet: bool) -> Path | None:
    """Write *text* to a unique path, or print it on a dry run."""
    if output_config.dry_run:
        typer.echo(f'writing: """\n{text}\n""" > {path}')
        return None
    path = get_unique_filename(path, overwrite=output_config.overwrite)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    if not quiet:
        typer.echo(f'Created "{path}"')
    return path


def cli_align(
    *,
    reference: Path,
    target: Path,
    matcher_config: MatcherConfig,
    output_config: OutputConfig,
    ui_config: UIConfig,
    decoder: str,
    sample_rate: int,
    min_coverage: float = 0.0,
    retries: int = 0,
) -> Path | None:
    """Align *target* against *reference* and write the rendered alignment.

    Parameters:
        reference (Path): Unedited recording.
        target (Path): Edited recording.
        matcher_config (MatcherConfig): Engine tunables.
        output_config (OutputConfig): Output format, location and timeline.
        ui_config (UIConfig): Logging and progress settings.
        decoder (str): Decoder name, see :data:`~audio_matcher.audio.decoders.DECODERS`.
        sample_rate (int): Rate both recordings are decoded to.
        min_coverage (float): Coverage below which the run is retried.
        retries (int): Number of relaxed retries after the first attempt.

    Returns:
        Path | None: The written file, or ``None`` on a dry run.

    Raises:
        typer.Exit: On invalid settings, decode failures or cancellation.
    """
    configure_logging(verbose=ui_config.verbose, quiet=ui_config.quiet)

    try:
        spec = get_formatter_spec(output_config.output_format)
    except ValueError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    if not ui_config.quiet:
        _display_settings(
            reference,
            target,
            decoder,
            sample_rate,
            matcher_config,
            output_config,
            min_coverage,
            retries,
        )
        typer.echo()

    t0 = time.perf_counter()
    with _open_streams(decoder, sample_rate, reference, target) as (ref_stream, tgt_stream):
        alignment = _run_alignment(
            ref_stream, tgt_stream, matcher_config, ui_config, min_coverage, retries
        )

    if not ui_config.quiet:
        _display_summary(alignment)
    if not alignment.is_acceptable(min_coverage):
        typer.secho(
            f"Warning: coverage {alignment.coverage:.1%} is below {min_coverage:.1%}",
            fg=typer.colors.YELLOW,
            err=True,
        )

    try:
        text = spec.format_func(
            alignment,
            timeline=output_config.timeline,
            label_pattern=output_config.label_pattern,
        )
    except ValueError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    out_path = output_config.output_dir / f"{target.stem}{spec.file_extension}"
    created = _emit(text, out_path, output_config, ui_config.quiet)
    if ui_config.verbose and not ui_config.quiet:
        typer.echo(f"[timing] total_wall={time.perf_counter() - t0:.2f}s")
    return created


def cli_map_labels(
    *,
    reference: Path,
    target: Path,
    labels: Path,
    matcher_config: MatcherConfig,
    output_config: OutputConfig,
    ui_config: UIConfig,
    decoder: str,
    sample_rate: int,
    min_coverage: float = 0.0,
    retries: int = 0,
) -> Path | None:
    """Align the recordings and carry *labels* from the reference onto the target.

    Returns:
        Path | None: The written label track, or ``None`` on a dry run.

    Raises:
        typer.Exit: On unreadable labels, decode failures or cancellation.
    """
    configure_logging(verbose=ui_config.verbose, quiet=ui_config.quiet)

    try:
        source_labels = read_labels(labels)
    except OSError as exc:
        typer.echo(f"Error: cannot read labels '{labels}': {exc}", err=True)
        raise typer.Exit(code=1) from exc
    if not source_labels:
        typer.echo(f"Error: no labels found in '{labels}'", err=True)
        raise typer.Exit(code=1)

    with _open_streams(decoder, sample_rate, reference, target) as (ref_stream, tgt_stream):
        alignment = _run_alignment(
            ref_stream, tgt_stream, matcher_config, ui_config, min_coverage, retries
        )

    mapped = map_labels(alignment, source_labels)
    if not ui_config.quiet:
        typer.echo(
            f"Mapped {len(mapped)} of {len(source_labels)} label(s) "
            f"(coverage {alignment.coverage:.1%})"
        )

    out_path = output_config.output_dir / f"{labels.stem}-{target.stem}.txt"
    if output_config.dry_run:
        return _emit(format_labels(mapped), out_path, output_config, quiet=True)
    out_path = get_unique_filename(out_path, overwrite=output_config.overwrite)
    created = write_labels(mapped, out_path)
    if not ui_config.quiet:
        typer.echo(f'Created "{created}"')
    return created
