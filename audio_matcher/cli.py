"""Command-line interface for audio-matcher using Typer.

Features:
- `align` command locating the content of a raw recording inside its edit
  and exporting the result as label track, JSON or CSV.
- `map-labels` command carrying chapter or track labels from the raw
  recording onto the edited one.
- Options for every matcher tunable, decoder selection and verbosity.
"""

import pathlib
from typing import Annotated

import typer

from audio_matcher import __version__
from audio_matcher.config import MatcherConfig, OutputConfig, PeakConfig, UIConfig
from audio_matcher.runner import cli_align, cli_map_labels
from audio_matcher.utils.constant import (
    DEFAULT_CHUNK_DURATION_SEC,
    DEFAULT_DECODER,
    DEFAULT_LABEL_PATTERN,
    DEFAULT_LAG_TOLERANCE_SEC,
    DEFAULT_MAX_CANDIDATES,
    DEFAULT_MAX_IN_FLIGHT,
    DEFAULT_MIN_COVERAGE,
    DEFAULT_OVERLAP,
    DEFAULT_PEAK_DISTANCE_SEC,
    DEFAULT_PEAK_PROMINENCE,
    DEFAULT_PEAK_THRESHOLD,
    DEFAULT_REFINE_BLOCK_SEC,
    DEFAULT_SAMPLE_RATE,
    DEFAULT_SCORE_TIE_TOLERANCE,
    DEFAULT_SEARCH_WINDOW_SEC,
    DEFAULT_WORKERS,
)


def version_callback(value: bool) -> None:
    """Show the application's version and exit.

    Args:
        value: When True, print the version and exit.

    Raises:
        typer.Exit: Always raised after printing when value is True.

    """
    if value:
        print(f"audio-matcher version: {__version__}")
        raise typer.Exit()


app = typer.Typer(
    name="audio-matcher",
    help="Align an edited recording against its raw capture and export edit markers.",
    add_completion=False,
)


# Options shared by every command that runs an alignment.
ReferenceArg = Annotated[
    pathlib.Path,
    typer.Argument(
        help="Unedited raw recording.", exists=True, dir_okay=False, show_default=False
    ),
]
TargetArg = Annotated[
    pathlib.Path,
    typer.Argument(
        help="Edited recording to locate the raw content in.",
        exists=True,
        dir_okay=False,
        show_default=False,
    ),
]
OutputDirOpt = Annotated[
    pathlib.Path,
    typer.Option(
        "--output-dir",
        "-o",
        help="Directory to save the outputs.",
        file_okay=False,
        dir_okay=True,
        writable=True,
        resolve_path=True,
    ),
]
DecoderOpt = Annotated[
    str,
    typer.Option(help="Decoder: auto, ffmpeg, soundfile or pydub.", case_sensitive=False),
]
SampleRateOpt = Annotated[int, typer.Option(help="Rate (Hz) both recordings are decoded to.")]
ChunkDurationOpt = Annotated[float, typer.Option(help="Reference chunk length in seconds.")]
OverlapOpt = Annotated[
    float, typer.Option(help="Overlap fraction between consecutive chunks, in [0, 1).")
]
SearchWindowOpt = Annotated[
    float, typer.Option(help="Seconds searched either side of the running offset estimate.")
]
ThresholdOpt = Annotated[
    float, typer.Option("--threshold", help="Minimum normalized correlation of a match.")
]
ProminenceOpt = Annotated[
    float, typer.Option("--prominence", help="Minimum prominence of a correlation peak.")
]
PeakDistanceOpt = Annotated[
    float, typer.Option("--peak-distance", help="Minimum seconds between two peaks.")
]
MaxCandidatesOpt = Annotated[
    int, typer.Option(help="Peaks kept per reference chunk and target window.")
]
WorkersOpt = Annotated[int, typer.Option(help="Worker threads (0 = one per CPU).")]
MaxInFlightOpt = Annotated[int, typer.Option(help="Maximum chunk pairs resident at once.")]
RefineBlockOpt = Annotated[
    float, typer.Option(help="Edge refinement resolution in seconds (0 disables).")
]
TieToleranceOpt = Annotated[
    float, typer.Option(help="Peak scores closer than this count as tied.")
]
LagToleranceOpt = Annotated[
    float, typer.Option(help="Seconds of lag difference under which segments merge.")
]
BacktrackOpt = Annotated[
    float | None,
    typer.Option(
        help="Seconds a match may start before the previous one ends (default: one chunk).",
        show_default=False,
    ),
]
FallbackOpt = Annotated[
    bool,
    typer.Option(
        "--full-search-fallback/--no-full-search-fallback",
        help="Search the whole target for chunks the windowed search missed.",
    ),
]
MinCoverageOpt = Annotated[
    float, typer.Option(help="Coverage fraction below which the run is retried or flagged.")
]
RetriesOpt = Annotated[
    int, typer.Option(help="Retries with relaxed thresholds while coverage is too low.")
]
OverwriteOpt = Annotated[
    bool,
    typer.Option(
        "--overwrite",
        help="Overwrite existing output files instead of appending numbered suffixes.",
    ),
]
DryRunOpt = Annotated[
    bool, typer.Option("--dry-run", help="Print the output instead of writing it.")
]
NoProgressOpt = Annotated[
    bool, typer.Option("--no-progress", help="Disable the Rich progress bar (silent mode).")
]
QuietOpt = Annotated[
    bool,
    typer.Option(
        "--quiet", help="Suppress console messages except errors and the final output."
    ),
]
VerboseOpt = Annotated[bool, typer.Option("--verbose", help="Enable verbose output.")]


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            help="Show the application's version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
) -> None:
    """Show help when no subcommand is given.

    Args:
        ctx: Typer context.
        version: Whether to print version and exit.

    Raises:
        typer.Exit: Raised to terminate after displaying help or version.

    """
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


def _build_matcher_config(
    *,
    chunk_duration: float,
    overlap: float,
    search_window: float,
    threshold: float,
    prominence: float,
    peak_distance: float,
    max_candidates: int,
    workers: int,
    max_in_flight: int,
    refine_block: float,
    score_tie_tolerance: float,
    lag_tolerance: float,
    backtrack_tolerance: float | None,
    full_search_fallback: bool,
) -> MatcherConfig:
    """Group the matcher options, rejecting out-of-range values as bad parameters."""
    config = MatcherConfig(
        chunk_duration=chunk_duration,
        overlap=overlap,
        search_window=search_window,
        peak=PeakConfig(
            threshold=threshold,
            prominence=prominence,
            distance=peak_distance,
            max_candidates=max_candidates,
        ),
        workers=workers,
        max_in_flight=max_in_flight,
        refine_block=refine_block,
        score_tie_tolerance=score_tie_tolerance,
        lag_tolerance=lag_tolerance,
        backtrack_tolerance=backtrack_tolerance,
        full_search_fallback=full_search_fallback,
    )
    try:
        config.validate()
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    return config


@app.command()
def align(
    reference: ReferenceArg,
    target: TargetArg,
    # Outputs
    output_dir: OutputDirOpt = "./output",
    output_format: Annotated[
        str, typer.Option(help="Format of the output file (labels, json or csv).")
    ] = "labels",
    timeline: Annotated[
        str,
        typer.Option(help="Timeline the labels are placed on: target or reference."),
    ] = "target",
    label_pattern: Annotated[
        str, typer.Option(help="Name of match labels; '#' is replaced by the number.")
    ] = DEFAULT_LABEL_PATTERN,
    overwrite: OverwriteOpt = False,
    dry_run: DryRunOpt = False,
    # Decoding
    decoder: DecoderOpt = DEFAULT_DECODER,
    sample_rate: SampleRateOpt = DEFAULT_SAMPLE_RATE,
    # Matching
    chunk_duration: ChunkDurationOpt = DEFAULT_CHUNK_DURATION_SEC,
    overlap: OverlapOpt = DEFAULT_OVERLAP,
    search_window: SearchWindowOpt = DEFAULT_SEARCH_WINDOW_SEC,
    threshold: ThresholdOpt = DEFAULT_PEAK_THRESHOLD,
    prominence: ProminenceOpt = DEFAULT_PEAK_PROMINENCE,
    peak_distance: PeakDistanceOpt = DEFAULT_PEAK_DISTANCE_SEC,
    max_candidates: MaxCandidatesOpt = DEFAULT_MAX_CANDIDATES,
    refine_block: RefineBlockOpt = DEFAULT_REFINE_BLOCK_SEC,
    score_tie_tolerance: TieToleranceOpt = DEFAULT_SCORE_TIE_TOLERANCE,
    lag_tolerance: LagToleranceOpt = DEFAULT_LAG_TOLERANCE_SEC,
    backtrack_tolerance: BacktrackOpt = None,
    full_search_fallback: FallbackOpt = True,
    min_coverage: MinCoverageOpt = DEFAULT_MIN_COVERAGE,
    retries: RetriesOpt = 0,
    # Performance
    workers: WorkersOpt = DEFAULT_WORKERS,
    max_in_flight: MaxInFlightOpt = DEFAULT_MAX_IN_FLIGHT,
    # UX and logging
    no_progress: NoProgressOpt = False,
    quiet: QuietOpt = False,
    verbose: VerboseOpt = False,
) -> pathlib.Path | None:
    """Align TARGET against REFERENCE and export the segments.

    Returns:
        The created output path, or ``None`` on a dry run.

    Raises:
        typer.BadParameter: When a tunable is out of range.

    """
    matcher_config = _build_matcher_config(
        chunk_duration=chunk_duration,
        overlap=overlap,
        search_window=search_window,
        threshold=threshold,
        prominence=prominence,
        peak_distance=peak_distance,
        max_candidates=max_candidates,
        workers=workers,
        max_in_flight=max_in_flight,
        refine_block=refine_block,
        score_tie_tolerance=score_tie_tolerance,
        lag_tolerance=lag_tolerance,
        backtrack_tolerance=backtrack_tolerance,
        full_search_fallback=full_search_fallback,
    )
    if timeline not in ("target", "reference"):
        raise typer.BadParameter(f"timeline must be 'target' or 'reference', got '{timeline}'")

    return cli_align(
        reference=reference,
        target=target,
        matcher_config=matcher_config,
        output_config=OutputConfig(
            output_dir=pathlib.Path(output_dir),
            output_format=output_format,
            timeline=timeline,
            label_pattern=label_pattern,
            overwrite=overwrite,
            dry_run=dry_run,
        ),
        ui_config=UIConfig(verbose=verbose, quiet=quiet, no_progress=no_progress),
        decoder=decoder,
        sample_rate=sample_rate,
        min_coverage=min_coverage,
        retries=retries,
    )


@app.command("map-labels")
def map_labels_command(
    reference: ReferenceArg,
    target: TargetArg,
    labels: Annotated[
        pathlib.Path,
        typer.Argument(
            help="Audacity label track positioned on the reference.",
            exists=True,
            dir_okay=False,
            show_default=False,
        ),
    ],
    output_dir: OutputDirOpt = "./output",
    overwrite: OverwriteOpt = False,
    dry_run: DryRunOpt = False,
    decoder: DecoderOpt = DEFAULT_DECODER,
    sample_rate: SampleRateOpt = DEFAULT_SAMPLE_RATE,
    chunk_duration: ChunkDurationOpt = DEFAULT_CHUNK_DURATION_SEC,
    overlap: OverlapOpt = DEFAULT_OVERLAP,
    search_window: SearchWindowOpt = DEFAULT_SEARCH_WINDOW_SEC,
    threshold: ThresholdOpt = DEFAULT_PEAK_THRESHOLD,
    prominence: ProminenceOpt = DEFAULT_PEAK_PROMINENCE,
    peak_distance: PeakDistanceOpt = DEFAULT_PEAK_DISTANCE_SEC,
    max_candidates: MaxCandidatesOpt = DEFAULT_MAX_CANDIDATES,
    refine_block: RefineBlockOpt = DEFAULT_REFINE_BLOCK_SEC,
    score_tie_tolerance: TieToleranceOpt = DEFAULT_SCORE_TIE_TOLERANCE,
    lag_tolerance: LagToleranceOpt = DEFAULT_LAG_TOLERANCE_SEC,
    backtrack_tolerance: BacktrackOpt = None,
    full_search_fallback: FallbackOpt = True,
    min_coverage: MinCoverageOpt = DEFAULT_MIN_COVERAGE,
    retries: RetriesOpt = 0,
    workers: WorkersOpt = DEFAULT_WORKERS,
    max_in_flight: MaxInFlightOpt = DEFAULT_MAX_IN_FLIGHT,
    no_progress: NoProgressOpt = False,
    quiet: QuietOpt = False,
    verbose: VerboseOpt = False,
) -> pathlib.Path | None:
    """Carry LABELS from REFERENCE onto the timeline of TARGET.

    Labels inside cut content are dropped; labels crossing a cut are clipped.

    Returns:
        The created label track, or ``None`` on a dry run.

    """
    matcher_config = _build_matcher_config(
        chunk_duration=chunk_duration,
        overlap=overlap,
        search_window=search_window,
        threshold=threshold,
        prominence=prominence,
        peak_distance=peak_distance,
        max_candidates=max_candidates,
        workers=workers,
        max_in_flight=max_in_flight,
        refine_block=refine_block,
        score_tie_tolerance=score_tie_tolerance,
        lag_tolerance=lag_tolerance,
        backtrack_tolerance=backtrack_tolerance,
        full_search_fallback=full_search_fallback,
    )
    return cli_map_labels(
        reference=reference,
        target=target,
        labels=labels,
        matcher_config=matcher_config,
        output_config=OutputConfig(
            output_dir=pathlib.Path(output_dir), overwrite=overwrite, dry_run=dry_run
        ),
        ui_config=UIConfig(verbose=verbose, quiet=quiet, no_progress=no_progress),
        decoder=decoder,
        sample_rate=sample_rate,
        min_coverage=min_coverage,
        retries=retries,
    )


if __name__ == "__main__":  # pragma: no cover
    app()
