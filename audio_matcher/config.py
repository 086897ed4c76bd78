"""Configuration dataclasses for the alignment pipeline.

This module defines configuration objects that group related settings,
reducing parameter explosion. Only values live here; loading them from the
command line or the environment is the caller's job.
"""

from __future__ import annotations

import dataclasses
import math
from dataclasses import dataclass, field
from pathlib import Path

from audio_matcher.errors import InvalidConfiguration
from audio_matcher.utils.constant import (
    DEFAULT_CHUNK_DURATION_SEC,
    DEFAULT_LABEL_PATTERN,
    DEFAULT_LAG_TOLERANCE_SEC,
    DEFAULT_MAX_CANDIDATES,
    DEFAULT_MAX_IN_FLIGHT,
    DEFAULT_OVERLAP,
    DEFAULT_PEAK_DISTANCE_SEC,
    DEFAULT_PEAK_PROMINENCE,
    DEFAULT_PEAK_THRESHOLD,
    DEFAULT_REFINE_BLOCK_SEC,
    DEFAULT_SCORE_TIE_TOLERANCE,
    DEFAULT_SEARCH_WINDOW_SEC,
    DEFAULT_WORKERS,
)


@dataclass(frozen=True)
class PeakConfig:
    """Groups peak-acceptance settings.

    Attributes:
        threshold: Minimum normalized correlation score of a peak.
        prominence: Minimum height of a peak above its neighbouring valleys.
        distance: Minimum distance in seconds between two peaks of one curve.
        max_candidates: Number of best peaks kept per curve.

    """

    threshold: float = DEFAULT_PEAK_THRESHOLD
    prominence: float = DEFAULT_PEAK_PROMINENCE
    distance: float = DEFAULT_PEAK_DISTANCE_SEC
    max_candidates: int = DEFAULT_MAX_CANDIDATES

    def validate(self) -> None:
        """Raise :class:`InvalidConfiguration` for out-of-range values."""
        if not -1.0 <= self.threshold <= 1.0:
            raise InvalidConfiguration("threshold", f"must be within [-1, 1], got {self.threshold}")
        if not 0.0 <= self.prominence <= 2.0:
            raise InvalidConfiguration(
                "prominence", f"must be within [0, 2], got {self.prominence}"
            )
        if self.distance < 0:
            raise InvalidConfiguration("distance", f"must be >= 0, got {self.distance}")
        if self.max_candidates < 1:
            raise InvalidConfiguration(
                "max_candidates", f"must be >= 1, got {self.max_candidates}"
            )


@dataclass(frozen=True)
class MatcherConfig:
    """Groups the tunables of one alignment run.

    Attributes:
        chunk_duration: Reference chunk length in seconds.
        overlap: Overlap fraction between consecutive reference chunks.
        search_window: Half-width in seconds of the lag window searched
            around the running offset estimate.
        peak: Peak acceptance settings.
        workers: Worker pool size; ``0`` uses one worker per CPU.
        max_in_flight: Maximum chunk pairs submitted but not yet collected.
        refine_block: Block length in seconds for edge refinement; ``0``
            keeps chunk-resolution edges.
        score_tie_tolerance: Scores closer than this are treated as equal.
        lag_tolerance: Lag difference in seconds under which two segments are
            considered lag-consistent and merged.
        backtrack_tolerance: How far (seconds) a candidate may start before
            the chain's target end and still count as in order. ``None``
            uses one chunk duration.
        full_search_fallback: Search all target windows for a chunk whose
            windowed search found nothing.

    """

    chunk_duration: float = DEFAULT_CHUNK_DURATION_SEC
    overlap: float = DEFAULT_OVERLAP
    search_window: float = DEFAULT_SEARCH_WINDOW_SEC
    peak: PeakConfig = field(default_factory=PeakConfig)
    workers: int = DEFAULT_WORKERS
    max_in_flight: int = DEFAULT_MAX_IN_FLIGHT
    refine_block: float = DEFAULT_REFINE_BLOCK_SEC
    score_tie_tolerance: float = DEFAULT_SCORE_TIE_TOLERANCE
    lag_tolerance: float = DEFAULT_LAG_TOLERANCE_SEC
    backtrack_tolerance: float | None = None
    full_search_fallback: bool = True

    @property
    def step(self) -> float:
        """Distance in seconds between the starts of consecutive chunks."""
        return self.chunk_duration * (1.0 - self.overlap)

    @property
    def effective_backtrack(self) -> float:
        """Backtrack tolerance with the one-chunk default applied."""
        if self.backtrack_tolerance is None:
            return self.chunk_duration
        return self.backtrack_tolerance

    def validate(self) -> None:
        """Check every tunable before any work starts.

        Raises:
            InvalidConfiguration: Naming the first offending parameter.
        """
        if not math.isfinite(self.chunk_duration) or self.chunk_duration <= 0:
            raise InvalidConfiguration(
                "chunk_duration", f"must be > 0, got {self.chunk_duration}"
            )
        if not 0.0 <= self.overlap < 1.0:
            raise InvalidConfiguration("overlap", f"must be within [0, 1), got {self.overlap}")
        if self.search_window < 0:
            raise InvalidConfiguration(
                "search_window", f"must be >= 0, got {self.search_window}"
            )
        if self.workers < 0:
            raise InvalidConfiguration("workers", f"must be >= 0, got {self.workers}")
        if self.max_in_flight < 1:
            raise InvalidConfiguration(
                "max_in_flight", f"must be >= 1, got {self.max_in_flight}"
            )
        if self.refine_block < 0:
            raise InvalidConfiguration(
                "refine_block", f"must be >= 0, got {self.refine_block}"
            )
        if self.score_tie_tolerance < 0:
            raise InvalidConfiguration(
                "score_tie_tolerance", f"must be >= 0, got {self.score_tie_tolerance}"
            )
        if self.lag_tolerance < 0:
            raise InvalidConfiguration(
                "lag_tolerance", f"must be >= 0, got {self.lag_tolerance}"
            )
        if self.backtrack_tolerance is not None and self.backtrack_tolerance < 0:
            raise InvalidConfiguration(
                "backtrack_tolerance", f"must be >= 0, got {self.backtrack_tolerance}"
            )
        self.peak.validate()

    def relaxed(self, factor: float = 0.8) -> MatcherConfig:
        """Return a copy with looser peak thresholds and a wider search window.

        Intended for caller-driven retry loops such as
        :func:`audio_matcher.matching.engine.align_with_retry`.

        Args:
            factor: Multiplier in ``(0, 1]`` applied to threshold and
                prominence; the search window is divided by it.

        Returns:
            MatcherConfig: The relaxed configuration.

        Raises:
            InvalidConfiguration: If *factor* is outside ``(0, 1]``.
        """
        if not 0.0 < factor <= 1.0:
            raise InvalidConfiguration("factor", f"must be within (0, 1], got {factor}")
        peak = dataclasses.replace(
            self.peak,
            threshold=self.peak.threshold * factor,
            prominence=self.peak.prominence * factor,
        )
        return dataclasses.replace(self, peak=peak, search_window=self.search_window / factor)


@dataclass
class OutputConfig:
    """Groups output-related settings.

    Attributes:
        output_dir: Directory to store output files.
        output_format: Formatter name (``labels``, ``json`` or ``csv``).
        timeline: Timeline the markers are placed on (``target`` or
            ``reference``).
        label_pattern: Marker name pattern, ``#`` is the running number.
        overwrite: Overwrite existing files when ``True``.
        dry_run: Print the rendered output instead of writing it.

    """

    output_dir: Path
    output_format: str = "labels"
    timeline: str = "target"
    label_pattern: str = DEFAULT_LABEL_PATTERN
    overwrite: bool = False
    dry_run: bool = False


@dataclass
class UIConfig:
    """Groups UI and logging settings.

    Attributes:
        verbose: Enable detailed diagnostic output.
        quiet: Suppress non-error output.
        no_progress: Disable progress bars.

    """

    verbose: bool = False
    quiet: bool = False
    no_progress: bool = False
