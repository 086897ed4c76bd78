"""Peak picking on correlation curves.

Peaks are local maxima found with :func:`scipy.signal.find_peaks`, filtered by
an absolute score threshold, a minimum prominence and a minimum distance, and
annotated with their width at half prominence. Only placements where the
whole reference chunk lies inside the target window are reported: partial
placements near a window edge are seen in full through the neighbouring,
overlapping window. A target shorter than one reference chunk is searched
the other way round, inside the reference chunk.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

import numpy as np
from scipy.signal import find_peaks, peak_widths

from audio_matcher.chunking.chunker import Chunk
from audio_matcher.config import PeakConfig
from audio_matcher.matching.correlate import CorrelationResult
from audio_matcher.matching.models import PeakCandidate

__all__ = [
    "detect_excerpt_peaks",
    "detect_peaks",
    "rank_candidates",
    "suppress_overshadowed",
]

logger = logging.getLogger(__name__)


def _select_peaks(
    result: CorrelationResult,
    placed: Callable[[np.ndarray], np.ndarray],
    sample_rate: int,
    config: PeakConfig,
) -> list[tuple[int, int, float, float]]:
    """Return ``(index, lag, prominence, width)`` of accepted peaks.

    *placed* maps the lags of the raw peaks to a mask of the placements to keep.
    """
    curve = result.curve
    if curve.size < 3 or float(curve.max()) < config.threshold:
        return []

    distance = max(1, int(round(config.distance * sample_rate)))
    indices, props = find_peaks(
        curve,
        height=config.threshold,
        prominence=config.prominence,
        distance=distance,
    )
    if indices.size == 0:
        return []

    lags = result.lag + indices
    keep = placed(lags)
    if not keep.any():
        return []
    indices = indices[keep]
    widths = peak_widths(curve, indices, rel_height=0.5)[0]
    return list(zip(indices, lags[keep], props["prominences"][keep], widths))


def detect_peaks(
    result: CorrelationResult,
    ref_chunk: Chunk,
    target_chunk: Chunk,
    sample_rate: int,
    config: PeakConfig,
) -> list[PeakCandidate]:
    """Turn a correlation curve into ranked peak candidates.

    Parameters:
        result (CorrelationResult): Curve of *ref_chunk* against *target_chunk*.
        ref_chunk (Chunk): The reference chunk.
        target_chunk (Chunk): The target window.
        sample_rate (int): Shared sample rate of both streams.
        config (PeakConfig): Acceptance settings.

    Returns:
        list[PeakCandidate]: At most ``config.max_candidates`` candidates,
            best score first. Empty when nothing clears the threshold.
    """
    m, k = ref_chunk.samples.size, target_chunk.samples.size
    peaks = _select_peaks(result, lambda lags: (lags >= 0) & (lags + m <= k), sample_rate, config)

    candidates = []
    for idx, lag, prominence, width in peaks:
        target_time = (target_chunk.start_sample + int(lag)) / sample_rate
        candidates.append(
            PeakCandidate(
                ref_chunk_index=ref_chunk.index,
                ref_time=ref_chunk.start_time,
                target_time=target_time,
                lag=target_time - ref_chunk.start_time,
                score=float(result.curve[idx]),
                width=float(width) / sample_rate,
                prominence=float(prominence),
                duration=ref_chunk.duration,
            )
        )
    return rank_candidates(candidates, config.max_candidates)


def detect_excerpt_peaks(
    result: CorrelationResult,
    ref_chunk: Chunk,
    target_chunk: Chunk,
    sample_rate: int,
    config: PeakConfig,
) -> list[PeakCandidate]:
    """Find a target window shorter than the reference chunk inside that chunk.

    *result* must correlate *target_chunk* against *ref_chunk*, see
    :func:`audio_matcher.matching.correlate.correlate_chunks`. Only
    placements where the whole target window lies inside the reference
    chunk are reported; a candidate then spans the window, not the chunk.
    """
    m, k = ref_chunk.samples.size, target_chunk.samples.size
    peaks = _select_peaks(result, lambda lags: (lags >= 0) & (lags + k <= m), sample_rate, config)

    candidates = []
    for idx, lag, prominence, width in peaks:
        ref_time = (ref_chunk.start_sample + int(lag)) / sample_rate
        candidates.append(
            PeakCandidate(
                ref_chunk_index=ref_chunk.index,
                ref_time=ref_time,
                target_time=target_chunk.start_time,
                lag=target_chunk.start_time - ref_time,
                score=float(result.curve[idx]),
                width=float(width) / sample_rate,
                prominence=float(prominence),
                duration=target_chunk.duration,
            )
        )
    return rank_candidates(candidates, config.max_candidates)


def rank_candidates(
    candidates: list[PeakCandidate], limit: int | None = None
) -> list[PeakCandidate]:
    """Sort by score descending (earlier target first on equal scores) and truncate."""
    ranked = sorted(candidates, key=lambda c: (-c.score, c.target_time))
    return ranked if limit is None else ranked[:limit]


def suppress_overshadowed(
    candidates: list[PeakCandidate], distance: float
) -> list[PeakCandidate]:
    """Drop candidates lying within *distance* of a stronger one of the same chunk.

    The same target content is usually seen through two overlapping target
    windows; only the strongest sighting survives. Candidates of different
    reference chunks never suppress each other.

    Strength is the normalized score, not the peak prominence: sightings from
    different windows come from different correlation curves, and a peak cut
    short by a window edge loses prominence without losing score.

    Args:
        candidates: Candidates in any order.
        distance: Minimum lag separation in seconds between surviving
            candidates.

    Returns:
        Surviving candidates ranked by score descending.
    """
    kept: list[PeakCandidate] = []
    for cand in rank_candidates(candidates):
        overshadowed = any(
            other.ref_chunk_index == cand.ref_chunk_index
            and abs(other.lag - cand.lag) <= distance
            for other in kept
        )
        if overshadowed:
            logger.debug(
                f"Chunk {cand.ref_chunk_index}: dropping peak at {cand.target_time:.3f}s "
                f"(score {cand.score:.3f}), overshadowed"
            )
            continue
        kept.append(cand)
    return kept
