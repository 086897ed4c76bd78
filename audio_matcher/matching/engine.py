"""Alignment engine: drives chunking, correlation, assembly and refinement.

The engine owns the search-space policy. Reference chunks are processed in
batches; a chunk is searched against every target window until the chain has
confirmed a match, and afterwards only against the windows around the running
lag estimate (``search_window`` seconds either side). A windowed search that
finds nothing is retried unconstrained when ``full_search_fallback`` is on, so
large cuts and moved content are still found.

Retries with looser thresholds are the caller's decision and are modelled by
:func:`align_with_retry` around the pure :func:`align_streams`.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Sequence
from contextlib import nullcontext

from audio_matcher.audio.streams import SampleStream
from audio_matcher.chunking.chunker import ChunkSequence, target_windows
from audio_matcher.config import MatcherConfig
from audio_matcher.errors import AlignmentCancelled, InvalidConfiguration, SampleRateMismatch
from audio_matcher.matching.assembler import MonotonicChain
from audio_matcher.matching.correlate import correlate_chunks
from audio_matcher.matching.models import Alignment, PeakCandidate
from audio_matcher.matching.peaks import (
    detect_excerpt_peaks,
    detect_peaks,
    suppress_overshadowed,
)
from audio_matcher.matching.refine import refine_alignment
from audio_matcher.matching.scheduler import ChunkPairJob, ParallelScheduler
from audio_matcher.utils.cancel import is_cancelled

__all__ = [
    "align_streams",
    "align_with_retry",
    "relaxation_schedule",
]

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


def _search_windows(
    ref_chunks: ChunkSequence,
    windows: ChunkSequence,
    index: int,
    expected_lag: float | None,
    search_window: float,
) -> range:
    """Target windows to correlate reference chunk *index* against."""
    if expected_lag is None:
        return range(len(windows))
    rate = ref_chunks.stream.sample_rate
    start, stop = ref_chunks.span(index)
    lag = int(round(expected_lag * rate))
    margin = int(round(search_window * rate))
    return windows.indices_overlapping(start + lag - margin, stop + lag + margin)


def align_streams(
    reference: SampleStream,
    target: SampleStream,
    config: MatcherConfig | None = None,
    *,
    scheduler: ParallelScheduler | None = None,
    cancel_event: threading.Event | None = None,
    progress_callback: ProgressCallback | None = None,
) -> Alignment:
    """Align *target* against *reference*.

    Parameters:
        reference (SampleStream): The unedited recording.
        target (SampleStream): The edited recording.
        config (MatcherConfig | None): Tunables; defaults when ``None``.
        scheduler (ParallelScheduler | None): An already opened scheduler to
            run jobs on. A private one is created for the call when ``None``.
        cancel_event (threading.Event | None): Checked between batches.
        progress_callback (ProgressCallback | None): Called with
            ``(chunks_done, chunks_total)`` after every batch.

    Returns:
        Alignment: The refined alignment. Low coverage is reported, not raised.

    Raises:
        InvalidConfiguration: If a tunable is out of range.
        SampleRateMismatch: If the streams use different rates.
        AlignmentCancelled: If *cancel_event* is set during the run.
    """
    config = config or MatcherConfig()
    config.validate()
    if reference.sample_rate != target.sample_rate:
        raise SampleRateMismatch(reference.sample_rate, target.sample_rate)

    rate = reference.sample_rate
    ref_chunks = ChunkSequence(reference, config.chunk_duration, config.overlap, "reference")
    windows = target_windows(target, config.chunk_duration)
    chain = MonotonicChain(config)
    total = len(ref_chunks)
    logger.info(
        f"Aligning {target.name} ({target.duration:.1f}s) against {reference.name} "
        f"({reference.duration:.1f}s): {total} chunk(s), {len(windows)} target window(s)"
    )

    def run_pair(job: ChunkPairJob) -> list[PeakCandidate]:
        ref_chunk = ref_chunks[job.ref_index]
        window = windows[job.target_index]
        if window.samples.size < ref_chunk.samples.size:
            # Only a target shorter than one chunk gives such a window.
            result = correlate_chunks(window, ref_chunk)
            return detect_excerpt_peaks(result, ref_chunk, window, rate, config.peak)
        result = correlate_chunks(ref_chunk, window)
        return detect_peaks(result, ref_chunk, window, rate, config.peak)

    context = (
        nullcontext(scheduler)
        if scheduler is not None
        else ParallelScheduler(config.workers, config.max_in_flight)
    )
    started = time.perf_counter()
    with context as pool:
        batch_size = max(1, pool.workers)
        for batch_start in range(0, total, batch_size):
            if is_cancelled(cancel_event):
                raise AlignmentCancelled(f"cancelled after {batch_start} of {total} chunk(s)")
            batch = range(batch_start, min(batch_start + batch_size, total))
            expected = chain.expected_lag

            searched = {
                i: _search_windows(ref_chunks, windows, i, expected, config.search_window)
                for i in batch
            }
            jobs = [ChunkPairJob(i, t) for i in batch for t in searched[i]]
            found = pool.run(jobs, run_pair, cancel_event)

            if expected is not None and config.full_search_fallback:
                retry = [
                    ChunkPairJob(i, t)
                    for i in batch
                    if not found.get(i)
                    for t in range(len(windows))
                    if t not in searched[i]
                ]
                if retry:
                    logger.debug(f"Full-search fallback: {len(retry)} extra job(s)")
                    for index, extra in pool.run(retry, run_pair, cancel_event).items():
                        found.setdefault(index, []).extend(extra)

            for i in batch:
                chain.push(i, suppress_overshadowed(found.get(i, []), config.peak.distance))
            if progress_callback is not None:
                progress_callback(batch.stop, total)

    alignment = chain.to_alignment(
        reference_duration=reference.duration,
        target_duration=target.duration,
        sample_rate=rate,
    )
    alignment = refine_alignment(alignment, reference, target, config)
    logger.info(
        f"Alignment done in {time.perf_counter() - started:.2f}s: "
        f"{len(alignment.matches)} match(es), {len(alignment.gaps)} gap(s), "
        f"{len(alignment.duplicates)} duplicate(s), coverage {alignment.coverage:.1%}"
    )
    return alignment


def relaxation_schedule(
    config: MatcherConfig, retries: int, factor: float = 0.8
) -> list[MatcherConfig]:
    """Return *config* followed by *retries* progressively relaxed copies."""
    if retries < 0:
        raise InvalidConfiguration("retries", f"must be >= 0, got {retries}")
    configs = [config]
    for _ in range(retries):
        configs.append(configs[-1].relaxed(factor))
    return configs


def align_with_retry(
    reference: SampleStream,
    target: SampleStream,
    configs: Sequence[MatcherConfig],
    min_coverage: float,
    **kwargs,
) -> Alignment:
    """Run :func:`align_streams` per configuration until coverage is acceptable.

    Args:
        reference: The unedited recording.
        target: The edited recording.
        configs: Configurations to try in order, e.g. from
            :func:`relaxation_schedule`.
        min_coverage: Acceptance bar for :meth:`Alignment.is_acceptable`.
        **kwargs: Forwarded to :func:`align_streams`.

    Returns:
        The first acceptable alignment, otherwise the one with the best
        coverage.

    Raises:
        InvalidConfiguration: If *configs* is empty.
    """
    if not configs:
        raise InvalidConfiguration("configs", "at least one configuration is required")
    best: Alignment | None = None
    for attempt, config in enumerate(configs, start=1):
        alignment = align_streams(reference, target, config, **kwargs)
        if alignment.is_acceptable(min_coverage):
            return alignment
        logger.warning(
            f"Attempt {attempt}/{len(configs)}: coverage {alignment.coverage:.1%} "
            f"below {min_coverage:.1%}"
        )
        if best is None or alignment.coverage > best.coverage:
            best = alignment
    return best
