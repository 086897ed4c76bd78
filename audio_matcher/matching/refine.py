"""Block-level refinement of segment boundaries.

After assembly, segment edges sit on chunk boundaries. Refinement moves them
to ``refine_block`` resolution by re-reading both streams at each segment's
lag: edge blocks that do not match are trimmed first, then every edge is
grown block by block while the next block still matches. Growth stops at the
neighbouring match segments (on both timelines) and at the stream ends.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np

from audio_matcher.audio.streams import SampleStream
from audio_matcher.config import MatcherConfig
from audio_matcher.matching.assembler import build_alignment
from audio_matcher.matching.correlate import is_silent
from audio_matcher.matching.models import Alignment, MatchSegment, SegmentKind, TimeRange

__all__ = [
    "block_matches",
    "refine_alignment",
]

logger = logging.getLogger(__name__)


@dataclass
class _Edges:
    """Segment bounds in samples with a fixed lag."""

    start: int
    end: int
    lag: int
    confidence: float
    kind: SegmentKind

    def to_segment(self, rate: int) -> MatchSegment:
        return MatchSegment(
            ref_range=TimeRange(start=self.start / rate, end=self.end / rate),
            target_range=TimeRange(
                start=(self.start + self.lag) / rate, end=(self.end + self.lag) / rate
            ),
            confidence=self.confidence,
            kind=self.kind,
        )


def block_matches(
    reference: SampleStream,
    target: SampleStream,
    start: int,
    count: int,
    lag: int,
    threshold: float,
) -> bool:
    """Return ``True`` if ``reference[start:start+count]`` reappears at ``start + lag``.

    Both sides being silent counts as a match; a block reaching past either
    stream end never matches.
    """
    if count <= 0 or start < 0 or start + lag < 0:
        return False
    a = reference.read_samples(start, count).astype(np.float64)
    b = target.read_samples(start + lag, count).astype(np.float64)
    if a.size < count or b.size < count:
        return False
    silent_a, silent_b = is_silent(a), is_silent(b)
    if silent_a or silent_b:
        return silent_a and silent_b
    score = float(np.dot(a, b)) / float(np.sqrt(np.dot(a, a) * np.dot(b, b)))
    return score >= threshold


def _trim(edges: _Edges, block: int, matches) -> None:
    while edges.end > edges.start:
        count = min(block, edges.end - edges.start)
        if matches(edges.start, count, edges.lag):
            break
        edges.start += count
    while edges.end > edges.start:
        count = min(block, edges.end - edges.start)
        if matches(edges.end - count, count, edges.lag):
            break
        edges.end -= count


def _extend(edges: _Edges, block: int, matches, lower: int, upper: int) -> None:
    """Grow *edges* within ref samples ``[lower, upper)``."""
    while True:
        count = min(block, edges.start - lower)
        if count <= 0 or not matches(edges.start - count, count, edges.lag):
            break
        edges.start -= count
    while True:
        count = min(block, upper - edges.end)
        if count <= 0 or not matches(edges.end, count, edges.lag):
            break
        edges.end += count


def refine_alignment(
    alignment: Alignment,
    reference: SampleStream,
    target: SampleStream,
    config: MatcherConfig,
) -> Alignment:
    """Move segment edges to block resolution.

    Parameters:
        alignment (Alignment): Output of the assembler.
        reference (SampleStream): Reference stream the alignment was built from.
        target (SampleStream): Target stream the alignment was built from.
        config (MatcherConfig): ``refine_block`` and the peak threshold are used.

    Returns:
        Alignment: A new alignment with refined edges, recomputed gaps and
            coverage. Returned unchanged when ``refine_block`` is 0.
    """
    if config.refine_block <= 0 or not alignment.segments:
        return alignment

    rate = alignment.sample_rate
    block = max(1, int(round(config.refine_block * rate)))
    threshold = config.peak.threshold
    ref_total, tgt_total = reference.num_samples, target.num_samples

    def matches(start: int, count: int, lag: int) -> bool:
        return block_matches(reference, target, start, count, lag, threshold)

    def to_edges(seg: MatchSegment) -> _Edges:
        return _Edges(
            start=int(round(seg.ref_range.start * rate)),
            end=int(round(seg.ref_range.end * rate)),
            lag=int(round((seg.lag or 0.0) * rate)),
            confidence=seg.confidence,
            kind=seg.kind,
        )

    matched = [to_edges(s) for s in alignment.matches]
    duplicates = [to_edges(s) for s in alignment.duplicates]

    for edges in [*matched, *duplicates]:
        _trim(edges, block, matches)
    matched = [e for e in matched if e.end > e.start]
    duplicates = [e for e in duplicates if e.end > e.start]

    for i, edges in enumerate(matched):
        # Stream ends, expressed on the reference timeline.
        lower = max(0, -edges.lag)
        upper = min(ref_total, tgt_total - edges.lag)
        if i > 0:
            prev = matched[i - 1]
            lower = max(lower, prev.end, prev.end + prev.lag - edges.lag)
        if i + 1 < len(matched):
            nxt = matched[i + 1]
            upper = min(upper, nxt.start, nxt.start + nxt.lag - edges.lag)
        _extend(edges, block, matches, lower, upper)

    for edges in duplicates:
        _extend(edges, block, matches, max(0, -edges.lag), min(ref_total, tgt_total - edges.lag))

    refined = build_alignment(
        [e.to_segment(rate) for e in matched],
        [e.to_segment(rate) for e in duplicates],
        reference_duration=alignment.reference_duration,
        target_duration=alignment.target_duration,
        sample_rate=rate,
    )
    logger.debug(f"Refinement: coverage {alignment.coverage:.3f} -> {refined.coverage:.3f}")
    return refined
