"""Assembly of per-chunk peak candidates into a single alignment.

The assembler walks the reference chunks in index order and keeps a
*monotonic chain*: for every chunk it accepts the best candidate whose target
position does not move backwards relative to the previously accepted one.
Chunks without such a candidate leave reference time uncovered, which
becomes an explicit gap. Candidates that would move the chain backwards are
kept as flagged duplicates.

Accepted candidates are then merged into segments. Runs of overlapping or
touching chunks with the same lag (within ``lag_tolerance``) collapse into one
segment whose confidence is the duration-weighted mean score. Neighbours with
different lags are split at the midpoint of their reference overlap, and the
later one is advanced until the target ranges no longer overlap.

Everything here is pure and deterministic: the same candidates in the same
order always produce the same :class:`Alignment`.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass

from audio_matcher.chunking.chunker import ChunkSequence
from audio_matcher.config import MatcherConfig
from audio_matcher.matching.models import (
    Alignment,
    MatchSegment,
    PeakCandidate,
    SegmentKind,
    TimeRange,
)

__all__ = [
    "MonotonicChain",
    "assemble",
    "build_alignment",
    "chunk_ranges",
]

logger = logging.getLogger(__name__)

# Time comparisons are done with this slack (seconds).
EPSILON = 1e-6

_KIND_ORDER = {SegmentKind.MATCH: 0, SegmentKind.GAP: 1, SegmentKind.DUPLICATE: 2}


@dataclass
class _Span:
    """Mutable segment under construction."""

    ref_start: float
    ref_end: float
    lag: float
    weighted_score: float
    weight: float

    @classmethod
    def from_candidate(cls, cand: PeakCandidate) -> _Span:
        return cls(
            ref_start=cand.ref_time,
            ref_end=cand.ref_end,
            lag=cand.lag,
            weighted_score=cand.score * cand.duration,
            weight=cand.duration,
        )

    @property
    def target_start(self) -> float:
        return self.ref_start + self.lag

    @property
    def target_end(self) -> float:
        return self.ref_end + self.lag

    @property
    def confidence(self) -> float:
        return self.weighted_score / self.weight if self.weight > 0 else 0.0

    def can_absorb(self, other: _Span, lag_tolerance: float) -> bool:
        touching = (
            other.ref_start <= self.ref_end + EPSILON
            and other.ref_end >= self.ref_start - EPSILON
        )
        return touching and abs(other.lag - self.lag) <= lag_tolerance + EPSILON

    def absorb(self, other: _Span) -> None:
        self.ref_start = min(self.ref_start, other.ref_start)
        self.ref_end = max(self.ref_end, other.ref_end)
        self.weighted_score += other.weighted_score
        self.weight += other.weight

    def to_segment(self, kind: SegmentKind) -> MatchSegment:
        return MatchSegment(
            ref_range=TimeRange(start=self.ref_start, end=self.ref_end),
            target_range=TimeRange(start=self.target_start, end=self.target_end),
            confidence=min(1.0, max(-1.0, self.confidence)),
            kind=kind,
        )


class MonotonicChain:
    """Best-first monotonic chaining over reference chunks.

    Chunks are pushed in index order, either all at once by :func:`assemble`
    or incrementally by the engine while results stream in. The chain's
    :attr:`expected_lag` is the running offset estimate used to bound the
    next search.

    Parameters:
        config (MatcherConfig): Supplies the tie, lag and backtrack tolerances.
    """

    def __init__(self, config: MatcherConfig) -> None:
        self.config = config
        self.accepted: list[PeakCandidate] = []
        self.duplicates: list[PeakCandidate] = []
        self.gap_chunks: list[int] = []
        self._next_index = 0

    @property
    def last(self) -> PeakCandidate | None:
        return self.accepted[-1] if self.accepted else None

    @property
    def expected_lag(self) -> float | None:
        """Lag of the last accepted candidate, ``None`` before the first match."""
        last = self.last
        return None if last is None else last.lag

    @property
    def next_index(self) -> int:
        """Index of the next reference chunk the chain expects."""
        return self._next_index

    def is_consistent(self, cand: PeakCandidate) -> bool:
        """Return ``True`` if *cand* keeps the chain moving forward on the target."""
        prev = self.last
        if prev is None:
            return True
        ref_overlap = max(0.0, prev.ref_end - cand.ref_time)
        earliest = prev.target_end - ref_overlap - self.config.effective_backtrack
        return cand.target_time >= earliest - EPSILON

    def _select(self, candidates: Sequence[PeakCandidate]) -> PeakCandidate | None:
        if not candidates:
            return None
        best = max(c.score for c in candidates)
        tied = [c for c in candidates if best - c.score <= self.config.score_tie_tolerance]
        prev_lag = self.expected_lag or 0.0
        return min(tied, key=lambda c: (abs(c.lag - prev_lag), c.target_time))

    def push(self, index: int, candidates: Iterable[PeakCandidate]) -> PeakCandidate | None:
        """Feed the candidates of reference chunk *index*.

        Returns:
            The accepted candidate, or ``None`` when the chunk leaves a gap.

        Raises:
            ValueError: If chunks are pushed out of order.
        """
        if index != self._next_index:
            raise ValueError(f"expected chunk {self._next_index}, got {index}")
        self._next_index += 1

        ordered = sorted(candidates, key=lambda c: (c.target_time, -c.score))
        consistent = [c for c in ordered if self.is_consistent(c)]
        chosen = self._select(consistent)
        backward = [c for c in ordered if not self.is_consistent(c)]
        if backward:
            logger.debug(f"Chunk {index}: {len(backward)} backward candidate(s) kept as duplicates")
            self.duplicates.extend(backward)

        if chosen is None:
            self.gap_chunks.append(index)
            logger.debug(f"Chunk {index}: no consistent candidate")
            return None
        self.accepted.append(chosen)
        return chosen

    def to_alignment(
        self,
        *,
        reference_duration: float,
        target_duration: float,
        sample_rate: int,
    ) -> Alignment:
        """Merge the chain into segments and return the alignment."""
        tolerance = self.config.lag_tolerance
        matches = _resolve_overlaps(_merge(map(_Span.from_candidate, self.accepted), tolerance))
        duplicates = _merge_duplicates(map(_Span.from_candidate, self.duplicates), tolerance)
        return build_alignment(
            [s.to_segment(SegmentKind.MATCH) for s in matches],
            [s.to_segment(SegmentKind.DUPLICATE) for s in duplicates],
            reference_duration=reference_duration,
            target_duration=target_duration,
            sample_rate=sample_rate,
        )


def _merge(spans: Iterable[_Span], lag_tolerance: float) -> list[_Span]:
    merged: list[_Span] = []
    for span in spans:
        if merged and merged[-1].can_absorb(span, lag_tolerance):
            merged[-1].absorb(span)
        else:
            merged.append(span)
    return merged


def _merge_duplicates(spans: Iterable[_Span], lag_tolerance: float) -> list[_Span]:
    # Duplicates may interleave with different lags, so each one may join any run.
    runs: list[_Span] = []
    for span in sorted(spans, key=lambda s: (s.ref_start, s.target_start)):
        for run in runs:
            if run.can_absorb(span, lag_tolerance):
                run.absorb(span)
                break
        else:
            runs.append(span)
    return sorted(runs, key=lambda s: (s.ref_start, s.target_start))


def _resolve_overlaps(spans: list[_Span]) -> list[_Span]:
    """Make consecutive match spans disjoint on both timelines.

    A span pushed forward to clear a target overlap can start after its
    successor does, so the split point never moves below the start of the
    earlier span; an earlier span left empty by the split is dropped.
    """
    resolved: list[_Span] = []
    for span in spans:
        while resolved and span.ref_start < resolved[-1].ref_end:
            prev = resolved[-1]
            mid = max(prev.ref_start, 0.5 * (span.ref_start + prev.ref_end))
            prev.ref_end = mid
            span.ref_start = mid
            if prev.ref_end - prev.ref_start > EPSILON:
                break
            logger.debug(f"Dropping match at {prev.ref_start:.3f}s, fully overlapped")
            resolved.pop()
        if resolved and span.target_start < resolved[-1].target_end:
            span.ref_start += resolved[-1].target_end - span.target_start
        if span.ref_end - span.ref_start <= EPSILON:
            logger.debug(f"Dropping match at {span.ref_start:.3f}s, fully overlapped")
            continue
        resolved.append(span)
    return resolved


def _uncovered(covered: Sequence[TimeRange], duration: float) -> list[TimeRange]:
    gaps: list[TimeRange] = []
    cursor = 0.0
    for rng in sorted(covered, key=lambda r: r.start):
        if rng.start - cursor > EPSILON:
            gaps.append(TimeRange(start=cursor, end=rng.start))
        cursor = max(cursor, rng.end)
    if duration - cursor > EPSILON:
        gaps.append(TimeRange(start=cursor, end=duration))
    return gaps


def build_alignment(
    matches: Sequence[MatchSegment],
    duplicates: Sequence[MatchSegment],
    *,
    reference_duration: float,
    target_duration: float,
    sample_rate: int,
) -> Alignment:
    """Add gap segments and coverage to a set of match and duplicate segments.

    Parameters:
        matches (Sequence[MatchSegment]): Disjoint match segments.
        duplicates (Sequence[MatchSegment]): Duplicate segments.
        reference_duration (float): Reference length in seconds.
        target_duration (float): Target length in seconds.
        sample_rate (int): Shared sample rate.

    Returns:
        Alignment: Segments sorted by reference start, gaps filling every
            reference span no match covers.
    """
    gaps = [
        MatchSegment(ref_range=rng, target_range=None, confidence=0.0, kind=SegmentKind.GAP)
        for rng in _uncovered([m.ref_range for m in matches], reference_duration)
    ]
    segments = sorted(
        [*matches, *gaps, *duplicates],
        key=lambda s: (s.ref_range.start, _KIND_ORDER[s.kind]),
    )
    covered = sum(m.ref_range.duration for m in matches)
    coverage = min(1.0, covered / reference_duration) if reference_duration > 0 else 0.0
    return Alignment(
        segments=segments,
        reference_duration=reference_duration,
        target_duration=target_duration,
        sample_rate=sample_rate,
        coverage=coverage,
    )


def chunk_ranges(chunks: ChunkSequence) -> list[TimeRange]:
    """Return the time span of every chunk without reading samples."""
    rate = chunks.stream.sample_rate
    ranges = []
    for index in range(len(chunks)):
        start, stop = chunks.span(index)
        ranges.append(TimeRange(start=start / rate, end=stop / rate))
    return ranges


def assemble(
    candidates_by_chunk: Mapping[int, Sequence[PeakCandidate]],
    ref_chunks: Sequence[TimeRange],
    reference_duration: float,
    target_duration: float,
    config: MatcherConfig,
    *,
    sample_rate: int = 0,
) -> Alignment:
    """Turn per-chunk candidates into a single coherent alignment.

    Never fails: noisy input yields mostly gaps and a low coverage.

    Parameters:
        candidates_by_chunk (Mapping[int, Sequence[PeakCandidate]]): Candidates
            keyed by reference chunk index; missing keys mean no candidates.
        ref_chunks (Sequence[TimeRange]): Reference chunk spans in index order,
            see :func:`chunk_ranges`.
        reference_duration (float): Reference length in seconds.
        target_duration (float): Target length in seconds.
        config (MatcherConfig): Tolerances.
        sample_rate (int): Recorded on the alignment.

    Returns:
        Alignment: The assembled alignment, before boundary refinement.
    """
    chain = MonotonicChain(config)
    for index in range(len(ref_chunks)):
        chain.push(index, candidates_by_chunk.get(index, ()))
    return chain.to_alignment(
        reference_duration=reference_duration,
        target_duration=target_duration,
        sample_rate=sample_rate,
    )
