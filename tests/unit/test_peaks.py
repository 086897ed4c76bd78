"""Unit tests for peak detection and candidate ranking."""

import numpy as np
import pytest

from audio_matcher.chunking.chunker import Chunk
from audio_matcher.config import PeakConfig
from audio_matcher.matching.correlate import CorrelationResult, correlate_chunks
from audio_matcher.matching.models import PeakCandidate
from audio_matcher.matching.peaks import (
    detect_excerpt_peaks,
    detect_peaks,
    rank_candidates,
    suppress_overshadowed,
)

SR = 100


def _chunk(samples: np.ndarray, index: int = 0, start: int = 0, stream_id: str = "ref") -> Chunk:
    return Chunk(stream_id, index, start, SR, samples.astype(np.float32))


def _cand(score: float, target_time: float, index: int = 0) -> PeakCandidate:
    return PeakCandidate(
        ref_chunk_index=index,
        ref_time=0.0,
        target_time=target_time,
        lag=target_time,
        score=score,
        duration=1.0,
    )


def test_single_placement_found() -> None:
    """The reference embedded in the window yields one candidate at its offset."""
    rng = np.random.default_rng(0)
    ref = rng.standard_normal(100)
    window = np.concatenate([rng.standard_normal(40), ref, rng.standard_normal(60)])
    ref_chunk = _chunk(ref, index=3, start=300)
    win_chunk = _chunk(window, index=1, start=1000, stream_id="target")
    scores = correlate_chunks(ref_chunk, win_chunk)
    cands = detect_peaks(scores, ref_chunk, win_chunk, SR, PeakConfig())
    assert len(cands) == 1
    cand = cands[0]
    assert cand.ref_chunk_index == 3
    assert cand.ref_time == pytest.approx(3.0)
    assert cand.target_time == pytest.approx(10.4)
    assert cand.lag == pytest.approx(7.4)
    assert cand.score == pytest.approx(1.0, abs=1e-6)
    assert cand.duration == pytest.approx(1.0)
    assert cand.width > 0


def test_repeated_content_gives_ranked_candidates() -> None:
    rng = np.random.default_rng(1)
    ref = rng.standard_normal(50)
    gap = rng.standard_normal(50)
    echo = 0.9 * ref + 0.3 * rng.standard_normal(50)
    window = np.concatenate([ref, gap, echo])
    ref_chunk = _chunk(ref)
    win_chunk = _chunk(window, stream_id="target")
    scores = correlate_chunks(ref_chunk, win_chunk)
    cands = detect_peaks(scores, ref_chunk, win_chunk, SR, PeakConfig(threshold=0.7))
    assert [round(c.target_time, 2) for c in cands] == [0.0, 1.0]
    assert cands[0].score > cands[1].score


def test_partial_placements_are_ignored() -> None:
    """A match hanging over the window edge is not reported."""
    rng = np.random.default_rng(2)
    ref = rng.standard_normal(100)
    window = np.concatenate([rng.standard_normal(150), ref[:50]])
    ref_chunk = _chunk(ref)
    win_chunk = _chunk(window, stream_id="target")
    scores = correlate_chunks(ref_chunk, win_chunk)
    cands = detect_peaks(scores, ref_chunk, win_chunk, SR, PeakConfig())
    assert cands == []


def test_below_threshold_gives_nothing() -> None:
    rng = np.random.default_rng(3)
    ref_chunk = _chunk(rng.standard_normal(100))
    win_chunk = _chunk(rng.standard_normal(300), stream_id="target")
    result = correlate_chunks(ref_chunk, win_chunk)
    assert detect_peaks(result, ref_chunk, win_chunk, SR, PeakConfig(threshold=0.9)) == []


def test_tiny_curve_gives_nothing() -> None:
    result = CorrelationResult(0, 0, 0, np.array([1.0, 0.5]))
    chunk = _chunk(np.ones(1))
    assert detect_peaks(result, chunk, chunk, SR, PeakConfig()) == []


def test_max_candidates_truncates() -> None:
    rng = np.random.default_rng(4)
    ref = rng.standard_normal(20)
    window = np.concatenate([ref, rng.standard_normal(30)] * 4)
    ref_chunk = _chunk(ref)
    win_chunk = _chunk(window, stream_id="target")
    result = correlate_chunks(ref_chunk, win_chunk)
    cands = detect_peaks(result, ref_chunk, win_chunk, SR, PeakConfig(max_candidates=2))
    assert len(cands) == 2


def test_rank_candidates_orders_by_score_then_time() -> None:
    ranked = rank_candidates([_cand(0.7, 5.0), _cand(0.9, 3.0), _cand(0.7, 1.0)])
    assert [(c.score, c.target_time) for c in ranked] == [(0.9, 3.0), (0.7, 1.0), (0.7, 5.0)]
    assert len(rank_candidates(ranked, limit=1)) == 1


def test_suppress_overshadowed_keeps_strongest_nearby() -> None:
    kept = suppress_overshadowed(
        [_cand(0.8, 10.0), _cand(0.95, 10.1), _cand(0.7, 20.0), _cand(0.9, 10.0, index=1)],
        distance=0.25,
    )
    assert [(c.ref_chunk_index, c.target_time) for c in kept] == [(0, 10.1), (1, 10.0), (0, 20.0)]


def test_suppression_ranks_by_score_not_prominence() -> None:
    """A more prominent but weaker sighting of the same placement is dropped."""
    strong = _cand(0.9, 10.0).model_copy(update={"prominence": 0.2})
    prominent = _cand(0.8, 10.1).model_copy(update={"prominence": 0.6})
    assert suppress_overshadowed([prominent, strong], distance=0.25) == [strong]


def test_suppression_compares_lags() -> None:
    """Sightings at one target time but different reference times both survive."""
    first = PeakCandidate(
        ref_chunk_index=0, ref_time=3.0, target_time=0.0, lag=-3.0, score=0.9, duration=0.5
    )
    second = first.model_copy(update={"ref_time": 3.6, "lag": -3.6, "score": 0.8})
    assert suppress_overshadowed([second, first], distance=0.25) == [first, second]


def test_excerpt_found_inside_reference_chunk() -> None:
    """A window shorter than the chunk is located inside it."""
    rng = np.random.default_rng(5)
    ref = rng.standard_normal(200)
    ref_chunk = _chunk(ref, index=2, start=300)
    win_chunk = _chunk(ref[60:110], stream_id="target")
    scores = correlate_chunks(win_chunk, ref_chunk)
    (cand,) = detect_excerpt_peaks(scores, ref_chunk, win_chunk, SR, PeakConfig(threshold=0.7))
    assert cand.ref_chunk_index == 2
    assert cand.ref_time == pytest.approx(3.6)
    assert cand.target_time == pytest.approx(0.0)
    assert cand.lag == pytest.approx(-3.6)
    assert cand.duration == pytest.approx(0.5)
    assert cand.score == pytest.approx(1.0, abs=1e-6)


def test_excerpt_hanging_over_chunk_end_is_ignored() -> None:
    rng = np.random.default_rng(6)
    ref = rng.standard_normal(200)
    ref_chunk = _chunk(ref)
    win_chunk = _chunk(np.concatenate([ref[170:], rng.standard_normal(20)]), stream_id="target")
    scores = correlate_chunks(win_chunk, ref_chunk)
    assert detect_excerpt_peaks(scores, ref_chunk, win_chunk, SR, PeakConfig(threshold=0.6)) == []
