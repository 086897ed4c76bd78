"""End-to-end alignment runs on synthetic edits of white noise.

Each test builds a target from a reference by shifting, cutting or repeating
parts of it and checks that the alignment recovers the edit.
"""

import dataclasses

import numpy as np
import pytest

from audio_matcher.labels import TimeLabel, map_labels
from audio_matcher.matching import align_streams
from audio_matcher.matching.models import SegmentKind

pytestmark = pytest.mark.integration

SR = 2000


def _assert_monotonic(alignment) -> None:
    matches = alignment.matches
    for prev, cur in zip(matches, matches[1:]):
        assert prev.ref_range.end <= cur.ref_range.start + 1e-9
        assert prev.target_range.end <= cur.target_range.start + 1e-9
    starts = [s.ref_range.start for s in alignment.segments]
    assert starts == sorted(starts)


def _cut(ref: np.ndarray, start: float, end: float) -> np.ndarray:
    return np.concatenate([ref[: int(start * SR)], ref[int(end * SR) :]])


def test_pure_shift(noise, stream, fast_config) -> None:
    """Leading silence in the target shows up as a constant lag."""
    ref = noise(20.0)
    target = np.concatenate([np.zeros(int(3.5 * SR), dtype=np.float32), ref])
    alignment = align_streams(stream(ref), stream(target), fast_config)

    assert len(alignment.matches) == 1
    match = alignment.matches[0]
    assert match.lag == pytest.approx(3.5, abs=1e-3)
    assert match.confidence == pytest.approx(1.0, abs=1e-3)
    assert match.ref_range.start == pytest.approx(0.0)
    assert match.ref_range.end == pytest.approx(20.0)
    assert alignment.gaps == []
    assert alignment.coverage == pytest.approx(1.0)


def test_trimmed_head(noise, stream, fast_config) -> None:
    """Content removed from the start of the target becomes a leading gap."""
    ref = noise(20.0)
    alignment = align_streams(stream(ref), stream(ref[int(3.5 * SR) :]), fast_config)

    assert len(alignment.matches) == 1
    assert alignment.matches[0].lag == pytest.approx(-3.5, abs=1e-3)
    (gap,) = alignment.gaps
    assert gap.ref_range.start == pytest.approx(0.0)
    assert gap.ref_range.end == pytest.approx(3.5, abs=0.1)
    _assert_monotonic(alignment)


def test_single_cut(noise, stream, fast_config) -> None:
    """A removed span becomes one gap between two matches."""
    ref = noise(40.0)
    alignment = align_streams(stream(ref), stream(_cut(ref, 15.3, 22.7)), fast_config)

    assert len(alignment.matches) == 2
    first, second = alignment.matches
    assert first.lag == pytest.approx(0.0, abs=1e-3)
    assert second.lag == pytest.approx(-7.4, abs=1e-3)
    (gap,) = alignment.gaps
    assert gap.ref_range.start == pytest.approx(15.3, abs=0.2)
    assert gap.ref_range.end == pytest.approx(22.7, abs=0.2)
    assert gap.target_range is None
    # Target content is fully accounted for: the two matches are adjacent.
    assert second.target_range.start == pytest.approx(first.target_range.end, abs=0.2)
    assert alignment.coverage == pytest.approx(1 - 7.4 / 40.0, abs=0.01)
    _assert_monotonic(alignment)


def test_repeated_content_is_flagged(noise, stream, fast_config) -> None:
    """A copy of reference content pasted ahead of it becomes a duplicate."""
    ref = noise(20.0)
    target = np.concatenate([ref[12 * SR : 14 * SR], ref])
    config = dataclasses.replace(fast_config, search_window=40.0)
    alignment = align_streams(stream(ref), stream(target), config)

    assert len(alignment.matches) == 1
    assert alignment.matches[0].lag == pytest.approx(2.0, abs=1e-3)
    assert alignment.coverage == pytest.approx(1.0)
    (dup,) = alignment.duplicates
    assert dup.kind is SegmentKind.DUPLICATE
    assert dup.ref_range.start == pytest.approx(12.0, abs=0.2)
    assert dup.ref_range.end == pytest.approx(14.0, abs=0.2)
    assert dup.target_range.start == pytest.approx(0.0, abs=0.2)
    _assert_monotonic(alignment)


def test_silent_reference(noise, stream, fast_config) -> None:
    """Silence matches nothing and yields one full-length gap."""
    alignment = align_streams(
        stream(np.zeros(6 * SR, dtype=np.float32)), stream(noise(6.0)), fast_config
    )
    assert alignment.coverage == 0.0
    assert alignment.matches == []
    (gap,) = alignment.gaps
    assert gap.ref_range.end == pytest.approx(6.0)


def test_target_shorter_than_one_chunk(noise, stream, fast_config) -> None:
    """A short verbatim excerpt is located, the rest of the reference is cut."""
    ref = noise(20.0)
    target = ref[int(5.0 * SR) : int(6.5 * SR)]
    alignment = align_streams(stream(ref), stream(target), fast_config)

    (match,) = alignment.matches
    assert match.ref_range.start == pytest.approx(5.0, abs=1e-3)
    assert match.ref_range.end == pytest.approx(6.5, abs=1e-3)
    assert match.target_range.start == pytest.approx(0.0, abs=1e-3)
    assert match.lag == pytest.approx(-5.0, abs=1e-3)
    assert match.confidence == pytest.approx(1.0, abs=1e-3)
    assert [(g.ref_range.start, g.ref_range.end) for g in alignment.gaps] == [
        pytest.approx((0.0, 5.0), abs=1e-3),
        pytest.approx((6.5, 20.0), abs=1e-3),
    ]
    assert alignment.coverage == pytest.approx(1.5 / 20.0, abs=1e-3)


def test_cut_location_independent_of_overlap(noise, stream, fast_config) -> None:
    ref = noise(30.0, seed=7)
    target = _cut(ref, 11.2, 16.0)
    gaps = []
    for overlap in (0.0, 0.5):
        config = dataclasses.replace(fast_config, overlap=overlap)
        alignment = align_streams(stream(ref), stream(target), config)
        (gap,) = alignment.gaps
        gaps.append((gap.ref_range.start, gap.ref_range.end))
    assert gaps[0][0] == pytest.approx(gaps[1][0], abs=fast_config.chunk_duration)
    assert gaps[0][1] == pytest.approx(gaps[1][1], abs=fast_config.chunk_duration)


def test_result_independent_of_worker_count(noise, stream, fast_config) -> None:
    ref = noise(30.0, seed=3)
    target = _cut(ref, 9.0, 13.5)

    def shape(workers: int) -> list:
        config = dataclasses.replace(fast_config, workers=workers)
        alignment = align_streams(stream(ref), stream(target), config)
        return [(s.kind, s.ref_range, s.target_range) for s in alignment.segments]

    assert shape(1) == shape(4)


def test_labels_follow_the_cut(noise, stream, fast_config) -> None:
    ref = noise(40.0)
    alignment = align_streams(stream(ref), stream(_cut(ref, 15.3, 22.7)), fast_config)
    mapped = map_labels(
        alignment,
        [
            TimeLabel(start=5.0, end=5.0, name="before"),
            TimeLabel(start=18.0, end=18.0, name="removed"),
            TimeLabel(start=30.0, end=30.0, name="after"),
        ],
    )
    assert [label.name for label in mapped] == ["before", "after"]
    assert mapped[0].start == pytest.approx(5.0, abs=1e-3)
    assert mapped[1].start == pytest.approx(22.6, abs=1e-3)
