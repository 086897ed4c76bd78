"""Unit tests for the stream chunker.

These tests validate chunk counts and offsets, the shorter final chunk,
input validation, restartability and the target search windows.
"""

import numpy as np
import pytest

from audio_matcher.audio.streams import ArraySampleStream
from audio_matcher.chunking import ChunkSequence, target_windows
from audio_matcher.errors import InvalidConfiguration


def _stream(n: int, sr: int = 1) -> ArraySampleStream:
    return ArraySampleStream(np.arange(n, dtype=np.float32), sr)


def test_overlapping_chunks_offsets() -> None:
    """Regular overlapping chunks should be produced at correct offsets."""
    seq = ChunkSequence(_stream(10), chunk_duration=4, overlap=0.5)
    chunks = list(seq)
    assert [c.start_time for c in chunks] == [0.0, 2.0, 4.0, 6.0]
    assert [c.index for c in chunks] == [0, 1, 2, 3]
    assert len(seq) == 4


def test_final_chunk_is_shorter_not_padded() -> None:
    """The tail chunk covers the remaining samples only."""
    seq = ChunkSequence(_stream(10), chunk_duration=4, overlap=0.0)
    chunks = list(seq)
    assert len(chunks) == 3
    assert chunks[-1].samples.tolist() == [8.0, 9.0]
    assert chunks[-1].duration == 2.0
    assert chunks[-1].end_time == 10.0


def test_exact_multiple_has_no_tail() -> None:
    """Audio length exactly divisible by chunk size should loop naturally."""
    seq = ChunkSequence(_stream(8), chunk_duration=4, overlap=0.0)
    assert len(seq) == 2
    assert all(c.samples.size == 4 for c in seq)


def test_short_stream_gives_one_chunk() -> None:
    seq = ChunkSequence(_stream(3), chunk_duration=4)
    assert len(seq) == 1
    assert seq[0].samples.size == 3


def test_empty_stream_gives_no_chunks() -> None:
    """No empty chunk is ever produced."""
    seq = ChunkSequence(_stream(0), chunk_duration=4)
    assert len(seq) == 0
    assert list(seq) == []


@pytest.mark.parametrize("duration", [0, -1.0])
def test_invalid_duration(duration: float) -> None:
    with pytest.raises(InvalidConfiguration) as excinfo:
        ChunkSequence(_stream(4), chunk_duration=duration)
    assert excinfo.value.parameter == "chunk_duration"


@pytest.mark.parametrize("overlap", [1.0, 1.5, -0.1])
def test_invalid_overlap(overlap: float) -> None:
    with pytest.raises(InvalidConfiguration) as excinfo:
        ChunkSequence(_stream(4), chunk_duration=2, overlap=overlap)
    assert excinfo.value.parameter == "overlap"


def test_sequence_is_restartable() -> None:
    """Iterating twice yields identical chunks."""
    seq = ChunkSequence(_stream(10), chunk_duration=4, overlap=0.25)
    first = [(c.index, c.start_sample, c.samples.tolist()) for c in seq]
    second = [(c.index, c.start_sample, c.samples.tolist()) for c in seq]
    assert first == second


def test_random_access_and_negative_index() -> None:
    seq = ChunkSequence(_stream(10), chunk_duration=4, overlap=0.5)
    assert seq[-1].index == len(seq) - 1
    assert seq[2].start_sample == 4
    with pytest.raises(IndexError):
        seq[len(seq)]


def test_chunks_cover_stream_end_to_end() -> None:
    seq = ChunkSequence(_stream(1000, sr=100), chunk_duration=0.7, overlap=0.3)
    covered = np.zeros(1000, dtype=bool)
    for chunk in seq:
        covered[chunk.start_sample : chunk.start_sample + chunk.samples.size] = True
    assert covered.all()


def test_indices_overlapping() -> None:
    seq = ChunkSequence(_stream(20), chunk_duration=4, overlap=0.5)
    # chunks: [0,4) [2,6) [4,8) ... [16,20)
    assert list(seq.indices_overlapping(5, 7)) == [1, 2, 3]
    assert list(seq.indices_overlapping(-10, 1)) == [0]
    assert list(seq.indices_overlapping(25, 30)) == []


def test_target_windows_contain_every_chunk_span() -> None:
    """Any chunk-length span of the target lies wholly inside some window."""
    windows = target_windows(_stream(50, sr=10), chunk_duration=1.0)
    assert windows.window_samples == 20
    assert windows.step_samples == 10
    for start in range(0, 41):
        assert any(
            windows.span(i)[0] <= start and start + 10 <= windows.span(i)[1]
            for i in range(len(windows))
        )
