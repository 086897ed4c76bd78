"""Sliding-window chunker for long recordings.

This module splits a sample stream into fixed-duration, possibly overlapping
windows. Chunk start positions are computed in samples so that indices and
offsets stay exact; samples are only read from the stream when a chunk is
produced.

The logic is kept free of any correlation code so that it can be reused for
offline testing with plain NumPy arrays.
"""

from __future__ import annotations

import math
from collections.abc import Iterator
from dataclasses import dataclass

import numpy as np

from audio_matcher.audio.streams import SampleStream
from audio_matcher.errors import InvalidConfiguration

__all__ = [
    "Chunk",
    "ChunkSequence",
    "target_windows",
]


@dataclass(frozen=True)
class Chunk:
    """One window of a stream.

    Attributes:
        stream_id: Identifier of the source stream (``"reference"`` or
            ``"target"`` inside the engine).
        index: Position of the chunk within its sequence.
        start_sample: First sample of the window.
        sample_rate: Sample rate of the source stream.
        samples: Window contents; shorter than configured at the stream end.
    """

    stream_id: str
    index: int
    start_sample: int
    sample_rate: int
    samples: np.ndarray

    @property
    def start_time(self) -> float:
        """Start of the window in seconds."""
        return self.start_sample / self.sample_rate

    @property
    def duration(self) -> float:
        """Length of the window in seconds."""
        return self.samples.size / self.sample_rate

    @property
    def end_time(self) -> float:
        """End of the window in seconds."""
        return self.start_time + self.duration


class ChunkSequence:
    """Lazy, restartable sequence of overlapping chunks covering a stream.

    Parameters:
        stream (SampleStream): Stream to split. Only borrowed; reads happen
            when chunks are produced.
        chunk_duration (float): Window length in seconds.
        overlap (float): Fraction of a window shared with the next one,
            ``0 <= overlap < 1``.
        stream_id (str): Identifier copied into every chunk.

    Raises:
        InvalidConfiguration: If chunk_duration <= 0 or overlap is outside
            ``[0, 1)``.
    """

    def __init__(
        self,
        stream: SampleStream,
        chunk_duration: float,
        overlap: float = 0.0,
        stream_id: str = "stream",
    ) -> None:
        if not chunk_duration > 0:
            raise InvalidConfiguration("chunk_duration", f"must be > 0, got {chunk_duration}")
        if not 0.0 <= overlap < 1.0:
            raise InvalidConfiguration("overlap", f"must be within [0, 1), got {overlap}")

        self.stream = stream
        self.stream_id = stream_id
        self.chunk_duration = float(chunk_duration)
        self.overlap = float(overlap)
        self.window_samples = max(1, int(round(chunk_duration * stream.sample_rate)))
        self.step_samples = max(1, int(round(self.window_samples * (1.0 - overlap))))

    def __len__(self) -> int:
        total = self.stream.num_samples
        if total <= 0:
            return 0
        if total <= self.window_samples:
            return 1
        return 1 + math.ceil((total - self.window_samples) / self.step_samples)

    def start_sample(self, index: int) -> int:
        """Return the first sample of chunk *index* without reading it."""
        return index * self.step_samples

    def span(self, index: int) -> tuple[int, int]:
        """Return ``(start, stop)`` sample bounds of chunk *index*."""
        start = self.start_sample(index)
        return start, min(start + self.window_samples, self.stream.num_samples)

    def __getitem__(self, index: int) -> Chunk:
        n = len(self)
        if index < 0:
            index += n
        if not 0 <= index < n:
            raise IndexError(f"chunk index {index} out of range for {n} chunks")
        start, stop = self.span(index)
        return Chunk(
            stream_id=self.stream_id,
            index=index,
            start_sample=start,
            sample_rate=self.stream.sample_rate,
            samples=self.stream.read_samples(start, stop - start),
        )

    def __iter__(self) -> Iterator[Chunk]:
        # Each call starts over; no chunk buffers are retained between steps.
        for index in range(len(self)):
            yield self[index]

    def indices_overlapping(self, start_sample: int, stop_sample: int) -> range:
        """Return the indices of chunks intersecting ``[start_sample, stop_sample)``."""
        n = len(self)
        if n == 0 or stop_sample <= 0 or start_sample >= self.stream.num_samples:
            return range(0)
        # chunk i covers [i*step, i*step + window)
        first = max(0, math.floor((start_sample - self.window_samples) / self.step_samples) + 1)
        last = min(n - 1, (max(stop_sample, 1) - 1) // self.step_samples)
        return range(first, last + 1)

    def __repr__(self) -> str:
        return (
            f"ChunkSequence(stream={self.stream.name!r}, chunks={len(self)}, "
            f"window={self.window_samples}, step={self.step_samples})"
        )


def target_windows(stream: SampleStream, chunk_duration: float) -> ChunkSequence:
    """Split the target into search windows for reference chunks.

    Windows are twice the reference chunk duration and advance by one chunk
    duration, so any reference-length span of the target lies wholly inside
    at least one window.

    Parameters:
        stream (SampleStream): Target stream.
        chunk_duration (float): Reference chunk duration in seconds.

    Returns:
        ChunkSequence: Windows tagged with ``stream_id="target"``.
    """
    return ChunkSequence(stream, 2.0 * chunk_duration, overlap=0.5, stream_id="target")
