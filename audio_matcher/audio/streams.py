"""Sample streams consumed by the chunker.

A sample stream is a finite mono PCM signal with a known rate and length that
can be read back for arbitrary time spans. Two implementations exist:

* :class:`ArraySampleStream` keeps the whole signal in a NumPy array. Every
  decoder that resamples produces one.
* :class:`SoundFileStream` reads spans straight from disk through
  *soundfile*, so memory stays bounded by the chunks in flight.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Protocol, runtime_checkable

import numpy as np
import soundfile as sf  # type: ignore

__all__ = [
    "SampleStream",
    "ArraySampleStream",
    "SoundFileStream",
]


@runtime_checkable
class SampleStream(Protocol):
    """Read-only mono PCM signal."""

    @property
    def name(self) -> str:
        """Human-readable identifier, usually the file name."""

    @property
    def sample_rate(self) -> int:
        """Samples per second."""

    @property
    def num_samples(self) -> int:
        """Total number of samples."""

    @property
    def duration(self) -> float:
        """Total duration in seconds."""

    def read_samples(self, start: int, count: int) -> np.ndarray:
        """Return up to *count* float32 samples beginning at sample *start*."""

    def read(self, start: float, duration: float) -> np.ndarray:
        """Return the samples of ``[start, start + duration)`` in seconds."""


class _StreamBase(ABC):
    """Time-to-sample conversion shared by the concrete streams."""

    _sample_rate: int
    _num_samples: int

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

    @property
    def num_samples(self) -> int:
        return self._num_samples

    @property
    def duration(self) -> float:
        return self._num_samples / float(self._sample_rate) if self._sample_rate else 0.0

    @abstractmethod
    def read_samples(self, start: int, count: int) -> np.ndarray:
        """Return up to *count* float32 samples beginning at sample *start*."""

    def read(self, start: float, duration: float) -> np.ndarray:
        first = int(round(start * self._sample_rate))
        count = int(round(duration * self._sample_rate))
        return self.read_samples(first, count)

    def _clip(self, start: int, count: int) -> tuple[int, int]:
        start = min(max(start, 0), self._num_samples)
        stop = min(start + max(count, 0), self._num_samples)
        return start, stop


class ArraySampleStream(_StreamBase):
    """Sample stream backed by an in-memory array.

    Args:
        samples: Mono waveform. Multi-channel input (``(frames, channels)``)
            is averaged down to mono.
        sample_rate: Sample rate in Hz.
        name: Identifier used in log messages.

    Raises:
        ValueError: If *sample_rate* is not positive.
    """

    def __init__(self, samples: np.ndarray, sample_rate: int, name: str = "<array>") -> None:
        if sample_rate <= 0:
            raise ValueError(f"sample_rate must be > 0, got {sample_rate}")
        data = np.asarray(samples)
        if data.ndim > 1:
            data = data.mean(axis=-1)
        self._samples = np.ascontiguousarray(data, dtype=np.float32)
        self._samples.setflags(write=False)
        self._sample_rate = int(sample_rate)
        self._num_samples = int(self._samples.size)
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    @property
    def samples(self) -> np.ndarray:
        """The read-only backing array."""
        return self._samples

    def read_samples(self, start: int, count: int) -> np.ndarray:
        start, stop = self._clip(start, count)
        return self._samples[start:stop]

    def __repr__(self) -> str:
        return (
            f"ArraySampleStream(name={self._name!r}, sample_rate={self._sample_rate}, "
            f"duration={self.duration:.2f}s)"
        )


class SoundFileStream(_StreamBase):
    """Sample stream reading spans from an audio file on demand.

    The file is opened once; seek+read pairs are serialised under a lock so
    several workers can read chunks concurrently. Channels are averaged on
    read. No resampling happens, so the stream keeps the file's native rate.

    Args:
        path: Audio file readable by libsndfile.

    Raises:
        RuntimeError: Propagated from soundfile when the file cannot be opened.
    """

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)
        self._file = sf.SoundFile(str(self._path))
        self._sample_rate = int(self._file.samplerate)
        self._num_samples = int(self._file.frames)
        self._lock = threading.Lock()

    @property
    def name(self) -> str:
        return self._path.name

    def read_samples(self, start: int, count: int) -> np.ndarray:
        start, stop = self._clip(start, count)
        with self._lock:
            self._file.seek(start)
            data = self._file.read(stop - start, dtype="float32", always_2d=True)
        return data.mean(axis=1).astype(np.float32, copy=False)

    def close(self) -> None:
        """Close the underlying file handle."""
        self._file.close()

    def __enter__(self) -> SoundFileStream:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
