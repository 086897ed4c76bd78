"""Normalized cross-correlation of chunk pairs.

The correlation is computed in the frequency domain with real FFTs sized to
the next efficient length at or above ``len(a) + len(b) - 1``, which avoids
circular wrap-around. Each lag is normalized by the geometric mean of the
reference energy and the energy of the target samples lying under the
reference at that lag, so a perfect match scores ``1.0`` regardless of gain
and partial overlaps score proportionally less.

Everything here is pure and safe to call from several worker threads.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from scipy import fft as sp_fft

from audio_matcher.chunking.chunker import Chunk
from audio_matcher.errors import DegenerateSignal

__all__ = [
    "CorrelationResult",
    "correlate",
    "correlate_chunks",
    "is_silent",
]

# Mean-square level under which a buffer counts as digital silence.
SILENCE_MEAN_SQUARE = 1e-12


@dataclass(frozen=True)
class CorrelationResult:
    """Correlation curve of one reference chunk against one target window.

    Attributes:
        ref_chunk_index: Index of the reference chunk.
        target_chunk_index: Index of the target window.
        lag: Lag in samples of ``curve[0]``; entry ``i`` is at ``lag + i``.
        curve: Normalized scores in ``[-1, 1]``.
    """

    ref_chunk_index: int
    target_chunk_index: int
    lag: int
    curve: np.ndarray

    @property
    def lags(self) -> np.ndarray:
        return np.arange(self.lag, self.lag + self.curve.size)


def is_silent(samples: np.ndarray) -> bool:
    """Return ``True`` when *samples* is empty or numerically silent."""
    if samples.size == 0:
        return True
    energy = float(np.dot(samples, samples))
    return energy <= SILENCE_MEAN_SQUARE * samples.size


def correlate(reference: np.ndarray, target: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Cross-correlate *reference* against every position of *target*.

    Args:
        reference: Reference samples (length ``m``).
        target: Target samples (length ``k``).

    Returns:
        ``(lags, curve)`` where ``lags`` runs from ``-(m - 1)`` to ``k - 1``
        and ``curve[i]`` scores the reference placed at target sample
        ``lags[i]``.

    Raises:
        DegenerateSignal: If either buffer is empty or silent.
    """
    a = np.asarray(reference, dtype=np.float64)
    b = np.asarray(target, dtype=np.float64)
    if is_silent(a):
        raise DegenerateSignal(f"reference buffer of {a.size} samples is silent")
    if is_silent(b):
        raise DegenerateSignal(f"target buffer of {b.size} samples is silent")

    m, k = a.size, b.size
    n = sp_fft.next_fast_len(m + k - 1, real=True)
    spectrum = sp_fft.rfft(b, n) * np.conj(sp_fft.rfft(a, n))
    raw = sp_fft.irfft(spectrum, n)
    # Negative lags wrap to the end of the buffer.
    curve = np.concatenate((raw[n - (m - 1) :], raw[:k])) if m > 1 else raw[:k].copy()
    lags = np.arange(-(m - 1), k)

    # Energy of target[max(L, 0) : min(L + m, k)] for every lag L.
    cumulative = np.concatenate(([0.0], np.cumsum(b * b)))
    lo = np.clip(lags, 0, k)
    hi = np.clip(lags + m, 0, k)
    window_energy = np.maximum(cumulative[hi] - cumulative[lo], 0.0)

    ref_energy = float(np.dot(a, a))
    floor = SILENCE_MEAN_SQUARE * np.maximum(hi - lo, 1)
    audible = window_energy > floor
    scores = np.zeros_like(curve)
    scores[audible] = curve[audible] / np.sqrt(ref_energy * window_energy[audible])
    np.clip(scores, -1.0, 1.0, out=scores)
    return lags, scores


def correlate_chunks(ref_chunk: Chunk, target_chunk: Chunk) -> CorrelationResult:
    """Correlate one reference chunk against one target window.

    Raises:
        DegenerateSignal: If either chunk is silent.
    """
    lags, curve = correlate(ref_chunk.samples, target_chunk.samples)
    return CorrelationResult(
        ref_chunk_index=ref_chunk.index,
        target_chunk_index=target_chunk.index,
        lag=int(lags[0]),
        curve=curve,
    )
