"""Shared test fixtures for the audio_matcher test suite."""

from __future__ import annotations

from collections.abc import Callable

import numpy as np
import pytest

from audio_matcher.audio.streams import ArraySampleStream
from audio_matcher.config import MatcherConfig, PeakConfig

# Low rate keeps FFTs small while leaving 200 samples per 0.1 s block.
SAMPLE_RATE = 2000


@pytest.fixture
def sample_rate() -> int:
    return SAMPLE_RATE


@pytest.fixture
def noise() -> Callable[..., np.ndarray]:
    """Return a factory of reproducible white-noise buffers.

    The factory takes a duration in seconds and an optional seed.
    """

    def make(seconds: float, seed: int = 0) -> np.ndarray:
        rng = np.random.default_rng(seed)
        return (0.1 * rng.standard_normal(int(round(seconds * SAMPLE_RATE)))).astype(np.float32)

    return make


@pytest.fixture
def stream() -> Callable[..., ArraySampleStream]:
    """Wrap an array into an :class:`ArraySampleStream` at the test rate."""

    def make(samples: np.ndarray, name: str = "<test>") -> ArraySampleStream:
        return ArraySampleStream(samples, SAMPLE_RATE, name=name)

    return make


@pytest.fixture
def fast_config() -> MatcherConfig:
    """Small chunks and a small pool so synthetic runs finish quickly."""
    return MatcherConfig(
        chunk_duration=2.0,
        overlap=0.5,
        search_window=6.0,
        peak=PeakConfig(threshold=0.5, prominence=0.1, distance=0.25, max_candidates=5),
        workers=2,
        max_in_flight=8,
        refine_block=0.1,
    )
