"""Exception taxonomy for the alignment engine and its adapters.

Only configuration, decoding and sample-rate problems abort a run. A silent
chunk raises :class:`DegenerateSignal`, which the scheduler absorbs as "no
candidates" for that chunk pair. A poor alignment is not an error at all:
callers inspect :attr:`Alignment.coverage <audio_matcher.matching.models.Alignment.coverage>`.
"""

from __future__ import annotations

from pathlib import Path

__all__ = [
    "AudioMatcherError",
    "InvalidConfiguration",
    "DecodeError",
    "DegenerateSignal",
    "SampleRateMismatch",
    "AlignmentCancelled",
]


class AudioMatcherError(Exception):
    """Base exception for audio-matcher."""


class InvalidConfiguration(AudioMatcherError, ValueError):
    """A tunable is out of range.

    Attributes:
        parameter: Name of the offending setting.
    """

    def __init__(self, parameter: str, message: str) -> None:
        self.parameter = parameter
        super().__init__(f"{parameter}: {message}")


class DecodeError(AudioMatcherError):
    """An audio file could not be turned into a sample stream.

    Attributes:
        path: File that failed to decode.
    """

    def __init__(self, path: Path | str, message: str) -> None:
        self.path = Path(path)
        super().__init__(f"could not decode '{self.path}': {message}")


class DegenerateSignal(AudioMatcherError):
    """A chunk has numerically zero energy and cannot be correlated."""


class SampleRateMismatch(AudioMatcherError):
    """Reference and target streams use different sample rates."""

    def __init__(self, reference_rate: int, target_rate: int) -> None:
        self.reference_rate = reference_rate
        self.target_rate = target_rate
        super().__init__(
            f"streams have different sample rates ({reference_rate}, {target_rate}); "
            "decode both with the same --sample-rate"
        )


class AlignmentCancelled(AudioMatcherError):
    """The run was cancelled between chunk-pair batches."""
