"""Decoder adapters turning files into sample streams.

Each decoder implements a single capability, ``open(path) -> SampleStream``,
and raises :class:`~audio_matcher.errors.DecodeError` when it cannot. The
caller picks one by name through :func:`get_decoder`; nothing inside the
engine inspects file types.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import soundfile as sf  # type: ignore

from audio_matcher.audio.streams import ArraySampleStream, SampleStream, SoundFileStream
from audio_matcher.errors import DecodeError
from audio_matcher.utils import audio_io
from audio_matcher.utils.constant import DEFAULT_SAMPLE_RATE

__all__ = [
    "Decoder",
    "AutoDecoder",
    "FfmpegDecoder",
    "SoundFileDecoder",
    "PydubDecoder",
    "DECODERS",
    "get_decoder",
]

logger = logging.getLogger(__name__)


class Decoder(Protocol):
    """Produces a :class:`SampleStream` from a path."""

    def open(self, path: Path | str) -> SampleStream:
        """Decode *path*.

        Raises:
            DecodeError: When the file cannot be decoded.
        """


def _require_file(path: Path | str) -> Path:
    p = Path(path)
    if not p.is_file():
        raise DecodeError(p, "no such file")
    return p


@dataclass
class AutoDecoder:
    """Try ffmpeg, soundfile and pydub in turn, then resample in memory."""

    sample_rate: int = DEFAULT_SAMPLE_RATE

    def open(self, path: Path | str) -> SampleStream:
        p = _require_file(path)
        data, sr = audio_io.load_audio(p, self.sample_rate)
        logger.debug(f"Decoded {p.name}: {data.size} samples @ {sr} Hz")
        return ArraySampleStream(data, sr, name=p.name)


@dataclass
class FfmpegDecoder:
    """Decode through an ffmpeg pipe at the requested rate."""

    sample_rate: int = DEFAULT_SAMPLE_RATE

    def open(self, path: Path | str) -> SampleStream:
        p = _require_file(path)
        try:
            data, sr = audio_io.load_with_ffmpeg(p, self.sample_rate)
        except RuntimeError as exc:
            raise DecodeError(p, str(exc)) from exc
        return ArraySampleStream(data, sr, name=p.name)


@dataclass
class PydubDecoder:
    """Decode through pydub, then resample with librosa."""

    sample_rate: int = DEFAULT_SAMPLE_RATE

    def open(self, path: Path | str) -> SampleStream:
        p = _require_file(path)
        try:
            data, sr = audio_io.load_with_pydub(p)
        except Exception as exc:  # pydub raises bare Exception subclasses
            raise DecodeError(p, str(exc)) from exc
        data = audio_io.resample(data, sr, self.sample_rate)
        return ArraySampleStream(data, self.sample_rate, name=p.name)


@dataclass
class SoundFileDecoder:
    """Stream straight from disk through libsndfile.

    The stream keeps the file's native sample rate; *sample_rate* is only
    checked, so a mismatch surfaces here instead of deep inside a run.
    ``None`` accepts any rate.
    """

    sample_rate: int | None = None

    def open(self, path: Path | str) -> SampleStream:
        p = _require_file(path)
        try:
            stream = SoundFileStream(p)
        except (RuntimeError, sf.LibsndfileError) as exc:
            raise DecodeError(p, str(exc)) from exc
        if self.sample_rate is not None and stream.sample_rate != self.sample_rate:
            stream.close()
            raise DecodeError(
                p,
                f"native rate {stream.sample_rate} Hz differs from requested "
                f"{self.sample_rate} Hz; use a resampling decoder",
            )
        return stream


# A registry mapping decoder names to factories taking the target sample rate.
DECODERS: dict[str, Callable[[int], Decoder]] = {
    "auto": AutoDecoder,
    "ffmpeg": FfmpegDecoder,
    "pydub": PydubDecoder,
    "soundfile": SoundFileDecoder,
}


def get_decoder(name: str, sample_rate: int = DEFAULT_SAMPLE_RATE) -> Decoder:
    """Instantiate the decoder registered under *name*.

    Parameters:
        name (str): Decoder identifier, case-insensitive.
        sample_rate (int): Rate the decoded stream must have.

    Returns:
        Decoder: The configured decoder.

    Raises:
        ValueError: If `name` is not registered.
    """
    factory = DECODERS.get(name.lower())
    if factory is None:
        supported = list(DECODERS.keys())
        raise ValueError(f"Unsupported decoder: '{name}'. Supported decoders are: {supported}")
    return factory(sample_rate)
