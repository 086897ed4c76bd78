"""Audio I/O helpers.

Provides the backends used by the decoders in
:mod:`audio_matcher.audio.decoders` to load audio into a mono float32 numpy
array at a desired sample rate, using *ffmpeg*, *soundfile*, *pydub* and
*librosa*.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path

import librosa  # type: ignore
import numpy as np
import soundfile as sf  # type: ignore
from pydub import AudioSegment  # type: ignore

from audio_matcher.errors import DecodeError
from audio_matcher.utils.constant import DEFAULT_SAMPLE_RATE, FORCE_FFMPEG

__all__ = [
    "load_audio",
    "load_with_ffmpeg",
    "load_with_pydub",
    "load_with_soundfile",
    "resample",
]

logger = logging.getLogger(__name__)


def load_with_ffmpeg(path: Path | str, target_sr: int) -> tuple[np.ndarray, int]:
    """
    Decode an audio file to a mono float32 waveform at a specified sample rate using FFmpeg.

    Parameters:
        path (Path | str): Path to the source audio file.
        target_sr (int): Desired sample rate in Hz.

    Returns:
        data (np.ndarray): 1-D float32 waveform with values in [-1.0, 1.0].
        sr (int): Sample rate of the returned waveform (equal to `target_sr`).

    Raises:
        RuntimeError: If FFmpeg is not available in PATH or if FFmpeg fails to decode the file.
    """
    if shutil.which("ffmpeg") is None:
        raise RuntimeError("FFmpeg is not installed or not in PATH.")

    cmd = [
        "ffmpeg",
        "-nostdin",
        "-i",
        str(path),
        "-threads",
        "0",
        "-f",
        "s16le",
        "-ac",
        "1",
        "-acodec",
        "pcm_s16le",
        "-ar",
        str(target_sr),
        "-",
    ]
    try:
        pcm = subprocess.run(cmd, capture_output=True, check=True).stdout
    except subprocess.CalledProcessError as exc:
        raise RuntimeError(f"FFmpeg decoding failed: {exc.stderr.decode(errors='ignore')}") from exc

    data = np.frombuffer(pcm, np.int16).astype(np.float32) / (1 << 15)
    return data, target_sr


def load_with_pydub(path: Path | str) -> tuple[np.ndarray, int]:
    """Fallback loader using pydub/ffmpeg for formats unsupported by soundfile.

    Args:
        path: The path to the audio file.

    Returns:
        A tuple containing:
        - data: Mono float32 waveform in range [-1, 1].
        - sr: Native sample rate of the decoded audio.

    """
    seg: AudioSegment = AudioSegment.from_file(path)
    sr = seg.frame_rate
    samples = np.array(seg.get_array_of_samples())
    if seg.channels > 1:
        samples = samples.reshape((-1, seg.channels)).mean(axis=1)
    full_scale = float(1 << (8 * seg.sample_width - 1))
    data = (samples.astype(np.float32) / full_scale).clip(-1.0, 1.0)
    return data, sr


def load_with_soundfile(path: Path | str) -> tuple[np.ndarray, int]:
    """Decode with libsndfile at the native sample rate.

    Args:
        path: The path to the audio file.

    Returns:
        A tuple ``(data, sr)`` with a mono float32 waveform.

    """
    data, sr = sf.read(str(path), always_2d=False, dtype="float32")
    if data.ndim > 1:
        data = np.mean(data, axis=-1)
    return data, int(sr)


def resample(data: np.ndarray, sr: int, target_sr: int) -> np.ndarray:
    """Resample *data* from *sr* to *target_sr* with librosa (no-op when equal)."""
    if sr == target_sr:
        return data
    logger.debug(f"Resampling {sr} Hz -> {target_sr} Hz")
    return librosa.resample(data, orig_sr=sr, target_sr=target_sr, dtype=np.float32)


def load_audio(path: Path | str, target_sr: int = DEFAULT_SAMPLE_RATE) -> tuple[np.ndarray, int]:
    """Load an audio file, down-mix to mono and resample to a target rate.

    Args:
        path: The path to the audio file.
        target_sr: The target sample rate to resample the audio to. Defaults
            to `DEFAULT_SAMPLE_RATE`.

    Returns:
        A tuple containing:
        - audio: A 1-D float32 waveform in the range [-1, 1].
        - sr: The sample rate after resampling (equal to `target_sr`).

    Raises:
        DecodeError: If the file is missing or no backend can decode it.

    """
    if not Path(path).is_file():
        raise DecodeError(path, "no such file")

    # Loading strategy order:
    # 1. If FORCE_FFMPEG, try direct FFmpeg pipe first.
    # 2. Attempt libsndfile via soundfile.
    # 3. Fallback to FFmpeg (if not tried) then pydub.
    data: np.ndarray | None = None
    sr: int | None = None
    failures: list[str] = []

    ffmpeg_tried = False
    if FORCE_FFMPEG:
        ffmpeg_tried = True
        try:
            data, sr = load_with_ffmpeg(path, target_sr)
        except RuntimeError as exc:
            failures.append(f"ffmpeg: {exc}")
            data = None

    if data is None:
        try:
            data, sr = load_with_soundfile(path)
        except (RuntimeError, sf.LibsndfileError) as exc:
            failures.append(f"soundfile: {exc}")
            data = None

    if data is None and not ffmpeg_tried:
        try:
            data, sr = load_with_ffmpeg(path, target_sr)
        except RuntimeError as exc:
            failures.append(f"ffmpeg: {exc}")
            data = None

    if data is None:
        # Last resort: pydub (still uses ffmpeg but via AudioSegment)
        try:
            data, sr = load_with_pydub(path)
        except Exception as exc:  # pydub raises bare Exception subclasses
            failures.append(f"pydub: {exc}")
            raise DecodeError(path, "; ".join(failures)) from exc

    for failure in failures:
        logger.debug(f"{Path(path).name}: backend failed ({failure})")

    # Ensure mono
    if data.ndim > 1:
        data = np.mean(data, axis=-1)

    data = resample(data, int(sr), target_sr)

    # Ensure float32 dtype
    if data.dtype != np.float32:
        data = data.astype(np.float32)

    return data, target_sr
