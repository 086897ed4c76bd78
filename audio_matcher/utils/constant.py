"""Project-wide constants for convenient reuse."""

# pylint: disable=line-too-long

from __future__ import annotations

import os
import pathlib
import sys
from typing import Final

from audio_matcher.utils.env_loader import load_project_env

# Ensure .env is loaded exactly once at import time for the whole project
if "pytest" not in sys.modules:
    load_project_env()


# Repository root resolved relative to this file (utils/constant.py → package → repo)
REPO_ROOT: Final[pathlib.Path] = pathlib.Path(__file__).resolve().parents[2]

# Default path of the dotenv file containing runtime overrides
ENV_FILE: Final[pathlib.Path] = REPO_ROOT / ".env"

# Sample rate both recordings are decoded to before matching. Speech and music
# edits are located reliably well below CD rate, and FFT cost scales with it.
DEFAULT_SAMPLE_RATE: Final[int] = int(os.getenv("MATCH_SAMPLE_RATE", "8000"))

# Reference chunk length (seconds) and overlap fraction between chunks.
DEFAULT_CHUNK_DURATION_SEC: Final[float] = float(os.getenv("CHUNK_DURATION_SEC", "5.0"))
DEFAULT_OVERLAP: Final[float] = float(os.getenv("CHUNK_OVERLAP", "0.5"))

# Half-width (seconds) of the lag window searched around the running offset.
DEFAULT_SEARCH_WINDOW_SEC: Final[float] = float(os.getenv("SEARCH_WINDOW_SEC", "30.0"))

# Peak acceptance
DEFAULT_PEAK_THRESHOLD: Final[float] = float(os.getenv("PEAK_THRESHOLD", "0.5"))
DEFAULT_PEAK_PROMINENCE: Final[float] = float(os.getenv("PEAK_PROMINENCE", "0.1"))
DEFAULT_PEAK_DISTANCE_SEC: Final[float] = float(os.getenv("PEAK_DISTANCE_SEC", "0.25"))
DEFAULT_MAX_CANDIDATES: Final[int] = int(os.getenv("MAX_CANDIDATES", "5"))

# Worker pool size (0 = one per CPU) and cap on chunk pairs resident at once
DEFAULT_WORKERS: Final[int] = int(os.getenv("MATCH_WORKERS", "0"))
DEFAULT_MAX_IN_FLIGHT: Final[int] = int(os.getenv("MAX_IN_FLIGHT", "32"))

# Block length (seconds) used to move segment edges off chunk boundaries.
# 0 disables refinement.
DEFAULT_REFINE_BLOCK_SEC: Final[float] = float(os.getenv("REFINE_BLOCK_SEC", "0.1"))

# Assembly tolerances
DEFAULT_SCORE_TIE_TOLERANCE: Final[float] = float(os.getenv("SCORE_TIE_TOLERANCE", "0.001"))
DEFAULT_LAG_TOLERANCE_SEC: Final[float] = float(os.getenv("LAG_TOLERANCE_SEC", "0.02"))

# Coverage below which the CLI reports a low-confidence alignment
DEFAULT_MIN_COVERAGE: Final[float] = float(os.getenv("MIN_COVERAGE", "0.0"))

# Prefer FFmpeg for audio decoding (1 = yes, 0 = try soundfile first)
FORCE_FFMPEG: Final[bool] = os.getenv("FORCE_FFMPEG", "1") == "1"

# Decoder used when the caller does not pick one
DEFAULT_DECODER: Final[str] = os.getenv("DEFAULT_DECODER", "auto")

# Label names for exported markers; "#" is replaced by the running number
DEFAULT_LABEL_PATTERN: Final[str] = os.getenv("LABEL_PATTERN", "Segment #")
GAP_LABEL_PATTERN: Final[str] = os.getenv("GAP_LABEL_PATTERN", "Cut #")
DUPLICATE_LABEL_PATTERN: Final[str] = os.getenv("DUPLICATE_LABEL_PATTERN", "Repeat #")

# Supported audio/video file formats for decoding
SUPPORTED_AUDIO_EXTENSIONS: Final[frozenset[str]] = frozenset({
    ".wav",
    ".mp3",
    ".flac",
    ".ogg",
    ".m4a",
    ".aac",
    ".wma",
    ".opus",
})

SUPPORTED_VIDEO_EXTENSIONS: Final[frozenset[str]] = frozenset({
    ".mp4",
    ".mkv",
    ".avi",
    ".mov",
    ".webm",
})

SUPPORTED_EXTENSIONS: Final[frozenset[str]] = (
    SUPPORTED_AUDIO_EXTENSIONS | SUPPORTED_VIDEO_EXTENSIONS
)
