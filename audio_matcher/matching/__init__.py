"""Cross-correlation matching and alignment engine.

The pipeline is: correlate chunk pairs (:mod:`.correlate`), pick peaks
(:mod:`.peaks`), chain them into a monotonic alignment (:mod:`.assembler`)
and refine segment edges (:mod:`.refine`). :mod:`.engine` drives it on a
bounded worker pool (:mod:`.scheduler`).
"""

from .assembler import MonotonicChain, assemble, build_alignment, chunk_ranges
from .correlate import CorrelationResult, correlate, correlate_chunks
from .engine import align_streams, align_with_retry, relaxation_schedule
from .models import Alignment, MatchSegment, PeakCandidate, SegmentKind, TimeRange
from .peaks import detect_excerpt_peaks, detect_peaks, suppress_overshadowed
from .refine import refine_alignment
from .scheduler import ChunkPairJob, ParallelScheduler

__all__ = [
    "Alignment",
    "ChunkPairJob",
    "CorrelationResult",
    "MatchSegment",
    "MonotonicChain",
    "ParallelScheduler",
    "PeakCandidate",
    "SegmentKind",
    "TimeRange",
    "align_streams",
    "align_with_retry",
    "assemble",
    "build_alignment",
    "chunk_ranges",
    "correlate",
    "correlate_chunks",
    "detect_excerpt_peaks",
    "detect_peaks",
    "refine_alignment",
    "relaxation_schedule",
    "suppress_overshadowed",
]
