"""Common data models for alignment results.

This module defines pydantic models that are shared across matching,
label mapping and formatting utilities.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field, model_validator

__all__ = [
    "TimeRange",
    "PeakCandidate",
    "SegmentKind",
    "MatchSegment",
    "Alignment",
]


class TimeRange(BaseModel):
    """Half-open time span in seconds."""

    start: float = Field(..., description="Start time in seconds.")
    end: float = Field(..., description="End time in seconds (>= start).")

    @model_validator(mode="after")
    def _check_order(self) -> TimeRange:
        if self.end < self.start:
            raise ValueError(f"end ({self.end}) must not precede start ({self.start})")
        return self

    @property
    def duration(self) -> float:
        return self.end - self.start

    def overlaps(self, other: TimeRange) -> bool:
        """Return ``True`` if the two ranges share a non-empty span."""
        return self.start < other.end and other.start < self.end

    def contains(self, t: float) -> bool:
        return self.start <= t <= self.end


class PeakCandidate(BaseModel):
    """A plausible match between a reference chunk and a target offset."""

    ref_chunk_index: int = Field(..., description="Index of the reference chunk.")
    ref_time: float = Field(..., description="Reference chunk start (seconds).")
    target_time: float = Field(..., description="Matching target position (seconds).")
    lag: float = Field(..., description="target_time - ref_time (seconds).")
    score: float = Field(..., ge=-1.0, le=1.0, description="Normalized correlation score.")
    width: float = Field(0.0, description="Peak width at half prominence (seconds).")
    prominence: float = Field(0.0, description="Peak prominence.")
    duration: float = Field(..., description="Duration of the reference chunk (seconds).")

    @property
    def ref_end(self) -> float:
        return self.ref_time + self.duration

    @property
    def target_end(self) -> float:
        return self.target_time + self.duration


class SegmentKind(str, Enum):
    """Kind of an alignment segment."""

    MATCH = "match"
    DUPLICATE = "duplicate"
    GAP = "gap"


class MatchSegment(BaseModel):
    """A contiguous reference span and where (if anywhere) it lives in the target."""

    ref_range: TimeRange = Field(..., description="Span on the reference timeline.")
    target_range: TimeRange | None = Field(
        None, description="Span on the target timeline; absent for gaps."
    )
    confidence: float = Field(0.0, description="Duration-weighted mean peak score.")
    kind: SegmentKind = Field(SegmentKind.MATCH, description="match, duplicate or gap.")

    @model_validator(mode="after")
    def _check_ranges(self) -> MatchSegment:
        if self.kind is SegmentKind.GAP:
            if self.target_range is not None:
                raise ValueError("gap segments have no target_range")
        elif self.target_range is None:
            raise ValueError(f"{self.kind.value} segments need a target_range")
        return self

    @property
    def lag(self) -> float | None:
        """Target minus reference start, ``None`` for gaps."""
        if self.target_range is None:
            return None
        return self.target_range.start - self.ref_range.start


class Alignment(BaseModel):
    """Full result of aligning a reference recording against a target."""

    segments: list[MatchSegment] = Field(
        default_factory=list, description="Segments sorted by reference start."
    )
    reference_duration: float = Field(..., description="Reference length (seconds).")
    target_duration: float = Field(..., description="Target length (seconds).")
    sample_rate: int = Field(..., description="Sample rate both streams were read at.")
    coverage: float = Field(
        0.0, description="Fraction of the reference covered by match segments."
    )

    @property
    def matches(self) -> list[MatchSegment]:
        return [s for s in self.segments if s.kind is SegmentKind.MATCH]

    @property
    def duplicates(self) -> list[MatchSegment]:
        return [s for s in self.segments if s.kind is SegmentKind.DUPLICATE]

    @property
    def gaps(self) -> list[MatchSegment]:
        return [s for s in self.segments if s.kind is SegmentKind.GAP]

    def is_acceptable(self, min_coverage: float) -> bool:
        """Return ``True`` when coverage reaches *min_coverage*."""
        return self.coverage >= min_coverage
