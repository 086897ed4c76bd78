"""Formatter for Audacity label tracks (.txt)."""

from __future__ import annotations

from audio_matcher.labels.io import format_labels
from audio_matcher.labels.models import TimeLabel
from audio_matcher.matching.models import Alignment, SegmentKind
from audio_matcher.utils.constant import (
    DEFAULT_LABEL_PATTERN,
    DUPLICATE_LABEL_PATTERN,
    GAP_LABEL_PATTERN,
)

TIMELINES = ("target", "reference")


def _cut_position(alignment: Alignment, ref_time: float) -> float:
    """Target time where reference content starting at *ref_time* was cut."""
    before = [m for m in alignment.matches if m.ref_range.end <= ref_time]
    if before:
        return before[-1].target_range.end
    after = [m for m in alignment.matches if m.ref_range.start >= ref_time]
    return after[0].target_range.start if after else 0.0


def alignment_labels(
    alignment: Alignment,
    *,
    timeline: str = "target",
    label_pattern: str = DEFAULT_LABEL_PATTERN,
    gap_pattern: str = GAP_LABEL_PATTERN,
    duplicate_pattern: str = DUPLICATE_LABEL_PATTERN,
) -> list[TimeLabel]:
    """Build edit markers for *alignment*.

    On the target timeline matches and duplicates become range labels and
    every cut becomes a point label where the removed content used to be. On
    the reference timeline every segment is a range label.

    Raises:
        ValueError: If *timeline* is neither ``target`` nor ``reference``.
    """
    if timeline not in TIMELINES:
        raise ValueError(
            f"Unsupported timeline: '{timeline}'. Supported timelines are: {list(TIMELINES)}"
        )

    patterns = {
        SegmentKind.MATCH: label_pattern,
        SegmentKind.GAP: gap_pattern,
        SegmentKind.DUPLICATE: duplicate_pattern,
    }
    counters = dict.fromkeys(patterns, 0)
    labels: list[TimeLabel] = []
    for seg in alignment.segments:
        counters[seg.kind] += 1
        if timeline == "reference":
            start, end = seg.ref_range.start, seg.ref_range.end
        elif seg.target_range is not None:
            start, end = seg.target_range.start, seg.target_range.end
        else:
            start = end = _cut_position(alignment, seg.ref_range.start)
        labels.append(TimeLabel.from_pattern(start, end, counters[seg.kind], patterns[seg.kind]))
    return sorted(labels, key=lambda label: (label.start, label.end))


def to_labels(
    alignment: Alignment,
    timeline: str = "target",
    label_pattern: str = DEFAULT_LABEL_PATTERN,
    **kwargs: object,
) -> str:
    """Convert an ``Alignment`` into Audacity label-track text.

    Args:
        alignment: The alignment to render.
        timeline: ``target`` or ``reference``.
        label_pattern: Name pattern of match labels, ``#`` is the number.
        **kwargs: Additional arguments (ignored).

    Returns:
        One ``start<TAB>end<TAB>name`` line per label.

    """
    return format_labels(
        alignment_labels(alignment, timeline=timeline, label_pattern=label_pattern)
    )
