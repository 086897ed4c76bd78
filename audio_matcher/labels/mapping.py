"""Carry reference-timeline labels onto the target timeline.

Only ``match`` segments are used: content inside a gap no longer exists in
the target, and duplicates are extra copies whose placement is ambiguous.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from audio_matcher.labels.models import TimeLabel
from audio_matcher.matching.models import Alignment

__all__ = [
    "map_labels",
    "map_time",
]

logger = logging.getLogger(__name__)


def map_time(alignment: Alignment, t: float) -> float | None:
    """Map reference time *t* to the target timeline.

    Returns:
        The target time, or ``None`` when *t* falls into a gap or outside
        the reference.
    """
    for seg in alignment.matches:
        if seg.ref_range.contains(t):
            return t + (seg.lag or 0.0)
    return None


def map_labels(alignment: Alignment, labels: Iterable[TimeLabel]) -> list[TimeLabel]:
    """Map reference-timeline *labels* onto the target.

    Point labels move with the segment that contains them. Range labels are
    clipped to the matched content they cover; a range crossing a gap keeps
    its ends on either side of the cut, which are adjacent in the target.
    Labels lying wholly in cut content are dropped.

    Args:
        alignment: Alignment of the target against the reference.
        labels: Labels positioned on the reference timeline.

    Returns:
        The mapped labels sorted by start time.
    """
    mapped: list[TimeLabel] = []
    for label in labels:
        if label.is_point:
            t = map_time(alignment, label.start)
            if t is None:
                logger.info(f"Dropping label {label.name!r} at {label.start:.3f}s: content was cut")
                continue
            t = max(0.0, t)
            mapped.append(TimeLabel(start=t, end=t, name=label.name))
            continue

        pieces = [
            (
                max(label.start, seg.ref_range.start) + seg.lag,
                min(label.end, seg.ref_range.end) + seg.lag,
            )
            for seg in alignment.matches
            if seg.ref_range.start < label.end and label.start < seg.ref_range.end
        ]
        if not pieces:
            logger.info(
                f"Dropping label {label.name!r} "
                f"({label.start:.3f}s-{label.end:.3f}s): content was cut"
            )
            continue
        start, end = max(0.0, pieces[0][0]), pieces[-1][1]
        mapped.append(TimeLabel(start=start, end=max(start, end), name=label.name))
    return sorted(mapped, key=lambda label: (label.start, label.end))
