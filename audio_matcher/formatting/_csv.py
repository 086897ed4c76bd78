"""Formatter for CSV (.csv) output containing one row per segment."""

from __future__ import annotations

import csv
import io

from audio_matcher.matching.models import Alignment


def to_csv(alignment: Alignment, **kwargs: object) -> str:  # noqa: D401
    """Convert an ``Alignment`` into CSV string (segment-level).

    Columns: kind, ref_start, ref_end, target_start, target_end, confidence.
    Target columns are empty for gaps.

    Args:
        alignment: The alignment containing segments.
        **kwargs: Additional arguments (ignored for CSV output).

    Returns:
        A CSV string with one row per segment.

    """
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(["kind", "ref_start", "ref_end", "target_start", "target_end", "confidence"])
    for seg in alignment.segments:
        target = seg.target_range
        writer.writerow(
            [
                seg.kind.value,
                f"{seg.ref_range.start:.4f}",
                f"{seg.ref_range.end:.4f}",
                "" if target is None else f"{target.start:.4f}",
                "" if target is None else f"{target.end:.4f}",
                f"{seg.confidence:.4f}",
            ]
        )
    return buffer.getvalue()
