"""Formatter for JSON (.json) output."""

from audio_matcher.matching.models import Alignment


def to_json(alignment: Alignment, **kwargs: object) -> str:
    """
    Convert an Alignment into a JSON-formatted string.

    Parameters:
        alignment: The Alignment to serialize.
        **kwargs: Additional arguments; ignored for JSON output.

    Returns:
        JSON string representation of the alignment (pretty-printed with two-space indentation).
    """
    return alignment.model_dump_json(indent=2)
