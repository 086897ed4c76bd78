"""Registry of output formatters for alignments.

Allows easy extension with new formats by adding a formatter function and
registering it in the ``FORMATTERS`` dictionary.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from audio_matcher.matching.models import Alignment

from ._csv import to_csv
from ._json import to_json
from ._labels import alignment_labels, to_labels


@dataclass
class FormatterSpec:
    """Metadata and function for a specific output format.

    Attributes:
        format_func: The formatter function that converts Alignment to string.
        supports_timeline: Whether the format honours the ``timeline`` option.
        file_extension: The file extension for this format (including the dot).

    """

    format_func: Callable[..., str]
    supports_timeline: bool
    file_extension: str


# A registry mapping format names to their respective formatter specifications.
FORMATTERS: dict[str, FormatterSpec] = {
    "labels": FormatterSpec(
        format_func=to_labels,
        supports_timeline=True,
        file_extension=".txt",
    ),
    "json": FormatterSpec(
        format_func=to_json,
        supports_timeline=False,
        file_extension=".json",
    ),
    "csv": FormatterSpec(
        format_func=to_csv,
        supports_timeline=False,
        file_extension=".csv",
    ),
}


def get_formatter(format_name: str) -> Callable[..., str]:
    """Get the formatter function registered for the given format name.

    Parameters:
        format_name (str): Format identifier, case-insensitive (e.g., "labels", "json").

    Returns:
        Callable[..., str]: Formatter that converts an ``Alignment`` to a
            formatted string.

    Raises:
        ValueError: If `format_name` is not supported.
    """
    return get_formatter_spec(format_name).format_func


def get_formatter_spec(format_name: str) -> FormatterSpec:
    """Retrieve the FormatterSpec metadata for the given output format name.

    Parameters:
        format_name (str): Case-insensitive format identifier (e.g., "labels", "csv").

    Returns:
        FormatterSpec: The metadata and formatter function for the requested format.

    Raises:
        ValueError: If the specified format_name is not supported.
    """
    spec = FORMATTERS.get(format_name.lower())
    if not spec:
        supported = list(FORMATTERS.keys())
        raise ValueError(f"Unsupported format: '{format_name}'. Supported formats are: {supported}")
    return spec


__all__ = [
    "FORMATTERS",
    "FormatterSpec",
    "alignment_labels",
    "get_formatter",
    "get_formatter_spec",
]
