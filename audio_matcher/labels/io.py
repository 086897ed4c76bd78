"""Reading and writing Audacity label-track text files."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from pydantic import ValidationError

from audio_matcher.labels.models import TimeLabel

__all__ = [
    "format_labels",
    "parse_labels",
    "read_labels",
    "write_labels",
]

logger = logging.getLogger(__name__)


def format_labels(labels: Iterable[TimeLabel]) -> str:
    """Render *labels* as label-track text, one line per label."""
    return "\n".join(label.to_line() for label in labels)


def parse_labels(text: str) -> list[TimeLabel]:
    """Parse label-track text.

    Blank lines and lines starting with ``#`` are ignored. Malformed lines
    are logged and skipped, so one bad line does not lose the whole track.
    """
    labels: list[TimeLabel] = []
    for lineno, line in enumerate(text.splitlines(), start=1):
        if not line.strip() or line.lstrip().startswith("#"):
            continue
        try:
            labels.append(TimeLabel.from_line(line))
        except (ValueError, ValidationError) as exc:
            logger.warning(f"Skipping label on line {lineno}: {exc}")
    return labels


def read_labels(path: Path | str) -> list[TimeLabel]:
    """Read a label-track file.

    Raises:
        OSError: If the file cannot be read.
    """
    return parse_labels(Path(path).read_text(encoding="utf-8"))


def write_labels(labels: Iterable[TimeLabel], path: Path | str) -> Path:
    """Write *labels* to *path* and return the path."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(format_labels(labels), encoding="utf-8")
    logger.debug(f"Wrote labels to {path}")
    return path
