"""Label tracks: Audacity text I/O and mapping across an alignment."""

from .io import format_labels, parse_labels, read_labels, write_labels
from .mapping import map_labels, map_time
from .models import TimeLabel

__all__ = [
    "TimeLabel",
    "format_labels",
    "map_labels",
    "map_time",
    "parse_labels",
    "read_labels",
    "write_labels",
]
