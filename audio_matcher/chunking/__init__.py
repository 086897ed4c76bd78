"""Chunking utilities for long recordings.

This module splits sample streams into indexed, possibly overlapping windows
that the matcher correlates pairwise.
"""

from .chunker import Chunk, ChunkSequence, target_windows

__all__ = [
    "Chunk",
    "ChunkSequence",
    "target_windows",
]
