"""Audacity label-track entries."""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator, model_validator

__all__ = ["TimeLabel"]


class TimeLabel(BaseModel):
    """A point or range label as stored in an Audacity label track.

    The text form is one line per label, ``start<TAB>end<TAB>name`` with
    times in seconds to four decimals.
    """

    start: float = Field(..., ge=0.0, description="Label start (seconds).")
    end: float = Field(..., ge=0.0, description="Label end (seconds); equals start for points.")
    name: str | None = Field(None, description="Label text.")

    @field_validator("name")
    @classmethod
    def _empty_is_none(cls, value: str | None) -> str | None:
        return value or None

    @model_validator(mode="after")
    def _check_order(self) -> TimeLabel:
        if self.end < self.start:
            raise ValueError(f"label end ({self.end}) precedes start ({self.start})")
        return self

    @property
    def is_point(self) -> bool:
        return self.start == self.end

    @classmethod
    def from_pattern(cls, start: float, end: float, number: int, pattern: str) -> TimeLabel:
        """Build a label whose name is *pattern* with ``#`` replaced by *number*."""
        return cls(start=start, end=end, name=pattern.replace("#", str(number)))

    @classmethod
    def from_line(cls, line: str) -> TimeLabel:
        """Parse one label-track line.

        Raises:
            ValueError: If the line does not have three tab-separated fields
                or a time is not a number.
        """
        parts = line.rstrip("\r\n").split("\t", 2)
        if len(parts) != 3:
            raise ValueError(f"expected 'start<TAB>end<TAB>name', got {line!r}")
        start, end, name = parts
        try:
            return cls(start=float(start), end=float(end), name=name)
        except ValueError as exc:
            raise ValueError(f"invalid label {line!r}: {exc}") from exc

    def to_line(self) -> str:
        return f"{self.start:.4f}\t{self.end:.4f}\t{self.name or ''}"

    def __str__(self) -> str:
        return self.to_line()
