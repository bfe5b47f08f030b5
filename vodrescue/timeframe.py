"""Millisecond timestamps and [start, stop) timeframes for segment extraction."""

from __future__ import annotations

import re
from dataclasses import dataclass

TIMESTAMP_RE = re.compile(r"^(?:(?:(\d+):)?(\d+):)?(\d+)(?:\.(\d{1,3}))?$")


@dataclass(frozen=True, order=True)
class Timestamp:
    total_ms: int

    def __post_init__(self) -> None:
        if self.total_ms < 0:
            raise ValueError(f"Timestamp cannot be negative: {self.total_ms}ms")

    @classmethod
    def parse(cls, text: str) -> "Timestamp":
        """Accepts 'S', 'M:S', 'H:M:S', each with an optional '.fff' fraction."""
        m = TIMESTAMP_RE.match((text or "").strip())
        if not m:
            raise ValueError(f"Invalid timestamp: {text!r}")
        hours, minutes, seconds, frac = m.groups()
        ms = int((frac or "0").ljust(3, "0"))
        return cls(((int(hours or 0) * 60 + int(minutes or 0)) * 60 + int(seconds)) * 1000 + ms)

    @classmethod
    def from_seconds(cls, seconds: float) -> "Timestamp":
        return cls(int(round(seconds * 1000)))

    @property
    def hours(self) -> int:
        return self.total_ms // 3_600_000

    @property
    def minutes(self) -> int:
        return self.total_ms // 60_000 % 60

    @property
    def seconds(self) -> int:
        return self.total_ms // 1000 % 60

    @property
    def milliseconds(self) -> int:
        return self.total_ms % 1000

    @property
    def total_seconds(self) -> float:
        return self.total_ms / 1000.0

    @property
    def file_label(self) -> str:
        return f"{self.hours:02d}_{self.minutes:02d}_{self.seconds:02d}.{self.milliseconds:03d}"

    def __str__(self) -> str:
        return f"{self.hours:02d}:{self.minutes:02d}:{self.seconds:02d}.{self.milliseconds:03d}"

    def __sub__(self, other: "Timestamp") -> "Timestamp":
        return Timestamp(max(0, self.total_ms - other.total_ms))


@dataclass(frozen=True)
class Timeframe:
    start: Timestamp
    stop: Timestamp

    @classmethod
    def parse(cls, text: str) -> "Timeframe":
        """'START-STOP', e.g. '1:02:05-1:02:10.500'."""
        start, sep, stop = (text or "").partition("-")
        if not sep:
            raise ValueError(f"Invalid timeframe (expected START-STOP): {text!r}")
        return cls(Timestamp.parse(start), Timestamp.parse(stop))

    @property
    def duration(self) -> Timestamp:
        return self.stop - self.start

    def __str__(self) -> str:
        return f"{self.start}-{self.stop}"
