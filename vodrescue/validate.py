"""Compare downloaded videos against the catalog durations."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Tuple

from .catalog import Catalog, WorkItem
from .naming import video_path
from .probe import FFPROBE, probe_duration
from .ui import say

logger = logging.getLogger(__name__)

DURATION_TOLERANCE_S = 2.0


@dataclass
class ValidationReport:
    checked: int = 0
    missing: int = 0
    skipped: int = 0
    mismatches: List[Tuple[WorkItem, Path, float]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.mismatches


def validate_downloads(catalog: Catalog, output_root: Path, *, ffprobe: str = FFPROBE) -> ValidationReport:
    report = ValidationReport()
    for item in catalog.chronological():
        path = video_path(output_root, item)
        if not path.exists():
            report.missing += 1
            continue
        duration = probe_duration(path, ffprobe=ffprobe)
        if duration is None:
            # probe problems are not a verdict on the file
            logger.warning("Skipping %s: could not probe duration", path)
            report.skipped += 1
            continue
        report.checked += 1
        if abs(duration - item.seconds) > DURATION_TOLERANCE_S:
            report.mismatches.append((item, path, duration))
            say(f"Mismatch:    {path.name} is {duration:.0f}s, expected {item.seconds}s")
    say(
        f"Validated {report.checked} video(s): {len(report.mismatches)} mismatch(es), "
        f"{report.missing} missing, {report.skipped} unreadable."
    )
    return report
