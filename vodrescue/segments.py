#!/usr/bin/env python3
"""
vodrescue.segments

Lossless trimming of downloaded VODs.

Stream copy can only start on a keyframe, so the cut starts at the closest
keyframe at or before the requested start (searched within the preceding
10 seconds, falling back to the start of the file) and the duration is
stretched to still end at the requested stop. The seek is done on the input
side; seeking on the output side produces non-monotonic timestamps.
"""

from __future__ import annotations

import argparse
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence

from .errors import UserError
from .probe import FFPROBE, probe_keyframes
from .procrunner import ProcessRunner
from .timeframe import Timeframe, Timestamp
from .ui import say

logger = logging.getLogger(__name__)

FFMPEG = "ffmpeg"
KEYFRAME_SEARCH_WINDOW_MS = 10_000


@dataclass
class ExtractResult:
    destination: Path
    skipped: bool = False
    seek: Optional[Timestamp] = None
    duration: Optional[Timestamp] = None


def segment_path(source: Path, timeframe: Timeframe) -> Path:
    name = f"{source.stem} {timeframe.start.file_label}-{timeframe.stop.file_label}{source.suffix}"
    return source.with_name(name)


def choose_keyframe(keyframes: Sequence[Timestamp], start: Timestamp) -> Timestamp:
    """Latest keyframe strictly before `start`; the file start when there is none."""
    candidates = [kf for kf in keyframes if kf < start]
    candidates.append(Timestamp(0))
    return max(candidates)


def build_ffmpeg_command(source: Path, destination: Path, seek: Timestamp, duration: Timestamp, *, ffmpeg: str = FFMPEG) -> List[str]:
    return [
        ffmpeg,
        "-hide_banner",
        "-loglevel", "error",
        "-nostdin",
        "-ss", str(seek),
        "-i", str(source),
        "-t", str(duration),
        "-map", "0",
        "-c", "copy",
        str(destination),
    ]


class SegmentExtractor:
    def __init__(
        self,
        runner: Optional[ProcessRunner] = None,
        *,
        dry_run: bool = False,
        ffmpeg: str = FFMPEG,
        ffprobe: str = FFPROBE,
    ):
        self.runner = runner or ProcessRunner()
        self.dry_run = dry_run
        self.ffmpeg = ffmpeg
        self.ffprobe = ffprobe

    def extract(self, source: Path, timeframe: Timeframe) -> ExtractResult:
        destination = segment_path(source, timeframe)
        if destination.exists():
            say(f"Skipping:    {destination.name} (already exists)")
            return ExtractResult(destination=destination, skipped=True)
        if not source.is_file():
            raise UserError(f"No such file: {source}")

        start = timeframe.start
        if self.dry_run:
            # no ffprobe either; the real seek can only be earlier
            seek = start
        else:
            lower = Timestamp(max(0, start.total_ms - KEYFRAME_SEARCH_WINDOW_MS))
            keyframes = probe_keyframes(source, lower, start, ffprobe=self.ffprobe, runner=self.runner)
            seek = choose_keyframe(keyframes, start)
            logger.debug("extract %s: %d keyframes in window before %s", source, len(keyframes), start)
        duration = timeframe.stop - seek

        say(f"Extracting:  {destination.name} (seek {seek}, duration {duration})")
        if not self.dry_run:
            result = self.runner.run(build_ffmpeg_command(source, destination, seek, duration, ffmpeg=self.ffmpeg))
            if not result.ok:
                raise UserError(f"ffmpeg failed to extract {destination.name} (exit code {result.returncode}).")
        return ExtractResult(destination=destination, seek=seek, duration=duration)


def make_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="vodrescue extract",
        description="Cut [START-STOP) ranges out of a downloaded video without re-encoding",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    p.add_argument("source", type=Path, help="Video file to cut from")
    p.add_argument("timeframes", nargs="+", help="One or more ranges like 1:02:05-1:02:10.500")
    p.add_argument("-d", "--dry-run", action="store_true", help="Print the planned cuts without running ffprobe or ffmpeg")
    p.add_argument("--ffmpeg", default=FFMPEG, help="ffmpeg executable")
    p.add_argument("--ffprobe", default=FFPROBE, help="ffprobe executable")
    return p


def cli_main(argv: Optional[Sequence[str]] = None) -> int:
    args = make_parser().parse_args(argv)
    try:
        timeframes = [Timeframe.parse(t) for t in args.timeframes]
    except ValueError as exc:
        raise UserError(str(exc)) from exc
    extractor = SegmentExtractor(dry_run=args.dry_run, ffmpeg=args.ffmpeg, ffprobe=args.ffprobe)
    for tf in timeframes:
        if tf.stop < tf.start:
            logger.warning("Timeframe %s ends before it starts; output will be empty", tf)
        extractor.extract(args.source, tf)
    return 0
