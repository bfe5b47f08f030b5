#!/usr/bin/env python3
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from .errors import UserError
from .procrunner import ProcessRunner
from .timeframe import Timestamp

logger = logging.getLogger(__name__)

FFPROBE = "ffprobe"


def run_ffprobe_json(
    path: Path,
    args: Sequence[str],
    *,
    ffprobe: str = FFPROBE,
    timeout: float = 60,
    runner: Optional[ProcessRunner] = None,
) -> Optional[Dict[str, Any]]:
    """
    Run ffprobe with `args` against `path` and return the parsed JSON document.

    Returns None on any probe failure (missing file or binary, non-zero exit,
    timeout, empty or invalid JSON); callers treat probing as best effort.
    """
    if not path or not path.exists():
        return None

    cmd = [ffprobe, "-v", "error", *args, "-of", "json", str(path)]
    try:
        result = (runner or ProcessRunner()).run(cmd, capture=True, timeout=timeout)
    except UserError as exc:
        logger.warning("ffprobe could not run for %s: %s", path, exc)
        return None

    if not result.ok:
        logger.warning("ffprobe failed (%s) for %s: %s", result.returncode, path, result.stderr.strip())
        return None
    if not result.stdout.strip():
        return None
    try:
        return json.loads(result.stdout)
    except json.JSONDecodeError:
        logger.warning("ffprobe returned invalid JSON for %s", path)
        return None


def probe_keyframes(
    path: Path,
    lower: Timestamp,
    upper: Timestamp,
    *,
    ffprobe: str = FFPROBE,
    runner: Optional[ProcessRunner] = None,
) -> List[Timestamp]:
    """Keyframe timestamps of the first video stream inside [lower, upper]."""
    doc = run_ffprobe_json(
        path,
        [
            "-select_streams", "v:0",
            "-skip_frame", "nokey",
            "-read_intervals", f"{lower.total_seconds:.3f}%{upper.total_seconds:.3f}",
            "-show_entries", "frame=key_frame,pts_time",
        ],
        ffprobe=ffprobe,
        runner=runner,
    )
    if not doc:
        return []
    frames = doc.get("frames")
    if not isinstance(frames, list):
        logger.warning("ffprobe frame list missing for %s", path)
        return []

    keyframes: List[Timestamp] = []
    for frame in frames:
        if not isinstance(frame, dict) or str(frame.get("key_frame")) != "1":
            continue
        try:
            keyframes.append(Timestamp.from_seconds(float(frame["pts_time"])))
        except (KeyError, TypeError, ValueError):
            # pts_time is "N/A" for frames without a decodable timestamp
            continue
    return keyframes


def probe_duration(path: Path, *, ffprobe: str = FFPROBE, runner: Optional[ProcessRunner] = None) -> Optional[float]:
    doc = run_ffprobe_json(path, ["-show_entries", "format=duration"], ffprobe=ffprobe, runner=runner)
    if not doc:
        return None
    try:
        return float(doc["format"]["duration"])
    except (KeyError, TypeError, ValueError):
        logger.warning("ffprobe returned no usable duration for %s", path)
        return None
