#!/usr/bin/env python3
"""
vodrescue.procrunner

Thin wrapper around subprocess used by every component that talks to an
external tool (TwitchDownloaderCLI, ffprobe, ffmpeg).

- `run()`    : synchronous call, optionally capturing stdout/stderr as text
- `launch()` : fire-and-forget Popen handle; the caller waits on it later

Failing to start the program is always a UserError (no retry: a missing
executable is not something a second attempt fixes).
"""

from __future__ import annotations

import logging
import shlex
import subprocess
from dataclasses import dataclass
from typing import Optional, Sequence

from .errors import UserError

logger = logging.getLogger(__name__)


@dataclass
class ProcessResult:
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def _display(cmd: Sequence[str]) -> str:
    return " ".join(shlex.quote(str(c)) for c in cmd)


class ProcessRunner:
    """Starts external programs and normalises launch failures into UserError."""

    def run(self, cmd: Sequence[str], *, capture: bool = False, timeout: Optional[float] = None) -> ProcessResult:
        argv = [str(c) for c in cmd]
        logger.debug("run: %s", _display(argv))
        try:
            proc = subprocess.run(
                argv,
                capture_output=capture,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=timeout,
            )
        except subprocess.TimeoutExpired as exc:
            raise UserError(f"{argv[0]} did not finish within {timeout:.0f}s") from exc
        except OSError as exc:
            raise UserError(f"Failed to start {argv[0]} process: {exc}") from exc
        return ProcessResult(
            returncode=proc.returncode,
            stdout=(proc.stdout or "") if capture else "",
            stderr=(proc.stderr or "") if capture else "",
        )

    def launch(self, cmd: Sequence[str]) -> subprocess.Popen:
        argv = [str(c) for c in cmd]
        logger.debug("launch: %s", _display(argv))
        try:
            # stdout/stderr inherited so the tool's own progress stays visible
            return subprocess.Popen(argv)
        except OSError as exc:
            raise UserError(f"Failed to start {argv[0]} process: {exc}") from exc
