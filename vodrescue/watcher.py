#!/usr/bin/env python3
"""
vodrescue.watcher

Background hotkey listener: pressing S toggles the run's stop flag. A stop only
suppresses new downloads; anything already launched is allowed to finish.
"""

from __future__ import annotations

import logging
import os
import select
import sys
import threading
import time
from typing import Callable, Optional

from .state import PipelineState
from .ui import say

logger = logging.getLogger(__name__)

STOP_KEY = "s"


class _KeyReader:
    """Single key reader: cbreak mode on POSIX terminals, msvcrt on Windows."""

    def __init__(self) -> None:
        if not sys.stdin.isatty():
            raise RuntimeError("stdin is not attached to a TTY")
        self._restore: Optional[Callable[[], None]] = None
        if os.name != "nt":
            import termios
            import tty

            fd = sys.stdin.fileno()
            saved = termios.tcgetattr(fd)
            tty.setcbreak(fd)
            self._restore = lambda: termios.tcsetattr(fd, termios.TCSADRAIN, saved)

    def close(self) -> None:
        if self._restore is not None:
            self._restore()
            self._restore = None

    def read_key(self, timeout: float = 0.1) -> Optional[str]:
        if os.name == "nt":
            import msvcrt

            if msvcrt.kbhit():
                return msvcrt.getwch()
            time.sleep(timeout)
            return None
        ready, _, _ = select.select([sys.stdin], [], [], timeout)
        return sys.stdin.read(1) if ready else None


class CancellationWatcher:
    def __init__(self, state: PipelineState, *, key: str = STOP_KEY):
        self.state = state
        self.key = key.lower()
        self._reader: Optional[_KeyReader] = None
        self._thread: Optional[threading.Thread] = None
        self._stop_evt = threading.Event()

    def start(self) -> bool:
        """Start listening. Returns False (and does nothing) without an interactive terminal."""
        if self._thread is not None:
            return True
        try:
            self._reader = _KeyReader()
        except Exception as exc:
            logger.debug("Stop hotkey unavailable: %s", exc)
            return False
        self._thread = threading.Thread(target=self._loop, name="vodrescue-watcher", daemon=True)
        self._thread.start()
        say(f"Press '{self.key.upper()}' to stop after the current downloads (press again to resume).")
        return True

    def stop(self) -> None:
        self._stop_evt.set()
        if self._thread is not None:
            self._thread.join(timeout=0.5)
            self._thread = None
        if self._reader is not None:
            try:
                self._reader.close()
            except Exception as exc:
                logger.debug("Could not restore terminal settings: %s", exc)
            self._reader = None

    def handle_key(self, key: str) -> None:
        if not key or key.lower() != self.key:
            return
        if self.state.toggle_stop():
            say("Stop requested: no new downloads will start; running ones will finish.")
        else:
            say("Stop cancelled: continuing.")

    def _loop(self) -> None:
        reader = self._reader
        if reader is None:
            return
        while not self._stop_evt.is_set():
            try:
                key = reader.read_key(0.1)
            except Exception as exc:
                logger.debug("Stop hotkey reader failed: %s", exc)
                break
            if key:
                self.handle_key(key)
