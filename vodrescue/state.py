#!/usr/bin/env python3
"""
vodrescue.state

Run-scoped state shared between the orchestrator loop, the download workers and
the cancellation watcher. One instance per run; nothing here is module global,
so independent runs (and tests) never see each other's counters.
"""

from __future__ import annotations

import threading
import time
from typing import Callable, Optional


class PipelineState:
    def __init__(self, time_limit_minutes: int = 0, clock: Callable[[], float] = time.monotonic):
        self.time_limit_minutes = time_limit_minutes
        self._clock = clock
        self._started = clock()
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._active = 0
        self._transfers = 0
        self._peak_active = 0
        self._peak_transfers = 0
        self._failure: Optional[BaseException] = None

    # ---------------------------- finalize budget ----------------------------

    @property
    def active_finalizations(self) -> int:
        with self._lock:
            return self._active

    def increment(self) -> int:
        with self._lock:
            self._active += 1
            self._peak_active = max(self._peak_active, self._active)
            return self._active

    def decrement(self) -> int:
        with self._lock:
            if self._active <= 0:
                raise RuntimeError("active_finalizations would drop below zero")
            self._active -= 1
            return self._active

    def wait_for_drain(self, poll: float = 0.1) -> None:
        while self.active_finalizations != 0:
            time.sleep(poll)

    # ---------------------------- transfer phase tracking ----------------------------

    def transfer_started(self) -> None:
        with self._lock:
            self._transfers += 1
            self._peak_transfers = max(self._peak_transfers, self._transfers)

    def transfer_finished(self) -> None:
        with self._lock:
            self._transfers -= 1

    @property
    def transfers_in_flight(self) -> int:
        with self._lock:
            return self._transfers

    @property
    def peak_transfers(self) -> int:
        with self._lock:
            return self._peak_transfers

    @property
    def peak_finalizations(self) -> int:
        with self._lock:
            return self._peak_active

    # ---------------------------- stop conditions ----------------------------

    @property
    def stop_requested(self) -> bool:
        return self._stop.is_set()

    def request_stop(self) -> None:
        self._stop.set()

    def toggle_stop(self) -> bool:
        """Flip the stop flag; returns the new value."""
        with self._lock:
            if self._stop.is_set():
                self._stop.clear()
                return False
            self._stop.set()
            return True

    @property
    def elapsed_minutes(self) -> float:
        return (self._clock() - self._started) / 60.0

    def time_limit_reached(self) -> bool:
        return self.time_limit_minutes > 0 and self.elapsed_minutes > self.time_limit_minutes

    def should_stop(self) -> bool:
        return self.stop_requested or self.time_limit_reached() or self.failure is not None

    # ---------------------------- worker failures ----------------------------

    def record_failure(self, exc: BaseException) -> None:
        with self._lock:
            if self._failure is None:
                self._failure = exc

    @property
    def failure(self) -> Optional[BaseException]:
        with self._lock:
            return self._failure
