#!/usr/bin/env python3
"""
vodrescue.slot

One in-flight video download. The external tool does not report when the bulk
transfer ends and its finalize step (concatenating/muxing the parts) begins, so
the worker watches the destination file: the tool only creates and fills it
once finalizing has started.

Handoff with the orchestrator is a rendezvous on two events:

    worker:        set(transfer_done)  -> wait(ack)  -> wait for process exit
    orchestrator:  wait(transfer_done) -> set(ack)   -> continue with next item

The size-growth check is an approximation. Filesystem caching can delay the
observed size, and a tool that creates the file early would end the transfer
phase too soon.
"""

from __future__ import annotations

import logging
import subprocess
import threading
import time
from pathlib import Path
from typing import List, Optional

from .catalog import WorkItem
from .errors import UserError
from .procrunner import ProcessRunner
from .state import PipelineState

logger = logging.getLogger(__name__)

PHASE_PENDING = "pending"
PHASE_TRANSFER = "transfer"
PHASE_FINALIZE = "finalize"
PHASE_DONE = "done"


class DownloadSlot:
    def __init__(
        self,
        item: WorkItem,
        destination: Path,
        command: List[str],
        *,
        runner: ProcessRunner,
        state: PipelineState,
        exist_poll: float = 0.01,
        size_poll: float = 0.1,
    ):
        self.item = item
        self.destination = destination
        self.command = command
        self.runner = runner
        self.state = state
        self.exist_poll = exist_poll
        self.size_poll = size_poll
        self.phase = PHASE_PENDING
        self.returncode: Optional[int] = None

        self._proc: Optional[subprocess.Popen] = None
        self._thread: Optional[threading.Thread] = None
        self._transfer_done = threading.Event()
        self._ack = threading.Event()
        self._transfer_counted = False

    # ---------------------------- orchestrator side ----------------------------

    def start(self) -> None:
        """Launch the tool in the caller's thread (launch errors propagate) and hand it to a worker."""
        self._proc = self.runner.launch(self.command)
        self.phase = PHASE_TRANSFER
        self._transfer_counted = True
        self.state.transfer_started()
        self._thread = threading.Thread(
            target=self._run,
            name=f"vodrescue-slot-{self.item.id}",
            daemon=True,
        )
        self._thread.start()

    def wait_transfer_done(self, timeout: Optional[float] = None) -> bool:
        return self._transfer_done.wait(timeout)

    def acknowledge(self) -> None:
        self._ack.set()

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    # ---------------------------- worker side ----------------------------

    def _size(self) -> Optional[int]:
        try:
            return self.destination.stat().st_size
        except OSError:
            return None

    def _exited(self) -> bool:
        return self._proc is None or self._proc.poll() is not None

    def _await_output(self) -> None:
        while not self.destination.exists():
            if self._exited():
                return
            time.sleep(self.exist_poll)
        # A fresh stat each time; a cached handle can keep reporting 0 bytes
        while self._size() == 0:
            if self._exited():
                return
            time.sleep(self.size_poll)

    def _signal_transfer_done(self) -> None:
        if self._transfer_counted:
            self._transfer_counted = False
            self.state.transfer_finished()
        self._transfer_done.set()

    def _run(self) -> None:
        try:
            self._await_output()
            self.phase = PHASE_FINALIZE
            self._signal_transfer_done()
            self._ack.wait()
            if self._proc is None:
                raise UserError(f"Download of {self.item.title} was never started")
            self.returncode = self._proc.wait()
            if self.returncode != 0:
                raise UserError(
                    f"{Path(self.command[0]).name} failed to download a video "
                    f"(exit code {self.returncode}): {self.item.title}"
                )
            logger.info("Finished %s", self.destination)
        except Exception as exc:
            logger.error("Download of %s failed: %s", self.destination, exc)
            self.state.record_failure(exc if isinstance(exc, UserError) else UserError(str(exc)))
        finally:
            self._signal_transfer_done()
            self.phase = PHASE_DONE
            self.state.decrement()
