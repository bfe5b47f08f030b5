#!/usr/bin/env python3
"""
vodrescue.orchestrator

Walks the catalog and downloads everything that is missing.

- Metadata sidecars, chat logs and thumbnails are handled synchronously.
- Videos are downloaded one at a time, but the external tool's slow finalize
  step (muxing the downloaded parts) runs in the background so the next
  download can start. At most `max_finalizations` finalize steps run at once.
- A stop request (hotkey) or an exceeded time limit prevents new downloads;
  running ones are always allowed to finish, and the run only returns once
  every background finalize step has completed.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterator, List, Optional, Set

from . import naming
from .catalog import Catalog, CollectionEntry, WorkItem, iter_unreferenced
from .config import RunOptions
from .errors import UserError
from .procrunner import ProcessRunner
from .sidecar import CREATED, UNCHANGED, metadata_document, write_metadata
from .slot import PHASE_DONE, DownloadSlot
from .state import PipelineState
from .thumbnails import fetch_thumbnail
from .ui import say

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DownloadRequest:
    item: WorkItem
    entry: Optional[CollectionEntry] = None

    @property
    def is_external(self) -> bool:
        return naming.is_external(self.item, self.entry)

    @property
    def is_primary(self) -> bool:
        return not self.is_external


def expand_requests(item: WorkItem) -> List[DownloadRequest]:
    """One request per membership, external ones first so the (expensive) primary comes last."""
    if not item.memberships:
        return [DownloadRequest(item)]
    return [DownloadRequest(item, entry) for entry in reversed(item.memberships)]


def iter_work_items(catalog: Catalog, options: RunOptions) -> Iterator[WorkItem]:
    if options.collections:
        collections = [catalog.collection(title) for title in options.collections]
        visited: Set[int] = set()
        for collection in collections:
            entries = list(reversed(collection.entries)) if options.newest_first else collection.entries
            for entry in entries:
                item = entry.item
                if item is None or id(item) in visited:
                    continue
                visited.add(id(item))
                yield item
        return

    items = catalog.chronological()
    if options.newest_first:
        items.reverse()
    yield from (iter_unreferenced(items) if options.non_collections else items)


SlotFactory = Callable[..., DownloadSlot]


class PipelineOrchestrator:
    def __init__(
        self,
        catalog: Catalog,
        options: RunOptions,
        *,
        runner: Optional[ProcessRunner] = None,
        state: Optional[PipelineState] = None,
        slot_factory: SlotFactory = DownloadSlot,
    ):
        self.catalog = catalog
        self.options = options
        self.runner = runner or ProcessRunner()
        self.state = state or PipelineState(options.time_limit_minutes)
        self.slot_factory = slot_factory
        self.slots: List[DownloadSlot] = []
        self.root = Path(options.output_dir)

    # ---------------------------- run ----------------------------

    def run(self) -> int:
        try:
            for item in iter_work_items(self.catalog, self.options):
                if self.state.should_stop():
                    self._report_stop()
                    break
                self.process_item(item)
        finally:
            self._drain()
        if self.state.failure is not None:
            raise self.state.failure
        return 0

    def _report_stop(self) -> None:
        if self.state.failure is not None:
            reason = "a download failed"
        elif self.state.stop_requested:
            reason = "stop requested"
        else:
            reason = f"time limit of {self.options.time_limit_minutes} minute(s) reached"
        say(f"Stopping: {reason}.")
        logger.info("Stopping traversal: %s (elapsed %.1f min)", reason, self.state.elapsed_minutes)

    def _drain(self) -> None:
        # release any worker still parked on the handshake (interrupted mid-handoff)
        for slot in self.slots:
            slot.acknowledge()
        active = self.state.active_finalizations
        if active:
            say(f"Waiting for {active} download(s) to finish finalizing...")
        self.state.wait_for_drain(self.options.drain_poll)
        for slot in self.slots:
            slot.join(timeout=1.0)

    # ---------------------------- per item ----------------------------

    def process_item(self, item: WorkItem) -> None:
        for request in expand_requests(item):
            self.process_request(request)

    def process_request(self, request: DownloadRequest) -> None:
        item, entry = request.item, request.entry
        out_dir = naming.output_dir(self.root, item, entry)
        prefix = naming.display_prefix(item, entry)

        meta_name = naming.metadata_filename(item, entry)
        status = write_metadata(out_dir / meta_name, metadata_document(item, entry), dry_run=self.options.dry_run)
        if status != UNCHANGED:
            label = "Creating:" if status == CREATED else "Updating:"
            say(f"{label:<13}{prefix}{meta_name}")

        if request.is_external:
            return

        if self.options.download_chat:
            chat_path = out_dir / naming.chat_filename(item, entry)
            if not chat_path.exists():
                self.download_chat(item, chat_path)

        if self.options.download_thumbnail:
            thumb_path = out_dir / naming.thumbnail_filename(item, entry)
            if not thumb_path.exists():
                self.download_thumbnail(item, thumb_path)

        if self.options.download_video:
            video_path = out_dir / naming.video_filename(item, entry)
            if not video_path.exists():
                self.download_video(item, video_path)

    # ---------------------------- assets ----------------------------

    def _tool_command(self, subcommand: str, item: WorkItem, dest: Path, *extra: str) -> List[str]:
        cmd = [self.options.downloader_cli, subcommand, *extra, "--id", str(item.id), "-o", str(dest)]
        if self.options.temp_dir is not None:
            cmd += ["--temp-path", str(self.options.temp_dir)]
        return cmd

    def _announce(self, item: WorkItem, dest: Path) -> None:
        say(f"{'Downloading:':<13}{naming.display_prefix(item, None)}{dest.name}")

    def download_chat(self, item: WorkItem, dest: Path) -> None:
        self._announce(item, dest)
        if self.options.dry_run:
            return
        dest.parent.mkdir(parents=True, exist_ok=True)
        result = self.runner.run(self._tool_command("chatdownload", item, dest, "--embed-images"))
        if not result.ok:
            raise UserError(f"{Path(self.options.downloader_cli).name} failed to download chat history.")

    def download_thumbnail(self, item: WorkItem, dest: Path) -> None:
        if not item.thumbnail_url:
            logger.debug("No thumbnail URL for %s", item.url)
            return
        self._announce(item, dest)
        if self.options.dry_run:
            return
        fetch_thumbnail(item.thumbnail_url, dest)

    def download_video(self, item: WorkItem, dest: Path) -> Optional[DownloadSlot]:
        """Start a video download and return once its transfer phase is over."""
        if self.state.should_stop():
            return None
        self._announce(item, dest)
        if self.options.dry_run:
            return None

        while True:
            if self.state.should_stop():
                say(f"{'Skipped:':<13}{dest.name} (stopping)")
                return None
            if self.state.active_finalizations < self.options.max_finalizations:
                break
            time.sleep(self.options.budget_poll)

        dest.parent.mkdir(parents=True, exist_ok=True)
        self.state.increment()
        slot = self.slot_factory(
            item,
            dest,
            self._tool_command("videodownload", item, dest),
            runner=self.runner,
            state=self.state,
            exist_poll=self.options.exist_poll,
            size_poll=self.options.size_poll,
        )
        try:
            slot.start()
        except Exception:
            self.state.decrement()
            raise
        # finished slots hold nothing the drain still needs
        self.slots = [s for s in self.slots if s.phase != PHASE_DONE]
        self.slots.append(slot)

        slot.wait_transfer_done()
        active = self.state.active_finalizations
        say(f"{'Finalizing:':<13}{dest.name} ({active} finalizing)")
        slot.acknowledge()
        return slot
