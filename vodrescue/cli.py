#!/usr/bin/env python3
"""
vodrescue.cli – CLI entrypoint

Examples:

  # Metadata, chat and video for everything, oldest first, stop after 3 hours
  vodrescue -v -c -l 180

  # Only two collections, newest first, two finalize steps in parallel
  vodrescue -v -C "Speedruns" "Let's Plays" -O newest-first -n 2

  # See what would happen without touching anything
  vodrescue -v -c -b -d

  # Cut two ranges out of a downloaded VOD without re-encoding
  vodrescue extract "downloads/2023-04-01 18-00-00  Stream.mp4" 1:02:05-1:02:10.5 2:00:00-2:03:00

  # Check downloaded videos against the catalog durations
  vodrescue validate
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from . import __version__, segments
from .catalog import Catalog, load_catalog
from .config import (
    DEFAULT_CONFIG_DIR,
    DEFAULT_MAX_FINALIZATIONS,
    DEFAULT_OUTPUT_DIR,
    ORDER_CHOICES,
    ORDER_OLDEST_FIRST,
    RunOptions,
    default_downloader_cli,
)
from .errors import UserError
from .orchestrator import PipelineOrchestrator, iter_work_items
from .probe import FFPROBE
from .state import PipelineState
from .ui import error, say
from .validate import validate_downloads
from .watcher import CancellationWatcher


def _setup_logging(log_file: Optional[Path] = None, log_level: str = "INFO", console_level: str = "WARNING") -> logging.Logger:
    """
    Configure the `vodrescue` logger.

    Args:
        log_file: Optional path for a detailed log file
        log_level: File logging level (DEBUG, INFO, WARNING, ERROR)
        console_level: Console (stderr) logging level

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger("vodrescue")
    logger.setLevel(logging.DEBUG)  # Capture everything, filter at handler level

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setLevel(getattr(logging, log_level.upper()))
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s | %(levelname)-8s | %(threadName)-22s | %(name)s: %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        logger.addHandler(file_handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(getattr(logging, console_level.upper()))
    console_handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    logger.addHandler(console_handler)
    return logger


def _positive_int(value: str) -> int:
    n = int(value)
    if n < 1:
        raise argparse.ArgumentTypeError("must be at least 1")
    return n


def _add_common_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("-o", "--output-dir", type=Path, default=DEFAULT_OUTPUT_DIR, help="Directory downloads are saved to")
    p.add_argument(
        "-g", "--config-dir", type=Path, default=DEFAULT_CONFIG_DIR,
        help="Directory containing one videos csv file and optionally a 'collections' folder",
    )
    p.add_argument("--log-file", type=Path, default=None, help="Write a detailed log to this file")
    p.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="File log level")
    p.add_argument(
        "--console-log-level", default="WARNING", choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="Console log level"
    )


def make_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="vodrescue",
        description="Download Twitch VODs, chat logs, thumbnails and metadata. "
        "Sub-commands: 'extract' (lossless cuts), 'validate' (check durations).",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    p.add_argument("-v", "--download-video", action="store_true", help="Download the best video and audio available")
    p.add_argument(
        "-c", "--download-chat", action="store_true",
        help="Download the chat history into a json file (TwitchDownloader can render it later)",
    )
    p.add_argument("-b", "--download-thumbnail", action="store_true", help="Download thumbnails listed in the csv")
    p.add_argument(
        "-l", "--time-limit", type=int, default=0,
        help="Stop starting new downloads after this many minutes (<=0 for no limit); running ones finish",
    )
    p.add_argument(
        "-n", "--max-finalizations", type=_positive_int, default=DEFAULT_MAX_FINALIZATIONS,
        help="How many downloads may finalize in the background at once",
    )
    p.add_argument("-O", "--order", choices=ORDER_CHOICES, default=ORDER_OLDEST_FIRST, help="Processing order")
    scope = p.add_mutually_exclusive_group()
    scope.add_argument("-C", "--collections", nargs="+", default=None, help="Only process videos in these collections")
    scope.add_argument(
        "-N", "--non-collections", action="store_true", help="Only process videos which are not part of a collection"
    )
    listing = p.add_mutually_exclusive_group()
    listing.add_argument("-L", "--list-collections", action="store_true", help="List all collection names")
    listing.add_argument("-D", "--list-duplicate-titles", action="store_true", help="List videos sharing a title")
    listing.add_argument(
        "-V", "--list-videos", action="store_true", help="List videos in order (respects -C / -N)"
    )
    p.add_argument("-t", "--temp-dir", type=Path, default=None, help="Temp directory for the downloader")
    p.add_argument(
        "-x", "--downloader-cli", default=default_downloader_cli(), help="Path of the TwitchDownloaderCLI executable"
    )
    p.add_argument(
        "-d", "--dry-run", action="store_true",
        help="Print what would be done without downloading anything or writing any files",
    )
    _add_common_args(p)
    return p


def make_validate_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="vodrescue validate",
        description="Probe downloaded videos and compare their duration with the catalog",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    p.add_argument("--ffprobe", default=FFPROBE, help="ffprobe executable")
    _add_common_args(p)
    return p


def options_from_args(args: argparse.Namespace) -> RunOptions:
    return RunOptions(
        output_dir=args.output_dir,
        download_video=args.download_video,
        download_chat=args.download_chat,
        download_thumbnail=args.download_thumbnail,
        time_limit_minutes=args.time_limit,
        max_finalizations=args.max_finalizations,
        order=args.order,
        collections=tuple(args.collections) if args.collections else None,
        non_collections=args.non_collections,
        temp_dir=args.temp_dir,
        downloader_cli=args.downloader_cli,
        dry_run=args.dry_run,
    )


def _load_resolved(config_dir: Path) -> Optional[Catalog]:
    catalog = load_catalog(config_dir)
    problems = catalog.resolve()
    for msg in problems:
        error(msg)
    return None if problems else catalog


def list_collections(catalog: Catalog) -> None:
    for collection in catalog.collections:
        say(collection.title)


def list_duplicate_titles(catalog: Catalog) -> None:
    groups = catalog.duplicate_titles()
    for group in groups:
        for item in group:
            say(f"{len(group)}  {item.created_at}  {item.url}  {item.title}")
    say(f"unique duplicate title count: {len(groups)}")


def list_videos(catalog: Catalog, options: RunOptions) -> None:
    if options.collections:
        for title in options.collections:
            collection = catalog.collection(title)
            say(f"{collection.title}:")
            for entry in collection.entries:
                say(f"  {entry.index:3d}  {entry.item.created_at if entry.item else '?'}  {entry.title}")
        return
    say("Videos in processing order:")
    for item in iter_work_items(catalog, options):
        prefix = f"{item.primary.collection.title}/{item.primary.index:03d}" if item.primary else "-"
        say(f"  {item.created_at}  {prefix}  {item.title}")


def run_downloads(catalog: Catalog, options: RunOptions) -> int:
    state = PipelineState(options.time_limit_minutes)
    watcher = CancellationWatcher(state)
    if not options.dry_run:
        watcher.start()
    try:
        return PipelineOrchestrator(catalog, options, state=state).run()
    finally:
        watcher.stop()


def _main_validate(argv: Sequence[str]) -> int:
    args = make_validate_parser().parse_args(list(argv))
    _setup_logging(args.log_file, args.log_level, args.console_log_level)
    catalog = _load_resolved(args.config_dir)
    if catalog is None:
        return 1
    report = validate_downloads(catalog, args.output_dir, ffprobe=args.ffprobe)
    return 0 if report.ok else 1


def _main_downloads(argv: Sequence[str]) -> int:
    args = make_parser().parse_args(list(argv))
    _setup_logging(args.log_file, args.log_level, args.console_log_level)
    options = options_from_args(args)
    catalog = _load_resolved(args.config_dir)
    if catalog is None:
        return 1
    if args.list_collections:
        list_collections(catalog)
        return 0
    if args.list_duplicate_titles:
        list_duplicate_titles(catalog)
        return 0
    if args.list_videos:
        list_videos(catalog, options)
        return 0
    return run_downloads(catalog, options)


def main(argv: Optional[Sequence[str]] = None) -> int:
    argv_list = list(argv) if argv is not None else sys.argv[1:]
    try:
        if argv_list and argv_list[0] == "extract":
            return segments.cli_main(argv_list[1:])
        if argv_list and argv_list[0] == "validate":
            return _main_validate(argv_list[1:])
        return _main_downloads(argv_list)
    except UserError as exc:
        error(str(exc))
        return 1
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
