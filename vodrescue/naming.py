"""Output locations and file names.

Everything is derived from the creation time, the collection membership and the
one based collection index, so re-runs always land on the same paths.
"""

from __future__ import annotations

import re
from datetime import datetime
from pathlib import Path
from typing import Optional

from .catalog import CollectionEntry, WorkItem

INVALID_FILENAME_CHARS_RE = re.compile(r"[\\/:*?\"'<>|]")


def format_date(value: datetime) -> str:
    return value.strftime("%Y-%m-%d %H-%M-%S")


def sanitize_title(title: str) -> str:
    return INVALID_FILENAME_CHARS_RE.sub("", title)


def is_external(item: WorkItem, entry: Optional[CollectionEntry]) -> bool:
    return entry is not None and item.primary is not entry


def context_entry(item: WorkItem, entry: Optional[CollectionEntry]) -> Optional[CollectionEntry]:
    return entry if entry is not None else item.primary


def collection_index(item: WorkItem, entry: Optional[CollectionEntry]) -> int:
    ctx = context_entry(item, entry)
    return ctx.index if ctx is not None else -1


def output_dir(root: Path, item: WorkItem, entry: Optional[CollectionEntry]) -> Path:
    ctx = context_entry(item, entry)
    return root / ctx.collection.title if ctx is not None else root


def display_prefix(item: WorkItem, entry: Optional[CollectionEntry]) -> str:
    ctx = context_entry(item, entry)
    return f"{ctx.collection.title}/" if ctx is not None else ""


def _with_index(item: WorkItem, entry: Optional[CollectionEntry], name: str) -> str:
    if not item.memberships:
        return name
    return f"{collection_index(item, entry):03d}  {name}"


def metadata_filename(item: WorkItem, entry: Optional[CollectionEntry]) -> str:
    suffix = " (external)" if is_external(item, entry) else ""
    return _with_index(item, entry, f"{format_date(item.created)}  metadata{suffix}.json")


def chat_filename(item: WorkItem, entry: Optional[CollectionEntry]) -> str:
    return _with_index(item, entry, f"{format_date(item.created)}  chat.json")


def thumbnail_filename(item: WorkItem, entry: Optional[CollectionEntry]) -> str:
    return _with_index(item, entry, f"{format_date(item.created)}  thumbnail.jpg")


def video_filename(item: WorkItem, entry: Optional[CollectionEntry]) -> str:
    return _with_index(item, entry, f"{format_date(item.created)}  {sanitize_title(item.title)}.mp4")


def video_path(root: Path, item: WorkItem, entry: Optional[CollectionEntry] = None) -> Path:
    return output_dir(root, item, entry) / video_filename(item, entry)
