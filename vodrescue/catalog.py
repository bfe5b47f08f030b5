#!/usr/bin/env python3
"""
vodrescue.catalog

Loads the configuration folder:

  configuration/
    <anything>.csv        one row per VOD (URL,title,type,viewCount,duration,createdAt[,thumbnail])
    collections/<name>    optional playlist files, one per collection

Collection files are the text copied from the Twitch collection page. Each entry
spans seven non-blank lines, of which only title, date and length are used.
Entries are resolved against the CSV by (length in seconds, title).
"""

from __future__ import annotations

import csv
import logging
import re
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from .errors import UserError

logger = logging.getLogger(__name__)

CSV_DURATION_RE = re.compile(r"(?:(\d+)h)?(\d+)m(\d+)s")
ENTRY_LENGTH_RE = re.compile(r"(\d+):(\d+)(?::(\d+))?")
URL_ID_RE = re.compile(r"/(\d+)$")

RECORD_LINES = 7
TITLE_LINE, DATE_LINE, LENGTH_LINE = 2, 3, 4


def parse_csv_duration(text: str) -> int:
    """'1h2m3s' / '2m3s' -> seconds."""
    m = CSV_DURATION_RE.search(text or "")
    if not m:
        raise ValueError(f"Unrecognised duration: {text!r}")
    h = int(m.group(1)) if m.group(1) else 0
    return h * 3600 + int(m.group(2)) * 60 + int(m.group(3))


def parse_entry_length(text: str) -> int:
    """'M:SS' / 'H:MM:SS' -> seconds."""
    m = ENTRY_LENGTH_RE.search(text or "")
    if not m:
        raise ValueError(f"Unrecognised length: {text!r}")
    if m.group(3) is not None:
        return int(m.group(1)) * 3600 + int(m.group(2)) * 60 + int(m.group(3))
    return int(m.group(1)) * 60 + int(m.group(2))


def parse_created_at(text: str) -> datetime:
    value = (text or "").strip()
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


@dataclass(eq=False)
class WorkItem:
    url: str
    title: str
    type: str
    view_count: int
    duration: str
    created_at: str
    thumbnail_url: Optional[str] = None
    seconds: int = 0
    created: Optional[datetime] = None
    memberships: List["CollectionEntry"] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.seconds = parse_csv_duration(self.duration)
        self.created = parse_created_at(self.created_at)

    @property
    def id(self) -> int:
        m = URL_ID_RE.search(self.url.strip())
        if not m:
            raise UserError(f"Cannot extract a video id from URL: {self.url}")
        return int(m.group(1))

    @property
    def primary(self) -> Optional["CollectionEntry"]:
        return self.memberships[0] if self.memberships else None


@dataclass(eq=False)
class Collection:
    title: str
    entries: List["CollectionEntry"] = field(default_factory=list)


@dataclass(eq=False)
class CollectionEntry:
    collection: Collection
    index: int  # one based
    title: str
    date: str
    length: str
    seconds: int = 0
    item: Optional[WorkItem] = None

    def __post_init__(self) -> None:
        self.seconds = parse_entry_length(self.length)


def find_csv_file(config_dir: Path) -> Optional[Path]:
    return next((p for p in sorted(config_dir.iterdir()) if p.is_file() and p.suffix.lower() == ".csv"), None)


def read_catalog_csv(path: Path) -> List[WorkItem]:
    items: List[WorkItem] = []
    with path.open("r", encoding="utf-8-sig", newline="") as fh:
        reader = csv.DictReader(fh)
        for row_no, row in enumerate(reader, 2):
            try:
                items.append(
                    WorkItem(
                        url=row["URL"],
                        title=row["title"],
                        type=row.get("type") or "",
                        view_count=int(row.get("viewCount") or 0),
                        duration=row["duration"],
                        created_at=row["createdAt"],
                        thumbnail_url=(row.get("thumbnail") or "").strip() or None,
                    )
                )
            except (KeyError, ValueError) as exc:
                raise UserError(f"{path.name}:{row_no}: invalid row ({exc})") from exc
    return items


def _nonblank_lines(text: str) -> List[str]:
    return [ln for ln in text.splitlines() if ln.strip()]


def read_collection_file(path: Path) -> Collection:
    collection = Collection(title=path.stem)
    lines = _nonblank_lines(path.read_text(encoding="utf-8"))
    index = 1
    for start in range(0, len(lines), RECORD_LINES):
        record = lines[start : start + RECORD_LINES]
        if len(record) <= LENGTH_LINE:
            logger.warning("%s: ignoring truncated trailing entry (%d lines)", path.name, len(record))
            break
        try:
            entry = CollectionEntry(
                collection=collection,
                index=index,
                title=record[TITLE_LINE],
                date=record[DATE_LINE],
                length=record[LENGTH_LINE],
            )
        except ValueError as exc:
            raise UserError(f"{path.name}: entry {index}: {exc}") from exc
        collection.entries.append(entry)
        index += 1
    return collection


def read_collections(config_dir: Path) -> List[Collection]:
    collections_dir = config_dir / "collections"
    if not collections_dir.is_dir():
        return []
    return [read_collection_file(p) for p in sorted(collections_dir.iterdir()) if p.is_file()]


def _match_key(seconds: int, title: str) -> tuple:
    return (seconds, title.strip())


class Catalog:
    """All work items plus the collections that reference them."""

    def __init__(self, items: List[WorkItem], collections: Optional[List[Collection]] = None):
        self.items = items
        self.collections = collections or []

    def resolve(self) -> List[str]:
        """Attach collection entries to work items. Returns one message per unresolved entry."""
        by_key: Dict[tuple, List[WorkItem]] = defaultdict(list)
        for item in self.items:
            by_key[_match_key(item.seconds, item.title)].append(item)

        errors: List[str] = []
        for collection in self.collections:
            for entry in collection.entries:
                matches = by_key.get(_match_key(entry.seconds, entry.title), [])
                if not matches:
                    errors.append(
                        f"The collection entry '{entry.title}' in the collection '{collection.title}' "
                        "has no matching video in the videos csv file."
                    )
                    continue
                if len(matches) > 1:
                    errors.append(
                        f"The collection entry '{entry.title}' in the collection '{collection.title}' "
                        f"has {len(matches)} matching videos in the videos csv file."
                    )
                    continue
                entry.item = matches[0]
                matches[0].memberships.append(entry)
        return errors

    def collection(self, title: str) -> Collection:
        for c in self.collections:
            if c.title == title:
                return c
        raise UserError(f"No such collection: {title}")

    def chronological(self) -> List[WorkItem]:
        return sorted(self.items, key=lambda it: it.created)

    def duplicate_titles(self) -> List[List[WorkItem]]:
        groups: Dict[str, List[WorkItem]] = defaultdict(list)
        for item in self.items:
            groups[item.title].append(item)
        return [g for g in groups.values() if len(g) > 1]


def load_catalog(config_dir: Path) -> Catalog:
    """Read the CSV and collections. Raises UserError on configuration problems."""
    if not config_dir.is_dir():
        raise UserError(f"No such configuration folder: {config_dir}")
    csv_file = find_csv_file(config_dir)
    if csv_file is None:
        raise UserError(f"Missing csv file in: {config_dir}")
    items = read_catalog_csv(csv_file)
    collections = read_collections(config_dir)
    logger.info("Loaded %d videos and %d collections from %s", len(items), len(collections), config_dir)
    return Catalog(items, collections)


def iter_unreferenced(items: Iterable[WorkItem]) -> Iterable[WorkItem]:
    return (it for it in items if not it.memberships)
