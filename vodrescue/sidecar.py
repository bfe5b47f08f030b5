"""Metadata sidecar documents written next to each download."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from .catalog import CollectionEntry, WorkItem
from .naming import collection_index, context_entry, is_external

logger = logging.getLogger(__name__)

CREATED = "created"
UPDATED = "updated"
UNCHANGED = "unchanged"


def metadata_document(item: WorkItem, entry: Optional[CollectionEntry]) -> Dict[str, Any]:
    ctx = context_entry(item, entry)
    return {
        "title": item.title,
        # No description or viewable flag in the export
        "broadcast_type": item.type,
        "views": item.view_count,
        "seconds": item.seconds,
        "created_at": item.created_at,
        "url": item.url,
        "id": item.id,
        "collection_index": collection_index(item, entry),
        "collection_title": ctx.collection.title if ctx is not None else "",
        "collection_title_external": item.primary.collection.title if is_external(item, entry) else "",
    }


def render(document: Dict[str, Any]) -> str:
    return json.dumps(document, indent=2, ensure_ascii=False) + "\n"


def write_metadata(path: Path, document: Dict[str, Any], *, dry_run: bool = False) -> str:
    """Write `document` to `path` unless the file already holds exactly that content."""
    payload = render(document)
    status = CREATED
    if path.exists():
        if path.read_text(encoding="utf-8") == payload:
            return UNCHANGED
        status = UPDATED
    if dry_run:
        return status
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(payload, encoding="utf-8")
    logger.debug("%s metadata %s", status, path)
    return status
