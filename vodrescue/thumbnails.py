"""Best-effort thumbnail download."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import requests

logger = logging.getLogger(__name__)

THUMBNAIL_SIZE = "1920x1080"


def expand_thumbnail_url(url: str) -> str:
    # Twitch export URLs carry size placeholders
    return url.replace("%{width}x%{height}", THUMBNAIL_SIZE).replace("{width}x{height}", THUMBNAIL_SIZE)


def fetch_thumbnail(url: str, dest: Path, *, session: Optional[requests.Session] = None, timeout: float = 10) -> bool:
    """GET `url` and save the body to `dest`. Failures are logged, never raised."""
    getter = session.get if session is not None else requests.get
    try:
        r = getter(expand_thumbnail_url(url), timeout=timeout)
        r.raise_for_status()
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_bytes(r.content)
    except (requests.RequestException, OSError) as exc:
        logger.warning("Thumbnail download failed for %s: %s", url, exc)
        return False
    return True
