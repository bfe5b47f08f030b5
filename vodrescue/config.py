"""Run configuration for the download pipeline."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

ORDER_OLDEST_FIRST = "oldest-first"
ORDER_NEWEST_FIRST = "newest-first"
ORDER_CHOICES = (ORDER_OLDEST_FIRST, ORDER_NEWEST_FIRST)

DEFAULT_OUTPUT_DIR = Path("downloads")
DEFAULT_CONFIG_DIR = Path("configuration")
DEFAULT_MAX_FINALIZATIONS = 4


def default_downloader_cli() -> str:
    return os.environ.get("VODRESCUE_DOWNLOADER_CLI") or "TwitchDownloaderCLI"


@dataclass(frozen=True)
class RunOptions:
    output_dir: Path = DEFAULT_OUTPUT_DIR
    download_video: bool = False
    download_chat: bool = False
    download_thumbnail: bool = False
    time_limit_minutes: int = 0  # <= 0 means unbounded
    max_finalizations: int = DEFAULT_MAX_FINALIZATIONS
    order: str = ORDER_OLDEST_FIRST
    collections: Optional[Tuple[str, ...]] = None
    non_collections: bool = False
    temp_dir: Optional[Path] = None
    downloader_cli: str = "TwitchDownloaderCLI"
    dry_run: bool = False
    # Polling intervals (seconds)
    exist_poll: float = 0.01
    size_poll: float = 0.1
    budget_poll: float = 0.1
    drain_poll: float = 0.1

    def __post_init__(self) -> None:
        if self.max_finalizations < 1:
            raise ValueError("max_finalizations must be >= 1")
        if self.order not in ORDER_CHOICES:
            raise ValueError(f"order must be one of {ORDER_CHOICES}, got {self.order!r}")

    @property
    def newest_first(self) -> bool:
        return self.order == ORDER_NEWEST_FIRST
