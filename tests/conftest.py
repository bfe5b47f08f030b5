"""Pytest configuration and fixtures for vodrescue tests."""

import threading
import time
from pathlib import Path

import pytest

from vodrescue.catalog import load_catalog
from vodrescue.config import RunOptions
from vodrescue.procrunner import ProcessResult

CSV_HEADER = "URL,title,type,viewCount,duration,createdAt,thumbnail\n"


def csv_row(vod_id, title, duration, created_at, thumbnail=""):
    return f"https://www.twitch.tv/videos/{vod_id},{title},archive,10,{duration},{created_at},{thumbnail}\n"


def collection_record(title, length, date="Mar 1, 2023"):
    # seven non-blank lines per entry, like the text copied from a collection page
    return "\n".join(["Preview", "1:00:00", title, date, length, "10 views", "Channel"]) + "\n\n"


def write_config(root: Path, rows, collections=None) -> Path:
    cfg = root / "configuration"
    cfg.mkdir(parents=True, exist_ok=True)
    (cfg / "videos.csv").write_text(CSV_HEADER + "".join(rows), encoding="utf-8")
    if collections:
        cdir = cfg / "collections"
        cdir.mkdir(exist_ok=True)
        for name, records in collections.items():
            (cdir / name).write_text("".join(records), encoding="utf-8")
    return cfg


def fast_options(tmp_path: Path, **overrides) -> RunOptions:
    defaults = dict(
        output_dir=tmp_path / "downloads",
        download_video=True,
        exist_poll=0.005,
        size_poll=0.005,
        budget_poll=0.005,
        drain_poll=0.005,
    )
    defaults.update(overrides)
    return RunOptions(**defaults)


@pytest.fixture
def config_dir(tmp_path):
    """Three loose videos plus two collections; the 'Intro' video is in both."""
    rows = [
        csv_row(101, "Intro", "2m5s", "2023-01-01T10:00:00Z"),
        csv_row(102, "Second stream", "1h0m0s", "2023-01-02T10:00:00Z", "https://cdn/thumb-%{width}x%{height}.jpg"),
        csv_row(103, "Third stream", "30m0s", "2023-01-03T10:00:00Z"),
    ]
    collections = {
        "A Series": [collection_record("Intro", "2:05"), collection_record("Third stream", "30:00")],
        "B Highlights": [collection_record("Intro", "2:05")],
    }
    return write_config(tmp_path, rows, collections)


@pytest.fixture
def catalog(config_dir):
    cat = load_catalog(config_dir)
    assert cat.resolve() == []
    return cat


class FakeProcess:
    """Popen stand-in: creates and fills the destination, then exits once released."""

    def __init__(self, dest: Path, log, lock, *, returncode=0, create_output=True, finalize_delay=0.05, release=None):
        self.dest = dest
        self.returncode_value = returncode
        self._log = log
        self._lock = lock
        self._done = threading.Event()
        self._release = release
        self._create_output = create_output
        self._finalize_delay = finalize_delay
        threading.Thread(target=self._work, daemon=True).start()

    def _work(self):
        time.sleep(0.01)
        if self._create_output:
            self.dest.write_bytes(b"\0" * 1024)
        if self._release is not None:
            self._release.wait(5)
        else:
            time.sleep(self._finalize_delay)
        with self._lock:
            self._log.append(("exit", self.dest.name))
        self._done.set()

    def poll(self):
        return self.returncode_value if self._done.is_set() else None

    def wait(self, timeout=None):
        self._done.wait(timeout)
        return self.returncode_value


class FakeRunner:
    """ProcessRunner stand-in recording launches and synchronous runs in order."""

    def __init__(self, **process_kwargs):
        self.log = []
        self.lock = threading.Lock()
        self.runs = []
        self.processes = []
        self.process_kwargs = process_kwargs
        self.on_launch = None
        self.run_returncode = 0

    def run(self, cmd, *, capture=False, timeout=None):
        self.runs.append(list(cmd))
        return ProcessResult(self.run_returncode)

    def launch(self, cmd):
        dest = Path(cmd[cmd.index("-o") + 1])
        with self.lock:
            self.log.append(("launch", dest.name))
        proc = FakeProcess(dest, self.log, self.lock, **self.process_kwargs)
        self.processes.append(proc)
        if self.on_launch is not None:
            self.on_launch(proc)
        return proc

    @property
    def launches(self):
        return [name for kind, name in self.log if kind == "launch"]


@pytest.fixture
def fake_runner():
    return FakeRunner()
