"""Tests for vodrescue.validate."""

from unittest.mock import patch

from vodrescue.naming import video_path
from vodrescue.validate import validate_downloads


def _touch_all(catalog, root):
    for item in catalog.items:
        path = video_path(root, item)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"\0")


def test_all_durations_match(catalog, tmp_path):
    _touch_all(catalog, tmp_path)
    durations = {it.title: float(it.seconds) + 0.5 for it in catalog.items}
    with patch("vodrescue.validate.probe_duration", side_effect=lambda p, ffprobe: next(
        d for t, d in durations.items() if t in p.name
    )):
        report = validate_downloads(catalog, tmp_path)
    assert report.ok
    assert report.checked == 3


def test_mismatch_missing_and_unreadable(catalog, tmp_path, capsys):
    intro, second, third = catalog.items
    for item in (intro, second):
        path = video_path(tmp_path, item)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"\0")

    def fake_probe(path, ffprobe):
        return 60.0 if "Intro" in path.name else None

    with patch("vodrescue.validate.probe_duration", side_effect=fake_probe):
        report = validate_downloads(catalog, tmp_path)

    assert not report.ok
    assert report.checked == 1
    assert report.missing == 1
    assert report.skipped == 1
    assert report.mismatches[0][0] is intro
    assert "Mismatch:" in capsys.readouterr().out
