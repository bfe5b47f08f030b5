"""Tests for vodrescue.segments (keyframe-aligned lossless cuts)."""

import json
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from vodrescue.errors import UserError
from vodrescue.procrunner import ProcessResult
from vodrescue.segments import (
    SegmentExtractor,
    build_ffmpeg_command,
    choose_keyframe,
    cli_main,
    segment_path,
)
from vodrescue.timeframe import Timeframe, Timestamp


@pytest.fixture
def source(tmp_path):
    path = tmp_path / "2023-01-01 10-00-00  Stream.mp4"
    path.write_bytes(b"\0" * 16)
    return path


@pytest.fixture
def runner():
    mock = MagicMock()
    mock.run.return_value = ProcessResult(0)
    return mock


def test_segment_path():
    tf = Timeframe.parse("1:02:05-1:02:10.5")
    assert segment_path(Path("/v/Stream.mp4"), tf) == Path("/v/Stream 01_02_05.000-01_02_10.500.mp4")


def test_choose_keyframe():
    keyframes = [Timestamp(115_000), Timestamp(120_000), Timestamp(125_000)]
    assert choose_keyframe(keyframes, Timestamp(125_000)) == Timestamp(120_000)
    assert choose_keyframe([], Timestamp(125_000)) == Timestamp(0)
    assert choose_keyframe([Timestamp(125_000)], Timestamp(125_000)) == Timestamp(0)


def test_seek_to_preceding_keyframe_and_stretch_duration(source, runner):
    with patch("vodrescue.segments.probe_keyframes", return_value=[Timestamp(120_000)]) as probe:
        result = SegmentExtractor(runner).extract(source, Timeframe(Timestamp(125_000), Timestamp(130_000)))

    assert probe.call_args[0][1:] == (Timestamp(115_000), Timestamp(125_000))
    assert result.seek == Timestamp(120_000)
    assert result.duration == Timestamp(10_000)
    cmd = runner.run.call_args[0][0]
    assert cmd[cmd.index("-ss") + 1] == "00:02:00.000"
    assert cmd[cmd.index("-t") + 1] == "00:00:10.000"
    assert cmd.index("-ss") < cmd.index("-i")


def test_search_window_never_negative(source, runner):
    with patch("vodrescue.segments.probe_keyframes", return_value=[]) as probe:
        result = SegmentExtractor(runner).extract(source, Timeframe.parse("3-8"))
    assert probe.call_args[0][1] == Timestamp(0)
    assert result.seek == Timestamp(0)
    assert result.duration == Timestamp(8_000)


def test_existing_output_is_skipped(source, runner):
    tf = Timeframe.parse("2:05-2:10")
    segment_path(source, tf).write_bytes(b"done")
    with patch("vodrescue.segments.probe_keyframes") as probe:
        result = SegmentExtractor(runner).extract(source, tf)
    assert result.skipped
    probe.assert_not_called()
    runner.run.assert_not_called()


def test_dry_run_launches_nothing(source, runner):
    with patch("vodrescue.segments.probe_keyframes") as probe:
        result = SegmentExtractor(runner, dry_run=True).extract(source, Timeframe.parse("2:05-2:10"))
    assert not result.skipped
    assert result.seek == Timestamp(125_000)
    assert result.duration == Timestamp(5_000)
    probe.assert_not_called()
    runner.run.assert_not_called()


def test_keyframe_lookup_uses_the_injected_runner(source, runner):
    frames = {"frames": [{"key_frame": 1, "pts_time": "120.000"}]}

    def fake_run(cmd, *, capture=False, timeout=None):
        if cmd[0] == "ffprobe":
            return ProcessResult(0, stdout=json.dumps(frames))
        return ProcessResult(0)

    runner.run.side_effect = fake_run
    with patch("subprocess.run") as real_run:
        result = SegmentExtractor(runner).extract(source, Timeframe.parse("2:05-2:10"))
    real_run.assert_not_called()
    assert result.seek == Timestamp(120_000)
    assert [call.args[0][0] for call in runner.run.call_args_list] == ["ffprobe", "ffmpeg"]


def test_missing_source(tmp_path, runner):
    with pytest.raises(UserError, match="No such file"):
        SegmentExtractor(runner).extract(tmp_path / "missing.mp4", Timeframe.parse("1-2"))


def test_ffmpeg_failure(source, runner):
    runner.run.return_value = ProcessResult(1)
    with patch("vodrescue.segments.probe_keyframes", return_value=[]):
        with pytest.raises(UserError, match="ffmpeg failed"):
            SegmentExtractor(runner).extract(source, Timeframe.parse("1-2"))


def test_build_ffmpeg_command_copies_all_streams():
    cmd = build_ffmpeg_command(Path("in.mp4"), Path("out.mp4"), Timestamp(1000), Timestamp(2000), ffmpeg="ff")
    assert cmd[0] == "ff"
    assert cmd[-5:] == ["-map", "0", "-c", "copy", "out.mp4"]


def test_cli_rejects_bad_timeframe(source):
    with pytest.raises(UserError, match="Invalid timeframe"):
        cli_main([str(source), "oops"])


def test_cli_dry_run_starts_no_process(source, capsys):
    with patch("subprocess.run") as real_run, patch("subprocess.Popen") as popen:
        assert cli_main([str(source), "2-4", "5-6", "-d"]) == 0
    real_run.assert_not_called()
    popen.assert_not_called()
    out = capsys.readouterr().out
    assert out.count("Extracting:") == 2
