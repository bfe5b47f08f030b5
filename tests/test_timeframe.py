"""Tests for vodrescue.timeframe."""

import pytest

from vodrescue.timeframe import Timeframe, Timestamp


@pytest.mark.parametrize(
    "text, ms",
    [
        ("5", 5_000),
        ("2:05", 125_000),
        ("1:02:05", 3_725_000),
        ("1:02:05.5", 3_725_500),
        ("0:00:00.007", 7),
        ("90", 90_000),
    ],
)
def test_parse(text, ms):
    assert Timestamp.parse(text).total_ms == ms


@pytest.mark.parametrize("text", ["", "abc", "1:2:3:4", "1.2345", "-5"])
def test_parse_rejects(text):
    with pytest.raises(ValueError):
        Timestamp.parse(text)


def test_components_and_formatting():
    ts = Timestamp(3_725_042)
    assert (ts.hours, ts.minutes, ts.seconds, ts.milliseconds) == (1, 2, 5, 42)
    assert str(ts) == "01:02:05.042"
    assert ts.file_label == "01_02_05.042"
    assert ts.total_seconds == pytest.approx(3725.042)


def test_negative_rejected_and_subtraction_clamped():
    with pytest.raises(ValueError):
        Timestamp(-1)
    assert (Timestamp(1000) - Timestamp(5000)).total_ms == 0


def test_timeframe():
    tf = Timeframe.parse("2:05-2:10")
    assert tf.start == Timestamp(125_000)
    assert tf.stop == Timestamp(130_000)
    assert tf.duration == Timestamp(5_000)
    assert str(tf) == "00:02:05.000-00:02:10.000"
    with pytest.raises(ValueError):
        Timeframe.parse("2:05")
