"""Tests for vodrescue.watcher."""

import time
from unittest.mock import patch

from vodrescue.state import PipelineState
from vodrescue.watcher import CancellationWatcher


def test_key_toggles_stop(capsys):
    state = PipelineState()
    watcher = CancellationWatcher(state)

    watcher.handle_key("S")
    assert state.stop_requested
    watcher.handle_key("s")
    assert not state.stop_requested

    out = capsys.readouterr().out
    assert "Stop requested" in out
    assert "Stop cancelled" in out


def test_other_keys_are_ignored():
    state = PipelineState()
    watcher = CancellationWatcher(state)
    for key in ("x", "", "\n"):
        watcher.handle_key(key)
    assert not state.stop_requested


def test_start_without_tty_is_a_no_op():
    watcher = CancellationWatcher(PipelineState())
    with patch("vodrescue.watcher._KeyReader", side_effect=RuntimeError("stdin is not attached to a TTY")):
        assert watcher.start() is False
    watcher.stop()


def test_loop_reads_keys_until_stopped():
    class ScriptedReader:
        def __init__(self):
            self.keys = ["x", "s"]
            self.closed = False

        def read_key(self, timeout=0.1):
            if self.keys:
                return self.keys.pop(0)
            time.sleep(timeout)
            return None

        def close(self):
            self.closed = True

    reader = ScriptedReader()
    state = PipelineState()
    watcher = CancellationWatcher(state)
    with patch("vodrescue.watcher._KeyReader", return_value=reader):
        assert watcher.start() is True
    deadline = time.monotonic() + 2
    while not state.stop_requested and time.monotonic() < deadline:
        time.sleep(0.01)
    watcher.stop()
    assert state.stop_requested
    assert reader.closed
