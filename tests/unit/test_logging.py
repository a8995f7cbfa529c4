"""Tests for logging setup."""

import numpy as np
import structlog

from tensorcam.common.logging import get_logger, setup_logging, summarize_arrays


def test_summarize_arrays():
    frame = np.zeros((200, 152, 3), dtype=np.uint8)

    event = summarize_arrays(None, "info", {"event": "frame", "image": frame, "count": 3})

    assert event["image"] == "ndarray(shape=(200, 152, 3), dtype=uint8)"
    assert event["count"] == 3


def test_logs_go_to_stderr(capsys):
    setup_logging(level="INFO")
    try:
        get_logger("test").info("labels_updated", labels=["cat"], image=np.ones((2, 2, 3)))

        captured = capsys.readouterr()
        assert captured.out == ""
        assert "labels_updated" in captured.err
        assert "ndarray(shape=(2, 2, 3)" in captured.err
    finally:
        structlog.reset_defaults()
