"""
Unit tests for octink/sink.py

Content-addressed PNGs and the latest.png pointer.
"""

import os

import pytest
from PIL import Image

from octink.errors import SinkError
from octink.sink import ImageSink


def solid(colour):
    return Image.new("RGBA", (6, 4), colour)


def test_publish_writes_png_and_points_latest_at_it(tmp_path):
    sink = ImageSink(tmp_path / "out")
    path = sink.publish(solid((1, 2, 3, 255)), "abc123")
    assert path == tmp_path / "out" / "abc123.png"
    assert path.is_file()
    assert os.readlink(sink.latest_path) == "abc123.png"
    with Image.open(sink.latest_path) as im:
        assert im.getpixel((0, 0)) == (1, 2, 3, 255)


def test_latest_follows_newest(tmp_path):
    sink = ImageSink(tmp_path)
    sink.publish(solid((255, 0, 0, 255)), "first")
    sink.publish(solid((0, 255, 0, 255)), "second")
    assert os.readlink(sink.latest_path) == "second.png"
    assert sink.latest_path.resolve() == (tmp_path / "second.png").resolve()
    assert not list(tmp_path.glob(".*.tmp"))


def test_existing_digest_is_not_rewritten(tmp_path):
    sink = ImageSink(tmp_path)
    sink.save(solid((9, 9, 9, 255)), "same")
    mtime = (tmp_path / "same.png").stat().st_mtime_ns
    sink.save(solid((200, 9, 9, 255)), "same")
    assert (tmp_path / "same.png").stat().st_mtime_ns == mtime


def test_unwritable_directory_raises_sink_error(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("not a directory")
    sink = ImageSink(blocker / "out")
    with pytest.raises(SinkError):
        sink.publish(solid((0, 0, 0, 255)), "x")


def test_sink_error_is_an_os_error():
    assert issubclass(SinkError, OSError)
