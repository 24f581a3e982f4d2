"""Shared fixtures: a recording panel transport and small image helpers."""

import pytest

from octink.errors import TransportError
from octink.transport import buffer_size


class FakeTransport:
    """Records every call in order; can be told to fail on a given call."""

    def __init__(self, width=600, height=448, fail_on=None, fail_sleep=False):
        self.width = width
        self.height = height
        self.calls = []
        self.buffers = []
        self.background = None
        self.fail_on = fail_on
        self.fail_sleep = fail_sleep

    def _record(self, name, *args):
        self.calls.append((name,) + args)
        if self.fail_on == name:
            raise TransportError(f"{name} refused")

    def set_background(self, code):
        self.background = code
        self._record("set_background", code)

    def clear(self):
        self._record("clear", self.background)

    def update(self, buffer):
        assert len(buffer) == buffer_size(self.width, self.height)
        self._record("update")
        self.buffers.append(buffer)

    def display(self):
        self._record("display")

    def update_and_display(self, buffer):
        assert len(buffer) == buffer_size(self.width, self.height)
        self._record("update_and_display")
        self.buffers.append(buffer)

    def sleep(self):
        self.calls.append(("sleep",))
        if self.fail_sleep:
            raise TransportError("sleep refused")

    def names(self):
        return [c[0] for c in self.calls]


@pytest.fixture
def transport():
    return FakeTransport()
