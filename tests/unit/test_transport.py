"""
Unit tests for octink/transport.py

4bpp packing: size, nibble order, portrait -> landscape rotation.
"""

import numpy as np
import pytest

from octink.palette import OCT_PALETTE
from octink.transport import (
    PanelTransport,
    buffer_size,
    codes_to_image,
    pack_buffer,
    solid_buffer,
    unpack_buffer,
)
from tests.conftest import FakeTransport


def test_full_panel_buffer_is_half_a_byte_per_pixel():
    codes = np.zeros((600, 448), dtype=np.uint8)       # logical portrait
    assert len(pack_buffer(codes)) == 600 * 448 // 2 == buffer_size(600, 448)


def test_high_nibble_is_left_pixel():
    codes = np.array([[1, 2, 3, 4]], dtype=np.uint8)
    assert pack_buffer(codes, rotate=False) == bytes([0x12, 0x34])


def test_rotation_turns_portrait_into_native_landscape():
    # logical 2 wide x 4 tall -> native 4 wide x 2 tall
    logical = np.arange(8, dtype=np.uint8).reshape(4, 2)
    native = unpack_buffer(pack_buffer(logical, rotate=True), 4, 2)
    assert native.shape == (2, 4)
    assert np.array_equal(native, np.rot90(logical, 1))
    # logical top-right corner ends up at native top-left
    assert native[0, 0] == logical[0, -1]


def test_unpack_rejects_wrong_size():
    with pytest.raises(ValueError):
        unpack_buffer(b"\x00" * 3, 4, 4)


def test_solid_buffer_repeats_code_in_both_nibbles():
    buf = solid_buffer(7, 4, 2)
    assert buf == bytes([0x77] * 4)


def test_codes_to_image_uses_palette_colours():
    img = codes_to_image(np.array([[OCT_PALETTE.code("Red"), 0xF]], dtype=np.uint8))
    assert img.getpixel((0, 0)) == (255, 0, 0)
    assert img.getpixel((1, 0)) == (0x80, 0x80, 0x80)


def test_fake_transport_satisfies_protocol():
    assert isinstance(FakeTransport(), PanelTransport)
