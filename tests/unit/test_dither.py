"""
Unit tests for octink/dither.py

Floyd-Steinberg output stays inside the palette, is deterministic, and
approximates continuous tone (mid grey -> roughly half Black, half White).
"""

import numpy as np
from PIL import Image

from octink.dither import QuantizedCanvas, dither, quantize
from octink.palette import OCT_PALETTE, Palette

# White before Black, same relative order as the panel palette
MONO = Palette([entry for entry in OCT_PALETTE if entry.tag in ("HiZ", "White", "Black")])


def gradient(w=40, h=30):
    a = np.zeros((h, w, 3), dtype=np.uint8)
    a[..., 0] = np.linspace(0, 255, w, dtype=np.uint8)[None, :]
    a[..., 1] = np.linspace(0, 255, h, dtype=np.uint8)[:, None]
    a[..., 2] = 90
    return Image.fromarray(a, "RGB")


def palette_rgbs():
    return {e.rgb for e in OCT_PALETTE}


def test_every_pixel_is_a_palette_colour():
    q = dither(gradient())
    assert {tuple(p) for p in q.rgb.reshape(-1, 3)} <= palette_rgbs()
    assert q.rgb.shape == (30, 40, 3) and q.rgb.dtype == np.uint8


def test_dither_is_deterministic():
    img = gradient()
    a, b = dither(img), dither(img)
    assert a.indices.tobytes() == b.indices.tobytes()
    assert a.to_image().tobytes() == b.to_image().tobytes()


def test_mid_grey_dithers_to_balanced_black_and_white():
    img = Image.new("RGB", (100, 100), (128, 128, 128))
    q = dither(img, MONO)
    tags = [t for row in q.tags() for t in row]
    black, white = tags.count("Black"), tags.count("White")
    assert black + white == len(tags)
    assert 0.4 < black / len(tags) < 0.6
    assert 0.4 < white / len(tags) < 0.6


def test_small_grey_uses_both_colours():
    q = dither(Image.new("RGB", (2, 2), (128, 128, 128)), MONO)
    assert set(t for row in q.tags() for t in row) == {"White", "Black"}


def test_mid_grey_on_full_palette_is_a_mix():
    q = dither(Image.new("RGB", (100, 100), (128, 128, 128)))
    used = {t for row in q.tags() for t in row}
    assert len(used) > 1
    assert "HiZ" not in used


def test_hiz_never_appears():
    q = dither(gradient())
    assert not np.any(q.indices == OCT_PALETTE.index("HiZ"))


def test_solid_palette_colour_is_unchanged():
    q = dither(Image.new("RGB", (8, 8), (0, 0, 255)))
    assert set(t for row in q.tags() for t in row) == {"Blue"}


def test_alpha_input_is_accepted():
    q = dither(Image.new("RGBA", (5, 5), (255, 0, 0, 0)))
    assert q.width == 5 and q.height == 5


def test_codes_follow_panel_nibbles():
    q = dither(Image.new("RGB", (3, 1), (255, 255, 0)))
    assert q.codes().tolist() == [[5, 5, 5]]


def test_quantize_is_nearest_only():
    a = np.zeros((1, 2, 3), dtype=np.uint8)
    a[0, 0] = (250, 10, 10)
    a[0, 1] = (10, 10, 250)
    q = quantize(Image.fromarray(a, "RGB"))
    assert isinstance(q, QuantizedCanvas)
    assert q.tags() == [["Red", "Blue"]]
