"""
Unit tests for octink/geometry.py

Projection algebra, homography solving from four control points, random
placement, and the RGBA warp.
"""

import math
import random

import numpy as np
import pytest
from PIL import Image

from octink.errors import DegenerateGeometry
from octink.geometry import (
    Projection,
    place_in_quad,
    random_placement,
    rect_corners,
    warp_into,
)


# =============================================================================
# Helpers
# =============================================================================


def assert_point(actual, expected, tol=1e-6):
    assert abs(actual[0] - expected[0]) < tol and abs(actual[1] - expected[1]) < tol, (actual, expected)


# =============================================================================
# Algebra
# =============================================================================


def test_identity_maps_points_to_themselves():
    assert_point(Projection.identity().apply(12.5, -3.0), (12.5, -3.0))


def test_composition_applies_right_operand_first():
    t = Projection.translate(10, 0)
    s = Projection.scale(2, 2)
    # scale then translate
    assert_point((t @ s).apply(1, 1), (12, 2))
    # translate then scale
    assert_point((s @ t).apply(1, 1), (22, 2))


def test_composition_is_associative():
    a = Projection.rotate(0.3)
    b = Projection.scale(1.2, 0.7)
    c = Projection.translate(5, -9)
    assert ((a @ b) @ c).allclose(a @ (b @ c))


def test_unit_scale_is_a_no_op_after_rotation():
    theta = 1.234
    assert (Projection.rotate(theta) @ Projection.scale(1, 1)).allclose(Projection.rotate(theta))


def test_rotate_quarter_turn():
    assert_point(Projection.rotate(math.pi / 2).apply(1, 0), (0, 1))


def test_inverse_round_trips_a_point():
    p = Projection.translate(3, 4) @ Projection.rotate(0.5) @ Projection.scale(2, 3)
    x, y = p.apply(7, 11)
    assert_point(p.inverse().apply(x, y), (7, 11))


def test_matrix_is_read_only_copy():
    p = Projection.identity()
    m = p.matrix
    m[0, 0] = 5
    assert p == Projection.identity()


# =============================================================================
# Control points
# =============================================================================


def test_from_control_points_maps_corners():
    src = rect_corners(160, 144)
    dst = [(10, 20), (200, 30), (190, 180), (5, 170)]
    p = Projection.from_control_points(src, dst)
    for s, d in zip(src, dst):
        assert_point(p.apply(*s), d, tol=1e-3)


@pytest.mark.parametrize("dst", [
    [(0, 0), (10, 0), (20, 0), (5, 5)],        # three collinear
    [(0, 0), (0, 0), (10, 10), (0, 10)],       # coincident
    [(3, 3), (3, 3), (3, 3), (3, 3)],          # single point
])
def test_degenerate_quads_raise(dst):
    with pytest.raises(DegenerateGeometry):
        Projection.from_control_points(rect_corners(10, 10), dst)


def test_degenerate_source_raises():
    with pytest.raises(DegenerateGeometry):
        Projection.from_control_points([(0, 0), (1, 1), (2, 2), (0, 5)], rect_corners(10, 10))


def test_wrong_point_count_raises():
    with pytest.raises(DegenerateGeometry):
        Projection.from_control_points([(0, 0), (1, 0), (1, 1)], [(0, 0), (1, 0), (1, 1)])


def test_degenerate_geometry_is_a_value_error():
    assert issubclass(DegenerateGeometry, ValueError)


# =============================================================================
# Random placement
# =============================================================================


def test_random_placement_is_seed_deterministic():
    a = random_placement(random.Random(7), (100, 50), (448, 600))
    b = random_placement(random.Random(7), (100, 50), (448, 600))
    assert a == b


def test_random_placement_centre_lands_in_offset_range():
    # centre of the image maps to the random offset plus the half extent
    iw, ih, cw, ch = 100, 50, 448, 600
    for seed in range(50):
        cx, cy = random_placement(random.Random(seed), (iw, ih), (cw, ch)).apply(iw / 2, ih / 2)
        assert -iw + iw / 2 <= cx <= cw + iw / 2
        assert -ih + ih / 2 <= cy <= ch + ih / 2


def test_random_placement_scale_bounds_distances():
    iw, ih = 80, 80
    for seed in range(30):
        p = random_placement(random.Random(seed), (iw, ih), (448, 600))
        a = np.array(p.apply(0, 0))
        b = np.array(p.apply(iw, ih))
        d = float(np.linalg.norm(a - b))
        diag = math.hypot(iw, ih)
        assert 0.5 * diag - 1e-6 <= d <= 1.5 * diag + 1e-6


# =============================================================================
# Warping
# =============================================================================


def test_warp_identity_keeps_pixels_and_fills_transparent():
    img = Image.new("RGBA", (4, 4), (200, 10, 10, 255))
    out = warp_into(img, Projection.identity(), (8, 8))
    assert out.size == (8, 8)
    assert out.getpixel((1, 1)) == (200, 10, 10, 255)
    assert out.getpixel((7, 7))[3] == 0


def test_warp_translation_moves_content():
    img = Image.new("RGBA", (4, 4), (0, 0, 255, 255))
    out = warp_into(img, Projection.translate(10, 10), (20, 20))
    assert out.getpixel((2, 2))[3] == 0
    assert out.getpixel((11, 11)) == (0, 0, 255, 255)


def test_place_in_quad_draws_frame_inside_screen():
    device = Image.new("RGBA", (100, 100), (10, 10, 10, 255))
    frame = Image.new("RGBA", (16, 16), (0, 255, 0, 255))
    quad = [(20, 20), (80, 20), (80, 80), (20, 80)]
    out = place_in_quad(device, frame, quad)
    assert out.size == device.size
    assert out.getpixel((50, 50)) == (0, 255, 0, 255)
    assert out.getpixel((5, 5)) == (10, 10, 10, 255)


def test_place_in_quad_rejects_degenerate_screen():
    device = Image.new("RGBA", (50, 50))
    frame = Image.new("RGBA", (10, 10))
    with pytest.raises(DegenerateGeometry):
        place_in_quad(device, frame, [(0, 0), (10, 10), (20, 20), (30, 30)])
