# octink/geometry.py
"""
3x3 homogeneous projections.

A Projection maps source pixel coordinates to destination coordinates.
``a @ b`` applies ``b`` first, so a chain reads right-to-left like the maths.
"""
from __future__ import annotations

import itertools
import math
import random
from typing import Iterable, Sequence, Tuple

import cv2
import numpy as np
from PIL import Image

from .errors import DegenerateGeometry

Point = Tuple[float, float]
Quad = Sequence[Point]

# |cross| below this (relative to the quad's squared extent) counts as collinear
_COLLINEAR_EPS = 1e-9


class Projection:
    __slots__ = ("_m",)

    def __init__(self, matrix):
        m = np.array(matrix, dtype=np.float64)
        if m.shape != (3, 3):
            raise ValueError(f"projection matrix must be 3x3, got {m.shape}")
        m.setflags(write=False)
        self._m = m

    # ---------- primitives ----------
    @classmethod
    def identity(cls) -> "Projection":
        return cls(np.eye(3))

    @classmethod
    def translate(cls, tx: float, ty: float) -> "Projection":
        return cls([[1.0, 0.0, tx],
                    [0.0, 1.0, ty],
                    [0.0, 0.0, 1.0]])

    @classmethod
    def rotate(cls, theta: float) -> "Projection":
        c, s = math.cos(theta), math.sin(theta)
        return cls([[c, -s, 0.0],
                    [s,  c, 0.0],
                    [0.0, 0.0, 1.0]])

    @classmethod
    def scale(cls, sx: float, sy: float) -> "Projection":
        return cls([[sx, 0.0, 0.0],
                    [0.0, sy, 0.0],
                    [0.0, 0.0, 1.0]])

    @classmethod
    def from_control_points(cls, src: Quad, dst: Quad) -> "Projection":
        """
        Solve the 8-parameter homography taking the four ``src`` corners onto
        the four ``dst`` corners. Raises DegenerateGeometry when either quad
        has three collinear (or two coincident) points.
        """
        src_a = _as_quad(src)
        dst_a = _as_quad(dst)
        for name, q in (("source", src_a), ("destination", dst_a)):
            if _has_collinear_triple(q):
                raise DegenerateGeometry(f"{name} quad is degenerate: {q.tolist()}")
        try:
            m = cv2.getPerspectiveTransform(src_a.astype(np.float32), dst_a.astype(np.float32))
        except cv2.error as e:
            raise DegenerateGeometry(str(e)) from e
        if not np.all(np.isfinite(m)) or abs(np.linalg.det(m)) < 1e-12:
            raise DegenerateGeometry("homography is singular")
        return cls(m)

    # ---------- algebra ----------
    def __matmul__(self, other: "Projection") -> "Projection":
        if not isinstance(other, Projection):
            return NotImplemented
        return Projection(self._m @ other._m)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Projection):
            return NotImplemented
        return bool(np.array_equal(self._m, other._m))

    def __hash__(self) -> int:
        return hash(self._m.tobytes())

    def __repr__(self) -> str:
        return f"Projection({self._m.tolist()!r})"

    @property
    def matrix(self) -> np.ndarray:
        return self._m.copy()

    def allclose(self, other: "Projection", atol: float = 1e-9) -> bool:
        return bool(np.allclose(self._m, other._m, atol=atol))

    def inverse(self) -> "Projection":
        try:
            return Projection(np.linalg.inv(self._m))
        except np.linalg.LinAlgError as e:
            raise DegenerateGeometry("projection is not invertible") from e

    def apply(self, x: float, y: float) -> Point:
        v = self._m @ np.array([x, y, 1.0])
        if v[2] == 0:
            raise DegenerateGeometry(f"point ({x}, {y}) maps to infinity")
        return (float(v[0] / v[2]), float(v[1] / v[2]))

    def apply_many(self, pts: Iterable[Point]) -> list:
        return [self.apply(x, y) for x, y in pts]


def _as_quad(pts: Quad) -> np.ndarray:
    a = np.asarray(pts, dtype=np.float64)
    if a.shape != (4, 2):
        raise DegenerateGeometry(f"need exactly 4 (x, y) points, got shape {a.shape}")
    if not np.all(np.isfinite(a)):
        raise DegenerateGeometry("control points must be finite")
    return a


def _has_collinear_triple(q: np.ndarray) -> bool:
    extent = float(np.ptp(q, axis=0).max()) if len(q) else 0.0
    if extent == 0.0:
        return True
    eps = _COLLINEAR_EPS * extent * extent
    for a, b, c in itertools.combinations(q, 3):
        cross = (b[0] - a[0]) * (c[1] - a[1]) - (b[1] - a[1]) * (c[0] - a[0])
        if abs(cross) <= eps:
            return True
    return False


def rect_corners(width: float, height: float) -> list:
    """Clockwise from top-left, same order device-frame quads are written in."""
    return [(0.0, 0.0), (width, 0.0), (width, height), (0.0, height)]


def random_placement(rng: random.Random, image_size: Tuple[int, int],
                     canvas_size: Tuple[int, int]) -> Projection:
    """
    Random scale + rotation about the image centre, then a random offset.
    The offset range [-image_extent, canvas_extent) lets layers hang off
    any edge of the canvas.
    """
    iw, ih = float(image_size[0]), float(image_size[1])
    cw, ch = float(canvas_size[0]), float(canvas_size[1])
    # applied right-to-left
    return (
        Projection.translate(rng.uniform(-iw, cw), rng.uniform(-ih, ch))
        @ Projection.translate(iw / 2.0, ih / 2.0)
        @ Projection.rotate(rng.uniform(0.0, 2.0 * math.pi))
        @ Projection.scale(rng.uniform(0.5, 1.5), rng.uniform(0.5, 1.5))
        @ Projection.translate(-iw / 2.0, -ih / 2.0)
    )


def warp_into(image: Image.Image, projection: Projection, size: Tuple[int, int]) -> Image.Image:
    """
    Bicubic warp of an RGBA image into a fresh ``size`` canvas. Anything that
    samples outside the source comes out fully transparent.
    """
    src = np.asarray(image.convert("RGBA"))
    out = cv2.warpPerspective(
        src,
        projection.matrix,
        (int(size[0]), int(size[1])),
        flags=cv2.INTER_CUBIC,
        borderMode=cv2.BORDER_CONSTANT,
        borderValue=(0, 0, 0, 0),
    )
    return Image.fromarray(out, "RGBA")


def place_in_quad(device: Image.Image, frame: Image.Image, quad: Quad) -> Image.Image:
    """Warp ``frame`` onto the screen quad of a device photo and composite it on top."""
    device = device.convert("RGBA")
    proj = Projection.from_control_points(rect_corners(*frame.size), quad)
    scratch = warp_into(frame, proj, device.size)
    return Image.alpha_composite(device, scratch)
