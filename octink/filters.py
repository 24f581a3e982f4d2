# octink/filters.py
"""
Per-layer raster filters.

A filter is an immutable value (one of the dataclasses below); applying it
returns a new RGBA image and never touches the input. ``random_transform``
draws one from a weighted table, Noise being five times as likely as the rest.
"""
from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Callable, List, Sequence, Tuple, Union

import cv2
import numpy as np
from PIL import Image

from . import settings

RGBA = Tuple[int, int, int, int]

__all__ = [
    "EdgeDetect", "OverlayEdges", "Noise", "AdaptiveThreshold", "Blur", "Transform",
    "random_rgba", "random_transform", "random_transforms",
    "apply_transform", "apply_transforms", "mask_alpha",
]


# ============================ variants ============================

@dataclass(frozen=True)
class EdgeDetect:
    low: float
    high: float
    fg: RGBA
    bg: RGBA


@dataclass(frozen=True)
class OverlayEdges:
    low: float
    high: float
    fg: RGBA


@dataclass(frozen=True)
class Noise:
    mean: float      # channel units (0..255 scale)
    stddev: float
    seed: int


@dataclass(frozen=True)
class AdaptiveThreshold:
    radius: int      # local window is (2*radius + 1) square
    fg: RGBA
    bg: RGBA


@dataclass(frozen=True)
class Blur:
    sigma: float


Transform = Union[EdgeDetect, OverlayEdges, Noise, AdaptiveThreshold, Blur]


# ============================ random draws ============================

def random_rgba(rng: random.Random, alpha: int | None = None) -> RGBA:
    a = rng.randrange(256) if alpha is None else int(alpha)
    return (rng.randrange(256), rng.randrange(256), rng.randrange(256), a)


def _max_radius(canvas_height: int, canvas_width: int) -> int:
    return max(2, min(canvas_height, canvas_width) // 8)


_TABLE: List[Tuple[int, Callable[[random.Random, int, int], Transform]]] = [
    (1, lambda rng, h, w: EdgeDetect(rng.uniform(0.0, 30.0), rng.uniform(70.0, 100.0),
                                     random_rgba(rng), random_rgba(rng))),
    (1, lambda rng, h, w: OverlayEdges(rng.uniform(0.0, 30.0), rng.uniform(70.0, 100.0),
                                       random_rgba(rng))),
    (5, lambda rng, h, w: Noise(rng.uniform(0.0, 5.0), rng.uniform(0.0, 3.0),
                                rng.getrandbits(64))),
    (1, lambda rng, h, w: AdaptiveThreshold(rng.randint(1, _max_radius(h, w)),
                                            random_rgba(rng), random_rgba(rng))),
    (1, lambda rng, h, w: Blur(rng.uniform(0.0, 10.0))),
]


def random_transform(rng: random.Random, canvas_height: int, canvas_width: int) -> Transform:
    weights = [w for w, _ in _TABLE]
    _, make = rng.choices(_TABLE, weights=weights, k=1)[0]
    return make(rng, canvas_height, canvas_width)


def random_transforms(rng: random.Random, canvas_height: int, canvas_width: int,
                      max_count: int = settings.MAX_TRANSFORMS) -> List[Transform]:
    """1..max_count filters, in the order they should be applied."""
    n = rng.randint(1, max_count)
    return [random_transform(rng, canvas_height, canvas_width) for _ in range(n)]


# ============================ helpers ============================

def _rgba_array(img: Image.Image) -> np.ndarray:
    return np.array(img.convert("RGBA"), dtype=np.uint8)


def _luma(img: Image.Image) -> np.ndarray:
    return np.array(img.convert("RGB").convert("L"), dtype=np.uint8)


def _binary_to_rgba(on: np.ndarray, on_color: RGBA, off_color: RGBA) -> np.ndarray:
    out = np.empty(on.shape + (4,), dtype=np.uint8)
    out[on] = on_color
    out[~on] = off_color
    return out


def mask_alpha(out: np.ndarray, source_alpha: np.ndarray) -> np.ndarray:
    """Give ``out`` the pre-filter alpha channel, so the silhouette survives binarising."""
    out = out.copy()
    out[..., 3] = source_alpha
    return out


def _edges(img: Image.Image, low: float, high: float) -> np.ndarray:
    return cv2.Canny(_luma(img), float(low), float(high)) > 0


# ============================ application ============================

def apply_transform(image: Image.Image, t: Transform) -> Image.Image:
    src = _rgba_array(image)
    alpha = src[..., 3]

    if isinstance(t, EdgeDetect):
        edges = _edges(image, t.low, t.high)
        out = mask_alpha(_binary_to_rgba(edges, t.bg, t.fg), alpha)

    elif isinstance(t, OverlayEdges):
        edges = _edges(image, t.low, t.high)
        fg = (t.fg[0], t.fg[1], t.fg[2], 255)
        overlay = _binary_to_rgba(edges, fg, (0, 0, 0, 0))
        return Image.alpha_composite(Image.fromarray(src, "RGBA"),
                                     Image.fromarray(overlay, "RGBA"))

    elif isinstance(t, Noise):
        gen = np.random.default_rng(t.seed)
        noisy = src.astype(np.float32) + gen.normal(t.mean, t.stddev, size=src.shape)
        out = mask_alpha(np.clip(np.rint(noisy), 0, 255).astype(np.uint8), alpha)

    elif isinstance(t, AdaptiveThreshold):
        block = 2 * max(1, int(t.radius)) + 1
        binary = cv2.adaptiveThreshold(_luma(image), 255, cv2.ADAPTIVE_THRESH_MEAN_C,
                                       cv2.THRESH_BINARY, block, 0)
        out = mask_alpha(_binary_to_rgba(binary > 0, t.bg, t.fg), alpha)

    elif isinstance(t, Blur):
        # all four channels, no alpha re-mask
        if t.sigma <= 0:
            return Image.fromarray(src, "RGBA")
        out = cv2.GaussianBlur(src, (0, 0), sigmaX=float(t.sigma), sigmaY=float(t.sigma))

    else:
        raise TypeError(f"unknown transform {t!r}")

    return Image.fromarray(out, "RGBA")


def apply_transforms(image: Image.Image, transforms: Sequence[Transform]) -> Image.Image:
    """Filters do not commute; order is the order given."""
    for t in transforms:
        image = apply_transform(image, t)
    return image.convert("RGBA")
