# octink/dither.py
"""
Palette quantization with Floyd-Steinberg error diffusion.

Pixels are visited left-to-right, top-to-bottom. Each accumulated value is
clamped to 0..255 before the nearest-colour lookup, and the residual goes to
unvisited neighbours:

              *     7/16
      3/16   5/16   1/16

Error that would land outside the canvas is dropped.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

import numpy as np
from PIL import Image

from .palette import OCT_PALETTE, Palette


@dataclass(frozen=True, eq=False)
class QuantizedCanvas:
    indices: np.ndarray                  # (H, W) palette positions
    palette: Palette = field(default=OCT_PALETTE, repr=False)

    @property
    def width(self) -> int:
        return int(self.indices.shape[1])

    @property
    def height(self) -> int:
        return int(self.indices.shape[0])

    @property
    def rgb(self) -> np.ndarray:
        return self.palette.rgb_table[self.indices].astype(np.uint8)

    def codes(self) -> np.ndarray:
        """Per-pixel panel nibbles, same shape as ``indices``."""
        return self.palette.code_table[self.indices]

    def tags(self) -> List[List[str]]:
        entries = list(self.palette)
        return [[entries[i].tag for i in row] for row in self.indices.tolist()]

    def to_image(self) -> Image.Image:
        return Image.fromarray(self.rgb, "RGB")


def _clamp(v: float) -> float:
    if v < 0.0:
        return 0.0
    if v > 255.0:
        return 255.0
    return v


def dither(image: Image.Image, palette: Palette = OCT_PALETTE) -> QuantizedCanvas:
    """Floyd-Steinberg reduce ``image`` to ``palette``. Deterministic for equal input."""
    src = np.asarray(image.convert("RGB"), dtype=np.float64)
    h, w = src.shape[:2]
    work = src.tolist()                 # plain floats; far faster than numpy scalars here
    out = np.zeros((h, w), dtype=np.uint8)
    candidates = palette.drawable_candidates()

    for y in range(h):
        row = work[y]
        below = work[y + 1] if y + 1 < h else None
        out_row = out[y]
        for x in range(w):
            px = row[x]
            r = _clamp(px[0]); g = _clamp(px[1]); b = _clamp(px[2])

            best_i, best_rgb, best_d = -1, None, None
            for i, (pr, pg, pb) in candidates:
                d = abs(r - pr) + abs(g - pg) + abs(b - pb)
                if best_d is None or d < best_d:
                    best_i, best_rgb, best_d = i, (pr, pg, pb), d
            out_row[x] = best_i

            er = r - best_rgb[0]; eg = g - best_rgb[1]; eb = b - best_rgb[2]
            if er == 0.0 and eg == 0.0 and eb == 0.0:
                continue

            if x + 1 < w:
                n = row[x + 1]
                n[0] += er * 7 / 16; n[1] += eg * 7 / 16; n[2] += eb * 7 / 16
            if below is not None:
                if x > 0:
                    n = below[x - 1]
                    n[0] += er * 3 / 16; n[1] += eg * 3 / 16; n[2] += eb * 3 / 16
                n = below[x]
                n[0] += er * 5 / 16; n[1] += eg * 5 / 16; n[2] += eb * 5 / 16
                if x + 1 < w:
                    n = below[x + 1]
                    n[0] += er * 1 / 16; n[1] += eg * 1 / 16; n[2] += eb * 1 / 16

    return QuantizedCanvas(out, palette)


def quantize(image: Image.Image, palette: Palette = OCT_PALETTE) -> QuantizedCanvas:
    """Nearest-colour only, no diffusion (flat art such as test patterns)."""
    rgb = np.asarray(image.convert("RGB"))
    return QuantizedCanvas(palette.nearest_indices(rgb), palette)
