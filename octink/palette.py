# octink/palette.py
"""
The fixed 8-entry palette of the 5.65" ACeP panel and its nearest-colour metric.

Distance is L1 (sum of per-channel absolute differences). Ties go to the
lowest palette index. Entries marked ``drawable=False`` (HiZ) are never
returned for a pixel; they exist for full-panel clears only.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Sequence, Tuple

import numpy as np

RGB = Tuple[int, int, int]

# larger than any real L1 distance (3 * 255)
_UNREACHABLE = 1 << 20


@dataclass(frozen=True)
class PaletteEntry:
    tag: str
    rgb: RGB
    code: int              # 4-bit value the controller expects for this colour
    drawable: bool = True


class Palette:
    def __init__(self, entries: Sequence[PaletteEntry]):
        entries = tuple(entries)
        if not entries:
            raise ValueError("palette needs at least one entry")
        tags = [e.tag for e in entries]
        if len(set(tags)) != len(tags):
            raise ValueError(f"duplicate palette tags: {tags}")
        if not any(e.drawable for e in entries):
            raise ValueError("palette has no drawable entries")
        self._entries = entries
        self._by_tag = {e.tag: i for i, e in enumerate(entries)}

        rgb = np.array([e.rgb for e in entries], dtype=np.int32)
        rgb.setflags(write=False)
        self._rgb = rgb
        self._penalty = np.array([0 if e.drawable else _UNREACHABLE for e in entries],
                                 dtype=np.int64)
        self._codes = np.array([e.code for e in entries], dtype=np.uint8)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[PaletteEntry]:
        return iter(self._entries)

    def __getitem__(self, i: int) -> PaletteEntry:
        return self._entries[i]

    def __repr__(self) -> str:
        return f"Palette({[e.tag for e in self._entries]})"

    # ---------- lookups ----------
    def index(self, tag: str) -> int:
        try:
            return self._by_tag[tag]
        except KeyError:
            raise KeyError(f"no palette entry tagged {tag!r}") from None

    def entry(self, tag: str) -> PaletteEntry:
        return self._entries[self.index(tag)]

    def code(self, tag: str) -> int:
        return self.entry(tag).code

    @property
    def rgb_table(self) -> np.ndarray:
        return self._rgb

    @property
    def code_table(self) -> np.ndarray:
        return self._codes

    # ---------- nearest colour ----------
    def index_of(self, rgb) -> int:
        """Palette index with the smallest L1 distance; first one wins a tie."""
        q = np.asarray(rgb, dtype=np.float64)[:3]
        dist = np.abs(self._rgb - q).sum(axis=1) + self._penalty
        return int(np.argmin(dist))

    def map_color(self, rgb) -> RGB:
        return self._entries[self.index_of(rgb)].rgb

    def nearest_indices(self, pixels: np.ndarray) -> np.ndarray:
        """Vectorised index_of over an (..., 3) array; returns uint8 indices."""
        px = np.asarray(pixels, dtype=np.int32)[..., :3]
        dist = np.abs(px[..., None, :] - self._rgb).sum(axis=-1) + self._penalty
        return np.argmin(dist, axis=-1).astype(np.uint8)

    def drawable_candidates(self) -> list:
        return [(i, e.rgb) for i, e in enumerate(self._entries) if e.drawable]


# Panel order matters for tie-breaks: do not reorder.
OCT_PALETTE = Palette([
    PaletteEntry("HiZ",    (0x80, 0x80, 0x80), 0x7, drawable=False),
    PaletteEntry("White",  (0xFF, 0xFF, 0xFF), 0x1),
    PaletteEntry("Black",  (0x00, 0x00, 0x00), 0x0),
    PaletteEntry("Red",    (0xFF, 0x00, 0x00), 0x4),
    PaletteEntry("Green",  (0x00, 0xFF, 0x00), 0x2),
    PaletteEntry("Orange", (0xFF, 0x80, 0x00), 0x6),
    PaletteEntry("Blue",   (0x00, 0x00, 0xFF), 0x3),
    PaletteEntry("Yellow", (0xFF, 0xFF, 0x00), 0x5),
])
