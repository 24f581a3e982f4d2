# octink/frames.py
"""
Frame producers.

A producer turns a source (an emulator ROM in the full system, an image
sequence here) into RGBA frames at the requested frame indices.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Protocol, Sequence, Tuple, runtime_checkable

import numpy as np
from PIL import Image, ImageSequence, UnidentifiedImageError

from .errors import ProducerError

log = logging.getLogger(__name__)

RGB = Tuple[int, int, int]

IMAGE_SUFFIXES = (".png", ".gif", ".webp", ".jpg", ".jpeg", ".bmp")


@runtime_checkable
class FrameProducer(Protocol):
    def get_frames(self, source: Path, palette_hint: Optional[Sequence[RGB]],
                   frame_indices: Sequence[int]) -> List[Image.Image]:
        """Frames in index order. May return fewer than asked; raises ProducerError on failure."""
        ...


def apply_palette_hint(frame: Image.Image, hint: Sequence[RGB]) -> Image.Image:
    """
    Recolour by brightness: luma is cut into ``len(hint)`` equal bands,
    darkest band gets ``hint[0]``. Alpha is kept.
    """
    if not hint:
        return frame
    rgba = frame.convert("RGBA")
    luma = np.asarray(rgba.convert("L"), dtype=np.uint16)
    bands = np.minimum(luma * len(hint) // 256, len(hint) - 1)
    lut = np.array(hint, dtype=np.uint8)
    out = np.empty(luma.shape + (4,), dtype=np.uint8)
    out[..., :3] = lut[bands]
    out[..., 3] = np.asarray(rgba)[..., 3]
    return Image.fromarray(out, "RGBA")


class ImageSequenceProducer:
    """
    Reads frames from an animated image (GIF/APNG/WebP) or from a directory
    of stills, where the n-th file in name order is frame n.

    Indices past the end are not an error: frames are returned up to the
    first missing index and the caller decides whether that is enough.
    """

    def get_frames(self, source, palette_hint=None, frame_indices=()):
        source = Path(source)
        wanted = list(frame_indices)
        if any(i < 0 for i in wanted):
            raise ProducerError(f"{source}: negative frame index in {wanted}")
        try:
            if source.is_dir():
                frames = self._from_directory(source, wanted)
            elif source.exists():
                frames = self._from_animation(source, wanted)
            else:
                raise ProducerError(f"{source}: no such file or directory")
        except (OSError, UnidentifiedImageError) as e:
            raise ProducerError(f"{source}: {e}") from e

        if palette_hint:
            frames = [apply_palette_hint(f, palette_hint) for f in frames]
        log.debug("[frames] %s: %d/%d frames", source.name, len(frames), len(wanted))
        return frames

    @staticmethod
    def _from_directory(source: Path, wanted: List[int]) -> List[Image.Image]:
        files = sorted(p for p in source.iterdir()
                       if p.is_file() and p.suffix.lower() in IMAGE_SUFFIXES)
        out = []
        for i in wanted:
            if i >= len(files):
                break
            with Image.open(files[i]) as im:
                out.append(im.convert("RGBA"))
        return out

    @staticmethod
    def _from_animation(source: Path, wanted: List[int]) -> List[Image.Image]:
        out = []
        with Image.open(source) as im:
            total = getattr(im, "n_frames", 1)
            for i in wanted:
                if i >= total:
                    break
                out.append(ImageSequence.Iterator(im)[i].convert("RGBA"))
        return out
