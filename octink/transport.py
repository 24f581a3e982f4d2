# octink/transport.py
"""
Panel transport interface and the 4bpp frame-buffer helpers shared by the
SPI driver and the simulator.

Buffer layout: native panel order (WIDTH x HEIGHT landscape), row-major,
two pixels per byte, left pixel in the high nibble.
"""
from __future__ import annotations

from typing import Protocol, runtime_checkable

import numpy as np
from PIL import Image

from .palette import OCT_PALETTE, Palette


@runtime_checkable
class PanelTransport(Protocol):
    """What the DisplayController needs from a panel. Errors raise TransportError."""

    width: int
    height: int

    def set_background(self, code: int) -> None: ...
    def clear(self) -> None: ...
    def update(self, buffer: bytes) -> None: ...
    def display(self) -> None: ...
    def update_and_display(self, buffer: bytes) -> None: ...
    def sleep(self) -> None: ...


def buffer_size(width: int, height: int) -> int:
    return (width * height + 1) // 2


def pack_buffer(codes: np.ndarray, rotate: bool = True) -> bytes:
    """
    Pack a logical (H, W) array of panel nibbles. With ``rotate`` the logical
    canvas is portrait and gets turned 90 degrees into native landscape order.
    """
    native = np.rot90(codes, 1) if rotate else np.asarray(codes)
    native = np.ascontiguousarray(native, dtype=np.uint8) & 0x0F
    flat = native.reshape(-1)
    if flat.size % 2:
        flat = np.append(flat, np.uint8(0))
    return ((flat[0::2] << 4) | flat[1::2]).astype(np.uint8).tobytes()


def unpack_buffer(buffer: bytes, width: int, height: int) -> np.ndarray:
    """Inverse of pack_buffer without rotation: native (height, width) nibbles."""
    raw = np.frombuffer(buffer, dtype=np.uint8)
    if raw.size != buffer_size(width, height):
        raise ValueError(f"buffer is {raw.size} bytes, expected {buffer_size(width, height)}")
    flat = np.empty(raw.size * 2, dtype=np.uint8)
    flat[0::2] = raw >> 4
    flat[1::2] = raw & 0x0F
    return flat[: width * height].reshape(height, width)


def codes_to_image(codes: np.ndarray, palette: Palette = OCT_PALETTE) -> Image.Image:
    """Render nibble codes as RGB using the palette's colours (unknown codes -> grey)."""
    lut = np.zeros((16, 3), dtype=np.uint8)
    lut[:] = 0x80
    for e in palette:
        lut[e.code] = e.rgb
    return Image.fromarray(lut[np.asarray(codes) & 0x0F], "RGB")


def solid_buffer(code: int, width: int, height: int) -> bytes:
    nib = code & 0x0F
    return bytes([(nib << 4) | nib]) * buffer_size(width, height)
