# octink/qr.py
"""Scannable link overlay, drawn straight into panel codes (no blending)."""
from __future__ import annotations

from typing import List, Tuple

import qrcode

from . import settings


def qr_matrix(data: str, border: int = 4) -> List[List[bool]]:
    """Module grid for ``data`` including the quiet zone; True is a dark module."""
    qr = qrcode.QRCode(border=border)
    qr.add_data(data)
    qr.make(fit=True)
    return qr.get_matrix()


def qr_size(data: str, scale: int = settings.QR_SCALE, border: int = 4) -> int:
    return len(qr_matrix(data, border)) * scale


def draw_qr(buffer, data: str, origin: Tuple[int, int] = (0, 0),
            scale: int = settings.QR_SCALE, fg: str = "Black", bg: str = "White") -> int:
    """
    Paint ``data`` as solid ``scale`` x ``scale`` blocks onto a BackBuffer,
    light modules included so the code reads on any background.
    Returns the side length in pixels.
    """
    if scale < 1:
        raise ValueError("qr scale must be >= 1")
    ox, oy = origin
    matrix = qr_matrix(data)
    for y, row in enumerate(matrix):
        for x, dark in enumerate(row):
            buffer.fill_rect(ox + x * scale, oy + y * scale, scale, scale, fg if dark else bg)
    return len(matrix) * scale
