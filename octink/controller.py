# octink/controller.py
"""
Refresh lifecycle for the ACeP panel.

ACeP glass ghosts if it is only ever redrawn in place, so every
``WIPE_EVERY + 1``-th draw is preceded by a full HiZ clear. Whatever happens,
the panel is put to sleep exactly once when the controller is released:
``close()``, leaving a ``with`` block, or garbage collection / interpreter exit.

Not reentrant; callers with more than one thread must serialise access.
"""
from __future__ import annotations

import logging
import weakref
from typing import Callable, Optional, Tuple

import numpy as np
from PIL import Image, ImageDraw, ImageFont

from . import settings
from .dither import QuantizedCanvas
from .palette import OCT_PALETTE, Palette
from .transport import PanelTransport, codes_to_image, pack_buffer

log = logging.getLogger(__name__)


class BackBuffer:
    """Logical-orientation surface of panel codes that draw builders paint on."""

    def __init__(self, width: int, height: int, palette: Palette = OCT_PALETTE):
        self.width, self.height = width, height
        self.palette = palette
        self.codes = np.full((height, width), palette.code("White"), dtype=np.uint8)

    @property
    def size(self) -> Tuple[int, int]:
        return (self.width, self.height)

    def fill(self, tag: str) -> None:
        self.codes[:] = self.palette.code(tag)

    def fill_rect(self, x: int, y: int, w: int, h: int, tag: str) -> None:
        x0, y0 = max(0, x), max(0, y)
        x1, y1 = min(self.width, x + w), min(self.height, y + h)
        if x0 >= x1 or y0 >= y1:
            return
        self.codes[y0:y1, x0:x1] = self.palette.code(tag)

    def blit(self, canvas: QuantizedCanvas, origin: Tuple[int, int] = (0, 0)) -> None:
        """Copy a quantized canvas in, clipped to the buffer."""
        ox, oy = origin
        src = canvas.codes()
        sx0, sy0 = max(0, -ox), max(0, -oy)
        dx0, dy0 = max(0, ox), max(0, oy)
        w = min(canvas.width - sx0, self.width - dx0)
        h = min(canvas.height - sy0, self.height - dy0)
        if w <= 0 or h <= 0:
            return
        self.codes[dy0:dy0 + h, dx0:dx0 + w] = src[sy0:sy0 + h, sx0:sx0 + w]

    def draw_text(self, xy: Tuple[int, int], text: str, tag: str) -> None:
        """Stamp ``text`` in Pillow's built-in bitmap font, no anti-aliasing."""
        mask = Image.new("1", self.size, 0)
        ImageDraw.Draw(mask).text(xy, text, fill=1, font=ImageFont.load_default())
        self.codes[np.asarray(mask, dtype=bool)] = self.palette.code(tag)

    def draw_bars(self, offset: int = 0, label: Optional[str] = "octink") -> None:
        """
        Test pattern: one vertical stripe per palette entry, starting at
        entry ``offset`` and wrapping round, with an optional White label.
        """
        entries = list(self.palette)
        n = len(entries)
        stripe = self.width // n
        for i in range(n):
            tag = entries[(offset + i) % n].tag
            w = stripe if i < n - 1 else self.width - stripe * (n - 1)
            self.fill_rect(i * stripe, 0, w, self.height, tag)
        if label:
            self.draw_text((self.width * 3 // 7, self.height // 2), label, "White")

    def tag_at(self, x: int, y: int) -> str:
        code = int(self.codes[y, x])
        for e in self.palette:
            if e.code == code:
                return e.tag
        raise KeyError(f"code {code} not in palette")

    def to_image(self) -> Image.Image:
        return codes_to_image(self.codes, self.palette)

    def pack(self, rotate: bool) -> bytes:
        return pack_buffer(self.codes, rotate)


def _sleep_panel(transport: PanelTransport) -> None:
    try:
        transport.sleep()
        log.info("[ctl] panel asleep")
    except Exception:
        log.exception("[ctl] panel sleep failed; it may stay powered")


class DisplayController:
    def __init__(self, transport: PanelTransport, *, palette: Palette = OCT_PALETTE,
                 rotate: bool = True, wipe_every: int = settings.WIPE_EVERY):
        self._transport = transport
        self.palette = palette
        # portrait mounting: logical width is the panel's native height
        self.rotate = rotate
        w, h = (transport.height, transport.width) if rotate else (transport.width, transport.height)
        self.buffer = BackBuffer(w, h, palette)
        self.wipe_every = wipe_every
        self.frames_since_clear = 0
        self._drawing = False
        self._finalizer = weakref.finalize(self, _sleep_panel, transport)
        try:
            self.wipe()
        except BaseException:
            self.close()
            raise

    # ----- lifecycle
    def __enter__(self) -> "DisplayController":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        return not self._finalizer.alive

    def close(self) -> None:
        """Put the panel to sleep. Safe to call more than once."""
        self._finalizer()

    def _check_open(self) -> None:
        if self.closed:
            raise RuntimeError("display controller is closed")

    # ----- refresh
    def wipe(self) -> None:
        """Full-panel HiZ clear. TransportError here means the glass is in an unknown state."""
        self._check_open()
        log.info("[ctl] full wipe")
        self._transport.set_background(self.palette.code("HiZ"))
        self._transport.clear()
        self.frames_since_clear = 0

    def draw(self, builder: Callable[[BackBuffer], None]) -> None:
        """
        Paint with ``builder`` on a White back buffer and push it to the panel.

        The draw counter is bumped before anything else and is not rolled
        back on failure, so failed draws still count toward the next wipe.
        """
        self._check_open()
        if self._drawing:
            raise RuntimeError("DisplayController.draw is not reentrant")
        self._drawing = True
        try:
            self.frames_since_clear += 1
            if self.frames_since_clear > self.wipe_every:
                self.wipe()
            self._transport.set_background(self.palette.code("White"))
            self.buffer.fill("White")
            builder(self.buffer)
            self._transport.update_and_display(self.buffer.pack(self.rotate))
            log.debug("[ctl] draw pushed (%d since clear)", self.frames_since_clear)
        finally:
            self._drawing = False
