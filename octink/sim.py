# octink/sim.py
"""
Simulated panel for development without the Pi.

The controller side only ever enqueues messages; a worker thread owns the
decoded panel RAM, the "shown" image and the optional pygame preview window.
``close()`` sends Shutdown and joins the worker.
"""
from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass
from typing import Optional, Union

from PIL import Image

from . import settings
from .errors import TransportError
from .palette import OCT_PALETTE, Palette
from .transport import codes_to_image, solid_buffer, unpack_buffer

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Update:
    buffer: bytes


@dataclass(frozen=True)
class Refresh:
    pass


@dataclass(frozen=True)
class Shutdown:
    pass


Message = Union[Update, Refresh, Shutdown]


class SimPanel:
    """PanelTransport that renders into ``latest_frame`` and, optionally, a pygame window."""

    def __init__(self, width: int = settings.WIDTH, height: int = settings.HEIGHT, *,
                 window: bool = False, rotate: bool = True, palette: Palette = OCT_PALETTE,
                 queue_size: int = 4, title: str = "octink"):
        self.width, self.height = width, height
        self.palette = palette
        self.rotate = rotate
        self.title = title
        self.background = palette.code("White")
        self.refresh_count = 0

        self._q: "queue.Queue[Message]" = queue.Queue(maxsize=queue_size)
        self._closed = False
        self._want_window = window
        self._lock = threading.Lock()
        self._ram = Image.new("RGB", (width, height), (255, 255, 255))
        self._shown: Optional[Image.Image] = None
        self._worker = threading.Thread(target=self._run, name="octink-sim", daemon=True)
        self._worker.start()

    # ---------- controller side ----------
    def _send(self, msg: Message) -> None:
        if self._closed:
            raise TransportError("sim panel is closed")
        self._q.put(msg)

    def set_background(self, code: int) -> None:
        self.background = code & 0x0F

    def clear(self) -> None:
        self.update_and_display(solid_buffer(self.background, self.width, self.height))

    def update(self, buffer: bytes) -> None:
        try:
            unpack_buffer(buffer, self.width, self.height)
        except ValueError as e:
            raise TransportError(f"[sim] {e}") from e
        self._send(Update(bytes(buffer)))

    def display(self) -> None:
        self._send(Refresh())

    def update_and_display(self, buffer: bytes) -> None:
        self.update(buffer)
        self.display()

    def sleep(self) -> None:
        log.info("[sim] sleep (no-op)")

    def wait_idle(self) -> None:
        """Block until the worker has handled everything enqueued so far."""
        self._q.join()

    @property
    def latest_frame(self) -> Optional[Image.Image]:
        """What the glass shows right now, in mounted orientation; None before the first refresh."""
        with self._lock:
            return None if self._shown is None else self._shown.copy()

    def close(self) -> None:
        if self._closed:
            return
        self._q.put(Shutdown())
        self._closed = True
        self._worker.join()

    def __enter__(self) -> "SimPanel":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ---------- worker side ----------
    def _run(self) -> None:
        screen = None
        pygame = None
        while True:
            msg = self._q.get()
            try:
                if isinstance(msg, Shutdown):
                    break
                if isinstance(msg, Update):
                    codes = unpack_buffer(msg.buffer, self.width, self.height)
                    self._ram = codes_to_image(codes, self.palette)
                elif isinstance(msg, Refresh):
                    shown = self._ram.rotate(-90, expand=True) if self.rotate else self._ram.copy()
                    with self._lock:
                        self._shown = shown
                        self.refresh_count += 1
                    if self._want_window and screen is None:
                        pygame, screen = self._open_window(shown.size)
                    if screen is not None:
                        screen = self._blit(pygame, screen, shown)
            except Exception:
                log.exception("[sim] worker failed on %s", type(msg).__name__)
            finally:
                self._q.task_done()
        if pygame is not None:
            pygame.quit()
        log.debug("[sim] worker stopped")

    def _open_window(self, size):
        try:
            import pygame
            pygame.init()
            screen = pygame.display.set_mode(size)
            pygame.display.set_caption(self.title)
            return pygame, screen
        except Exception as e:
            log.warning("[sim] no preview window: %s", e)
            self._want_window = False
            return None, None

    def _blit(self, pygame, screen, img: Image.Image):
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                log.info("[sim] preview window closed")
                pygame.display.quit()
                self._want_window = False
                return None
        pyg_img = pygame.image.fromstring(img.tobytes(), img.size, "RGB")
        screen.blit(pyg_img, (0, 0))
        pygame.display.flip()
        return screen
