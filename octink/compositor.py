# octink/compositor.py
"""
Scene compositor: a random gradient, then every layer filtered, thrown onto
the canvas at a random projection and composited source-over.

All randomness comes from the ``random.Random`` passed in, so the same seed
and the same inputs always produce the same canvas (and digest).
"""
from __future__ import annotations

import hashlib
import logging
import random
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import cv2
from PIL import Image, ImageFilter

from . import settings
from .catalog import AssetCatalog, DeviceFrame, SourceEntry
from .errors import DegenerateGeometry, ProducerError, ProducerShortfall
from .filters import apply_transforms, random_rgba, random_transforms
from .frames import FrameProducer
from .geometry import place_in_quad, random_placement, warp_into

log = logging.getLogger(__name__)

Size = Tuple[int, int]


@dataclass
class Layer:
    image: Image.Image
    kind: str = "frame"          # "frame" | "artwork"


@dataclass
class Composition:
    canvas: Image.Image
    digest: str
    layers: List[Layer] = field(default_factory=list, repr=False)

    @property
    def filename(self) -> str:
        return f"{self.digest}.png"


def gradient_background(rng: random.Random, size: Size) -> Image.Image:
    """Opaque linear gradient between two random colours, vertical or horizontal."""
    w, h = size
    vertical = rng.random() < 0.5
    start = random_rgba(rng, 0xFF)
    end = random_rgba(rng, 0xFF)
    steps = h if vertical else w
    strip = Image.new("RGBA", (1, steps) if vertical else (steps, 1))
    px = strip.load()
    for i in range(steps):
        t = i / (steps - 1) if steps > 1 else 0.0
        c = tuple(int(round(a + (b - a) * t)) for a, b in zip(start, end))
        px[(0, i) if vertical else (i, 0)] = c
    return strip.resize((w, h), Image.NEAREST)


def content_digest(canvas: Image.Image) -> str:
    return hashlib.sha256(canvas.tobytes()).hexdigest()


def fit_to(image: Image.Image, size: Size) -> Image.Image:
    """
    Resize to fit inside ``size``, keeping aspect. Always area-averaged (BOX);
    an enlargement is then softened with a Gaussian so the blocks don't show.
    """
    w, h = image.size
    scale = min(size[0] / w, size[1] / h)
    new = (max(1, round(w * scale)), max(1, round(h * scale)))
    if new == image.size:
        return image
    out = image.resize(new, Image.BOX)
    if scale > 1:
        out = out.filter(ImageFilter.GaussianBlur((scale - 1) / 2))
    return out


class SceneCompositor:
    def __init__(self, size: Size = settings.CANVAS_SIZE,
                 max_transforms: int = settings.MAX_TRANSFORMS):
        self.size = (int(size[0]), int(size[1]))
        self.max_transforms = max_transforms

    def build_layers(self, rng: random.Random, frames: Sequence[Image.Image],
                     device_frames: Sequence[DeviceFrame],
                     artwork: Optional[Image.Image] = None) -> List[Layer]:
        """
        Each frame goes into the screen of a randomly chosen device photo and
        is scaled to the canvas. An unreadable device photo or a degenerate
        screen quad loses just that layer.
        """
        if not device_frames:
            raise ValueError("need at least one device frame")
        devices = {}
        layers: List[Layer] = []
        for frame in frames:
            dev = device_frames[rng.randrange(len(device_frames))]
            if dev.path not in devices:
                try:
                    devices[dev.path] = dev.load()
                except OSError as e:
                    log.warning("[compose] device %s unreadable: %s", dev.path.name, e)
                    devices[dev.path] = None
            device = devices[dev.path]
            if device is None:
                continue
            try:
                placed = place_in_quad(device, frame, dev.screen)
            except DegenerateGeometry as e:
                log.warning("[compose] skipping frame, device %s: %s", dev.path.name, e)
                continue
            layers.append(Layer(fit_to(placed, self.size), "frame"))
        if artwork is not None:
            layers.append(Layer(artwork.convert("RGBA"), "artwork"))
        return layers

    def compose(self, rng: random.Random, layers: Sequence[Layer]) -> Composition:
        canvas = gradient_background(rng, self.size)
        order = list(layers)
        rng.shuffle(order)
        w, h = self.size
        for layer in order:
            # rng draws happen whether or not the layer survives
            transforms = random_transforms(rng, h, w, self.max_transforms)
            proj = random_placement(rng, layer.image.size, self.size)
            try:
                img = apply_transforms(layer.image, transforms)
                scratch = warp_into(img, proj, self.size)
            except (DegenerateGeometry, cv2.error, ValueError) as e:
                log.warning("[compose] skipping %s layer: %s", layer.kind, e)
                continue
            canvas = Image.alpha_composite(canvas, scratch)
        digest = content_digest(canvas)
        log.debug("[compose] %d layers -> %s", len(order), digest[:12])
        return Composition(canvas, digest, order)


def gather_frames(producer: FrameProducer, catalog: AssetCatalog, rng: random.Random,
                  count: int = settings.FRAME_COUNT,
                  stride: int = settings.FRAME_STRIDE) -> Tuple[SourceEntry, List[Image.Image]]:
    """Pick a source and pull ``count`` frames ``stride`` apart, or raise ProducerShortfall."""
    source = catalog.choose_source(rng)
    indices = [i * stride for i in range(count)]
    try:
        frames = producer.get_frames(source.path, source.palette, indices)
    except ProducerShortfall:
        raise
    except Exception as e:
        # a producer that dies mid-batch delivered nothing usable
        raise ProducerShortfall(source.path, count, 0) from e
    if len(frames) < count:
        raise ProducerShortfall(source.path, count, len(frames))
    return source, list(frames[:count])


def gather_frames_retrying(producer: FrameProducer, catalog: AssetCatalog, rng: random.Random,
                           count: int = settings.FRAME_COUNT,
                           stride: int = settings.FRAME_STRIDE,
                           max_attempts: Optional[int] = None) -> Tuple[SourceEntry, List[Image.Image]]:
    """
    Keep drawing sources until one yields a full batch. ``max_attempts=None``
    retries forever; otherwise the last failure is re-raised.
    """
    attempt = 0
    while True:
        attempt += 1
        try:
            return gather_frames(producer, catalog, rng, count, stride)
        except ProducerError as e:
            log.warning("[frames] attempt %d: %s", attempt, e)
            if max_attempts is not None and attempt >= max_attempts:
                raise
