# octink/app.py
"""
Generation cycle and the outer loop that drives the panel.

One cycle: gather frames -> compose -> dither -> draw (with QR) -> publish.
The panel is drawn before the sink writes, so a full disk never leaves the
glass stale. Recoverable failures end the cycle and the loop starts another;
a TransportError ends the loop, and the ``with`` blocks still sleep the panel.
"""
from __future__ import annotations

import logging
import random
import time
from pathlib import Path
from typing import Callable, Iterable, Optional

from . import settings
from .catalog import AssetCatalog, YamlCatalog
from .compositor import Composition, SceneCompositor, gather_frames_retrying
from .config import AppConfig
from .controller import DisplayController
from .dither import QuantizedCanvas, dither
from .errors import OctinkError, SinkError, TransportError
from .frames import FrameProducer, ImageSequenceProducer
from .qr import draw_qr
from .sink import ImageSink
from .transport import PanelTransport

log = logging.getLogger(__name__)


def open_transport(cfg: AppConfig) -> PanelTransport:
    if cfg.display == "epd":
        from .epd import EPD565F
        return EPD565F()
    from .sim import SimPanel
    return SimPanel(window=cfg.sim_window)


def make_rng(seed: Optional[int]) -> random.Random:
    return random.Random(seed)


def show_bars(ctl: DisplayController, offsets: Iterable[int] = range(8),
              pause: float = 1.0, sleep: Callable[[float], None] = time.sleep) -> None:
    """Cycle the colour-bar test pattern through each starting offset."""
    for offset in offsets:
        ctl.draw(lambda buf, o=offset: buf.draw_bars(o))
        sleep(pause)


def compose_once(rng: random.Random, producer: FrameProducer, catalog: AssetCatalog,
                 cfg: AppConfig, compositor: Optional[SceneCompositor] = None,
                 max_attempts: Optional[int] = None) -> Composition:
    compositor = compositor or SceneCompositor()
    source, frames = gather_frames_retrying(producer, catalog, rng,
                                            cfg.frame_count, cfg.frame_stride, max_attempts)
    log.info("[cycle] source %s (%d frames)", source.path.name, len(frames))
    artwork = None
    if source.artwork is not None:
        try:
            artwork = source.load_artwork()
        except OSError as e:
            log.warning("[cycle] artwork %s unreadable: %s", source.artwork, e)
    layers = compositor.build_layers(rng, frames, catalog.device_frames, artwork)
    return compositor.compose(rng, layers)


def generate_once(ctl: DisplayController, sink: ImageSink, rng: random.Random,
                  producer: FrameProducer, catalog: AssetCatalog, cfg: AppConfig,
                  compositor: Optional[SceneCompositor] = None) -> Composition:
    comp = compose_once(rng, producer, catalog, cfg, compositor)
    url = f"{cfg.base_url()}/{comp.filename}"
    log.info("[cycle] target URL %s", url)

    quantized: QuantizedCanvas = dither(comp.canvas)

    def build(buf):
        buf.blit(quantized)
        draw_qr(buf, url, origin=(0, 0), scale=settings.QR_SCALE)

    ctl.draw(build)

    try:
        sink.publish(comp.canvas, comp.digest)
    except SinkError as e:
        log.error("[cycle] %s", e)
    return comp


def render_once(cfg: AppConfig, producer: Optional[FrameProducer] = None,
                catalog: Optional[AssetCatalog] = None) -> Path:
    """Compose one image and write it plus a dithered preview; no panel involved."""
    rng = make_rng(cfg.seed)
    producer = producer or ImageSequenceProducer()
    catalog = catalog or YamlCatalog.load(cfg.catalog_path)
    comp = compose_once(rng, producer, catalog, cfg, max_attempts=settings.RENDER_ATTEMPTS)
    sink = ImageSink(cfg.output_dir)
    path = sink.publish(comp.canvas, comp.digest)
    preview = path.with_name(f"{comp.digest}.dither.png")
    try:
        dither(comp.canvas).to_image().save(preview)
    except OSError as e:
        raise SinkError(f"cannot write {preview}: {e}") from e
    log.info("[render] %s", preview)
    return path


def run(cfg: AppConfig, transport: Optional[PanelTransport] = None,
        producer: Optional[FrameProducer] = None, catalog: Optional[AssetCatalog] = None,
        max_cycles: Optional[int] = None, sleep: Callable[[float], None] = time.sleep) -> int:
    """Drive the panel until ``max_cycles`` (None = forever). Returns the number of cycles run."""
    rng = make_rng(cfg.seed)
    producer = producer or ImageSequenceProducer()
    catalog = catalog or YamlCatalog.load(cfg.catalog_path)
    sink = ImageSink(cfg.output_dir)
    compositor = SceneCompositor()

    owned = transport is None
    transport = transport or open_transport(cfg)
    done = 0
    try:
        with DisplayController(transport) as ctl:
            if cfg.startup_bars:
                show_bars(ctl, sleep=sleep)
            while max_cycles is None or done < max_cycles:
                try:
                    generate_once(ctl, sink, rng, producer, catalog, cfg, compositor)
                except TransportError:
                    log.exception("[run] panel I/O failed; stopping")
                    raise
                except (OctinkError, OSError) as e:
                    log.error("[run] cycle abandoned: %s", e)
                done += 1
                if max_cycles is None or done < max_cycles:
                    sleep(cfg.cycle_delay_s)
    finally:
        if owned and hasattr(transport, "close"):
            transport.close()
    return done
