# octink/catalog.py
"""
Asset catalog: which frame sources exist, which artwork goes with each, and
the device photos whose screen quads frames get pasted into.

``assets.yaml`` layout (paths are relative to the YAML file)::

    sources:
      - path: clips/tetris.gif
        artwork: art/tetris.png        # optional
        palette: [[15,56,15], [48,98,48], [139,172,15], [155,188,15]]  # optional
    source_dirs:                        # optional, every image below `dir`
      - dir: clips
        artwork_dir: art                # artwork matched by identical file stem
    devices:
      - path: devices/dmg.png
        screen: [[83,70], [258,70], [258,226], [83,226]]   # TL, TR, BR, BL
        color: grey
"""
from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple, runtime_checkable

import yaml
from PIL import Image

from .errors import ConfigError
from .frames import IMAGE_SUFFIXES

log = logging.getLogger(__name__)

Point = Tuple[float, float]
RGB = Tuple[int, int, int]


@dataclass(frozen=True)
class SourceEntry:
    path: Path
    artwork: Optional[Path] = None
    palette: Optional[Tuple[RGB, ...]] = None

    def load_artwork(self) -> Optional[Image.Image]:
        if self.artwork is None:
            return None
        with Image.open(self.artwork) as im:
            return im.convert("RGBA")


@dataclass(frozen=True)
class DeviceFrame:
    path: Path
    screen: Tuple[Point, Point, Point, Point]
    color: str = ""

    def load(self) -> Image.Image:
        with Image.open(self.path) as im:
            return im.convert("RGBA")


@runtime_checkable
class AssetCatalog(Protocol):
    device_frames: Sequence[DeviceFrame]

    def choose_source(self, rng: random.Random) -> SourceEntry: ...


# ---------- parsing helpers ----------
def _require(d: Dict[str, Any], key: str, where: str):
    if not isinstance(d, dict) or key not in d:
        raise ConfigError(f"{where}: missing '{key}'")
    return d[key]


def _parse_quad(raw, where: str) -> Tuple[Point, Point, Point, Point]:
    try:
        pts = tuple((float(p[0]), float(p[1])) for p in raw)
    except (TypeError, ValueError, IndexError) as e:
        raise ConfigError(f"{where}: screen must be four [x, y] pairs") from e
    if len(pts) != 4:
        raise ConfigError(f"{where}: screen must be four [x, y] pairs, got {len(pts)}")
    return pts  # type: ignore[return-value]


def _parse_palette(raw, where: str) -> Optional[Tuple[RGB, ...]]:
    if raw is None:
        return None
    try:
        colours = tuple((int(c[0]), int(c[1]), int(c[2])) for c in raw)
    except (TypeError, ValueError, IndexError) as e:
        raise ConfigError(f"{where}: palette must be a list of [r, g, b]") from e
    if not colours or any(not 0 <= v <= 255 for c in colours for v in c):
        raise ConfigError(f"{where}: palette values must be 0..255")
    return colours


def _scan_dir(source_dir: Path, artwork_dir: Optional[Path]) -> List[SourceEntry]:
    if not source_dir.is_dir():
        raise ConfigError(f"source dir not found: {source_dir}")
    art: Dict[str, Path] = {}
    if artwork_dir is not None and artwork_dir.is_dir():
        for p in sorted(artwork_dir.rglob("*")):
            if p.is_file():
                art.setdefault(p.stem, p)
    out = []
    for p in sorted(source_dir.rglob("*")):
        if p.is_file() and p.suffix.lower() in IMAGE_SUFFIXES:
            out.append(SourceEntry(p, art.get(p.stem)))
    return out


class YamlCatalog:
    def __init__(self, sources: Sequence[SourceEntry], device_frames: Sequence[DeviceFrame]):
        if not sources:
            raise ConfigError("catalog has no sources")
        if not device_frames:
            raise ConfigError("catalog has no device frames")
        self.sources = list(sources)
        self.device_frames = list(device_frames)

    @classmethod
    def load(cls, path: str | Path) -> "YamlCatalog":
        path = Path(path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except FileNotFoundError as e:
            raise ConfigError(f"catalog not found: {path}") from e
        except yaml.YAMLError as e:
            raise ConfigError(f"{path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"{path}: top level must be a mapping")

        root = path.parent
        sources: List[SourceEntry] = []
        for i, s in enumerate(data.get("sources") or []):
            where = f"{path.name}: sources[{i}]"
            artwork = s.get("artwork") if isinstance(s, dict) else None
            sources.append(SourceEntry(
                root / _require(s, "path", where),
                root / artwork if artwork else None,
                _parse_palette(s.get("palette"), where),
            ))
        for i, d in enumerate(data.get("source_dirs") or []):
            where = f"{path.name}: source_dirs[{i}]"
            art_dir = d.get("artwork_dir") if isinstance(d, dict) else None
            sources.extend(_scan_dir(root / _require(d, "dir", where),
                                     root / art_dir if art_dir else None))

        devices: List[DeviceFrame] = []
        for i, d in enumerate(data.get("devices") or []):
            where = f"{path.name}: devices[{i}]"
            devices.append(DeviceFrame(
                root / _require(d, "path", where),
                _parse_quad(_require(d, "screen", where), where),
                str(d.get("color", "")),
            ))

        cat = cls(sources, devices)
        log.info("[catalog] %d sources (%d with artwork), %d device frames",
                 len(cat.sources), sum(1 for s in cat.sources if s.artwork), len(cat.device_frames))
        return cat

    def choose_source(self, rng: random.Random) -> SourceEntry:
        return rng.choice(self.sources)
