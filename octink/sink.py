# octink/sink.py
"""
Generated-image sink: ``<dir>/<digest>.png`` plus a ``latest.png`` symlink.

Both writes go through a temp name and an atomic rename, so a reader (the
static file server) sees either the old file or the new one, never half.
"""
from __future__ import annotations

import logging
import os
from pathlib import Path

from PIL import Image

from . import settings
from .errors import SinkError

log = logging.getLogger(__name__)


class ImageSink:
    def __init__(self, directory: str | Path, latest_name: str = settings.LATEST_NAME):
        self.directory = Path(directory)
        self.latest_name = latest_name

    @property
    def latest_path(self) -> Path:
        return self.directory / self.latest_name

    def path_for(self, digest: str) -> Path:
        return self.directory / f"{digest}.png"

    def _ensure_dir(self) -> None:
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise SinkError(f"cannot create {self.directory}: {e}") from e

    def save(self, image: Image.Image, digest: str) -> Path:
        """Write the PNG for ``digest``; an existing file with that name is kept as is."""
        self._ensure_dir()
        path = self.path_for(digest)
        if path.exists():
            log.debug("[sink] %s already present", path.name)
            return path
        tmp = path.with_name(f".{path.name}.tmp")
        try:
            image.save(tmp, format="PNG")
            tmp.replace(path)
        except OSError as e:
            try:
                tmp.unlink()
            except FileNotFoundError:
                pass
            raise SinkError(f"cannot write {path}: {e}") from e
        return path

    def link_latest(self, name: str) -> Path:
        """Point ``latest.png`` at ``name`` (relative, inside the sink directory)."""
        self._ensure_dir()
        link = self.latest_path
        tmp = link.with_name(f".{link.name}.tmp")
        try:
            if tmp.is_symlink() or tmp.exists():
                tmp.unlink()
            os.symlink(name, tmp)
            os.replace(tmp, link)
        except OSError as e:
            raise SinkError(f"cannot update {link}: {e}") from e
        return link

    def publish(self, image: Image.Image, digest: str) -> Path:
        path = self.save(image, digest)
        self.link_latest(path.name)
        log.info("[sink] saved %s", path)
        return path
