"""
Unit tests for octink/catalog.py

assets.yaml parsing, relative paths, directory scans with stem-matched artwork.
"""

import random

import pytest
from PIL import Image

from octink.catalog import AssetCatalog, SourceEntry, YamlCatalog
from octink.errors import ConfigError

DEVICES = """
devices:
  - path: devices/dmg.png
    screen: [[10, 10], [50, 10], [50, 40], [10, 40]]
    color: grey
"""


def write(tmp_path, text):
    p = tmp_path / "assets.yaml"
    p.write_text(text)
    return p


def test_explicit_sources_resolve_relative_to_file(tmp_path):
    p = write(tmp_path, """
sources:
  - path: clips/a.gif
    artwork: art/a.png
    palette: [[0, 0, 0], [255, 255, 255]]
  - path: clips/b.gif
""" + DEVICES)
    cat = YamlCatalog.load(p)
    assert isinstance(cat, AssetCatalog)
    assert cat.sources[0] == SourceEntry(tmp_path / "clips/a.gif", tmp_path / "art/a.png",
                                         ((0, 0, 0), (255, 255, 255)))
    assert cat.sources[1].artwork is None
    dev = cat.device_frames[0]
    assert dev.path == tmp_path / "devices/dmg.png"
    assert dev.screen == ((10.0, 10.0), (50.0, 10.0), (50.0, 40.0), (10.0, 40.0))
    assert dev.color == "grey"


def test_source_dirs_match_artwork_by_stem(tmp_path):
    (tmp_path / "clips").mkdir()
    (tmp_path / "art").mkdir()
    for name in ("zelda.gif", "tetris.gif", "readme.txt"):
        (tmp_path / "clips" / name).write_bytes(b"")
    (tmp_path / "art" / "tetris.png").write_bytes(b"")
    cat = YamlCatalog.load(write(tmp_path, """
source_dirs:
  - dir: clips
    artwork_dir: art
""" + DEVICES))
    by_name = {s.path.name: s for s in cat.sources}
    assert set(by_name) == {"tetris.gif", "zelda.gif"}
    assert by_name["tetris.gif"].artwork == tmp_path / "art" / "tetris.png"
    assert by_name["zelda.gif"].artwork is None


def test_choose_source_uses_rng(tmp_path):
    cat = YamlCatalog.load(write(tmp_path, """
sources:
  - path: a.gif
  - path: b.gif
  - path: c.gif
""" + DEVICES))
    picks = [cat.choose_source(random.Random(s)).path.name for s in range(30)]
    assert set(picks) == {"a.gif", "b.gif", "c.gif"}
    assert cat.choose_source(random.Random(4)) == cat.choose_source(random.Random(4))


@pytest.mark.parametrize("text", [
    "sources: [{path: a.gif}]\n",                                             # no devices
    DEVICES,                                                                   # no sources
    "sources: [{artwork: a.png}]\n" + DEVICES,                                 # no path
    "sources: [{path: a.gif}]\ndevices: [{path: d.png, screen: [[0, 0]]}]\n",  # short quad
    "sources: [{path: a.gif, palette: [[300, 0, 0]]}]\n" + DEVICES,            # bad colour
    "source_dirs: [{dir: missing}]\n" + DEVICES,
    "- not a mapping\n",
])
def test_invalid_catalogs_raise(tmp_path, text):
    with pytest.raises(ConfigError):
        YamlCatalog.load(write(tmp_path, text))


def test_missing_catalog_raises(tmp_path):
    with pytest.raises(ConfigError):
        YamlCatalog.load(tmp_path / "assets.yaml")


def test_device_and_artwork_load_as_rgba(tmp_path):
    (tmp_path / "devices").mkdir()
    Image.new("RGB", (60, 50), (1, 2, 3)).save(tmp_path / "devices" / "dmg.png")
    Image.new("P", (4, 4)).save(tmp_path / "art.png")
    cat = YamlCatalog.load(write(tmp_path, "sources: [{path: a.gif, artwork: art.png}]\n" + DEVICES))
    assert cat.device_frames[0].load().mode == "RGBA"
    assert cat.sources[0].load_artwork().mode == "RGBA"
