from .compositor import Composition, SceneCompositor
from .controller import BackBuffer, DisplayController
from .dither import QuantizedCanvas, dither, quantize
from .geometry import Projection
from .palette import OCT_PALETTE, Palette, PaletteEntry

__all__ = [
    "BackBuffer", "Composition", "DisplayController", "OCT_PALETTE", "Palette",
    "PaletteEntry", "Projection", "QuantizedCanvas", "SceneCompositor",
    "dither", "quantize",
]
