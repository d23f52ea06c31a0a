"""dither-studio: image dithering core with a Flask host."""

from .app import APP_VERSION, app, create_app
from .buffers import GrayscaleBuffer, PixelBuffer
from .geometry import Circle, MaskRegion, Polygon, Rectangle, RegionSequence
from .params import AdjustmentParams, Algorithm, AlgorithmParams
from . import infrastructure, processing

__version__ = APP_VERSION

__all__ = [
    "APP_VERSION",
    "__version__",
    "app",
    "create_app",
    "GrayscaleBuffer",
    "PixelBuffer",
    "Circle",
    "MaskRegion",
    "Polygon",
    "Rectangle",
    "RegionSequence",
    "AdjustmentParams",
    "Algorithm",
    "AlgorithmParams",
    "infrastructure",
    "processing",
]
