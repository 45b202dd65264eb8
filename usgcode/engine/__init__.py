"""Path-to-G-code conversion engines."""

from usgcode.engine.base import ConversionEngine
from usgcode.engine.svg_engine import SVGConversionEngine

__all__ = ["ConversionEngine", "SVGConversionEngine"]
