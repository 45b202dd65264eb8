"""usgcode - Convert SVG drawings to compact G-code for motion-control devices."""

__version__ = "0.3.1"

from usgcode.core.compactor import compact_tokens
from usgcode.core.config import Config
from usgcode.core.converter import SVGToGCodeConverter
from usgcode.core.dimensions import resolve_dimensions

__all__ = [
    "Config",
    "SVGToGCodeConverter",
    "compact_tokens",
    "resolve_dimensions",
]
