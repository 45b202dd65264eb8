"""Main converter class that orchestrates the conversion process."""

import logging
from pathlib import Path
from typing import List, Optional

from usgcode.core.config import Config
from usgcode.core.dimensions import resolve_dimensions
from usgcode.core.error_handling import error_context
from usgcode.core.logging_config import LogContext
from usgcode.core.models import ConversionResult, PhysicalDimensions
from usgcode.core.output import write_gcode
from usgcode.engine.base import ConversionEngine
from usgcode.engine.svg_engine import SVGConversionEngine
from usgcode.parsers.svg_reader import dimension_attributes, load_drawing

logger = logging.getLogger(__name__)


class SVGToGCodeConverter:
    """Main converter class for SVG to G-code conversion."""

    def __init__(
        self, config: Optional[Config] = None, engine: Optional[ConversionEngine] = None
    ) -> None:
        """Initialize converter with configuration and a conversion engine."""
        self.config = config if config is not None else Config()
        self.config.validate()

        self.conversion_config = self.config.conversion_config()
        self.machine_config = self.config.machine_config()
        self.engine = engine if engine is not None else SVGConversionEngine()

    def generate_tokens(
        self, svg_path: str | Path, scale: float = 1.0
    ) -> tuple[List[str], Optional[PhysicalDimensions]]:
        """Load a drawing and run the engine on it."""
        svg_path = Path(svg_path)

        with error_context("read drawing", file_path=str(svg_path)):
            with LogContext("read drawing", logger):
                document = load_drawing(svg_path)

        width, height = dimension_attributes(document)
        with error_context("resolve dimensions", width=width, height=height):
            dimensions = resolve_dimensions(width, height, scale)

        if dimensions is None and scale != 1.0:
            logger.warning(
                f"Scale {scale} has no effect: the drawing does not declare both width and height"
            )

        with error_context("generate gcode"):
            with LogContext("generate gcode", logger):
                tokens = self.engine.convert(
                    document, self.conversion_config, dimensions, self.machine_config
                )

        return tokens, dimensions

    def convert(
        self,
        svg_path: str | Path,
        gcode_path: str | Path,
        scale: float = 1.0,
    ) -> ConversionResult:
        """Complete conversion from SVG to G-code."""
        tokens, dimensions = self.generate_tokens(svg_path, scale)

        gcode_path = Path(gcode_path)
        with error_context("write output", file_path=str(gcode_path)):
            with LogContext("write output", logger):
                line_count = write_gcode(tokens, gcode_path)

        return ConversionResult(
            output_path=gcode_path,
            dimensions=dimensions,
            token_count=len(tokens),
            line_count=line_count,
        )
