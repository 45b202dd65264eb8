"""Command line interface for usgcode."""

import argparse
import logging
import sys
from typing import List, Optional

from ..core.config import Config
from ..core.converter import SVGToGCodeConverter
from ..core.error_handling import UsGcodeError
from ..core.logging_config import setup_logging

logger = logging.getLogger(__name__)


def get_version() -> str:
    """Get the current version of usgcode."""
    import usgcode

    return usgcode.__version__


def positive_float(value: str) -> float:
    """argparse type for the scale factor."""
    try:
        number = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid scale: {value!r}")
    if not number > 0 or number == float("inf"):
        raise argparse.ArgumentTypeError(f"scale must be a positive number: {value!r}")
    return number


def create_parser() -> argparse.ArgumentParser:
    """Create command line argument parser."""
    parser = argparse.ArgumentParser(
        prog="usgcode",
        description="Convert an SVG drawing into compact G-code",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Usage Examples:

  # Convert at the drawing's declared size:
  usgcode drawing.svg out/drawing.gcode

  # Half scale:
  usgcode -s0.5 drawing.svg drawing.gcode

  # Machine settings from a specific file:
  usgcode -c plotter.toml drawing.svg drawing.gcode
        """,
    )

    parser.add_argument(
        "--version", action="version", version=f"usgcode {get_version()}"
    )
    parser.add_argument("input_path", help="SVG file to convert")
    parser.add_argument("output_path", help="G-code file to create or overwrite")
    parser.add_argument(
        "-s",
        "--scale",
        type=positive_float,
        default=1.0,
        help="Decimal number representing scale up or down of input data. "
        "Example: 'usgcode -s0.5 input.svg output.gcode' will produce gcode at half scale",
    )
    parser.add_argument(
        "-c",
        "--config",
        dest="config",
        help="Configuration file (default: usgcode_config.toml in the current "
        "directory or ~/.config/usgcode/)",
    )

    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )
    verbosity.add_argument(
        "-q", "--quiet", action="store_true", help="Only log warnings and errors"
    )
    parser.add_argument("--log-file", dest="log_file", help="Also log to this file")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        level = "DEBUG"
    elif args.quiet:
        level = "WARNING"
    else:
        level = "INFO"
    setup_logging(level=level, log_file=args.log_file)
    logger.debug(f"Arguments: {vars(args)}")

    try:
        converter = SVGToGCodeConverter(Config(args.config))
        result = converter.convert(args.input_path, args.output_path, scale=args.scale)
    except UsGcodeError as e:
        stage = e.details.get("operation", "configuration")
        print(f"❌ {stage} failed: {e.message}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"❌ conversion failed: {e}", file=sys.stderr)
        if args.verbose:
            import traceback

            traceback.print_exc()
        return 1

    print(f"Successfully created gcode at: {result.output_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
