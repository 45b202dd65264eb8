"""Loading of SVG drawings."""

import logging
import xml.etree.ElementTree as ET  # nosec B405 - Parsing trusted SVG files only
from pathlib import Path
from typing import Optional, Tuple

from usgcode.core.error_handling import DrawingError

logger = logging.getLogger(__name__)


def local_name(element: ET.Element) -> str:
    """Get an element's tag without its namespace."""
    tag = element.tag
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1]


def load_drawing(svg_path: str | Path) -> ET.Element:
    """Read and parse an SVG file, returning its root element.

    Documents with a DOCTYPE and internal DTD subset are accepted.

    Raises:
        DrawingError: if the file cannot be read or is not well-formed XML
    """
    svg_path = Path(svg_path)
    try:
        content = svg_path.read_bytes()
    except OSError as e:
        raise DrawingError(
            f"Could not open svg file: {svg_path}, failed with error: {e}",
            details={"path": str(svg_path)},
        ) from e

    try:
        root = ET.fromstring(content)  # nosec B314 - Parsing trusted user SVG files
    except ET.ParseError as e:
        raise DrawingError(
            f"Could not parse svg file: {svg_path}, failed with error: {e}",
            details={"path": str(svg_path)},
        ) from e

    if local_name(root) != "svg":
        logger.warning(f"Root element of {svg_path} is <{local_name(root)}>, not <svg>")

    logger.debug(f"Loaded drawing {svg_path}")
    return root


def dimension_attributes(root: ET.Element) -> Tuple[Optional[str], Optional[str]]:
    """Get the raw ``width`` and ``height`` attributes of the drawing root."""
    return root.get("width"), root.get("height")
