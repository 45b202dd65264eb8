"""Physical dimension extraction from a drawing's declared width and height.

The numeric value is recovered lexically: every character that is not an
ASCII digit or a decimal point is dropped and the survivors are parsed as a
float. Units are therefore discarded, not converted, so ``"21.0cm"`` becomes
21.0 millimetres. Signs and exponents are dropped the same way.
"""

import logging
import math
from typing import Optional

from usgcode.core.error_handling import DimensionError
from usgcode.core.models import Length, LengthUnit, PhysicalDimensions

logger = logging.getLogger(__name__)

NUMBER_CHARACTERS = frozenset("0123456789.")


def sanitise_number_string(value: str) -> str:
    """Keep only ASCII digits and decimal points, in their original order."""
    return "".join(c for c in value if c in NUMBER_CHARACTERS)


def extract_magnitude(value: str, attribute: str = "dimension") -> float:
    """Parse the numeric magnitude of a raw dimension attribute.

    Raises:
        DimensionError: if the filtered string is not a valid number
    """
    filtered = sanitise_number_string(value)
    try:
        return float(filtered)
    except ValueError:
        raise DimensionError(
            f"Could not read a number from {attribute}={value!r} "
            f"(filtered to {filtered!r})",
            details={"attribute": attribute, "raw": value, "filtered": filtered},
        )


def resolve_dimensions(
    width: Optional[str], height: Optional[str], scale: float = 1.0
) -> Optional[PhysicalDimensions]:
    """Resolve declared width/height attributes into scaled millimetre lengths.

    Args:
        width: Raw ``width`` attribute of the drawing root, or None
        height: Raw ``height`` attribute of the drawing root, or None
        scale: Uniform scale factor applied to both magnitudes

    Returns:
        PhysicalDimensions when both attributes are present, otherwise None.
        The scale is not applied (or validated) when None is returned.

    Raises:
        DimensionError: if an attribute does not reduce to a number or the
            scale factor is not a positive finite number
    """
    if width is None or height is None:
        logger.debug(
            f"Drawing dimensions not fully declared (width={width!r}, height={height!r})"
        )
        return None

    if not math.isfinite(scale) or scale <= 0:
        raise DimensionError(
            f"Scale factor must be a positive number, got {scale}",
            details={"scale": scale},
        )

    dimensions = PhysicalDimensions(
        width=Length(extract_magnitude(width, "width") * scale, LengthUnit.MM),
        height=Length(extract_magnitude(height, "height") * scale, LengthUnit.MM),
    )
    logger.debug(
        f"Resolved dimensions {width!r} x {height!r} at scale {scale} "
        f"to {dimensions.width} x {dimensions.height}"
    )
    return dimensions
