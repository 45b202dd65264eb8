"""Data models shared by the dimension resolver, the engine and the driver."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple


class LengthUnit(Enum):
    """Linear units understood by the conversion engine."""

    MM = "mm"


@dataclass(frozen=True)
class Length:
    """A magnitude tagged with a linear unit."""

    number: float
    unit: LengthUnit = LengthUnit.MM

    def __str__(self) -> str:
        return f"{self.number}{self.unit.value}"


@dataclass(frozen=True)
class PhysicalDimensions:
    """Resolved (width, height) of the drawing.

    Only ever built with both sides present; a drawing without both
    declared dimensions has no PhysicalDimensions at all.
    """

    width: Length
    height: Length

    def as_tuple(self) -> Tuple[float, float]:
        """Get (width, height) as plain numbers."""
        return (self.width.number, self.height.number)


@dataclass
class Polyline:
    """An ordered run of points in drawing user units."""

    element_id: str
    points: List[Tuple[float, float]] = field(default_factory=list)

    def __post_init__(self) -> None:
        """Validate polyline data."""
        if not self.element_id or not self.element_id.strip():
            raise ValueError("Polyline must have a valid element_id")


@dataclass
class ConversionResult:
    """Summary of a finished conversion."""

    output_path: Path
    dimensions: Optional[PhysicalDimensions]
    token_count: int
    line_count: int
