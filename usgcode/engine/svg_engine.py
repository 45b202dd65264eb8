"""Default conversion engine: SVG shapes to G-code tokens."""

import logging
import xml.etree.ElementTree as ET  # nosec B405 - Parsing trusted SVG files only
from typing import Iterator, List, Optional, Tuple

from usgcode.core.config import ConversionConfig, MachineConfig
from usgcode.core.dimensions import sanitise_number_string
from usgcode.core.models import PhysicalDimensions, Polyline
from usgcode.engine.base import ConversionEngine
from usgcode.engine.path_flattener import NUMBER_PATTERN, PathFlattener
from usgcode.parsers.svg_reader import local_name

logger = logging.getLogger(__name__)

MM_PER_INCH = 25.4

SHAPE_TAGS = ("path", "line", "polyline", "polygon", "rect", "circle", "ellipse")

# Subtrees that are never drawn directly
NON_RENDERED_TAGS = (
    "defs",
    "symbol",
    "clipPath",
    "mask",
    "marker",
    "pattern",
    "metadata",
)


def format_number(value: float) -> str:
    """Format a coordinate with up to 6 decimals and at least one."""
    value = round(value, 6)
    if value == 0:
        value = 0.0
    text = f"{value:.6f}".rstrip("0")
    if text.endswith("."):
        text += "0"
    return text


def _parse_view_box(root: ET.Element) -> Optional[Tuple[float, float, float, float]]:
    view_box = root.get("viewBox")
    if not view_box:
        return None
    values = [float(v) for v in NUMBER_PATTERN.findall(view_box)]
    if len(values) != 4 or values[2] <= 0 or values[3] <= 0:
        logger.warning(f"Ignoring invalid viewBox {view_box!r}")
        return None
    return (values[0], values[1], values[2], values[3])


def _declared_extent(root: ET.Element) -> Optional[Tuple[float, float, float, float]]:
    """Get the drawing extent in user units as (min_x, min_y, width, height)."""
    view_box = _parse_view_box(root)
    if view_box is not None:
        return view_box

    width, height = root.get("width"), root.get("height")
    if width is None or height is None:
        return None
    try:
        w = float(sanitise_number_string(width))
        h = float(sanitise_number_string(height))
    except ValueError:
        return None
    if w <= 0 or h <= 0:
        return None
    return (0.0, 0.0, w, h)


class CoordinateMapper:
    """Maps drawing user units to machine millimetres.

    With known physical dimensions and a known drawing extent the extent is
    stretched onto the dimensions; otherwise user units are pixels at the
    configured DPI. SVG's y axis points down, the machine's up, so y is
    mirrored.
    """

    def __init__(
        self,
        root: ET.Element,
        config: ConversionConfig,
        dimensions: Optional[PhysicalDimensions],
    ) -> None:
        self.extent = _declared_extent(root)

        if dimensions is not None and (
            dimensions.width.number <= 0 or dimensions.height.number <= 0
        ):
            logger.warning(
                f"Declared size {dimensions.width} x {dimensions.height} is empty; "
                "ignoring dimensions and using DPI"
            )
            dimensions = None

        if dimensions is not None and self.extent is not None:
            self.scale_x = dimensions.width.number / self.extent[2]
            self.scale_y = dimensions.height.number / self.extent[3]
        else:
            if dimensions is not None:
                logger.warning(
                    "Drawing extent unknown; ignoring dimensions and using DPI"
                )
            self.scale_x = self.scale_y = MM_PER_INCH / config.dpi

        self.offset_x = 0.0
        self.offset_y = 0.0

    def map(self, x: float, y: float) -> Tuple[float, float]:
        """Map a user-unit point to millimetres."""
        if self.extent is not None:
            min_x, min_y, _, height = self.extent
            mx = (x - min_x) * self.scale_x
            my = (min_y + height - y) * self.scale_y
        else:
            mx = x * self.scale_x
            my = -y * self.scale_y
        return (mx + self.offset_x, my + self.offset_y)

    def align_to_origin(
        self,
        polylines: List[Polyline],
        origin: Tuple[Optional[float], Optional[float]],
    ) -> None:
        """Shift output so the bounding box minimum lands on the origin."""
        mapped = [self.map(x, y) for line in polylines for x, y in line.points]
        if not mapped:
            return
        origin_x, origin_y = origin
        if origin_x is not None:
            self.offset_x += origin_x - min(p[0] for p in mapped)
        if origin_y is not None:
            self.offset_y += origin_y - min(p[1] for p in mapped)

    @property
    def user_units_per_mm(self) -> float:
        """Smallest span of user units covered by one millimetre."""
        return 1.0 / max(self.scale_x, self.scale_y)


class SVGConversionEngine(ConversionEngine):
    """Flattens SVG shapes and emits rapid/cut moves between tool on/off snippets."""

    def convert(
        self,
        document: ET.Element,
        config: ConversionConfig,
        dimensions: Optional[PhysicalDimensions],
        machine: MachineConfig,
    ) -> List[str]:
        """Convert a drawing into command tokens."""
        mapper = CoordinateMapper(document, config, dimensions)
        flattener = PathFlattener(config.tolerance * mapper.user_units_per_mm)

        shapes: List[Tuple[str, str, List[Polyline]]] = []
        for index, element in enumerate(self._iter_shapes(document)):
            tag = local_name(element)
            element_id = (element.get("id") or "").strip() or f"{tag}_{index + 1}"
            polylines = [
                Polyline(element_id=element_id, points=points)
                for points in flattener.flatten_element(element)
            ]
            if polylines:
                shapes.append((element_id, tag, polylines))

        mapper.align_to_origin(
            [line for _, _, polylines in shapes for line in polylines], config.origin
        )

        tokens: List[str] = list(machine.begin_sequence)
        tokens.extend(["G21", "G90"])
        for element_id, tag, polylines in shapes:
            tokens.append(f";svg#{element_id} > {tag}")
            for line in polylines:
                tokens.extend(self._polyline_tokens(line, mapper, config, machine))
        tokens.extend(machine.tool_off_sequence)
        tokens.extend(machine.end_sequence)

        logger.info(
            f"Converted {len(shapes)} shapes into {len(tokens)} tokens "
            f"(scale {mapper.scale_x:.4f} x {mapper.scale_y:.4f} mm/unit)"
        )
        return tokens

    def _iter_shapes(self, element: ET.Element) -> Iterator[ET.Element]:
        """Yield drawable elements in document order."""
        warned_transform = False
        stack = [element]
        while stack:
            current = stack.pop()
            tag = local_name(current)
            if tag in NON_RENDERED_TAGS:
                continue
            if current.get("transform") and not warned_transform:
                logger.warning("transform attributes are not supported and are ignored")
                warned_transform = True
            if tag in SHAPE_TAGS:
                yield current
            stack.extend(reversed(list(current)))

    def _polyline_tokens(
        self,
        line: Polyline,
        mapper: CoordinateMapper,
        config: ConversionConfig,
        machine: MachineConfig,
    ) -> List[str]:
        points = [mapper.map(x, y) for x, y in line.points]
        tokens = list(machine.tool_off_sequence)

        x, y = points[0]
        tokens.extend(["G0", f"X{format_number(x)}", f"Y{format_number(y)}"])
        tokens.extend(machine.tool_on_sequence)

        for index, (x, y) in enumerate(points[1:]):
            tokens.extend(["G1", f"X{format_number(x)}", f"Y{format_number(y)}"])
            if index == 0:
                tokens.append(f"F{format_number(config.feedrate)}")
        return tokens

