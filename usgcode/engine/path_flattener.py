"""Flattening of SVG shapes into polylines.

Curves are subdivided so that no chord strays further than ``tolerance``
from the true curve. Coordinates stay in drawing user units; the caller
passes a tolerance already converted to user units.
"""

import logging
import math
import re
import xml.etree.ElementTree as ET  # nosec B405 - Parsing trusted SVG files only
from typing import List, Optional, Tuple

from usgcode.parsers.svg_reader import local_name

logger = logging.getLogger(__name__)

Point = Tuple[float, float]

MAX_SEGMENTS = 10000

NUMBER_PATTERN = re.compile(r"[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?")
COMMAND_LETTERS = "MmZzLlHhVvCcSsQqTtAa"


class _PathScanner:
    """Reads commands, numbers and arc flags from path data."""

    def __init__(self, data: str) -> None:
        self.data = data
        self.pos = 0

    def _skip_separators(self) -> None:
        while self.pos < len(self.data) and (
            self.data[self.pos].isspace() or self.data[self.pos] == ","
        ):
            self.pos += 1

    def at_end(self) -> bool:
        self._skip_separators()
        return self.pos >= len(self.data)

    def peek_command(self) -> Optional[str]:
        self._skip_separators()
        if self.pos < len(self.data) and self.data[self.pos] in COMMAND_LETTERS:
            return self.data[self.pos]
        return None

    def read_command(self) -> str:
        command = self.peek_command()
        if command is None:
            raise ValueError(f"expected a command at position {self.pos}")
        self.pos += 1
        return command

    def read_number(self) -> float:
        self._skip_separators()
        match = NUMBER_PATTERN.match(self.data, self.pos)
        if match is None:
            raise ValueError(f"expected a number at position {self.pos}")
        self.pos = match.end()
        return float(match.group())

    def read_flag(self) -> bool:
        # Arc flags may be written without separators, e.g. "a1 1 0 0110 10"
        self._skip_separators()
        if self.pos < len(self.data) and self.data[self.pos] in "01":
            flag = self.data[self.pos] == "1"
            self.pos += 1
            return flag
        raise ValueError(f"expected an arc flag at position {self.pos}")


def _length_attr(element: ET.Element, name: str, default: float = 0.0) -> float:
    """Read a numeric attribute, ignoring any trailing unit."""
    value = element.get(name)
    if value is None:
        return default
    match = NUMBER_PATTERN.match(value.strip())
    if match is None:
        return default
    return float(match.group())


class PathFlattener:
    """Converts SVG shape elements into lists of points."""

    def __init__(self, tolerance: float) -> None:
        if tolerance <= 0:
            raise ValueError("tolerance must be positive")
        self.tolerance = tolerance

    def flatten_element(self, element: ET.Element) -> List[List[Point]]:
        """Flatten a shape element into one or more polylines."""
        tag = local_name(element)
        if tag == "path":
            return self.flatten_path(element.get("d", ""))
        elif tag == "line":
            return self._flatten_line(element)
        elif tag in ("polyline", "polygon"):
            return self._flatten_points(element, closed=tag == "polygon")
        elif tag == "rect":
            return self._flatten_rect(element)
        elif tag == "circle":
            r = _length_attr(element, "r")
            return self._flatten_ellipse(
                _length_attr(element, "cx"), _length_attr(element, "cy"), r, r
            )
        elif tag == "ellipse":
            return self._flatten_ellipse(
                _length_attr(element, "cx"),
                _length_attr(element, "cy"),
                _length_attr(element, "rx"),
                _length_attr(element, "ry"),
            )
        return []

    def flatten_path(self, d: str) -> List[List[Point]]:
        """Flatten SVG path data into one polyline per subpath.

        Malformed data is handled as SVG renderers do: everything up to the
        first error is kept and the rest is ignored.
        """
        subpaths: List[List[Point]] = []
        current: List[Point] = []
        x = y = 0.0
        start_x = start_y = 0.0
        # Last control point and the curve family it belongs to, for S and T
        last_control: Optional[Point] = None
        last_family = ""

        scanner = _PathScanner(d)
        command: Optional[str] = None
        try:
            while not scanner.at_end():
                if scanner.peek_command() is not None:
                    command = scanner.read_command()
                elif command is None or command in "Zz":
                    raise ValueError(f"unexpected data at position {scanner.pos}")

                relative = command.islower()
                cmd = command.upper()

                if cmd != "M" and not current:
                    raise ValueError("path data must begin with a moveto")

                family = ""
                control: Optional[Point] = None

                if cmd == "M":
                    nx, ny = scanner.read_number(), scanner.read_number()
                    if relative:
                        nx, ny = nx + x, ny + y
                    if len(current) > 1:
                        subpaths.append(current)
                    x, y = nx, ny
                    start_x, start_y = x, y
                    current = [(x, y)]
                    # Further coordinate pairs are implicit linetos
                    command = "l" if relative else "L"

                elif cmd == "Z":
                    if (x, y) != (start_x, start_y):
                        current.append((start_x, start_y))
                    x, y = start_x, start_y
                    if len(current) > 1:
                        subpaths.append(current)
                    current = [(x, y)]

                elif cmd in "LHV":
                    nx, ny = x, y
                    if cmd == "L":
                        nx, ny = scanner.read_number(), scanner.read_number()
                        if relative:
                            nx, ny = nx + x, ny + y
                    elif cmd == "H":
                        nx = scanner.read_number() + (x if relative else 0.0)
                    else:
                        ny = scanner.read_number() + (y if relative else 0.0)
                    x, y = nx, ny
                    current.append((x, y))

                elif cmd in "CS":
                    if cmd == "C":
                        c1 = (scanner.read_number(), scanner.read_number())
                        if relative:
                            c1 = (c1[0] + x, c1[1] + y)
                    elif last_family == "cubic" and last_control is not None:
                        c1 = (2 * x - last_control[0], 2 * y - last_control[1])
                    else:
                        c1 = (x, y)
                    c2 = (scanner.read_number(), scanner.read_number())
                    end = (scanner.read_number(), scanner.read_number())
                    if relative:
                        c2 = (c2[0] + x, c2[1] + y)
                        end = (end[0] + x, end[1] + y)
                    current.extend(self._cubic_bezier((x, y), c1, c2, end))
                    x, y = end
                    family, control = "cubic", c2

                elif cmd in "QT":
                    if cmd == "Q":
                        c = (scanner.read_number(), scanner.read_number())
                        if relative:
                            c = (c[0] + x, c[1] + y)
                    elif last_family == "quadratic" and last_control is not None:
                        c = (2 * x - last_control[0], 2 * y - last_control[1])
                    else:
                        c = (x, y)
                    end = (scanner.read_number(), scanner.read_number())
                    if relative:
                        end = (end[0] + x, end[1] + y)
                    current.extend(self._quadratic_bezier((x, y), c, end))
                    x, y = end
                    family, control = "quadratic", c

                elif cmd == "A":
                    rx, ry = scanner.read_number(), scanner.read_number()
                    rotation = scanner.read_number()
                    large_arc = scanner.read_flag()
                    sweep = scanner.read_flag()
                    end = (scanner.read_number(), scanner.read_number())
                    if relative:
                        end = (end[0] + x, end[1] + y)
                    current.extend(
                        self._elliptical_arc(
                            (x, y), rx, ry, rotation, large_arc, sweep, end
                        )
                    )
                    x, y = end

                last_family, last_control = family, control
        except ValueError as e:
            logger.warning(f"Ignoring rest of path data {d[:40]!r}: {e}")

        if len(current) > 1:
            subpaths.append(current)
        return subpaths

    def _segment_count(self, deviation_scale: float) -> int:
        """Segments needed for a curve whose error is deviation_scale / n**2."""
        if deviation_scale <= 0:
            return 1
        n = math.ceil(math.sqrt(deviation_scale / self.tolerance))
        return max(1, min(MAX_SEGMENTS, n))

    def _arc_segment_count(self, radius: float, sweep_angle: float) -> int:
        """Segments needed to keep the sagitta of an arc within tolerance."""
        if radius <= 0 or sweep_angle == 0:
            return 1
        if self.tolerance < radius:
            step = 2 * math.acos(1 - self.tolerance / radius)
        else:
            step = math.pi / 2
        n = math.ceil(abs(sweep_angle) / step)
        return max(1, min(MAX_SEGMENTS, n))

    def _quadratic_bezier(self, p0: Point, p1: Point, p2: Point) -> List[Point]:
        """Approximate a quadratic Bézier curve, excluding its start point."""
        dd = math.hypot(p0[0] - 2 * p1[0] + p2[0], p0[1] - 2 * p1[1] + p2[1])
        n = self._segment_count(dd / 4)

        points = []
        for i in range(1, n + 1):
            t = i / n
            mt = 1 - t
            # B(t) = (1-t)²P0 + 2(1-t)tP1 + t²P2
            points.append(
                (
                    mt * mt * p0[0] + 2 * mt * t * p1[0] + t * t * p2[0],
                    mt * mt * p0[1] + 2 * mt * t * p1[1] + t * t * p2[1],
                )
            )
        points[-1] = p2
        return points

    def _cubic_bezier(self, p0: Point, p1: Point, p2: Point, p3: Point) -> List[Point]:
        """Approximate a cubic Bézier curve, excluding its start point."""
        dd = max(
            math.hypot(p0[0] - 2 * p1[0] + p2[0], p0[1] - 2 * p1[1] + p2[1]),
            math.hypot(p1[0] - 2 * p2[0] + p3[0], p1[1] - 2 * p2[1] + p3[1]),
        )
        n = self._segment_count(3 * dd / 4)

        points = []
        for i in range(1, n + 1):
            t = i / n
            mt = 1 - t
            # B(t) = (1-t)³P0 + 3(1-t)²tP1 + 3(1-t)t²P2 + t³P3
            a, b, c, d = mt**3, 3 * mt * mt * t, 3 * mt * t * t, t**3
            points.append(
                (
                    a * p0[0] + b * p1[0] + c * p2[0] + d * p3[0],
                    a * p0[1] + b * p1[1] + c * p2[1] + d * p3[1],
                )
            )
        points[-1] = p3
        return points

    def _elliptical_arc(
        self,
        start: Point,
        rx: float,
        ry: float,
        rotation: float,
        large_arc: bool,
        sweep: bool,
        end: Point,
    ) -> List[Point]:
        """Approximate an SVG elliptical arc, excluding its start point."""
        if start == end:
            return []
        if rx == 0 or ry == 0:
            return [end]

        center = _arc_center_parameters(start, end, rx, ry, rotation, large_arc, sweep)
        cx, cy, rx, ry, theta1, delta_theta = center
        phi = math.radians(rotation)
        cos_phi, sin_phi = math.cos(phi), math.sin(phi)

        n = self._arc_segment_count(max(rx, ry), delta_theta)
        points = []
        for i in range(1, n + 1):
            angle = theta1 + delta_theta * i / n
            local_x = rx * math.cos(angle)
            local_y = ry * math.sin(angle)
            points.append(
                (
                    cx + local_x * cos_phi - local_y * sin_phi,
                    cy + local_x * sin_phi + local_y * cos_phi,
                )
            )
        points[-1] = end
        return points

    def _flatten_line(self, element: ET.Element) -> List[List[Point]]:
        start = (_length_attr(element, "x1"), _length_attr(element, "y1"))
        end = (_length_attr(element, "x2"), _length_attr(element, "y2"))
        if start == end:
            return []
        return [[start, end]]

    def _flatten_points(self, element: ET.Element, closed: bool) -> List[List[Point]]:
        values = [float(v) for v in NUMBER_PATTERN.findall(element.get("points", ""))]
        points = [(values[i], values[i + 1]) for i in range(0, len(values) - 1, 2)]
        if len(points) < 2:
            return []
        if closed and points[0] != points[-1]:
            points.append(points[0])
        return [points]

    def _flatten_rect(self, element: ET.Element) -> List[List[Point]]:
        x = _length_attr(element, "x")
        y = _length_attr(element, "y")
        width = _length_attr(element, "width")
        height = _length_attr(element, "height")
        if width <= 0 or height <= 0:
            return []
        return [
            [
                (x, y),
                (x + width, y),
                (x + width, y + height),
                (x, y + height),
                (x, y),
            ]
        ]

    def _flatten_ellipse(
        self, cx: float, cy: float, rx: float, ry: float
    ) -> List[List[Point]]:
        if rx <= 0 or ry <= 0:
            return []

        n = max(4, self._arc_segment_count(max(rx, ry), 2 * math.pi))
        points = []
        for i in range(n + 1):
            angle = 2 * math.pi * (i % n) / n
            points.append((cx + rx * math.cos(angle), cy + ry * math.sin(angle)))
        return [points]


def _arc_center_parameters(
    start: Point,
    end: Point,
    rx: float,
    ry: float,
    rotation: float,
    large_arc: bool,
    sweep: bool,
) -> Tuple[float, float, float, float, float, float]:
    """Convert SVG endpoint arc parameters to center parameterization.

    Returns: (cx, cy, rx, ry, theta1, delta_theta) with radii scaled up when
    they are too small to reach the end point.
    """
    x1, y1 = start
    x2, y2 = end
    rx, ry = abs(rx), abs(ry)

    phi = math.radians(rotation)
    cos_phi, sin_phi = math.cos(phi), math.sin(phi)

    dx = (x1 - x2) / 2
    dy = (y1 - y2) / 2
    x1p = cos_phi * dx + sin_phi * dy
    y1p = -sin_phi * dx + cos_phi * dy

    lambda_val = (x1p / rx) ** 2 + (y1p / ry) ** 2
    if lambda_val > 1:
        rx *= math.sqrt(lambda_val)
        ry *= math.sqrt(lambda_val)

    sign = -1 if large_arc == sweep else 1
    numerator = max(0.0, (rx * ry) ** 2 - (rx * y1p) ** 2 - (ry * x1p) ** 2)
    denominator = (rx * y1p) ** 2 + (ry * x1p) ** 2
    coeff = sign * math.sqrt(numerator / denominator) if denominator else 0.0

    cxp = coeff * rx * y1p / ry
    cyp = -coeff * ry * x1p / rx

    cx = cos_phi * cxp - sin_phi * cyp + (x1 + x2) / 2
    cy = sin_phi * cxp + cos_phi * cyp + (y1 + y2) / 2

    def angle_between(ux: float, uy: float, vx: float, vy: float) -> float:
        return math.atan2(ux * vy - uy * vx, ux * vx + uy * vy)

    ux, uy = (x1p - cxp) / rx, (y1p - cyp) / ry
    vx, vy = (-x1p - cxp) / rx, (-y1p - cyp) / ry
    theta1 = angle_between(1, 0, ux, uy)
    delta_theta = angle_between(ux, uy, vx, vy)

    if not sweep and delta_theta > 0:
        delta_theta -= 2 * math.pi
    elif sweep and delta_theta < 0:
        delta_theta += 2 * math.pi

    return (cx, cy, rx, ry, theta1, delta_theta)
