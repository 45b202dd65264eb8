"""Interface between the driver and a path-to-G-code conversion engine."""

import xml.etree.ElementTree as ET  # nosec B405 - Parsing trusted SVG files only
from abc import ABC, abstractmethod
from typing import List, Optional

from usgcode.core.config import ConversionConfig, MachineConfig
from usgcode.core.models import PhysicalDimensions


class ConversionEngine(ABC):
    """Turns a parsed drawing into an ordered list of G-code tokens."""

    @abstractmethod
    def convert(
        self,
        document: ET.Element,
        config: ConversionConfig,
        dimensions: Optional[PhysicalDimensions],
        machine: MachineConfig,
    ) -> List[str]:
        """Convert a drawing into command tokens.

        Args:
            document: Root element of the drawing
            config: Tolerance, feedrate, DPI and origin
            dimensions: Physical size to stretch the drawing to, or None to
                derive the size from the drawing itself
            machine: Device capabilities and tool on/off snippets

        Returns:
            Tokens in program order; each is a single word, a full command
            or a comment starting with ``;``
        """
        pass
