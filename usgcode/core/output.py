"""Writing compacted G-code to the output file."""

import logging
from pathlib import Path
from typing import Iterable

from usgcode.core.compactor import CommandStreamCompactor
from usgcode.core.error_handling import OutputError

logger = logging.getLogger(__name__)


def prepare_output_path(output_path: str | Path) -> Path:
    """Create missing parent directories and remove any existing file.

    Raises:
        OutputError: if a directory cannot be created or the old file removed
    """
    output_path = Path(output_path)

    parent = output_path.parent
    try:
        parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise OutputError(
            f"Could not create output file's parent directory(ies), failed with error: {e}",
            details={"path": str(parent)},
        ) from e

    if output_path.exists():
        try:
            output_path.unlink()
        except OSError as e:
            raise OutputError(
                f"Failed to remove existing file at provided output path: {e}",
                details={"path": str(output_path)},
            ) from e
        logger.debug(f"Removed existing output file {output_path}")

    return output_path


def write_gcode(tokens: Iterable[str], output_path: str | Path) -> int:
    """Stream tokens into a fresh output file.

    The file is recreated and written in append mode. A failure part way
    through leaves whatever was already written in place.

    Returns:
        Number of command lines written
    """
    output_path = prepare_output_path(output_path)

    try:
        output_file = open(output_path, "a", encoding="utf-8", newline="")
    except OSError as e:
        raise OutputError(
            f"Could not create/open output file, failed with error: {e}",
            details={"path": str(output_path)},
        ) from e

    with output_file:
        lines = CommandStreamCompactor(output_file).write(tokens)

    logger.info(f"Wrote {lines} G-code lines to {output_path}")
    return lines
