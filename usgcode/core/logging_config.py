"""Logging setup for the usgcode command line tool.

Console lines are short (``LEVEL  [stage] component: message``) since the
tool runs once per drawing; the optional log file keeps timestamps. The
stage is the conversion step currently running, set by :class:`LogContext`.
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import List, Optional

LEVEL_COLORS = {
    logging.DEBUG: "\033[36m",
    logging.INFO: "\033[32m",
    logging.WARNING: "\033[33m",
    logging.ERROR: "\033[31m",
    logging.CRITICAL: "\033[35m",
}
RESET = "\033[0m"

FILE_FORMAT = "%(asctime)s %(levelname)-8s %(name)s [%(stage)s] %(message)s"

_stages: List[str] = []


def component_name(logger_name: str) -> str:
    """``usgcode.engine.svg_engine`` -> ``engine.svg_engine``."""
    package, _, rest = logger_name.partition(".")
    return rest if package == "usgcode" and rest else logger_name


class StageFilter(logging.Filter):
    """Tags records with the innermost running stage, or ``-``."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.stage = _stages[-1] if _stages else "-"
        return True


class ConsoleFormatter(logging.Formatter):
    """Compact console formatter, coloured when writing to a terminal."""

    def __init__(self, use_color: Optional[bool] = None) -> None:
        super().__init__()
        if use_color is None:
            use_color = hasattr(sys.stderr, "isatty") and sys.stderr.isatty()
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        level = f"{record.levelname:<7}"
        if self.use_color:
            level = f"{LEVEL_COLORS.get(record.levelno, '')}{level}{RESET}"

        stage = getattr(record, "stage", "-")
        prefix = f"[{stage}] " if stage != "-" else ""
        line = f"{level} {prefix}{component_name(record.name)}: {record.getMessage()}"

        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    console: bool = True,
    max_bytes: int = 1024 * 1024,
    backup_count: int = 3,
) -> None:
    """Configure the root logger for a command line run.

    Args:
        level: Logging level name; unknown names fall back to INFO
        log_file: Also append records to this file, rotating it at max_bytes
        console: Write records to stderr
        max_bytes: Log file size that triggers rotation
        backup_count: Rotated log files to keep
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()

    handlers: List[logging.Handler] = []
    if console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(ConsoleFormatter())
        handlers.append(console_handler)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
        )
        file_handler.setFormatter(
            logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
        )
        handlers.append(file_handler)

    for handler in handlers:
        handler.setLevel(numeric_level)
        handler.addFilter(StageFilter())
        root_logger.addHandler(handler)

    logging.getLogger(__name__).debug(
        f"Logging initialized: level={level}, file={log_file}"
    )


class LogContext:
    """Marks a conversion stage for the records logged inside it."""

    def __init__(self, stage: str, logger: Optional[logging.Logger] = None):
        self.stage = stage
        self.logger = logger or logging.getLogger(__name__)

    def __enter__(self):
        _stages.append(self.stage)
        self.logger.debug("started")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is not None:
            self.logger.debug(f"failed: {exc_val}")
        else:
            self.logger.debug("done")
        _stages.pop()
