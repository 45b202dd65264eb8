"""Configuration management for usgcode.

Configuration is assembled once at startup from built-in defaults, merged
with an optional ``usgcode_config.toml``. Search order (first match wins):

1. An explicit path passed to :class:`Config`
2. Current directory
3. ``~/.config/usgcode/``

The engine receives immutable :class:`ConversionConfig` and
:class:`MachineConfig` values built from it.
"""

import copy
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import toml

from usgcode.core.error_handling import ConfigurationError
from usgcode.core.snippets import parse_optional_snippet, parse_snippet

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "usgcode_config.toml"

DEFAULT_CONFIG: Dict[str, Dict[str, Any]] = {
    "conversion": {
        "tolerance": 0.001,
        "feedrate": 1000.0,
        "dpi": 100.0,
        "origin_x": 0.0,
        "origin_y": 0.0,
    },
    "machine": {
        "tool_on_sequence": "M3 G0 Z0.0",
        "tool_off_sequence": "M5 G0 Z3.0",
        "begin_sequence": "",
        "end_sequence": "",
    },
}


@dataclass(frozen=True)
class ConversionConfig:
    """Numeric settings for path conversion."""

    tolerance: float = 0.001
    feedrate: float = 1000.0
    dpi: float = 100.0
    origin: Tuple[Optional[float], Optional[float]] = (0.0, 0.0)


@dataclass(frozen=True)
class MachineConfig:
    """Device capabilities and tooling snippets, already tokenized."""

    circular_interpolation: bool = False
    tool_on_sequence: Tuple[str, ...] = ("M3", "G0", "Z0.0")
    tool_off_sequence: Tuple[str, ...] = ("M5", "G0", "Z3.0")
    begin_sequence: Tuple[str, ...] = ()
    end_sequence: Tuple[str, ...] = ()


def find_config_file(filename: str = CONFIG_FILENAME) -> Optional[Path]:
    """Find a configuration file in the standard search locations."""
    search_locations = [
        Path.cwd(),
        Path.home() / ".config" / "usgcode",
    ]

    for location in search_locations:
        config_path = location / filename
        if config_path.exists() and config_path.is_file():
            return config_path

    return None


def _merge_config(base: Dict[str, Any], override: Dict[str, Any]) -> None:
    """Recursively merge override into base."""
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _merge_config(base[key], value)
        else:
            base[key] = value


def _origin_component(value: Any) -> Optional[float]:
    if isinstance(value, str) and value.lower() == "none":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(
            f"conversion.origin_x/origin_y must be numbers or 'none', got {value!r}"
        )


_MISSING = object()


class Config:
    """Configuration manager for usgcode."""

    def __init__(self, config_path: str | Path | None = None) -> None:
        """Load defaults and merge a configuration file if one is found.

        Args:
            config_path: Explicit TOML file; when None the standard search
                locations are used
        """
        self._config = copy.deepcopy(DEFAULT_CONFIG)
        self.config_path: Optional[Path] = None

        if config_path is not None:
            path = Path(config_path)
            if not path.is_file():
                raise ConfigurationError(f"Configuration file '{path}' not found")
        else:
            path = find_config_file()

        if path is None:
            logger.debug(f"Using default configuration (no {CONFIG_FILENAME} found)")
            return

        try:
            with open(path, "r", encoding="utf-8") as f:
                loaded_config = toml.load(f)
        except (OSError, toml.TomlDecodeError) as e:
            raise ConfigurationError(f"Failed to load config from {path}: {e}")

        _merge_config(self._config, loaded_config)
        self.config_path = path
        logger.info(f"Configuration loaded from {path}")

    def get(self, section: str, key: str, default: Any = _MISSING) -> Any:
        """Get a configuration value.

        Raises ConfigurationError for a missing key unless a default is given.
        """
        try:
            return self._config[section][key]
        except KeyError:
            if default is not _MISSING:
                return default
            raise ConfigurationError(f"Configuration key '{section}.{key}' not found")

    def get_section(self, section: str) -> Dict[str, Any]:
        """Get an entire configuration section."""
        try:
            return self._config[section]
        except KeyError:
            raise ConfigurationError(f"Configuration section '{section}' not found")

    @property
    def conversion(self) -> Dict[str, Any]:
        """Get conversion configuration."""
        return self.get_section("conversion")

    @property
    def machine(self) -> Dict[str, Any]:
        """Get machine configuration."""
        return self.get_section("machine")

    @property
    def config(self) -> Dict[str, Any]:
        """Get the full configuration dictionary."""
        return self._config

    def validate(self) -> None:
        """Validate configuration completeness and correctness."""
        for section, keys in DEFAULT_CONFIG.items():
            if section not in self._config:
                raise ConfigurationError(
                    f"Missing required configuration section: {section}"
                )
            for key in keys:
                if key not in self._config[section]:
                    raise ConfigurationError(
                        f"Missing required key '{key}' in section '{section}'"
                    )

        conversion = self.conversion
        for key in ("tolerance", "feedrate", "dpi"):
            value = conversion[key]
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ConfigurationError(f"conversion.{key} must be a number")
            if value <= 0:
                raise ConfigurationError(f"conversion.{key} must be positive")

        _origin_component(conversion["origin_x"])
        _origin_component(conversion["origin_y"])

        for key in DEFAULT_CONFIG["machine"]:
            if not isinstance(self.machine[key], str):
                raise ConfigurationError(f"machine.{key} must be a G-code string")

        # Parsing raises ConfigurationError on bad snippets
        self.machine_config()

    def conversion_config(self) -> ConversionConfig:
        """Build the immutable conversion settings."""
        conversion = self.conversion
        return ConversionConfig(
            tolerance=float(conversion["tolerance"]),
            feedrate=float(conversion["feedrate"]),
            dpi=float(conversion["dpi"]),
            origin=(
                _origin_component(conversion["origin_x"]),
                _origin_component(conversion["origin_y"]),
            ),
        )

    def machine_config(self) -> MachineConfig:
        """Build the immutable machine description with parsed snippets."""
        machine = self.machine
        return MachineConfig(
            circular_interpolation=False,
            tool_on_sequence=parse_snippet(
                machine["tool_on_sequence"], "tool start snippet"
            ),
            tool_off_sequence=parse_snippet(
                machine["tool_off_sequence"], "tool stop snippet"
            ),
            begin_sequence=parse_optional_snippet(
                machine.get("begin_sequence"), "program begin snippet"
            ),
            end_sequence=parse_optional_snippet(
                machine.get("end_sequence"), "program end snippet"
            ),
        )
