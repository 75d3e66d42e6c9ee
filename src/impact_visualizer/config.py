"""Configuration system for Impact Visualizer.

Provides hierarchical configuration with precedence:
1. CLI flags (highest)
2. Environment variables
3. Project config (./.impact-viz.json)
4. Global config (~/.impact_viz_config.json)
5. Hardcoded defaults (lowest)
"""

from __future__ import annotations

import copy
import json
import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

from impact_visualizer.viz.tree.builder import DEFAULT_MAX_DEPTH, DEFAULT_MAX_NODES

logger = logging.getLogger(__name__)

# Valid values for enums
VALID_OUTPUT_FORMATS = ("text", "json")

# Hardcoded defaults
DEFAULT_EXPAND_DEPTH = 1
DEFAULT_PRECISION = 3
DEFAULT_OUTPUT_FORMAT = "text"

# Environment variable names
ENV_METRIC = "IMPACT_VIZ_METRIC"
ENV_EXPAND_DEPTH = "IMPACT_VIZ_EXPAND_DEPTH"
ENV_PRECISION = "IMPACT_VIZ_PRECISION"
ENV_SHOW_TIME_SERIES = "IMPACT_VIZ_SHOW_TIME_SERIES"
ENV_OUTPUT_FORMAT = "IMPACT_VIZ_OUTPUT_FORMAT"
ENV_MAX_DEPTH = "IMPACT_VIZ_MAX_DEPTH"
ENV_MAX_NODES = "IMPACT_VIZ_MAX_NODES"

# Deprecated env vars (backward compatibility)
ENV_METRIC_DEPRECATED = "IMPACT_VIZ_DEFAULT_METRIC"

GLOBAL_CONFIG_NAME = ".impact_viz_config.json"
PROJECT_CONFIG_NAME = ".impact-viz.json"


class ConfigValidationError(Exception):
    """Raised when configuration validation fails."""

    pass


class ConfigLoadError(Exception):
    """Raised when configuration file cannot be loaded."""

    pass


def _reject_unknown(cls: type, data: dict[str, Any], section: str) -> None:
    known_fields = {f.name for f in fields(cls)}
    unknown = set(data.keys()) - known_fields
    if unknown:
        raise ConfigValidationError(
            f"Unknown fields in {section} config: {', '.join(sorted(unknown))}"
        )


@dataclass
class DisplayConfig:
    """How views are projected and printed."""

    default_metric: str | None = None
    expand_depth: int = DEFAULT_EXPAND_DEPTH
    precision: int = DEFAULT_PRECISION
    show_time_series: bool = False
    output_format: str = DEFAULT_OUTPUT_FORMAT
    max_rings: int | None = None

    def validate(self) -> None:
        """Validate configuration values."""
        if self.expand_depth < 0:
            raise ConfigValidationError(
                f"expand_depth must be >= 0, got {self.expand_depth}"
            )
        if not 0 <= self.precision <= 12:
            raise ConfigValidationError(
                f"precision must be between 0 and 12, got {self.precision}"
            )
        if self.output_format not in VALID_OUTPUT_FORMATS:
            raise ConfigValidationError(
                f"Invalid output_format '{self.output_format}'. "
                f"Valid values: {', '.join(VALID_OUTPUT_FORMATS)}"
            )
        if self.max_rings is not None and self.max_rings <= 0:
            raise ConfigValidationError(
                f"max_rings must be positive, got {self.max_rings}"
            )

    def to_dict(self, exclude_none: bool = False) -> dict[str, Any]:
        """Convert to dictionary."""
        result = {
            "default_metric": self.default_metric,
            "expand_depth": self.expand_depth,
            "precision": self.precision,
            "show_time_series": self.show_time_series,
            "output_format": self.output_format,
            "max_rings": self.max_rings,
        }
        if exclude_none:
            return {k: v for k, v in result.items() if v is not None}
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any], strict: bool = False) -> "DisplayConfig":
        """Create from dictionary."""
        if strict:
            _reject_unknown(cls, data, "display")

        return cls(
            default_metric=data.get("default_metric"),
            expand_depth=data.get("expand_depth", DEFAULT_EXPAND_DEPTH),
            precision=data.get("precision", DEFAULT_PRECISION),
            show_time_series=data.get("show_time_series", False),
            output_format=data.get("output_format", DEFAULT_OUTPUT_FORMAT),
            max_rings=data.get("max_rings"),
        )


@dataclass
class LimitsConfig:
    """Guards applied while building the tree."""

    max_depth: int = DEFAULT_MAX_DEPTH
    max_nodes: int = DEFAULT_MAX_NODES

    def validate(self) -> None:
        """Validate limit values."""
        if self.max_depth <= 0:
            raise ConfigValidationError(
                f"max_depth must be positive, got {self.max_depth}"
            )
        if self.max_nodes <= 0:
            raise ConfigValidationError(
                f"max_nodes must be positive, got {self.max_nodes}"
            )

    def to_dict(self, exclude_none: bool = False) -> dict[str, Any]:
        """Convert to dictionary."""
        return {"max_depth": self.max_depth, "max_nodes": self.max_nodes}

    @classmethod
    def from_dict(cls, data: dict[str, Any], strict: bool = False) -> "LimitsConfig":
        """Create from dictionary."""
        if strict:
            _reject_unknown(cls, data, "limits")
        return cls(
            max_depth=data.get("max_depth", DEFAULT_MAX_DEPTH),
            max_nodes=data.get("max_nodes", DEFAULT_MAX_NODES),
        )


@dataclass
class VisualizerConfig:
    """Complete visualizer configuration."""

    version: str = "1"
    display: DisplayConfig = field(default_factory=DisplayConfig)
    limits: LimitsConfig = field(default_factory=LimitsConfig)

    def validate(self) -> None:
        """Validate entire configuration."""
        self.display.validate()
        self.limits.validate()

    def to_dict(self, exclude_none: bool = False) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "version": self.version,
            "display": self.display.to_dict(exclude_none),
            "limits": self.limits.to_dict(exclude_none),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], strict: bool = False) -> "VisualizerConfig":
        """Create from dictionary."""
        if strict:
            unknown = set(data.keys()) - {"version", "display", "limits"}
            if unknown:
                raise ConfigValidationError(
                    f"Unknown fields in config: {', '.join(sorted(unknown))}"
                )

        return cls(
            version=data.get("version", "1"),
            display=DisplayConfig.from_dict(data.get("display", {}), strict),
            limits=LimitsConfig.from_dict(data.get("limits", {}), strict),
        )


def get_global_config_path() -> Path:
    """Get path to global config file."""
    return Path.home() / GLOBAL_CONFIG_NAME


def get_project_config_path(project_dir: Path) -> Path:
    """Get path to project config file."""
    return project_dir / PROJECT_CONFIG_NAME


def load_config_file(path: Path, strict: bool = False) -> VisualizerConfig:
    """Load configuration from a JSON file.

    Args:
        path: Path to the config file
        strict: If True, fail on unknown fields

    Returns:
        VisualizerConfig instance (defaults when the file does not exist)

    Raises:
        ConfigLoadError: If file cannot be read or parsed
        ConfigValidationError: If strict=True and unknown fields found
    """
    if not path.exists():
        return VisualizerConfig()

    try:
        content = path.read_text()
    except PermissionError as e:
        raise ConfigLoadError(f"Permission denied reading {path}: {e}")
    except OSError as e:
        raise ConfigLoadError(f"Error reading {path}: {e}")

    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise ConfigLoadError(f"Invalid JSON in {path}: {e}")

    if not isinstance(data, dict):
        raise ConfigLoadError(f"Config in {path} must be a JSON object")

    logger.debug("Loaded config from %s", path)
    return VisualizerConfig.from_dict(data, strict=strict)


def merge_configs(*configs: VisualizerConfig) -> VisualizerConfig:
    """Merge multiple configs with later configs taking precedence.

    Default values in later configs do NOT override earlier values, so
    partial configs layer properly.

    Args:
        *configs: Configs to merge (first is base, last has highest priority)

    Returns:
        Merged VisualizerConfig
    """
    if not configs:
        return VisualizerConfig()

    result = copy.deepcopy(configs[0])

    for config in configs[1:]:
        display = config.display
        if display.default_metric is not None:
            result.display.default_metric = display.default_metric
        if display.expand_depth != DEFAULT_EXPAND_DEPTH:
            result.display.expand_depth = display.expand_depth
        if display.precision != DEFAULT_PRECISION:
            result.display.precision = display.precision
        if display.show_time_series:
            result.display.show_time_series = display.show_time_series
        if display.output_format != DEFAULT_OUTPUT_FORMAT:
            result.display.output_format = display.output_format
        if display.max_rings is not None:
            result.display.max_rings = display.max_rings

        if config.limits.max_depth != DEFAULT_MAX_DEPTH:
            result.limits.max_depth = config.limits.max_depth
        if config.limits.max_nodes != DEFAULT_MAX_NODES:
            result.limits.max_nodes = config.limits.max_nodes

    return result


def _env_int(name: str) -> int | None:
    raw = os.environ.get(name)
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        raise ConfigValidationError(f"{name} must be an integer, got '{raw}'")


def apply_env_overrides(config: VisualizerConfig) -> VisualizerConfig:
    """Apply environment variable overrides to config.

    Args:
        config: Base configuration

    Returns:
        New config with env var overrides applied

    Raises:
        ConfigValidationError: If env var value is invalid
    """
    result = copy.deepcopy(config)

    deprecated_metric = os.environ.get(ENV_METRIC_DEPRECATED)
    if deprecated_metric and not os.environ.get(ENV_METRIC):
        logger.warning(
            "%s is deprecated. Use %s instead.", ENV_METRIC_DEPRECATED, ENV_METRIC
        )
        result.display.default_metric = deprecated_metric

    if metric := os.environ.get(ENV_METRIC):
        result.display.default_metric = metric

    if (expand_depth := _env_int(ENV_EXPAND_DEPTH)) is not None:
        result.display.expand_depth = expand_depth

    if (precision := _env_int(ENV_PRECISION)) is not None:
        result.display.precision = precision

    if show_time_series := os.environ.get(ENV_SHOW_TIME_SERIES):
        result.display.show_time_series = show_time_series.lower() in ("true", "1", "yes")

    if output_format := os.environ.get(ENV_OUTPUT_FORMAT):
        result.display.output_format = output_format.lower()

    if (max_depth := _env_int(ENV_MAX_DEPTH)) is not None:
        result.limits.max_depth = max_depth

    if (max_nodes := _env_int(ENV_MAX_NODES)) is not None:
        result.limits.max_nodes = max_nodes

    return result


def get_config(project_dir: Path | None = None, config_path: Path | None = None) -> VisualizerConfig:
    """Load and merge configuration from all sources.

    Loads in order (later sources override earlier):
    1. Hardcoded defaults
    2. Global config (~/.impact_viz_config.json)
    3. Project config (./.impact-viz.json), or ``config_path`` if given
    4. Environment variables

    Args:
        project_dir: Directory holding the project config (cwd if None)
        config_path: Explicit config file replacing the project config

    Returns:
        Merged, validated configuration
    """
    base_config = VisualizerConfig()
    global_config = load_config_file(get_global_config_path())

    if config_path is not None:
        if not config_path.exists():
            raise ConfigLoadError(f"Config file not found: {config_path}")
        project_config = load_config_file(config_path)
    else:
        project_config = load_config_file(
            get_project_config_path(project_dir or Path.cwd())
        )

    merged = apply_env_overrides(merge_configs(base_config, global_config, project_config))
    merged.validate()
    return merged


def generate_config_template() -> dict[str, Any]:
    """Generate a config template dictionary.

    Returns:
        Dictionary suitable for JSON serialization
    """
    return {
        "version": "1",
        "_comment_version": "Config file format version",
        "display": {
            "default_metric": None,
            "_comment_default_metric": "Metric shown first (defaults to the manifest's first metric)",
            "expand_depth": DEFAULT_EXPAND_DEPTH,
            "_comment_expand_depth": "Table depth expanded on load (0 = root row only)",
            "precision": DEFAULT_PRECISION,
            "_comment_precision": "Decimal places in text output",
            "show_time_series": False,
            "_comment_show_time_series": "Show per-timestamp table columns",
            "output_format": DEFAULT_OUTPUT_FORMAT,
            "_comment_output_format": f"Output format. Valid: {', '.join(VALID_OUTPUT_FORMATS)}",
            "max_rings": None,
            "_comment_max_rings": "Nested pie rings shown by default (null = the focused ring only)",
        },
        "limits": {
            "max_depth": DEFAULT_MAX_DEPTH,
            "_comment_max_depth": "Deepest component nesting accepted",
            "max_nodes": DEFAULT_MAX_NODES,
            "_comment_max_nodes": "Most components accepted, YAML alias expansion included",
        },
    }


def generate_config_template_string() -> str:
    """Generate a config template as a formatted JSON string."""
    return json.dumps(generate_config_template(), indent=2)
