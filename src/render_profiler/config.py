"""Configuration loading and management for Render Profiler.

Configuration sources are merged in priority order:
    1. Defaults (defined in ProfilerConfig)
    2. Global config (~/.render-profiler.toml)
    3. Project config (./render-profiler.toml)
    4. Explicit config file
    5. Environment variables (RENDER_PROFILER_* prefix)
    6. CLI overrides (passed as kwargs)

Example:
    >>> config = load_config(fps_target=120)
    >>> config.frame_budget_ms
    8.333333333333334
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal, Optional, get_type_hints

from .exceptions import ConfigurationError

Verbosity = Literal["quiet", "normal", "verbose"]

ENV_PREFIX = "RENDER_PROFILER_"


@dataclass(frozen=True)
class ScoringConfig:
    """Weights and thresholds of the scoring engine.

    Attributes:
        Sub-score weights (must sum to 1.0):
            duration_weight, frequency_weight, impact_weight

        Severity thresholds on the composite score (0-100):
            critical_threshold, high_threshold, warning_threshold (below it: info)

        Confidence thresholds on average per-occurrence duration (ms):
            high_confidence_ms, medium_confidence_ms

        max_speedup_cap: Upper bound on the estimated speedup fraction
    """

    duration_weight: float = 0.45
    frequency_weight: float = 0.30
    impact_weight: float = 0.25

    critical_threshold: float = 80
    high_threshold: float = 60
    warning_threshold: float = 35

    high_confidence_ms: float = 10
    medium_confidence_ms: float = 5

    max_speedup_cap: float = 0.8

    def __post_init__(self) -> None:
        weight_sum = self.duration_weight + self.frequency_weight + self.impact_weight
        if not 0.99 <= weight_sum <= 1.01:
            raise ValueError(f"Scoring weights must sum to 1.0, got {weight_sum:.3f}")
        for name in ("duration_weight", "frequency_weight", "impact_weight"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative")

        if not (
            self.critical_threshold >= self.high_threshold >= self.warning_threshold
            >= 0
        ):
            raise ValueError("Severity thresholds must be ordered critical >= high >= warning >= 0")
        if self.critical_threshold > 100:
            raise ValueError("critical_threshold must be at most 100")

        if self.high_confidence_ms < self.medium_confidence_ms:
            raise ValueError("high_confidence_ms must be >= medium_confidence_ms")
        if not 0.0 < self.max_speedup_cap <= 1.0:
            raise ValueError("max_speedup_cap must be in (0.0, 1.0]")


@dataclass(frozen=True)
class DetectorConfig:
    """Detector heuristics.

    The thrash gap fraction and the heavy-paint collapse count are kept
    as named settings so traces recorded against the defaults keep producing
    the same findings.

    Attributes:
        long_task_threshold_ms: A JS task longer than this is a long task
        thrash_gap_fraction: Adjacent layouts closer than budget × this thrash
        thrash_min_occurrences: Minimum thrashing layouts per selector
        thrash_min_total_ms: Minimum accumulated layout cost per selector
        gpu_min_stall_ms: GPU events shorter than this are ignored
        gpu_min_total_ms: A GPU group is kept at or above this total
        gpu_min_occurrences: ...or at or above this many events
        paint_min_total_ms: A paint window is kept at or above this paint+raster total
        paint_max_layers: ...or when its layer count exceeds this
        paint_collapse_groups: More qualifying windows than this collapse to one finding
    """

    long_task_threshold_ms: float = 50.0
    thrash_gap_fraction: float = 0.25
    thrash_min_occurrences: int = 2
    thrash_min_total_ms: float = 1.0
    gpu_min_stall_ms: float = 1.0
    gpu_min_total_ms: float = 5.0
    gpu_min_occurrences: int = 3
    paint_min_total_ms: float = 2.0
    paint_max_layers: int = 10
    paint_collapse_groups: int = 5

    def __post_init__(self) -> None:
        if self.long_task_threshold_ms <= 0:
            raise ValueError("long_task_threshold_ms must be positive")
        if not 0.0 < self.thrash_gap_fraction <= 1.0:
            raise ValueError("thrash_gap_fraction must be in (0.0, 1.0]")
        if self.thrash_min_occurrences < 1:
            raise ValueError("thrash_min_occurrences must be at least 1")
        if self.gpu_min_occurrences < 1:
            raise ValueError("gpu_min_occurrences must be at least 1")
        if self.paint_collapse_groups < 1:
            raise ValueError("paint_collapse_groups must be at least 1")
        for name in ("thrash_min_total_ms", "gpu_min_stall_ms", "gpu_min_total_ms", "paint_min_total_ms"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative")


DEFAULT_SCORING = ScoringConfig()
DEFAULT_DETECTORS = DetectorConfig()


@dataclass(frozen=True)
class ProfilerConfig:
    """Top-level profiler configuration.

    Attributes:
        fps_target: Target frame rate used when a trace does not specify one
        collection_duration_ms: Length of a live collection window
        cdp_host, cdp_port: Remote-debugging endpoint
        trace_dir: Directory scanned by the native adapter and the watcher
        watch_debounce_ms: Per-file debounce window for the watcher
        verbosity: Logging verbosity level
        scoring: Nested scoring configuration
        detectors: Nested detector configuration
    """

    fps_target: float = 60
    collection_duration_ms: int = 15000
    cdp_host: str = "localhost"
    cdp_port: int = 9222
    cdp_timeout_seconds: float = 10.0
    trace_dir: str = ".render-debugger/traces"
    watch_debounce_ms: int = 100
    verbosity: Verbosity = "normal"

    scoring: ScoringConfig = field(default_factory=ScoringConfig)
    detectors: DetectorConfig = field(default_factory=DetectorConfig)

    def __post_init__(self) -> None:
        if self.fps_target <= 0:
            raise ValueError("fps_target must be positive")
        if self.collection_duration_ms < 0:
            raise ValueError("collection_duration_ms must be non-negative")
        if not 0 < self.cdp_port < 65536:
            raise ValueError("cdp_port must be between 1 and 65535")
        if self.cdp_timeout_seconds <= 0:
            raise ValueError("cdp_timeout_seconds must be positive")
        if self.watch_debounce_ms < 0:
            raise ValueError("watch_debounce_ms must be non-negative")

    @property
    def frame_budget_ms(self) -> float:
        return 1000.0 / self.fps_target


def load_config(config_file: Optional[Path] = None, **overrides) -> ProfilerConfig:
    """Load configuration with auto-discovery and merging.

    Args:
        config_file: Optional explicit config file path
        **overrides: Direct overrides (typically from CLI flags); ``verbose``
            and ``quiet`` booleans are mapped onto ``verbosity``

    Returns:
        Validated ProfilerConfig instance

    Raises:
        ConfigurationError: If a config file is missing/invalid or a value fails validation
    """
    merged: dict = {}

    global_config = Path.home() / ".render-profiler.toml"
    if global_config.exists():
        merged.update(_load_toml_file(global_config, "global"))

    project_config = Path.cwd() / "render-profiler.toml"
    if project_config.exists():
        merged.update(_load_toml_file(project_config, "project"))

    if config_file is not None:
        if not config_file.exists():
            raise ConfigurationError(f"Config file not found: {config_file}")
        merged.update(_load_toml_file(config_file, "explicit"))

    merged.update(_load_env_vars())

    if "verbose" in overrides:
        if overrides["verbose"]:
            overrides["verbosity"] = "verbose"
        del overrides["verbose"]
    if "quiet" in overrides:
        if overrides["quiet"]:
            overrides["verbosity"] = "quiet"
        del overrides["quiet"]

    merged.update({k: v for k, v in overrides.items() if v is not None})

    for section, cls in (("scoring", ScoringConfig), ("detectors", DetectorConfig)):
        value = merged.pop(section, None)
        if isinstance(value, dict):
            try:
                merged[section] = cls(**value)
            except (TypeError, ValueError) as e:
                raise ConfigurationError(f"Invalid [{section}] config: {e}")
        elif isinstance(value, cls):
            merged[section] = value

    try:
        return ProfilerConfig(**merged)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid configuration: {e}")


def _load_env_vars() -> dict[str, Any]:
    """Load top-level fields from RENDER_PROFILER_* environment variables.

    Nested ``scoring``/``detectors`` tables are only configurable via TOML.
    """
    type_hints = get_type_hints(ProfilerConfig)
    result: dict[str, Any] = {}

    for field_name in ProfilerConfig.__dataclass_fields__:
        env_key = f"{ENV_PREFIX}{field_name.upper()}"
        env_value = os.environ.get(env_key)
        if env_value is None:
            continue

        type_hint = type_hints.get(field_name)
        if type_hint is None:
            continue

        try:
            parsed = _parse_env_value(env_value, type_hint)
        except ValueError as e:
            raise ConfigurationError(f"Invalid {env_key}: {e}")
        if parsed is not None:
            result[field_name] = parsed

    return result


def _parse_env_value(value: str, type_hint: Any) -> Any:
    """Parse an environment variable string to the annotated type.

    Returns None for types that cannot be expressed as a single string.

    Raises:
        ValueError: If the value can't be parsed to the expected type
    """
    origin = getattr(type_hint, "__origin__", None)

    if type_hint is bool:
        lower = value.lower()
        if lower in ("true", "1", "yes", "on"):
            return True
        if lower in ("false", "0", "no", "off"):
            return False
        raise ValueError(f"expected true/false, got '{value}'")
    if type_hint is int:
        return int(value)
    if type_hint is float:
        return float(value)
    if type_hint is str:
        return value
    if origin is Literal:
        if value not in type_hint.__args__:
            raise ValueError(f"expected one of {', '.join(type_hint.__args__)}, got '{value}'")
        return value
    return None


def _load_toml_file(path: Path, label: str) -> dict:
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigurationError(f"Invalid {label} config '{path}': {e}")
