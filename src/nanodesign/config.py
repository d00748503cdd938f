"""Runtime configuration helpers (environment overrides and YAML parameter files)."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict

import yaml

from .errors import ConfigError
from .parameters import PRESETS, Parameters

_SUBSTEPS_ENV = "NANODESIGN_SUBSTEPS"
_FINE_FACTOR_ENV = "NANODESIGN_FINE_FACTOR"
_MAX_POINTS_ENV = "NANODESIGN_MAX_POINTS"
_STRICT_ENV = "NANODESIGN_STRICT_INVARIANTS"
_LOG_LEVEL_ENV = "NANODESIGN_LOG_LEVEL"

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class EngineConfig:
    discretization_substeps: int = 100
    fine_sampling_factor: int = 64
    max_curve_points: int = 1_000_000
    grid_inference_rotations: int = 100
    twist_length: float = 33.2
    strict_invariants: bool = False


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    raw = raw.strip().lower()
    if raw in {"", "0", "false", "no"}:
        return False
    if raw in {"1", "true", "yes"}:
        return True
    return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw.strip())
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from exc
    if value <= 0:
        raise ConfigError(f"{name} must be positive, got {value}")
    return value


@lru_cache(maxsize=1)
def load_engine_config() -> EngineConfig:
    """Engine configuration resolved from the environment (cached)."""

    defaults = EngineConfig()
    config = EngineConfig(
        discretization_substeps=_env_int(_SUBSTEPS_ENV, defaults.discretization_substeps),
        fine_sampling_factor=_env_int(_FINE_FACTOR_ENV, defaults.fine_sampling_factor),
        max_curve_points=_env_int(_MAX_POINTS_ENV, defaults.max_curve_points),
        grid_inference_rotations=defaults.grid_inference_rotations,
        twist_length=defaults.twist_length,
        strict_invariants=_env_bool(_STRICT_ENV, defaults.strict_invariants),
    )
    LOGGER.debug(
        "load_engine_config substeps=%s fine_factor=%s max_points=%s strict=%s",
        config.discretization_substeps,
        config.fine_sampling_factor,
        config.max_curve_points,
        config.strict_invariants,
    )
    return config


def resolve_log_level(preferred: str | None = None) -> int:
    token = (preferred or os.getenv(_LOG_LEVEL_ENV) or "WARNING").strip().upper()
    level = logging.getLevelName(token)
    if not isinstance(level, int):
        raise ConfigError(f"Unknown log level {token!r}")
    return level


def parameters_from_mapping(data: Dict[str, Any]) -> Parameters:
    preset = data.get("preset")
    if preset is not None:
        key = str(preset).strip().lower()
        if key not in PRESETS:
            raise ConfigError(f"Unknown parameter preset {preset!r}. Known presets: {', '.join(sorted(PRESETS))}.")
        base = PRESETS[key]
    else:
        base = PRESETS["geary_2014_dna"]
    known = {f.name for f in fields(Parameters)}
    overrides = {key: value for key, value in data.items() if key != "preset"}
    unknown = set(overrides) - known
    if unknown:
        raise ConfigError(f"Unknown parameter field(s): {', '.join(sorted(unknown))}")
    try:
        return base.with_changes(**{key: float(value) for key, value in overrides.items()})
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid parameter value: {exc}") from exc


def load_parameters(path: Path) -> Parameters:
    """Load DNA parameters from a YAML mapping (``preset`` and/or explicit fields)."""

    cfg_path = Path(path)
    if not cfg_path.exists():
        raise ConfigError(f"Parameter file '{cfg_path}' not found.")
    try:
        data = yaml.safe_load(cfg_path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in '{cfg_path}': {exc}") from exc
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError("Parameter file must be a YAML mapping.")
    return parameters_from_mapping(data)


__all__ = [
    "EngineConfig",
    "load_engine_config",
    "resolve_log_level",
    "parameters_from_mapping",
    "load_parameters",
]
