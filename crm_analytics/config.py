"""
Application configuration management.

Load order (each layer overrides the previous):
  1. ``config/default.toml``     : committed static defaults
  2. ``config/local.toml``       : optional local overrides (gitignored)
  3. ``.env``                    : local env overrides (gitignored)
  4. Environment variables       : ``CRM_ANALYTICS_*`` prefix

Entry point: ``load_config(config_path=None) -> AppConfig``

The analytics core never reads configuration itself. The CLI loads an
``AppConfig`` and passes the relevant values explicitly into engine calls.
"""

from __future__ import annotations

import math
import os
import tomllib
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from crm_analytics.analytics.forecasting import (
    CUSTOMER_CONFIDENCE_FLOOR,
    CUSTOMER_DECAY_PER_STEP,
    CUSTOMER_INITIAL_CONFIDENCE,
    DEFAULT_CONFIDENCE_FLOOR,
    DEFAULT_DECAY_RANGE,
    DEFAULT_INITIAL_CONFIDENCE,
    DEFAULT_SEASONAL_FACTORS,
)
from crm_analytics.taxonomy.analytics_taxonomy import ForecastPeriod

# ── Sub-config models ─────────────────────────────────────────────────────────


class DataConfig(BaseModel):
    """Filesystem paths for snapshots and generated reports."""

    model_config = ConfigDict(frozen=True)

    snapshot_dir: str = "data/snapshots"
    output_dir: str = "data/outputs"


class ForecastConfig(BaseModel):
    """Trend forecast settings (revenue and sales series)."""

    model_config = ConfigDict(frozen=True)

    horizon_periods: int = 6
    period: ForecastPeriod = ForecastPeriod.MONTH
    apply_seasonality: bool = True
    seasonal_factors: list[float] = list(DEFAULT_SEASONAL_FACTORS)
    initial_confidence: float = DEFAULT_INITIAL_CONFIDENCE
    confidence_floor: float = DEFAULT_CONFIDENCE_FLOOR
    decay_range: float = DEFAULT_DECAY_RANGE

    @field_validator("horizon_periods")
    @classmethod
    def validate_horizon(cls, v: int) -> int:
        if v <= 0:
            raise ValueError(f"horizon_periods must be > 0, got {v}.")
        return v

    @field_validator("seasonal_factors")
    @classmethod
    def validate_seasonal_factors(cls, v: list[float]) -> list[float]:
        if len(v) != 12:
            raise ValueError(f"seasonal_factors must have 12 entries, got {len(v)}.")
        if any(not math.isfinite(f) or f <= 0 for f in v):
            raise ValueError(f"seasonal_factors must be finite and > 0, got {v}.")
        return v

    @field_validator("decay_range")
    @classmethod
    def validate_decay_range(cls, v: float) -> float:
        if v < 0:
            raise ValueError(f"decay_range must be >= 0, got {v}.")
        return v

    @model_validator(mode="after")
    def validate_confidence_bounds(self) -> "ForecastConfig":
        if not 0.0 <= self.confidence_floor <= self.initial_confidence <= 1.0:
            raise ValueError(
                "confidence bounds must satisfy 0 <= confidence_floor <= "
                f"initial_confidence <= 1, got floor={self.confidence_floor}, "
                f"initial={self.initial_confidence}."
            )
        return self


class CustomerForecastConfig(BaseModel):
    """Confidence schedule of the customer-growth projection."""

    model_config = ConfigDict(frozen=True)

    initial_confidence: float = CUSTOMER_INITIAL_CONFIDENCE
    confidence_floor: float = CUSTOMER_CONFIDENCE_FLOOR
    decay_per_step: float = CUSTOMER_DECAY_PER_STEP

    @model_validator(mode="after")
    def validate_confidence_bounds(self) -> "CustomerForecastConfig":
        if not 0.0 <= self.confidence_floor <= self.initial_confidence <= 1.0:
            raise ValueError(
                "confidence bounds must satisfy 0 <= confidence_floor <= "
                f"initial_confidence <= 1, got floor={self.confidence_floor}, "
                f"initial={self.initial_confidence}."
            )
        if self.decay_per_step < 0:
            raise ValueError(f"decay_per_step must be >= 0, got {self.decay_per_step}.")
        return self


class LoggingConfig(BaseModel):
    """Logging output settings."""

    model_config = ConfigDict(frozen=True)

    level: str = "INFO"
    log_file: str = "data/logs/crm_analytics.log"
    json_format: bool = False

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid:
            raise ValueError(f"Log level must be one of {sorted(valid)}, got '{v}'.")
        return v.upper()


class AppConfig(BaseModel):
    """Complete application configuration.

    Constructed by ``load_config()``, which merges TOML, ``.env`` and
    environment overrides.
    """

    model_config = ConfigDict(frozen=True)

    data: DataConfig = DataConfig()
    forecast: ForecastConfig = ForecastConfig()
    customer_forecast: CustomerForecastConfig = CustomerForecastConfig()
    logging: LoggingConfig = LoggingConfig()
    debug: bool = False


# ── Loader ────────────────────────────────────────────────────────────────────

_PROJECT_ROOT = Path(__file__).parent.parent


def _find_project_root() -> Path:
    """Walk up from this file to find the project root (contains pyproject.toml)."""
    candidate = Path(__file__).parent
    for _ in range(5):
        if (candidate / "pyproject.toml").exists():
            return candidate
        candidate = candidate.parent
    return _PROJECT_ROOT


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """Load and merge application configuration.

    Args:
        config_path: Explicit path to a TOML config file. Defaults to
            ``<project_root>/config/default.toml``.

    Returns:
        Fully validated ``AppConfig`` instance.

    Raises:
        FileNotFoundError: If the specified ``config_path`` does not exist.
        pydantic.ValidationError: If merged config values fail validation.
    """
    root = _find_project_root()

    # 1. Load .env file (silently skip if missing)
    load_dotenv(dotenv_path=root / ".env", override=False)

    # 2. Load TOML config
    if config_path is None:
        config_path = root / "config" / "default.toml"

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Config file not found: {config_path}\n"
            "Create config/default.toml or pass --config."
        )

    with open(config_path, "rb") as f:
        raw: dict[str, Any] = tomllib.load(f)

    local_config_path = config_path.parent / "local.toml"
    if local_config_path.exists():
        with open(local_config_path, "rb") as f:
            local_raw: dict[str, Any] = tomllib.load(f)
        raw = _deep_merge(raw, local_raw)

    # 3. Apply CRM_ANALYTICS_* environment variable overrides
    raw = _apply_env_overrides(raw)

    # 4. Build and validate AppConfig
    return _build_app_config(raw)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` into ``base``."""
    result = dict(base)
    for key, val in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(val, dict):
            result[key] = _deep_merge(result[key], val)
        else:
            result[key] = val
    return result


def _apply_env_overrides(raw: dict[str, Any]) -> dict[str, Any]:
    """Apply CRM_ANALYTICS_* env vars to the raw config dict.

    Supported overrides:
      CRM_ANALYTICS_LOG_LEVEL         → raw["logging"]["level"]
      CRM_ANALYTICS_OUTPUT_DIR        → raw["data"]["output_dir"]
      CRM_ANALYTICS_FORECAST_HORIZON  → raw["forecast"]["horizon_periods"]
      CRM_ANALYTICS_DEBUG             → raw["debug"]
    """
    if log_level := os.environ.get("CRM_ANALYTICS_LOG_LEVEL"):
        raw.setdefault("logging", {})["level"] = log_level

    if output_dir := os.environ.get("CRM_ANALYTICS_OUTPUT_DIR"):
        raw.setdefault("data", {})["output_dir"] = output_dir

    if horizon := os.environ.get("CRM_ANALYTICS_FORECAST_HORIZON"):
        # Left as a string; pydantic coerces it and rejects non-integers.
        raw.setdefault("forecast", {})["horizon_periods"] = horizon

    if debug := os.environ.get("CRM_ANALYTICS_DEBUG"):
        raw["debug"] = debug.lower() in ("1", "true", "yes")

    return raw


def _build_app_config(raw: dict[str, Any]) -> AppConfig:
    """Map raw TOML dict to ``AppConfig`` model structure."""
    project = raw.pop("project", {})

    return AppConfig(
        data=DataConfig(**raw.get("data", {})),
        forecast=ForecastConfig(**raw.get("forecast", {})),
        customer_forecast=CustomerForecastConfig(**raw.get("customer_forecast", {})),
        logging=LoggingConfig(**raw.get("logging", {})),
        debug=raw.get("debug", project.get("debug", False)),
    )
