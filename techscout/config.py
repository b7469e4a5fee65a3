"""
Configuration for techscout runs.

Layers, later ones winning:

  config/default.toml   committed defaults
  config/local.toml     machine-specific overrides, next to the chosen file
  .env                  secrets (API key) and TECHSCOUT_* values
  environment           TECHSCOUT_* variables

``load_config()`` returns a frozen ``AppConfig``; commands and the
orchestrator take that object and never read the environment themselves.
Thresholds are validated here, before any feed item is touched.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from techscout.errors import ConfigurationError

# ── Sub-config models ─────────────────────────────────────────────────────────


class MatchingConfig(BaseModel):
    """Orchestrator run options."""

    model_config = ConfigDict(frozen=True)

    skip_enrichment: bool = False
    max_enrichment_items: int = Field(default=20, ge=0)
    use_quick_check: bool = True
    debug: bool = False
    enrichment_workers: int = Field(default=1, ge=1, le=16)
    profile_workers: int = Field(default=4, ge=1, le=32)
    batch_timeout_seconds: Optional[float] = None

    @field_validator("batch_timeout_seconds")
    @classmethod
    def validate_timeout(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v <= 0:
            raise ValueError(f"batch_timeout_seconds must be positive, got {v}.")
        return v


class StabilityThresholds(BaseModel):
    """Stability-gate verdict thresholds.

    ``delta = cost_of_no_change - cost_of_change``:
      delta >= recommend_threshold → RECOMMEND
      delta <= defer_threshold     → DEFER
      otherwise                    → MONITOR

    Stacks healthier than ``conservative_health_score`` multiply both
    thresholds by ``healthy_stack_multiplier``; a pain-point match then
    multiplies the recommend threshold by ``pain_point_discount``.
    """

    model_config = ConfigDict(frozen=True)

    recommend_threshold: float = 0.15
    defer_threshold: float = -0.10
    conservative_health_score: float = 0.8
    healthy_stack_multiplier: float = 1.5
    pain_point_discount: float = 0.7

    @model_validator(mode="after")
    def validate_thresholds(self) -> "StabilityThresholds":
        if self.recommend_threshold <= 0:
            raise ValueError(
                f"recommend_threshold must be positive, got {self.recommend_threshold}."
            )
        if self.defer_threshold >= 0:
            raise ValueError(
                f"defer_threshold must be negative, got {self.defer_threshold}."
            )
        if not 0.0 <= self.conservative_health_score <= 1.0:
            raise ValueError(
                "conservative_health_score must be in [0.0, 1.0], "
                f"got {self.conservative_health_score}."
            )
        if self.healthy_stack_multiplier < 1.0:
            raise ValueError(
                "healthy_stack_multiplier must be >= 1.0, "
                f"got {self.healthy_stack_multiplier}."
            )
        if not 0.0 < self.pain_point_discount <= 1.0:
            raise ValueError(
                f"pain_point_discount must be in (0.0, 1.0], got {self.pain_point_discount}."
            )
        return self


class EnrichmentConfig(BaseModel):
    """Enrichment service settings.

    ``provider``:
      - ``"messages"`` — HTTP Messages API (needs the API key env var).
      - ``"offline"``  — deterministic metadata-only analysis, no network.
      - ``"auto"``     — ``messages`` when the API key is set, else ``offline``.
    """

    model_config = ConfigDict(frozen=True)

    provider: str = "auto"
    api_url: str = "https://api.anthropic.com/v1/messages"
    api_version: str = "2023-06-01"
    api_key_env: str = "ANTHROPIC_API_KEY"
    model: str = "claude-sonnet-4-5"
    max_tokens: int = Field(default=4096, ge=256)
    temperature: float = 0.3
    timeout_seconds: float = Field(default=60.0, gt=0.0)

    @field_validator("provider")
    @classmethod
    def validate_provider(cls, v: str) -> str:
        valid = {"auto", "messages", "offline"}
        if v.lower() not in valid:
            raise ValueError(f"provider must be one of {sorted(valid)}, got '{v}'.")
        return v.lower()

    @field_validator("temperature")
    @classmethod
    def validate_temperature(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError(f"temperature must be in [0.0, 1.0], got {v}.")
        return v


class LoggingConfig(BaseModel):
    """Logging output settings."""

    model_config = ConfigDict(frozen=True)

    level: str = "INFO"
    log_file: str = ""
    json_format: bool = False

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid:
            raise ValueError(f"Log level must be one of {sorted(valid)}, got '{v}'.")
        return v.upper()


class AppConfig(BaseModel):
    """Complete application configuration — the single source of truth.

    Constructed by ``load_config()`` which merges TOML + .env + environment.
    """

    model_config = ConfigDict(frozen=True)

    matching: MatchingConfig = MatchingConfig()
    stability: StabilityThresholds = StabilityThresholds()
    enrichment: EnrichmentConfig = EnrichmentConfig()
    logging: LoggingConfig = LoggingConfig()
    debug: bool = False


# ── Loader ────────────────────────────────────────────────────────────────────

DEFAULT_CONFIG = Path("config") / "default.toml"
LOCAL_CONFIG_NAME = "local.toml"


def _project_root() -> Path:
    """Nearest ancestor of this package that holds ``pyproject.toml``."""
    here = Path(__file__).resolve().parent
    for candidate in (here, *here.parents[:4]):
        if (candidate / "pyproject.toml").is_file():
            return candidate
    return here.parent


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """Build the ``AppConfig`` for one process.

    Args:
        config_path: TOML file to start from; ``config/default.toml`` under
            the project root when omitted.  A ``local.toml`` next to it is
            merged on top.

    Returns:
        Validated ``AppConfig``.

    Raises:
        FileNotFoundError: ``config_path`` does not exist.
        ConfigurationError: A TOML file is malformed, or an env override has
            the wrong type.
        pydantic.ValidationError: A merged value fails validation.
    """
    root = _project_root()
    load_dotenv(dotenv_path=root / ".env", override=False)

    path = Path(config_path) if config_path is not None else root / DEFAULT_CONFIG
    if not path.is_file():
        raise FileNotFoundError(
            f"Config file not found: {path}\n"
            "Pass --config or restore config/default.toml."
        )

    raw = _read_toml(path)
    local = path.with_name(LOCAL_CONFIG_NAME)
    if local != path and local.is_file():
        raw = _deep_merge(raw, _read_toml(local))

    return _build_app_config(_apply_env_overrides(raw))


def _read_toml(path: Path) -> dict[str, Any]:
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigurationError(f"Cannot parse {path}: {exc}") from exc


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return ``base`` with ``override`` applied; nested tables merge key by key."""
    merged = {**base}
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            value = _deep_merge(current, value)
        merged[key] = value
    return merged


def _env_flag(value: str) -> bool:
    return value.lower() in ("1", "true", "yes")


def _apply_env_overrides(raw: dict[str, Any]) -> dict[str, Any]:
    """Apply TECHSCOUT_* env vars to the raw config dict.

    Supported overrides:
      TECHSCOUT_LOG_LEVEL             → raw["logging"]["level"]
      TECHSCOUT_DEBUG                 → raw["debug"]
      TECHSCOUT_SKIP_ENRICHMENT       → raw["matching"]["skip_enrichment"]
      TECHSCOUT_MAX_ENRICHMENT_ITEMS  → raw["matching"]["max_enrichment_items"]
      TECHSCOUT_ENRICHMENT_PROVIDER   → raw["enrichment"]["provider"]
      TECHSCOUT_ENRICHMENT_MODEL      → raw["enrichment"]["model"]
    """
    if log_level := os.environ.get("TECHSCOUT_LOG_LEVEL"):
        raw.setdefault("logging", {})["level"] = log_level

    if debug := os.environ.get("TECHSCOUT_DEBUG"):
        raw["debug"] = _env_flag(debug)

    if skip := os.environ.get("TECHSCOUT_SKIP_ENRICHMENT"):
        raw.setdefault("matching", {})["skip_enrichment"] = _env_flag(skip)

    if max_items := os.environ.get("TECHSCOUT_MAX_ENRICHMENT_ITEMS"):
        try:
            raw.setdefault("matching", {})["max_enrichment_items"] = int(max_items)
        except ValueError as exc:
            raise ConfigurationError(
                f"TECHSCOUT_MAX_ENRICHMENT_ITEMS must be an integer, got '{max_items}'."
            ) from exc

    if provider := os.environ.get("TECHSCOUT_ENRICHMENT_PROVIDER"):
        raw.setdefault("enrichment", {})["provider"] = provider

    if model := os.environ.get("TECHSCOUT_ENRICHMENT_MODEL"):
        raw.setdefault("enrichment", {})["model"] = model

    return raw


def _build_app_config(raw: dict[str, Any]) -> AppConfig:
    """Validate the merged tables into an ``AppConfig``.

    ``debug`` may sit at the top level (env override) or under ``[project]``;
    when on, it also turns on ``matching.debug`` unless that is set explicitly.
    """
    debug = bool(raw.get("debug", raw.get("project", {}).get("debug", False)))
    matching = {**raw.get("matching", {})}
    if debug:
        matching.setdefault("debug", True)

    return AppConfig(
        matching=MatchingConfig(**matching),
        stability=StabilityThresholds(**raw.get("stability", {})),
        enrichment=EnrichmentConfig(**raw.get("enrichment", {})),
        logging=LoggingConfig(**raw.get("logging", {})),
        debug=debug,
    )
