"""
Application configuration management.

Load order (each layer overrides the previous):
  1. ``config/default.toml``      — committed static defaults
  2. ``config/local.toml``        — optional local overrides (gitignored)
  3. ``.env``                     — local secrets and env overrides (gitignored)
  4. Environment variables        — ``PREDICTION_DASHBOARD_*`` prefix

Entry point: ``load_config(config_path=None) -> AppConfig``

The bearer token and user email normally come from ``.env`` — the session
provider that issues them lives outside this project.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, field_validator

from prediction_dashboard.exceptions import ConfigError

ENV_PREFIX = "PREDICTION_DASHBOARD_"

# ── Sub-config models ─────────────────────────────────────────────────────────


class InferenceConfig(BaseModel):
    """ML inference backend (car price, movie rating, Titanic survival)."""

    model_config = ConfigDict(frozen=True)

    base_url: str = "http://127.0.0.1:8000"
    request_timeout_s: Optional[float] = None   # None → no timeout enforced

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"base_url must be an http(s) URL, got '{v}'.")
        return v.rstrip("/")


class TradingConfig(BaseModel):
    """Trading / monitoring backend."""

    model_config = ConfigDict(frozen=True)

    base_url: str = "http://127.0.0.1:3000"
    request_timeout_s: Optional[float] = None

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"base_url must be an http(s) URL, got '{v}'.")
        return v.rstrip("/")


class AuthConfig(BaseModel):
    """Session credentials handed over by the external auth provider."""

    model_config = ConfigDict(frozen=True)

    token: Optional[str] = None
    user_email: Optional[str] = None


class PollingConfig(BaseModel):
    """Refresh intervals (seconds) for the monitoring views."""

    model_config = ConfigDict(frozen=True)

    risk_s: float = 60.0
    system_health_s: float = 30.0
    account_s: float = 30.0
    news_s: float = 300.0
    positions_s: float = 5.0

    @field_validator("risk_s", "system_health_s", "account_s", "news_s", "positions_s")
    @classmethod
    def validate_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"Polling interval must be positive, got {v}.")
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
    """Complete application configuration.

    CLI commands and the dashboard receive an ``AppConfig`` instance built by
    ``load_config()``.
    """

    model_config = ConfigDict(frozen=True)

    inference: InferenceConfig = InferenceConfig()
    trading: TradingConfig = TradingConfig()
    auth: AuthConfig = AuthConfig()
    polling: PollingConfig = PollingConfig()
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
            ``<project_root>/config/default.toml``; when that default file is
            absent, built-in defaults are used.

    Returns:
        Fully validated ``AppConfig`` instance.

    Raises:
        ConfigError: If an explicit ``config_path`` does not exist.
        pydantic.ValidationError: If merged config values fail validation.
    """
    root = _find_project_root()

    # 1. Load .env file (silently skip if missing)
    load_dotenv(dotenv_path=root / ".env", override=False)

    # 2. Load TOML config
    raw: dict[str, Any] = {}
    if config_path is None:
        default_path = root / "config" / "default.toml"
        if default_path.exists():
            config_path = default_path
    else:
        config_path = Path(config_path)
        if not config_path.exists():
            raise ConfigError(
                f"Config file not found: {config_path}",
                details={"config_path": str(config_path)},
            )

    if config_path is not None:
        with open(config_path, "rb") as f:
            raw = tomllib.load(f)

        # Also merge local.toml if present (gitignored local overrides)
        local_config_path = config_path.parent / "local.toml"
        if local_config_path.exists():
            with open(local_config_path, "rb") as f:
                raw = _deep_merge(raw, tomllib.load(f))

    # 3. Apply PREDICTION_DASHBOARD_* environment variable overrides
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
    """Apply PREDICTION_DASHBOARD_* env vars to the raw config dict.

    Supported overrides:
      PREDICTION_DASHBOARD_TOKEN          → raw["auth"]["token"]
      PREDICTION_DASHBOARD_USER_EMAIL     → raw["auth"]["user_email"]
      PREDICTION_DASHBOARD_INFERENCE_URL  → raw["inference"]["base_url"]
      PREDICTION_DASHBOARD_TRADING_URL    → raw["trading"]["base_url"]
      PREDICTION_DASHBOARD_LOG_LEVEL      → raw["logging"]["level"]
      PREDICTION_DASHBOARD_DEBUG          → raw["debug"]
    """
    if token := os.environ.get(f"{ENV_PREFIX}TOKEN"):
        raw.setdefault("auth", {})["token"] = token

    if email := os.environ.get(f"{ENV_PREFIX}USER_EMAIL"):
        raw.setdefault("auth", {})["user_email"] = email

    if url := os.environ.get(f"{ENV_PREFIX}INFERENCE_URL"):
        raw.setdefault("inference", {})["base_url"] = url

    if url := os.environ.get(f"{ENV_PREFIX}TRADING_URL"):
        raw.setdefault("trading", {})["base_url"] = url

    if log_level := os.environ.get(f"{ENV_PREFIX}LOG_LEVEL"):
        raw.setdefault("logging", {})["level"] = log_level

    if debug := os.environ.get(f"{ENV_PREFIX}DEBUG"):
        raw["debug"] = debug.lower() in ("1", "true", "yes")

    return raw


def _build_app_config(raw: dict[str, Any]) -> AppConfig:
    """Map raw TOML dict to ``AppConfig`` model structure."""
    project = raw.pop("project", {})

    return AppConfig(
        inference=InferenceConfig(**raw.get("inference", {})),
        trading=TradingConfig(**raw.get("trading", {})),
        auth=AuthConfig(**raw.get("auth", {})),
        polling=PollingConfig(**raw.get("polling", {})),
        logging=LoggingConfig(**raw.get("logging", {})),
        debug=raw.get("debug", project.get("debug", False)),
    )
