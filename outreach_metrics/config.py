"""
Dashboard settings.

Loaded in three layers, later layers win:
1. Optional YAML file (mapping at top level)
2. .env file (via python-dotenv) merged into the process environment
3. OUTREACH_* environment variables

Invalid values raise pydantic.ValidationError so a bad config never reaches
the orchestrator.
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

from .filters import DateFilterPolicy
from .models import SortOrder

# Refresh error policies
PRESERVE = "preserve"   # keep last known-good view when a refresh fails
CLEAR = "clear"         # blank the view on any failed fetch

# Env var -> settings field
ENV_VARS = {
    "OUTREACH_API_BASE_URL": "api_base_url",
    "OUTREACH_REQUEST_TIMEOUT": "request_timeout",
    "OUTREACH_DEBOUNCE_MS": "debounce_ms",
    "OUTREACH_DEFAULT_WINDOW_DAYS": "default_window_days",
    "OUTREACH_DATE_FILTER_POLICY": "date_filter_policy",
    "OUTREACH_REFRESH_ERROR_POLICY": "refresh_error_policy",
    "OUTREACH_DIAGNOSTICS_CAPACITY": "diagnostics_capacity",
    "OUTREACH_DATE_PARAM_STYLE": "date_param_style",
    "OUTREACH_ABORT_SUPERSEDED": "abort_superseded",
    "OUTREACH_LOG_LEVEL": "log_level",
}


class DashboardSettings(BaseModel):
    api_base_url: str = "http://localhost:4000"
    request_timeout: float = Field(default=10.0, gt=0)
    debounce_ms: int = Field(default=300, ge=0)
    default_window_days: int = Field(default=30, ge=1)

    date_filter_policy: DateFilterPolicy = DateFilterPolicy.CREATED_AT
    refresh_error_policy: str = PRESERVE
    diagnostics_capacity: int = Field(default=100, ge=1)

    # snake -> start_date/end_date, camel -> startDate/endDate
    date_param_style: str = "snake"
    abort_superseded: bool = False

    default_sort_field: str = "created_at"
    default_sort_order: SortOrder = SortOrder.DESC

    log_level: str = "INFO"

    @field_validator("api_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("api_base_url must not be empty")
        return v.rstrip("/")

    @field_validator("refresh_error_policy")
    @classmethod
    def known_refresh_policy(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in (PRESERVE, CLEAR):
            raise ValueError(f"refresh_error_policy must be '{PRESERVE}' or '{CLEAR}'")
        return v

    @field_validator("date_param_style")
    @classmethod
    def known_param_style(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in ("snake", "camel"):
            raise ValueError("date_param_style must be 'snake' or 'camel'")
        return v

    @field_validator("default_sort_order", mode="before")
    @classmethod
    def lower_sort_order(cls, v: Any) -> Any:
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("log_level")
    @classmethod
    def known_log_level(cls, v: str) -> str:
        v = v.strip().upper()
        if v not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Invalid log_level: {v}")
        return v

    @property
    def debounce_seconds(self) -> float:
        return self.debounce_ms / 1000.0


def _read_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"Dashboard config not found: {path}")

    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError("Dashboard config must be a YAML mapping/object")
    return data


def _env_overrides(environ: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    environ = os.environ if environ is None else environ
    overrides = {}
    for env_name, field_name in ENV_VARS.items():
        value = environ.get(env_name)
        if value is not None and value.strip() != "":
            overrides[field_name] = value.strip()
    return overrides


def load_settings(
    config_path: Optional[str] = None,
    environ: Optional[Dict[str, str]] = None,
    use_dotenv: bool = True,
) -> DashboardSettings:
    """
    Build DashboardSettings from YAML, .env and environment.

    Args:
        config_path: Optional path to a YAML settings file
        environ: Environment mapping (defaults to os.environ)
        use_dotenv: Read .env into os.environ first

    Returns:
        Validated DashboardSettings
    """
    if use_dotenv and environ is None:
        load_dotenv()  # reads .env if present

    data: Dict[str, Any] = {}
    if config_path:
        data.update(_read_yaml(Path(config_path)))
    data.update(_env_overrides(environ))

    return DashboardSettings.model_validate(data)
