"""
Test dashboard settings loading (YAML + environment).

Run: python -m pytest tools/testing/test_config.py
"""

import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

import pytest
from pydantic import ValidationError

from outreach_metrics.config import CLEAR, PRESERVE, DashboardSettings, load_settings
from outreach_metrics.filters import DateFilterPolicy
from outreach_metrics.models import SortOrder


def test_defaults():
    settings = load_settings(environ={}, use_dotenv=False)

    assert settings.api_base_url == "http://localhost:4000"
    assert settings.request_timeout == 10.0
    assert settings.debounce_ms == 300
    assert settings.debounce_seconds == 0.3
    assert settings.date_filter_policy == DateFilterPolicy.CREATED_AT
    assert settings.refresh_error_policy == PRESERVE
    assert settings.default_sort_order == SortOrder.DESC
    assert settings.abort_superseded is False


def test_yaml_values(tmp_path):
    path = tmp_path / "dashboard.yaml"
    path.write_text(
        "api_base_url: https://api.example.com/\n"
        "debounce_ms: 150\n"
        "date_filter_policy: any_activity\n"
        "refresh_error_policy: clear\n"
        "default_sort_order: ASC\n",
        encoding="utf-8",
    )

    settings = load_settings(str(path), environ={}, use_dotenv=False)

    assert settings.api_base_url == "https://api.example.com"
    assert settings.debounce_ms == 150
    assert settings.date_filter_policy == DateFilterPolicy.ANY_ACTIVITY
    assert settings.refresh_error_policy == CLEAR
    assert settings.default_sort_order == SortOrder.ASC


def test_environment_overrides_yaml(tmp_path):
    path = tmp_path / "dashboard.yaml"
    path.write_text("debounce_ms: 150\nlog_level: info\n", encoding="utf-8")

    settings = load_settings(
        str(path),
        environ={
            "OUTREACH_DEBOUNCE_MS": "50",
            "OUTREACH_ABORT_SUPERSEDED": "true",
            "OUTREACH_DATE_PARAM_STYLE": "camel",
            "OUTREACH_LOG_LEVEL": "",
        },
        use_dotenv=False,
    )

    assert settings.debounce_ms == 50
    assert settings.abort_superseded is True
    assert settings.date_param_style == "camel"
    assert settings.log_level == "INFO"


def test_invalid_values_rejected():
    with pytest.raises(ValidationError):
        DashboardSettings(refresh_error_policy="sometimes")
    with pytest.raises(ValidationError):
        DashboardSettings(debounce_ms=-1)
    with pytest.raises(ValidationError):
        DashboardSettings(date_filter_policy="updated_only")
    with pytest.raises(ValidationError):
        DashboardSettings(api_base_url="  ")
    with pytest.raises(ValidationError):
        load_settings(environ={"OUTREACH_REQUEST_TIMEOUT": "0"}, use_dotenv=False)


def test_yaml_must_be_mapping(tmp_path):
    path = tmp_path / "dashboard.yaml"
    path.write_text("- just\n- a list\n", encoding="utf-8")

    with pytest.raises(ValueError):
        load_settings(str(path), environ={}, use_dotenv=False)


def test_missing_config_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_settings(str(tmp_path / "missing.yaml"), environ={}, use_dotenv=False)
