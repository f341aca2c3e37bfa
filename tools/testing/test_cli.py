"""
Test the outreach-metrics CLI (argument handling, formatting, end-to-end stats).

Run: python -m pytest tools/testing/test_cli.py
"""

import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

import json
import logging
from datetime import datetime, timezone

import httpx
import pytest

from outreach_metrics import cli
from outreach_metrics.api_client import CAMPAIGN_STATS_PATH, WORKSPACES_PATH, OutreachApiClient
from outreach_metrics.models import CampaignStatus

WS_ID = "64b7f0c2a1e4d3b2c1a09f87"

CAMPAIGNS = [
    {"_id": "c1", "camp_name": "Spring push", "status": "ACTIVE", "lead_contacted_count": 50,
     "replied_count": 10, "positive_reply_count": 10, "created_at": "2024-03-10T09:00:00Z"},
    {"_id": "c2", "camp_name": "Winter push", "status": "PAUSED", "lead_contacted_count": 40,
     "replied_count": 10, "positive_reply_count": 20, "created_at": "2024-02-10T09:00:00Z"},
]


@pytest.fixture(autouse=True)
def fresh_logging():
    """Each main() call attaches handlers to the captured stderr of its own test."""
    logger = logging.getLogger("outreach_metrics")
    saved = logger.handlers[:]
    logger.handlers.clear()
    yield
    for handler in logger.handlers:
        handler.close()
    logger.handlers[:] = saved


def backend(request):
    if request.url.path == WORKSPACES_PATH:
        return httpx.Response(200, json=[{"_id": WS_ID, "name": "Acme"}])
    if request.url.path == CAMPAIGN_STATS_PATH:
        return httpx.Response(200, json=CAMPAIGNS)
    return httpx.Response(404, json={"error": "Not found"})


def use_mock_backend(monkeypatch, handler=backend):
    def from_settings(cls, settings, diagnostics=None, transport=None):
        return cls(
            base_url=settings.api_base_url,
            timeout=settings.request_timeout,
            diagnostics=diagnostics,
            transport=httpx.MockTransport(handler),
        )

    monkeypatch.setattr(OutreachApiClient, "from_settings", classmethod(from_settings))
    monkeypatch.setenv("OUTREACH_DEBOUNCE_MS", "0")


def test_parser():
    args = cli.build_parser().parse_args([
        "stats", "--workspace", WS_ID, "--from", "2024-03-01", "--to", "2024-03-31",
        "--status", "ACTIVE", "--sort-by", "replied_count", "--order", "asc", "--json",
    ])

    assert args.command == "stats"
    assert args.workspace == WS_ID
    assert (args.date_from, args.date_to) == ("2024-03-01", "2024-03-31")
    assert args.order == "asc"
    assert args.json


def test_days_must_be_positive(capsys):
    assert cli.main(["stats", "--days", "0"]) == 2
    assert "--days" in capsys.readouterr().err


def test_format_cell():
    assert cli.format_cell(None) == "-"
    assert cli.format_cell(1234567) == "1,234,567"
    assert cli.format_cell(CampaignStatus.PAUSED) == "PAUSED"
    assert cli.format_cell(datetime(2024, 3, 10, 9, tzinfo=timezone.utc)) == "2024-03-10"
    assert cli.format_cell("garbage") == "garbage"


def test_stats_json_end_to_end(monkeypatch, capsys):
    use_mock_backend(monkeypatch)

    code = cli.main(["stats", "--from", "2024-03-01", "--to", "2024-03-31", "--json"])

    assert code == 0
    data = json.loads(capsys.readouterr().out)
    assert data["workspaceId"] == WS_ID
    assert data["window"] == "2024-03-01..2024-03-31"
    assert [c["id"] for c in data["campaigns"]] == ["c1"]
    assert data["stats"]["totalContacted"] == 50
    assert data["stats"]["leadRate"] == "20.0%"
    assert data["stats"]["previous"]["totalContacted"] == 40
    assert data["stats"]["deltaPercent"]["contacted"] == 25.0


def test_stats_report_end_to_end(monkeypatch, capsys):
    use_mock_backend(monkeypatch)

    code = cli.main(["stats", "--workspace", WS_ID, "--from", "2024-02-01", "--to", "2024-03-31"])

    assert code == 0
    out = capsys.readouterr().out
    assert "Spring push" in out
    assert "Winter push" in out
    assert "Lead Rate" in out


def test_unknown_workspace(monkeypatch, capsys):
    use_mock_backend(monkeypatch)

    code = cli.main(["stats", "--workspace", "ffffffffffffffffffffffff", "--days", "7"])

    assert code == 1
    assert "not found" in capsys.readouterr().err


def test_invalid_status(monkeypatch, capsys):
    use_mock_backend(monkeypatch)

    assert cli.main(["stats", "--status", "DRAFT"]) == 2
    assert "Invalid status filter" in capsys.readouterr().err


def test_server_error_exit_code(monkeypatch, capsys):
    def failing(request):
        return httpx.Response(500, json={"error": "Internal server error", "details": "db down"})

    use_mock_backend(monkeypatch, failing)

    assert cli.main(["workspaces"]) == 1
    assert "Internal server error: db down" in capsys.readouterr().err


def test_check_command(monkeypatch, capsys):
    use_mock_backend(monkeypatch)

    assert cli.main(["check"]) == 0
    out = capsys.readouterr().out
    assert "Loaded 1 workspaces" in out
    assert "Loaded 2 campaigns" in out


def test_reply_rate_card_matches_its_delta(monkeypatch, capsys):
    use_mock_backend(monkeypatch)

    code = cli.main(["stats", "--from", "2024-03-01", "--to", "2024-03-31"])

    assert code == 0
    out = capsys.readouterr().out
    reply_rate = next(line for line in out.splitlines() if "Reply Rate" in line)
    total_replies = next(line for line in out.splitlines() if "Total Replies" in line)
    # 10/50 now vs 10/40 before
    assert "20.0%" in reply_rate
    assert "25.0%" in reply_rate
    assert "-20.0%" in reply_rate
    assert "%" not in total_replies


def test_workspace_listing_failure_exit_code(monkeypatch, capsys):
    def no_workspaces(request):
        return httpx.Response(200, json=[])

    use_mock_backend(monkeypatch, no_workspaces)

    assert cli.main(["stats", "--days", "7"]) == 1
    assert "empty_result" in capsys.readouterr().err
