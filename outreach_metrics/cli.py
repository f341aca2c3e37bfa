"""
Outreach metrics CLI: campaign stats for a workspace, date window and status.

Usage:
    python -m outreach_metrics.cli workspaces
    python -m outreach_metrics.cli stats --workspace 64b7f0c2a1e4d3b2c1a09f87 --days 30
    python -m outreach_metrics.cli stats --from 2024-11-01 --to 2024-11-30 --status ACTIVE --sort-by replied_count
    python -m outreach_metrics.cli check
"""
from __future__ import annotations

import argparse
import asyncio
import json
import sys
from datetime import datetime
from typing import List, Optional

from pydantic import ValidationError as PydanticValidationError

from .api_client import OutreachApiClient
from .comparison import direction, format_delta
from .config import DashboardSettings, load_settings
from .diagnostics import DiagnosticLog
from .errors import MetricsError, normalize_error
from .logging_config import setup_logging
from .models import DateWindow, SortOrder, SortSpec, parse_status_filter
from .orchestrator import DashboardView, FetchOrchestrator
from .stats import round1

TABLE_COLUMNS = [
    ("Campaign Name", "name"),
    ("Status", "status"),
    ("Leads", "lead_count"),
    ("Completed", "completed_lead_count"),
    ("Contacted", "lead_contacted_count"),
    ("Sent", "sent_count"),
    ("Replies", "replied_count"),
    ("Positive", "positive_reply_count"),
    ("Bounced", "bounced_count"),
    ("Unsubscribed", "unsubscribed_count"),
    ("Created At", "created_at"),
]

_ARROWS = {"up": "↑", "down": "↓", "flat": "→"}


# ==================== Formatting ====================


def format_cell(value) -> str:
    if value is None:
        return "-"
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, int):
        return f"{value:,}"
    return str(getattr(value, "value", value))


def format_percent(value: float) -> str:
    return f"{round1(value):.1f}%"


def render_table(view: DashboardView) -> List[str]:
    headers = [label for label, _ in TABLE_COLUMNS]
    rows = [
        [format_cell(getattr(c, name)) for _, name in TABLE_COLUMNS]
        for c in view.rows
    ]
    widths = [
        max([len(h)] + [len(r[i]) for r in rows])
        for i, h in enumerate(headers)
    ]

    def line(cells):
        return "  ".join(cell.ljust(widths[i]) for i, cell in enumerate(cells))

    lines = [line(headers), line(["-" * w for w in widths])]
    lines.extend(line(r) for r in rows)
    return lines


def render_summary(view: DashboardView) -> List[str]:
    stats = view.comparison
    cur, prev, delta = stats.current, stats.previous, stats.delta_percent

    def card(label, value, prev_value, change):
        arrow = _ARROWS[direction(change)] if change is not None else ""
        change_text = f"{arrow} {format_delta(change)}" if change is not None else ""
        return f"  {label:<18} {value:>12}   prev {prev_value:>12}   {change_text}"

    return [
        f"Current window:  {stats.current_window}",
        f"Previous window: {stats.previous_window}",
        card("Total Contacted", format_cell(cur.total_contacted), format_cell(prev.total_contacted), delta.contacted),
        card("Total Replies", format_cell(cur.total_replies), format_cell(prev.total_replies), None),
        card("Reply Rate", format_percent(cur.reply_rate), format_percent(prev.reply_rate), delta.reply_rate),
        card("Positive Replies", format_cell(cur.total_positive_replies), format_cell(prev.total_positive_replies), delta.positive_replies),
        card("Lead Rate", cur.lead_rate, prev.lead_rate, delta.lead_rate),
        card("Active Campaigns", format_cell(cur.active_campaigns), format_cell(prev.active_campaigns), None),
    ]


def print_report(view: DashboardView):
    print("=" * 80)
    print(f"CAMPAIGN STATS - workspace {view.params.workspace_id}")
    print("=" * 80)
    for row in render_summary(view):
        print(row)
    print()
    if not view.rows:
        print("No campaigns found for the selected filters")
    else:
        for row in render_table(view):
            print(row)
    print("=" * 80)


# ==================== Commands ====================


async def cmd_workspaces(settings: DashboardSettings, args: argparse.Namespace) -> int:
    async with OutreachApiClient.from_settings(settings) as client:
        try:
            workspaces = await client.list_workspaces()
        except MetricsError as e:
            print(f"[Outreach] ERROR ({e.kind}): {e.message}", file=sys.stderr)
            return 1

    for ws in workspaces:
        print(f"{ws.id}  {ws.name}")
    return 0


def _window_from_args(settings: DashboardSettings, args: argparse.Namespace) -> DateWindow:
    if args.date_from or args.date_to:
        return DateWindow.from_iso_dates(args.date_from, args.date_to)
    return DateWindow.last_n_days(args.days or settings.default_window_days)


async def cmd_stats(settings: DashboardSettings, args: argparse.Namespace) -> int:
    try:
        window = _window_from_args(settings, args)
        sort_spec = SortSpec(field=args.sort_by, order=SortOrder.parse(args.order))
        status_filter = parse_status_filter(args.status)
    except MetricsError as e:
        print(f"[Outreach] ERROR: {e.message}", file=sys.stderr)
        return 2

    diagnostics = DiagnosticLog(settings.diagnostics_capacity)
    async with OutreachApiClient.from_settings(settings, diagnostics=diagnostics) as client:
        orchestrator = FetchOrchestrator(client, settings, diagnostics=diagnostics)
        orchestrator.sort_spec = sort_spec
        orchestrator.set_window(window)
        orchestrator.set_status(status_filter)
        if args.workspace:
            orchestrator.select_workspace(args.workspace)

        await orchestrator.load_workspaces()
        if args.workspace and orchestrator.workspaces and orchestrator.params.workspace_id != args.workspace:
            orchestrator.shutdown()
            print(f"[Outreach] ERROR: workspace {args.workspace} not found", file=sys.stderr)
            return 1

        await orchestrator.wait_until_idle()

    error = orchestrator.workspaces_error or orchestrator.error
    if error is not None:
        print(f"[Outreach] ERROR ({error.kind}): {error.message}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(orchestrator.view.to_dict(), indent=2))
    else:
        print_report(orchestrator.view)
    return 0


async def cmd_check(settings: DashboardSettings, args: argparse.Namespace) -> int:
    """Smoke test both endpoints against the configured backend."""
    print(f"[Outreach] Checking backend at {settings.api_base_url}")
    async with OutreachApiClient.from_settings(settings) as client:
        try:
            workspaces = await client.list_workspaces()
            print(f"✅ Loaded {len(workspaces)} workspaces")

            workspace = workspaces[0]
            window = DateWindow.last_n_days(7)
            campaigns = await client.fetch_campaign_stats(workspace.id, window)
            print(f"✅ Loaded {len(campaigns)} campaigns for workspace {workspace.id} ({window})")
        except Exception as e:
            error = normalize_error(e)
            print(f"❌ Check failed ({error.kind}): {error.message}")
            return 1

    if campaigns:
        print("\nSample campaign data structure:")
        print(json.dumps(campaigns[0].model_dump(mode="json"), indent=2))
    return 0


COMMANDS = {
    "workspaces": cmd_workspaces,
    "stats": cmd_stats,
    "check": cmd_check,
}


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="outreach-metrics")
    p.add_argument("--config", default=None, help="Path to dashboard settings YAML")
    p.add_argument("--log-level", default=None, help="Override log level (DEBUG, INFO, ...)")
    p.add_argument("--log-dir", default=None, help="Write daily log files to this directory")
    sub = p.add_subparsers(dest="command", required=True)

    sub.add_parser("workspaces", help="List available workspaces")

    p_stats = sub.add_parser("stats", help="Campaign stats with previous-period comparison")
    p_stats.add_argument("--workspace", default=None, help="Workspace id (default: first workspace)")
    p_stats.add_argument("--status", default="ALL", help="ALL, ACTIVE, COMPLETED, PAUSED, ARCHIVED, UNKNOWN")
    p_stats.add_argument("--from", dest="date_from", default=None, help="Window start (YYYY-MM-DD)")
    p_stats.add_argument("--to", dest="date_to", default=None, help="Window end (YYYY-MM-DD)")
    p_stats.add_argument("--days", type=int, default=None, help="Trailing N days ending today")
    p_stats.add_argument("--sort-by", default="created_at", help="Campaign field to sort by")
    p_stats.add_argument("--order", default="desc", choices=["asc", "desc"])
    p_stats.add_argument("--json", action="store_true", help="Print the view as JSON")

    sub.add_parser("check", help="Smoke test the backend endpoints")

    return p


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    if getattr(args, "days", None) is not None and args.days < 1:
        print("ERROR: --days must be >= 1", file=sys.stderr)
        return 2

    try:
        settings = load_settings(args.config)
    except (FileNotFoundError, ValueError, PydanticValidationError) as e:
        print(f"ERROR: Invalid configuration: {e}", file=sys.stderr)
        return 2

    setup_logging("outreach_metrics", log_level=args.log_level or settings.log_level, log_dir=args.log_dir)

    return asyncio.run(COMMANDS[args.command](settings, args))


if __name__ == "__main__":
    raise SystemExit(main())
