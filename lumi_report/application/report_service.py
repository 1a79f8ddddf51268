"""Report pipeline: fetch sources, scope, reconcile, export."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from pathlib import Path
from time import perf_counter
from typing import Any, Dict, List

import polars as pl

from lumi_report.application.record_service import RecordService
from lumi_report.application.reporting.rendering import (
    overall_comment,
    revenue_gap_comment,
    team_comments,
    unmatched_comment,
)
from lumi_report.config import EMPLOYEES_PATH, MARKETING_PATH, ORDERS_PATH, Settings, load_settings
from lumi_report.domain.access import Viewer, apply_access_scope, resolve_leader_team
from lumi_report.domain.filters import FilterCriteria
from lumi_report.domain.models import RATIO_FIELDS, SUM_FIELDS, AggregateRow, DailyGroup, ReconcileResult
from lumi_report.domain.names import NameNormalizer
from lumi_report.domain.reconciliation import ReconcileOptions, daily_breakdown, reconcile
from lumi_report.infrastructure.excel_repository import save_output_workbook
from lumi_report.infrastructure.local_store import LocalStore
from lumi_report.infrastructure.report_exporter import save_summary_html, save_summary_json
from lumi_report.infrastructure.rest_source import RestClient, SourceError, SupabaseTable
from lumi_report.ingestion import parse_marketing_records, parse_order_records, read_json_rows

logger = logging.getLogger(__name__)

ROW_COLUMNS: List[str] = ["team", "staff_name", *SUM_FIELDS, *RATIO_FIELDS, "is_unmatched_actual"]
DAILY_COLUMNS: List[str] = ["day", *ROW_COLUMNS]


@dataclass(frozen=True)
class ReportRequest:
    criteria: FilterCriteria = field(default_factory=FilterCriteria)
    viewer: Viewer = field(default_factory=lambda: Viewer(role="admin"))
    include_unmatched: bool | None = None
    output_dir: Path = Path("output")
    marketing_file: Path | None = None
    orders_file: Path | None = None


@dataclass
class ReportOutcome:
    result: ReconcileResult
    daily: List[DailyGroup]
    summary: Dict[str, Any]
    json_path: Path
    html_path: Path
    excel_path: Path
    excel_saved: bool = False
    excel_error: str = ""
    degraded_sources: List[str] = field(default_factory=list)
    stage_timings: List[tuple[str, float]] = field(default_factory=list)


def _fetch_supabase_marketing(settings: Settings, client: RestClient, store: LocalStore) -> tuple[list[dict[str, Any]], bool]:
    collection = f"supabase/{settings.supabase_table}"
    table = SupabaseTable(client, settings.supabase_url, settings.supabase_key, settings.supabase_table)
    try:
        rows = table.fetch_all()
    except SourceError as exc:
        logger.warning("Supabase %s unavailable, using local mirror: %s", settings.supabase_table, exc)
        return store.mirror(collection), True
    store.save_mirror(collection, rows)
    return rows, False


def _load_rows(
    request: ReportRequest,
    settings: Settings,
    client: RestClient,
    store: LocalStore,
) -> tuple[list[dict[str, Any]], list[dict[str, Any]], list[str]]:
    degraded: list[str] = []

    if request.marketing_file is not None:
        marketing_rows = read_json_rows(request.marketing_file)
    elif settings.supabase_enabled:
        marketing_rows, is_degraded = _fetch_supabase_marketing(settings, client, store)
        if is_degraded:
            degraded.append(settings.supabase_table)
    else:
        fetched = RecordService(client, store, MARKETING_PATH, settings.marketing_url).fetch()
        marketing_rows = fetched.rows
        if fetched.degraded:
            degraded.append(MARKETING_PATH)

    if request.orders_file is not None:
        order_rows = read_json_rows(request.orders_file)
    else:
        fetched = RecordService(client, store, ORDERS_PATH, settings.orders_url).fetch()
        order_rows = fetched.rows
        if fetched.degraded:
            degraded.append(ORDERS_PATH)

    return marketing_rows, order_rows, degraded


def _resolve_viewer(viewer: Viewer, settings: Settings, client: RestClient, store: LocalStore) -> Viewer:
    if viewer.role != "leader" or not viewer.email:
        return viewer
    employees = RecordService(client, store, EMPLOYEES_PATH, settings.employees_url).fetch()
    resolved = resolve_leader_team(viewer, employees.rows)
    if resolved.team != viewer.team:
        logger.info("Leader %s scoped to team %s from the staff directory", viewer.email, resolved.team)
    return resolved


def _row_dict(row: AggregateRow) -> Dict[str, Any]:
    payload = row.to_dict()
    return {col: payload.get(col) for col in ROW_COLUMNS}


def _rows_sheet_df(rows: List[Dict[str, Any]], columns: List[str]) -> pl.DataFrame:
    if not rows:
        return pl.DataFrame({col: [] for col in columns})
    return pl.DataFrame([{col: row.get(col) for col in columns} for row in rows]).select(columns)


def _daily_rows(groups: List[DailyGroup]) -> List[Dict[str, Any]]:
    flat: List[Dict[str, Any]] = []
    for group in groups:
        for row in group.rows:
            flat.append({"day": group.day.isoformat(), **_row_dict(row)})
    return flat


def _criteria_dict(criteria: FilterCriteria) -> Dict[str, Any]:
    return {
        "start_date": criteria.start_date.isoformat() if criteria.start_date else None,
        "end_date": criteria.end_date.isoformat() if criteria.end_date else None,
        "products": sorted(criteria.products),
        "markets": sorted(criteria.markets),
        "teams": sorted(criteria.teams),
        "shifts": sorted(criteria.shifts),
        "search_text": criteria.search_text,
    }


def build_summary(
    result: ReconcileResult,
    daily: List[DailyGroup],
    request: ReportRequest,
    degraded_sources: List[str],
) -> Dict[str, Any]:
    rows = [_row_dict(row) for row in result.rows]
    totals = _row_dict(result.totals)
    comments = [overall_comment(totals), revenue_gap_comment(totals), *team_comments(rows)]
    unmatched_line = unmatched_comment(rows)
    if unmatched_line:
        comments.append(unmatched_line)

    return {
        "generated_at": datetime.now().strftime("%Y-%m-%d %H:%M"),
        "filters": _criteria_dict(request.criteria),
        "viewer": {"role": request.viewer.role, "team": request.viewer.team, "email": request.viewer.email},
        "degraded_sources": degraded_sources,
        "rows": rows,
        "totals": totals,
        "daily": [
            {
                "day": group.day.isoformat(),
                "rows": [_row_dict(row) for row in group.rows],
                "totals": _row_dict(group.totals) if group.totals else None,
            }
            for group in daily
        ],
        "comments": comments,
    }


def run_reporting_pipeline(
    request: ReportRequest | None = None,
    settings: Settings | None = None,
    client: RestClient | None = None,
) -> ReportOutcome:
    request = request or ReportRequest()
    settings = settings or load_settings()
    client = client or RestClient(timeout=settings.http_timeout, retries=settings.http_retries)
    store = LocalStore(settings.local_store_path)

    pipeline_start = perf_counter()
    stage_start = pipeline_start
    stage_timings: list[tuple[str, float]] = []

    def _mark(stage_name: str) -> None:
        nonlocal stage_start
        now = perf_counter()
        stage_timings.append((stage_name, now - stage_start))
        stage_start = now

    output_json_path = request.output_dir / "summary.json"
    output_html_path = request.output_dir / "summary.html"
    output_excel_path = request.output_dir / "summary.xlsx"

    marketing_rows, order_rows, degraded_sources = _load_rows(request, settings, client, store)
    request = replace(request, viewer=_resolve_viewer(request.viewer, settings, client, store))
    _mark("load_sources")

    tz = settings.tz
    marketing = parse_marketing_records(marketing_rows, tz)
    orders = parse_order_records(order_rows, tz)
    marketing, orders = apply_access_scope(marketing, orders, request.viewer)
    _mark("parse_and_scope")

    key_fn = NameNormalizer(strip_numeric_suffix=settings.strip_name_suffix)
    include_unmatched = settings.include_unmatched if request.include_unmatched is None else request.include_unmatched
    result = reconcile(
        marketing,
        orders,
        request.criteria,
        ReconcileOptions(include_unmatched_actual=include_unmatched, key_fn=key_fn),
    )
    daily = daily_breakdown(marketing, orders, request.criteria, key_fn=key_fn)
    _mark("reconcile")

    summary = build_summary(result, daily, request, degraded_sources)
    save_summary_json(output_json_path, summary)
    save_summary_html(output_html_path, summary)
    _mark("save_json_html")

    summary_rows = [*summary["rows"], summary["totals"]]
    excel_saved, excel_error_message = save_output_workbook(
        output_excel_path,
        {
            "summary": _rows_sheet_df(summary_rows, ROW_COLUMNS),
            "daily": _rows_sheet_df(_daily_rows(daily), DAILY_COLUMNS),
        },
    )
    _mark("save_excel")

    return ReportOutcome(
        result=result,
        daily=daily,
        summary=summary,
        json_path=output_json_path,
        html_path=output_html_path,
        excel_path=output_excel_path,
        excel_saved=excel_saved,
        excel_error=excel_error_message,
        degraded_sources=degraded_sources,
        stage_timings=stage_timings,
    )


def print_outcome(outcome: ReportOutcome) -> None:
    total_elapsed = sum(seconds for _, seconds in outcome.stage_timings)
    print(
        "Summary prepared: "
        f"staff_rows={len(outcome.result.rows)}, "
        f"days={len(outcome.daily)}, "
        f"unmatched={sum(1 for row in outcome.result.rows if row.is_unmatched_actual)}"
    )
    stage_text = ", ".join([f"{name}={seconds:.3f}s" for name, seconds in outcome.stage_timings])
    print(f"Stage Timing: {stage_text}")
    print(f"Total Elapsed: {total_elapsed:.3f}s")
    if outcome.degraded_sources:
        print(f"Degraded sources (local mirror): {', '.join(outcome.degraded_sources)}")
    print(f"Saved JSON: {outcome.json_path}")
    print(f"Saved HTML: {outcome.html_path}")
    if outcome.excel_saved:
        print(f"Saved Excel: {outcome.excel_path}")
    else:
        print(f"Excel save skipped (file may be open/locked): {outcome.excel_error}")
