"""HTML report generator for the marketing vs. F3 reconciliation."""

from __future__ import annotations

from datetime import datetime
from html import escape
from pathlib import Path
from typing import Any, Callable, Dict, List

from lumi_report.application.reporting.metrics import fmt_number, fmt_pct, fmt_vnd

Column = tuple[str, str, Callable[[Any], str]]

SUMMARY_COLUMNS: List[Column] = [
    ("team", "Team", lambda value: str(value or "")),
    ("staff_name", "Marketing", lambda value: str(value or "")),
    ("ad_spend", "CPQC", fmt_vnd),
    ("message_count", "Mess/Cmt", fmt_number),
    ("self_order_count", "Số đơn", fmt_number),
    ("self_revenue", "Doanh số", fmt_vnd),
    ("actual_order_count", "Số đơn F3", fmt_number),
    ("actual_revenue", "Doanh số F3", fmt_vnd),
    ("cancelled_order_count", "Đơn huỷ", fmt_number),
    ("cancelled_revenue", "DS huỷ", fmt_vnd),
    ("closing_rate", "Tỷ lệ chốt", fmt_pct),
    ("actual_closing_rate", "Tỷ lệ chốt F3", fmt_pct),
    ("cost_per_message", "CPQC/Mess", fmt_vnd),
    ("cost_per_order", "CPQC/Đơn", fmt_vnd),
    ("cost_to_revenue", "CPQC/DS", fmt_pct),
    ("average_order_value", "Giá trị TB đơn", fmt_vnd),
]


def _render_row(row: Dict[str, Any], css_class: str = "") -> str:
    cells = "".join(f"<td>{escape(formatter(row.get(key)))}</td>" for key, _, formatter in SUMMARY_COLUMNS)
    if row.get("is_unmatched_actual"):
        css_class = f"{css_class} unmatched".strip()
    class_attr = f" class=\"{css_class}\"" if css_class else ""
    return f"<tr{class_attr}>{cells}</tr>"


def _render_table(rows: List[Dict[str, Any]], totals: Dict[str, Any] | None) -> str:
    header = "".join(f"<th>{escape(label)}</th>" for _, label, _ in SUMMARY_COLUMNS)
    body = "".join(_render_row(row) for row in rows)
    if not body:
        body = f"<tr><td class=\"muted\" colspan=\"{len(SUMMARY_COLUMNS)}\">Không có dữ liệu.</td></tr>"
    footer = _render_row(totals, css_class="totals") if totals else ""
    return f"<table><thead><tr>{header}</tr></thead><tbody>{body}</tbody><tfoot>{footer}</tfoot></table>"


def _filters_text(filters: Dict[str, Any]) -> str:
    parts: List[str] = []
    for key, value in filters.items():
        if value in (None, "", [], ()):
            continue
        if isinstance(value, (list, tuple)):
            value = ", ".join(str(item) for item in value)
        parts.append(f"{key}={value}")
    return " | ".join(parts) or "Không lọc"


def write_html_report(output_path: Path, summary: Dict[str, Any]) -> None:
    rows = summary.get("rows", [])
    if not isinstance(rows, list):
        rows = []
    totals = summary.get("totals") if isinstance(summary.get("totals"), dict) else None

    comments = [str(line) for line in summary.get("comments", []) if line]
    comments_html = "".join(f"<li class=\"summary-line\">{escape(line)}</li>" for line in comments)
    if not comments_html:
        comments_html = "<li class=\"summary-line muted\">Không có nhận xét.</li>"

    daily_sections: List[str] = []
    for group in summary.get("daily", []):
        if not isinstance(group, dict):
            continue
        daily_sections.append(
            "<section class=\"day-card\">"
            f"<h3>{escape(str(group.get('day', '')))}</h3>"
            f"{_render_table(group.get('rows', []), group.get('totals'))}"
            "</section>"
        )
    daily_html = "".join(daily_sections) or "<p class=\"muted\">Không có dữ liệu theo ngày.</p>"

    degraded = summary.get("degraded_sources", [])
    degraded_html = ""
    if degraded:
        degraded_html = (
            "<div class=\"warning\">Đang dùng dữ liệu lưu cục bộ cho: "
            f"{escape(', '.join(str(item) for item in degraded))}</div>"
        )

    filters = summary.get("filters", {})
    viewer = summary.get("viewer", {})
    generated_at = str(summary.get("generated_at") or datetime.now().strftime("%Y-%m-%d %H:%M"))

    html = f"""<!doctype html>
<html lang="vi">
<head>
  <meta charset="utf-8" />
  <meta name="viewport" content="width=device-width, initial-scale=1" />
  <title>Báo cáo chi tiết Marketing</title>
  <style>
    :root {{
      --bg: #f3f6fb;
      --panel: #ffffff;
      --line: #d5dce8;
      --text: #0f172a;
      --sub: #475569;
      --brand: #0f766e;
      --warn: #b45309;
    }}
    * {{ box-sizing: border-box; }}
    body {{
      margin: 0;
      background: var(--bg);
      color: var(--text);
      font-family: "Segoe UI", "Noto Sans", sans-serif;
    }}
    .wrap {{
      max-width: 1700px;
      margin: 0 auto;
      padding: 20px;
    }}
    .panel, .day-card {{
      background: var(--panel);
      border: 1px solid var(--line);
      border-radius: 14px;
      padding: 14px 18px;
      margin-bottom: 14px;
    }}
    h1 {{
      margin: 0 0 8px;
      color: var(--brand);
      font-size: 28px;
    }}
    .meta, .muted {{ color: var(--sub); }}
    .meta {{ font-size: 13px; }}
    .warning {{
      color: var(--warn);
      font-weight: 700;
      margin-top: 8px;
    }}
    table {{
      width: 100%;
      border-collapse: collapse;
      font-size: 12px;
    }}
    th, td {{
      border: 1px solid var(--line);
      padding: 6px 8px;
      text-align: right;
    }}
    th:nth-child(-n+2), td:nth-child(-n+2) {{ text-align: left; }}
    th {{ background: #eef4ff; }}
    tr.totals td {{
      font-weight: 700;
      background: #f8fafc;
    }}
    tr.unmatched td {{ color: var(--warn); }}
    .summary-line {{
      margin: 0 0 6px;
      line-height: 1.6;
    }}
  </style>
</head>
<body>
  <div class="wrap">
    <section class="panel">
      <h1>Báo cáo chi tiết Marketing</h1>
      <div class="meta">Bộ lọc: {escape(_filters_text(filters))} | Người xem: {escape(str(viewer.get('role', '')))} | Tạo lúc: {escape(generated_at)}</div>
      {degraded_html}
    </section>
    <section class="panel">
      <h2>Tổng quan</h2>
      <ul>
        {comments_html}
      </ul>
    </section>
    <section class="panel">
      <h2>Theo nhân sự</h2>
      {_render_table(rows, totals)}
    </section>
    <section class="panel">
      <h2>Theo ngày</h2>
      {daily_html}
    </section>
  </div>
</body>
</html>
"""
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(html, encoding="utf-8")
