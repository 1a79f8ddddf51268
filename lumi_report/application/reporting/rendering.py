"""Text rendering helpers for the report commentary."""

from __future__ import annotations

from typing import Any, Dict, List

from lumi_report.application.reporting.metrics import fmt_number, fmt_pct, fmt_vnd, safe_ratio, to_float


def overall_comment(totals: Dict[str, Any]) -> str:
    spend = to_float(totals.get("ad_spend"))
    self_revenue = to_float(totals.get("self_revenue"))
    actual_revenue = to_float(totals.get("actual_revenue"))
    return (
        f"Tổng CPQC {fmt_vnd(spend)}, "
        f"{fmt_number(totals.get('message_count'))} mess/cmt, "
        f"{fmt_number(totals.get('self_order_count'))} đơn tự báo ({fmt_vnd(self_revenue)}). "
        f"Thực tế F3: {fmt_number(totals.get('actual_order_count'))} đơn ({fmt_vnd(actual_revenue)}), "
        f"huỷ {fmt_number(totals.get('cancelled_order_count'))} đơn. "
        f"Tỷ lệ chốt {fmt_pct(totals.get('closing_rate'))}, CPQC/DS {fmt_pct(totals.get('cost_to_revenue'))}."
    )


def revenue_gap_comment(totals: Dict[str, Any]) -> str:
    self_revenue = to_float(totals.get("self_revenue"))
    actual_revenue = to_float(totals.get("actual_revenue"))
    gap = actual_revenue - self_revenue
    if self_revenue <= 0 and actual_revenue <= 0:
        return "Chưa có doanh số trong khoảng lọc."
    if abs(gap) < 1:
        return "Doanh số tự báo khớp với F3."
    direction = "cao hơn" if gap > 0 else "thấp hơn"
    share = safe_ratio(abs(gap), self_revenue)
    return f"Doanh số F3 {direction} tự báo {fmt_vnd(abs(gap))} ({fmt_pct(share)})."


def team_comments(rows: List[Dict[str, Any]]) -> List[str]:
    by_team: Dict[str, Dict[str, float]] = {}
    for row in rows:
        team = str(row.get("team") or "")
        bucket = by_team.setdefault(team, {"ad_spend": 0.0, "self_revenue": 0.0, "actual_revenue": 0.0})
        for key in bucket:
            bucket[key] += to_float(row.get(key))

    lines: List[str] = []
    for team, values in by_team.items():
        lines.append(
            f"{team or 'Không rõ team'}: CPQC {fmt_vnd(values['ad_spend'])}, "
            f"DS tự báo {fmt_vnd(values['self_revenue'])}, DS F3 {fmt_vnd(values['actual_revenue'])}"
        )
    return lines


def unmatched_comment(rows: List[Dict[str, Any]]) -> str:
    unmatched = [row for row in rows if row.get("is_unmatched_actual")]
    if not unmatched:
        return ""
    names = ", ".join(str(row.get("staff_name", "")) for row in unmatched)
    return f"{len(unmatched)} nhân sự chỉ có đơn F3, không có báo cáo marketing: {names}."
