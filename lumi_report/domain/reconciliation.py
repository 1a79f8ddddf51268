"""Reconciliation engine: self-reported marketing activity vs actual orders."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Sequence

from lumi_report.domain.filters import FilterCriteria, build_predicate, record_day
from lumi_report.domain.models import (
    ActualOrderRecord,
    AggregateRow,
    DailyGroup,
    MarketingActivityRecord,
    ReconcileResult,
)
from lumi_report.domain.names import DEFAULT_NORMALIZER, fold_text

KeyFn = Callable[[str], str]
UNKNOWN_TEAM = "Khác"


@dataclass(frozen=True)
class ReconcileOptions:
    include_unmatched_actual: bool = False
    key_fn: KeyFn = field(default=DEFAULT_NORMALIZER)


def collation_key(text: str) -> tuple[str, str]:
    return fold_text(text), str(text or "")


def _row_sort_key(row: AggregateRow) -> tuple[tuple[str, str], tuple[str, str]]:
    return collation_key(row.team), collation_key(row.staff_name)


def _seed_rows(
    records: Sequence[MarketingActivityRecord],
    key_fn: KeyFn,
) -> dict[str, AggregateRow]:
    seeded: dict[str, AggregateRow] = {}
    for record in records:
        key = key_fn(record.staff_name)
        row = seeded.get(key)
        if row is None:
            row = AggregateRow(staff_name=record.staff_name, team=record.team)
            seeded[key] = row
        row.add_marketing(record)
    return seeded


def reconcile(
    marketing_records: Sequence[MarketingActivityRecord],
    actual_records: Sequence[ActualOrderRecord],
    criteria: FilterCriteria | None = None,
    options: ReconcileOptions | None = None,
) -> ReconcileResult:
    """Join both record sets by normalized staff name and aggregate per staff.

    Actual orders whose staff has no marketing row in the filtered view are
    dropped unless ``options.include_unmatched_actual`` is set, in which case
    they are grouped by their raw staff name and flagged. Unmatched orders
    without a parseable date are always dropped.
    """
    criteria = criteria or FilterCriteria()
    options = options or ReconcileOptions()
    key_fn = options.key_fn
    predicate = build_predicate(criteria)

    seeded = _seed_rows([record for record in marketing_records if predicate(record)], key_fn)

    unmatched: dict[str, AggregateRow] = {}
    for record in actual_records:
        if not predicate(record):
            continue
        row = seeded.get(key_fn(record.staff_name))
        if row is not None:
            row.add_order(record)
            continue
        if not options.include_unmatched_actual or record_day(record.date) is None:
            continue
        side_row = unmatched.get(record.staff_name)
        if side_row is None:
            side_row = AggregateRow(
                staff_name=record.staff_name,
                team=record.team or UNKNOWN_TEAM,
                is_unmatched_actual=True,
            )
            unmatched[record.staff_name] = side_row
        side_row.add_order(record)

    rows = list(seeded.values())
    if options.include_unmatched_actual:
        rows.extend(unmatched.values())
    rows.sort(key=_row_sort_key)
    return ReconcileResult(rows=rows, totals=AggregateRow.total_of(rows))


def daily_breakdown(
    marketing_records: Sequence[MarketingActivityRecord],
    actual_records: Sequence[ActualOrderRecord],
    criteria: FilterCriteria | None = None,
    key_fn: KeyFn = DEFAULT_NORMALIZER,
) -> list[DailyGroup]:
    """Per-day, per-staff rows; orders only join a (day, staff) seen in marketing data."""
    predicate = build_predicate(criteria or FilterCriteria())

    by_day: dict[date, dict[str, AggregateRow]] = {}
    for record in marketing_records:
        day = record_day(record.date)
        if day is None or not record.staff_name or not predicate(record):
            continue
        bucket = by_day.setdefault(day, {})
        key = key_fn(record.staff_name)
        row = bucket.get(key)
        if row is None:
            row = AggregateRow(staff_name=record.staff_name, team=record.team)
            bucket[key] = row
        row.add_marketing(record)

    for record in actual_records:
        day = record_day(record.date)
        if day is None or day not in by_day or not predicate(record):
            continue
        row = by_day[day].get(key_fn(record.staff_name))
        if row is not None:
            row.add_order(record)

    groups: list[DailyGroup] = []
    for day in sorted(by_day, reverse=True):
        rows = sorted(by_day[day].values(), key=_row_sort_key)
        groups.append(DailyGroup(day=day, rows=rows, totals=AggregateRow.total_of(rows)))
    return groups
