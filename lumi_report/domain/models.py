"""Domain models for marketing/order reconciliation."""

from __future__ import annotations

import math
from dataclasses import dataclass, field, fields
from datetime import date, datetime
from enum import Enum
from typing import Any, Iterable

from lumi_report.domain.names import fold_text

CANCELLED_TOKENS: frozenset[str] = frozenset({"huy", "da huy", "cancelled", "canceled"})
OK_TOKENS: frozenset[str] = frozenset({"ok"})


def _to_amount(value: Any) -> float:
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(number):
        return 0.0
    return number


def safe_ratio(num: float, den: float) -> float:
    if den <= 0:
        return 0.0
    return num / den


def split_tokens(value: Any) -> tuple[str, ...]:
    return tuple(token.strip() for token in str(value or "").split(",") if token.strip())


class CheckResult(str, Enum):
    OK = "OK"
    CANCELLED = "CANCELLED"
    OTHER = "OTHER"

    @classmethod
    def parse(cls, raw: Any) -> "CheckResult":
        if isinstance(raw, CheckResult):
            return raw
        folded = fold_text(raw)
        if folded in CANCELLED_TOKENS:
            return cls.CANCELLED
        if folded in OK_TOKENS:
            return cls.OK
        return cls.OTHER


@dataclass(frozen=True)
class MarketingActivityRecord:
    """One self-reported row per staff, day, shift and product."""

    staff_name: str
    team: str = ""
    date: datetime | None = None
    shift: str = ""
    product: str = ""
    market: str = ""
    ad_spend: float = 0.0
    message_count: float = 0.0
    order_count: float = 0.0
    revenue: float = 0.0
    email: str = ""
    staff_id: str = ""

    def __post_init__(self) -> None:
        for name in ("ad_spend", "message_count", "order_count", "revenue"):
            object.__setattr__(self, name, _to_amount(getattr(self, name)))

    @property
    def shift_tokens(self) -> tuple[str, ...]:
        return split_tokens(self.shift)


@dataclass(frozen=True)
class ActualOrderRecord:
    """System-of-record order row."""

    staff_name: str
    team: str = ""
    date: datetime | None = None
    product: str = ""
    market: str = ""
    shift: str = ""
    total_amount: float = 0.0
    check_result: CheckResult = CheckResult.OTHER
    order_code: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "total_amount", _to_amount(self.total_amount))
        object.__setattr__(self, "check_result", CheckResult.parse(self.check_result))

    @property
    def shift_tokens(self) -> tuple[str, ...]:
        return split_tokens(self.shift)

    @property
    def is_cancelled(self) -> bool:
        return self.check_result is CheckResult.CANCELLED


SUM_FIELDS: tuple[str, ...] = (
    "message_count",
    "ad_spend",
    "self_order_count",
    "self_revenue",
    "actual_order_count",
    "actual_revenue",
    "cancelled_order_count",
    "cancelled_revenue",
)
RATIO_FIELDS: tuple[str, ...] = (
    "closing_rate",
    "actual_closing_rate",
    "cost_per_message",
    "cost_per_order",
    "cost_to_revenue",
    "average_order_value",
)


@dataclass
class AggregateRow:
    staff_name: str
    team: str = ""
    message_count: float = 0.0
    ad_spend: float = 0.0
    self_order_count: float = 0.0
    self_revenue: float = 0.0
    actual_order_count: int = 0
    actual_revenue: float = 0.0
    cancelled_order_count: int = 0
    cancelled_revenue: float = 0.0
    is_unmatched_actual: bool = False

    def add_marketing(self, record: MarketingActivityRecord) -> None:
        self.message_count += record.message_count
        self.ad_spend += record.ad_spend
        self.self_order_count += record.order_count
        self.self_revenue += record.revenue

    def add_order(self, record: ActualOrderRecord) -> None:
        self.actual_order_count += 1
        self.actual_revenue += record.total_amount
        if record.is_cancelled:
            self.cancelled_order_count += 1
            self.cancelled_revenue += record.total_amount

    @property
    def closing_rate(self) -> float:
        return safe_ratio(self.self_order_count, self.message_count)

    @property
    def actual_closing_rate(self) -> float:
        return safe_ratio(self.actual_order_count, self.message_count)

    @property
    def cost_per_message(self) -> float:
        return safe_ratio(self.ad_spend, self.message_count)

    @property
    def cost_per_order(self) -> float:
        return safe_ratio(self.ad_spend, self.self_order_count)

    @property
    def cost_to_revenue(self) -> float:
        return safe_ratio(self.ad_spend, self.self_revenue)

    @property
    def average_order_value(self) -> float:
        return safe_ratio(self.self_revenue, self.self_order_count)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {item.name: getattr(self, item.name) for item in fields(self)}
        for name in RATIO_FIELDS:
            payload[name] = getattr(self, name)
        return payload

    @classmethod
    def total_of(cls, rows: Iterable["AggregateRow"], label: str = "Tổng") -> "AggregateRow":
        total = cls(staff_name=label)
        for row in rows:
            for name in SUM_FIELDS:
                setattr(total, name, getattr(total, name) + getattr(row, name))
        return total


@dataclass(frozen=True)
class ReconcileResult:
    rows: list[AggregateRow]
    totals: AggregateRow


@dataclass(frozen=True)
class DailyGroup:
    day: date
    rows: list[AggregateRow] = field(default_factory=list)
    totals: AggregateRow | None = None
