"""Shared filter predicate for marketing and actual-order records."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Callable, Iterable

DEFAULT_SEARCH_FIELDS: tuple[str, ...] = ("staff_name", "team", "product", "market")

Predicate = Callable[[Any], bool]


def record_day(value: Any) -> date | None:
    """Day granularity of a record timestamp (local midnight truncation)."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return None


def _as_set(values: Iterable[str] | None) -> frozenset[str]:
    if not values:
        return frozenset()
    if isinstance(values, str):
        return frozenset({values})
    return frozenset(str(value) for value in values)


@dataclass(frozen=True)
class FilterCriteria:
    start_date: date | None = None
    end_date: date | None = None
    products: frozenset[str] = frozenset()
    markets: frozenset[str] = frozenset()
    teams: frozenset[str] = frozenset()
    shifts: frozenset[str] = frozenset()
    search_text: str = ""
    search_fields: tuple[str, ...] = DEFAULT_SEARCH_FIELDS

    def __post_init__(self) -> None:
        for name in ("products", "markets", "teams", "shifts"):
            object.__setattr__(self, name, _as_set(getattr(self, name)))
        object.__setattr__(self, "start_date", record_day(self.start_date))
        object.__setattr__(self, "end_date", record_day(self.end_date))
        object.__setattr__(self, "search_text", str(self.search_text or "").strip())

    @property
    def has_date_filter(self) -> bool:
        return self.start_date is not None or self.end_date is not None

    def is_empty(self) -> bool:
        return not (
            self.has_date_filter
            or self.products
            or self.markets
            or self.teams
            or self.shifts
            or self.search_text
        )


def build_predicate(criteria: FilterCriteria) -> Predicate:
    """Compile criteria into one predicate; every dimension is ANDed."""
    start = criteria.start_date
    end = criteria.end_date
    products = criteria.products
    markets = criteria.markets
    teams = criteria.teams
    shifts = criteria.shifts
    needle = criteria.search_text.lower()
    search_fields = criteria.search_fields

    def _matches(record: Any) -> bool:
        if start is not None or end is not None:
            day = record_day(getattr(record, "date", None))
            if day is None:
                return False
            if start is not None and day < start:
                return False
            if end is not None and day > end:
                return False
        if products and getattr(record, "product", None) not in products:
            return False
        if markets and getattr(record, "market", None) not in markets:
            return False
        if teams and getattr(record, "team", None) not in teams:
            return False
        if shifts:
            tokens = getattr(record, "shift_tokens", ())
            if not any(token in shifts for token in tokens):
                return False
        if needle:
            haystacks = (str(getattr(record, name, "") or "").lower() for name in search_fields)
            if not any(needle in text for text in haystacks):
                return False
        return True

    return _matches
