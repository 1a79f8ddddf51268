"""Domain layer package."""

from .access import Viewer, apply_access_scope
from .filters import FilterCriteria, build_predicate
from .models import (
    ActualOrderRecord,
    AggregateRow,
    CheckResult,
    DailyGroup,
    MarketingActivityRecord,
    ReconcileResult,
)
from .names import NameNormalizer, normalize_name
from .reconciliation import ReconcileOptions, daily_breakdown, reconcile

__all__ = [
    "ActualOrderRecord",
    "AggregateRow",
    "CheckResult",
    "DailyGroup",
    "FilterCriteria",
    "MarketingActivityRecord",
    "NameNormalizer",
    "ReconcileOptions",
    "ReconcileResult",
    "Viewer",
    "apply_access_scope",
    "build_predicate",
    "daily_breakdown",
    "normalize_name",
    "reconcile",
]
