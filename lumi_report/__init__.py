"""Marketing report reconciliation package."""

from .application import ReportRequest, run_reporting_pipeline
from .domain import FilterCriteria, Viewer, daily_breakdown, normalize_name, reconcile
from .ingestion import parse_marketing_records, parse_order_records

__all__ = [
    "ReportRequest",
    "run_reporting_pipeline",
    "FilterCriteria",
    "Viewer",
    "daily_breakdown",
    "normalize_name",
    "reconcile",
    "parse_marketing_records",
    "parse_order_records",
]
