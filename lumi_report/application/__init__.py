"""Application layer package."""

from .audit_service import AuditEntry, AuditError, AuditService, can_revert
from .record_service import FetchResult, RecordService, WriteResult
from .report_service import ReportOutcome, ReportRequest, print_outcome, run_reporting_pipeline

__all__ = [
    "AuditEntry",
    "AuditError",
    "AuditService",
    "can_revert",
    "FetchResult",
    "RecordService",
    "WriteResult",
    "ReportOutcome",
    "ReportRequest",
    "print_outcome",
    "run_reporting_pipeline",
]
