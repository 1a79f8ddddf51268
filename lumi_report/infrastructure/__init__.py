"""Infrastructure layer package."""

from .excel_repository import save_output_workbook, write_output_excel
from .local_store import DrainReport, LocalStore, Outbox, OutboxEntry, merge_overlay
from .report_exporter import save_summary_html, save_summary_json
from .rest_source import RestClient, SourceError, SupabaseTable, entity_url

__all__ = [
    "save_output_workbook",
    "write_output_excel",
    "DrainReport",
    "LocalStore",
    "Outbox",
    "OutboxEntry",
    "merge_overlay",
    "save_summary_json",
    "save_summary_html",
    "RestClient",
    "SourceError",
    "SupabaseTable",
    "entity_url",
]
