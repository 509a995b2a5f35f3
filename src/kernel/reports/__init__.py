"""
Report job persistence and live progress.
"""

from src.kernel.reports.event_bus import ProgressEvent, ReportEventBus
from src.kernel.reports.report_store import ReportNotFoundError, ReportStore, tree_from_report

__all__ = [
    "ProgressEvent",
    "ReportEventBus",
    "ReportNotFoundError",
    "ReportStore",
    "tree_from_report",
]
