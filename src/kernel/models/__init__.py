"""
Kernel Data Models

SQLAlchemy models for saved paper sets, report jobs and canvases.
"""

from src.kernel.models.base import Base, TimestampMixin, generate_uuid, generate_str_id
from src.kernel.models.paper import (
    SearchRecord,
    PaperRecord,
    PdfBatch,
    PdfUpload,
    BatchPdf,
)
from src.kernel.models.report import Report, ReportSection, Canvas

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    "generate_uuid",
    "generate_str_id",
    # Papers
    "SearchRecord",
    "PaperRecord",
    "PdfBatch",
    "PdfUpload",
    "BatchPdf",
    # Reports
    "Report",
    "ReportSection",
    "Canvas",
]
