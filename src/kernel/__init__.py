"""
Stable Kernel Layer

Foundational storage for the research canvas:
- Paper sets backing @mentions (searches, PDF batches)
- Report jobs and their incrementally written sections
- Canvases holding outline trees between expansions

Invariants:
- Report sections are append-only, one row per completed node
- Each store call runs in its own transaction, so progress is visible
  while a job is still running
"""

from src.kernel.models import (
    SearchRecord,
    PaperRecord,
    PdfBatch,
    PdfUpload,
    BatchPdf,
    Report,
    ReportSection,
    Canvas,
)

__all__ = [
    "SearchRecord",
    "PaperRecord",
    "PdfBatch",
    "PdfUpload",
    "BatchPdf",
    "Report",
    "ReportSection",
    "Canvas",
]
