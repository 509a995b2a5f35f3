"""
Export endpoints - LaTeX, BibTeX, HTML and DOCX downloads of a report.
"""

import logging
import re
import uuid
from datetime import datetime
from enum import Enum
from io import BytesIO

from fastapi import APIRouter, HTTPException, status
from fastapi.responses import Response, StreamingResponse

from src.ai.errors import ReportGenerationError
from src.api.deps import Store
from src.engines.corpus.mentions import strip_mentions
from src.engines.export.assembler import DocumentFormat, assemble
from src.engines.export.bibtex import to_bibtex
from src.engines.export.docx_writer import to_docx
from src.kernel.models.report import Report
from src.kernel.reports.report_store import tree_from_report

logger = logging.getLogger(__name__)

router = APIRouter()

DEFAULT_TITLE = "Research Report"


class ExportFormat(str, Enum):
    LATEX = "latex"
    BIBTEX = "bibtex"
    HTML = "html"
    DOCX = "docx"


def report_title(report: Report) -> str:
    """The query text without its @mentions, or a generic title."""
    title = strip_mentions(report.search_query).strip(" .,;:")
    return title[:200] or DEFAULT_TITLE


def _filename(title: str, extension: str) -> str:
    stem = re.sub(r"[^A-Za-z0-9\-]+", "_", title)[:50].strip("_") or "report"
    return f"{stem}_{datetime.now().strftime('%Y%m%d')}.{extension}"


@router.get("/{report_id}/export/{fmt}")
async def export_report(report_id: uuid.UUID, fmt: ExportFormat, store: Store):
    """Assemble the stored sections and return them as a download."""
    report = await store.get_job(report_id)
    if report is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Report not found")

    try:
        tree = tree_from_report(report)
    except ReportGenerationError as exc:
        logger.error("Export failed: %s", exc)
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    if not any(node.content for node in tree.walk()):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Report has no generated sections yet",
        )

    title = report_title(report)
    doc_format = DocumentFormat.HTML if fmt == ExportFormat.HTML else DocumentFormat.LATEX
    assembled = assemble(tree, fmt=doc_format, title=title)
    logger.info("Exporting report %s as %s", report_id, fmt.value)

    if fmt == ExportFormat.DOCX:
        buffer = BytesIO(to_docx(title, tree, assembled))
        return StreamingResponse(
            buffer,
            media_type="application/vnd.openxmlformats-officedocument.wordprocessingml.document",
            headers={
                "Content-Disposition": f'attachment; filename="{_filename(title, "docx")}"'
            },
        )

    if fmt == ExportFormat.BIBTEX:
        body, media_type, extension = to_bibtex(assembled.references), "application/x-bibtex", "bib"
    elif fmt == ExportFormat.HTML:
        body, media_type, extension = assembled.document, "text/html", "html"
    else:
        body, media_type, extension = assembled.document, "application/x-tex", "tex"

    return Response(
        content=body,
        media_type=media_type,
        headers={
            "Content-Disposition": f'attachment; filename="{_filename(title, extension)}"'
        },
    )
