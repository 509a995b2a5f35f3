"""
Paper-set collaborators: fetch the papers behind a saved search or PDF batch.

Both lookups fail open: a database error is logged and the mention
contributes no papers instead of aborting the whole generation.
"""

import logging
from datetime import datetime
from typing import Callable, List, Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.ai.types import Paper
from src.kernel.models.paper import BatchPdf, PaperRecord, PdfUpload

logger = logging.getLogger(__name__)


class PaperSource(Protocol):
    """Where the corpus resolver gets its papers from."""

    async def papers_for_search(self, search_id: str) -> List[Paper]:
        ...

    async def papers_for_batch(self, batch_id: str) -> List[Paper]:
        ...


def paper_from_record(record: PaperRecord) -> Paper:
    authors = record.authors if isinstance(record.authors, list) else [str(record.authors or "")]
    return Paper(
        id=record.id,
        title=record.title,
        authors=[str(a) for a in authors],
        year=str(record.year or ""),
        abstract=record.abstract,
        doi=record.doi,
        journal=record.journal,
        research_question=record.research_question,
        major_findings=record.major_findings,
        suggestions=record.suggestions,
    )


def paper_from_upload(upload: PdfUpload) -> Paper:
    """Turn an uploaded PDF's extracted fields into a paper."""
    if upload.authors:
        authors = [a.strip() for a in upload.authors.split(",") if a.strip()]
    else:
        authors = []
    return Paper(
        id=upload.id,
        title=upload.title or upload.filename,
        authors=authors or ["Unknown"],
        year=str(upload.year or datetime.now().year),
        abstract=upload.background or "",
        doi=upload.doi or None,
        research_question=upload.research_question or None,
        major_findings=upload.major_findings or None,
        suggestions=upload.suggestions or None,
    )


class SqlPaperSource:
    """PaperSource over the searches / pdf_uploads tables.

    Takes a session factory rather than a session so each lookup runs in
    its own short transaction.
    """

    def __init__(self, session_factory: Callable[[], AsyncSession]):
        self.session_factory = session_factory

    async def papers_for_search(self, search_id: str) -> List[Paper]:
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(PaperRecord).where(PaperRecord.search_id == search_id)
                )
                return [paper_from_record(r) for r in result.scalars().all()]
        except Exception as exc:
            logger.warning("Error fetching papers for search %s: %s", search_id, exc)
            return []

    async def papers_for_batch(self, batch_id: str) -> List[Paper]:
        try:
            async with self.session_factory() as session:
                link_result = await session.execute(
                    select(BatchPdf.pdf_id).where(BatchPdf.batch_id == batch_id)
                )
                pdf_ids = list(link_result.scalars().all())
                if not pdf_ids:
                    return []

                result = await session.execute(
                    select(PdfUpload).where(PdfUpload.id.in_(pdf_ids))
                )
                return [paper_from_upload(u) for u in result.scalars().all()]
        except Exception as exc:
            logger.warning("Error fetching papers for PDF batch %s: %s", batch_id, exc)
            return []
