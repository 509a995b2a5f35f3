"""
Report job store.

Every method opens its own session and commits before returning, so a
section appended by a running job is immediately visible to readers.
"""

import logging
import uuid
from typing import Any, Callable, List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from src.ai.errors import ReportGenerationError
from src.ai.outline_tree import OutlineError, OutlineTree
from src.ai.types import JobStatus, Reference
from src.kernel.models.report import Report, ReportSection

logger = logging.getLogger(__name__)


class ReportNotFoundError(LookupError):
    """No report with the given id."""


class ReportStore:
    """
    Persistence for report jobs.

    Usage:
        store = ReportStore(async_session_maker)
        job_id = await store.create_job(query, tree.to_snapshot(), user_id)
        await store.set_status(job_id, JobStatus.PROCESSING)
        await store.append_section(job_id, "Introduction", html)
    """

    def __init__(self, session_factory: Callable[[], AsyncSession]):
        self.session_factory = session_factory

    async def create_job(
        self,
        search_query: str,
        structure: Any,
        user_id: Optional[str] = None,
    ) -> uuid.UUID:
        async with self.session_factory() as session:
            report = Report(
                search_query=search_query,
                structure=structure,
                user_id=user_id,
                status=JobStatus.GENERATING.value,
            )
            session.add(report)
            await session.commit()
            logger.info("Created report job %s", report.id)
            return report.id

    async def set_status(self, job_id: uuid.UUID, status: JobStatus) -> None:
        async with self.session_factory() as session:
            report = await session.get(Report, job_id)
            if report is None:
                raise ReportNotFoundError(str(job_id))
            report.status = JobStatus(status).value
            await session.commit()
        logger.info("Report %s -> %s", job_id, JobStatus(status).value)

    async def append_section(
        self,
        job_id: uuid.UUID,
        section_name: str,
        content: str,
        node_id: Optional[str] = None,
        references: Optional[List[Reference]] = None,
    ) -> ReportSection:
        """Insert one section row after any already written for the job."""
        async with self.session_factory() as session:
            count = await session.scalar(
                select(func.count(ReportSection.id)).where(ReportSection.report_id == job_id)
            )
            section = ReportSection(
                report_id=job_id,
                section_name=section_name,
                position=count or 0,
                node_id=node_id,
                content=content,
                references=[r.to_dict() for r in references or []],
            )
            session.add(section)
            await session.commit()
            await session.refresh(section)
            return section

    async def get_job(self, job_id: uuid.UUID) -> Optional[Report]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(Report)
                .where(Report.id == job_id)
                .options(selectinload(Report.sections))
            )
            return result.scalar_one_or_none()

    async def list_jobs(self, user_id: Optional[str] = None) -> List[Report]:
        async with self.session_factory() as session:
            query = select(Report).order_by(Report.created_at.desc())
            if user_id:
                query = query.where(Report.user_id == user_id)
            result = await session.execute(query)
            return list(result.scalars().all())

    async def list_sections(self, job_id: uuid.UUID) -> List[ReportSection]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(ReportSection)
                .where(ReportSection.report_id == job_id)
                .order_by(ReportSection.position)
            )
            return list(result.scalars().all())


def tree_from_report(report: Report) -> OutlineTree:
    """Rebuild a report's outline with the persisted section content applied."""
    try:
        tree = OutlineTree.from_snapshot(report.structure)
    except OutlineError as exc:
        raise ReportGenerationError(f"Report {report.id} has an invalid structure: {exc}") from exc

    for section in report.sections:
        if section.node_id and section.node_id in tree and section.node_id != tree.root_id:
            tree.set_content(
                section.node_id,
                section.content,
                [Reference.from_dict(r) for r in section.references or []],
            )
    return tree
