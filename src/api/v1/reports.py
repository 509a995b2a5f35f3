"""
Report endpoints - start generation jobs, read progress and results.
"""

import json
import logging
import uuid
from typing import AsyncIterator, List

from fastapi import APIRouter, BackgroundTasks, HTTPException, status
from fastapi.responses import StreamingResponse

from src.ai.outline_builder import build_template_outline
from src.ai.outline_tree import OutlineError, OutlineTree
from src.ai.types import JobStatus
from src.api.deps import CurrentUserId, EventBus, Orchestrator, Store
from src.kernel.reports.event_bus import ReportEventBus
from src.schemas.report import (
    ReportCreate,
    ReportCreatedResponse,
    ReportDetailResponse,
    ReportResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _sse(event: str, data: dict) -> str:
    return f"event: {event}\ndata: {json.dumps(data, ensure_ascii=False, default=str)}\n\n"


@router.post("", response_model=ReportCreatedResponse, status_code=status.HTTP_202_ACCEPTED)
async def create_report(
    body: ReportCreate,
    background_tasks: BackgroundTasks,
    store: Store,
    orchestrator: Orchestrator,
    user_id: CurrentUserId,
):
    """Create a job and generate it in the background."""
    if body.structure is None:
        tree = build_template_outline()
    else:
        try:
            tree = OutlineTree.from_snapshot(body.structure)
        except OutlineError as exc:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=f"Invalid mindMap: {exc}",
            )

    job_id = await store.create_job(body.search_query, tree.to_snapshot(), user_id)
    background_tasks.add_task(orchestrator.run, job_id, tree, body.search_query)
    logger.info("Scheduled report %s (%d outline nodes)", job_id, len(tree) - 1)
    return ReportCreatedResponse(id=job_id, status=JobStatus.GENERATING.value)


@router.get("", response_model=List[ReportResponse])
async def list_reports(store: Store, user_id: CurrentUserId):
    return await store.list_jobs(user_id)


@router.get("/{report_id}", response_model=ReportDetailResponse)
async def get_report(report_id: uuid.UUID, store: Store):
    report = await store.get_job(report_id)
    if report is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Report not found")
    return report


async def _event_stream(
    bus: ReportEventBus,
    report_id: uuid.UUID,
    current_status: str,
) -> AsyncIterator[str]:
    job_key = str(report_id)
    if JobStatus(current_status).is_terminal and not bus.history(job_key):
        # Finished before this process saw it (or before a restart)
        yield _sse("status", {"job_id": job_key, "status": current_status})
        return

    async for event in bus.subscribe(job_key):
        yield _sse("status" if event.is_job_event else "section", event.to_dict())


@router.get("/{report_id}/events")
async def report_events(report_id: uuid.UUID, store: Store, bus: EventBus):
    """Server-Sent Events stream of section progress; ends with the job."""
    report = await store.get_job(report_id)
    if report is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Report not found")
    return StreamingResponse(
        _event_stream(bus, report_id, report.status),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache"},
    )
