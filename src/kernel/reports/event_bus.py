"""
In-process progress bus for report jobs.

Each subscriber gets its own unbounded asyncio.Queue, so publishing never
blocks the generating job. A subscription ends once the job publishes a
terminal status.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, AsyncIterator, Dict, List, Optional

from src.ai.types import JobStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProgressEvent:
    """A section progress update, or a job status change when section is None."""
    job_id: str
    status: str
    section: Optional[str] = None
    content: Optional[str] = None
    error: Optional[str] = None

    @property
    def is_job_event(self) -> bool:
        return self.section is None

    @property
    def is_terminal(self) -> bool:
        return self.is_job_event and self.status in (
            JobStatus.COMPLETED.value,
            JobStatus.ERROR.value,
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"job_id": self.job_id, "status": self.status}
        if self.section is not None:
            data["section"] = self.section
        if self.content is not None:
            data["content"] = self.content
        if self.error is not None:
            data["error"] = self.error
        return data


class ReportEventBus:
    """Fan-out of ProgressEvents to per-job subscribers.

    A job's history is kept for ``retain_seconds`` after ``release`` so late
    subscribers can still replay it, then dropped once nobody is listening.
    """

    def __init__(self, retain_seconds: float = 60.0):
        self.retain_seconds = retain_seconds
        self._subscribers: Dict[str, List[asyncio.Queue]] = {}
        self._history: Dict[str, List[ProgressEvent]] = {}

    def publish(self, event: ProgressEvent) -> None:
        self._history.setdefault(event.job_id, []).append(event)
        for queue in self._subscribers.get(event.job_id, []):
            queue.put_nowait(event)
        if event.is_terminal:
            logger.debug("Job %s finished with %s", event.job_id, event.status)

    def history(self, job_id: str) -> List[ProgressEvent]:
        return list(self._history.get(job_id, []))

    def forget(self, job_id: str) -> None:
        self._history.pop(job_id, None)

    def release(self, job_id: str) -> None:
        """Schedule a finished job's history to be dropped."""
        asyncio.get_running_loop().call_later(self.retain_seconds, self._expire, str(job_id))

    def _expire(self, job_id: str) -> None:
        if self._subscribers.get(job_id):
            asyncio.get_running_loop().call_later(self.retain_seconds, self._expire, job_id)
            return
        self.forget(job_id)
        logger.debug("Dropped event history for job %s", job_id)

    async def subscribe(self, job_id: str, replay: bool = True) -> AsyncIterator[ProgressEvent]:
        """Yield events for ``job_id`` until a terminal job status."""
        job_id = str(job_id)
        queue: asyncio.Queue = asyncio.Queue()
        if replay:
            for event in self._history.get(job_id, []):
                queue.put_nowait(event)
        self._subscribers.setdefault(job_id, []).append(queue)
        try:
            while True:
                event = await queue.get()
                yield event
                if event.is_terminal:
                    return
        finally:
            queues = self._subscribers.get(job_id, [])
            if queue in queues:
                queues.remove(queue)
            if not queues:
                self._subscribers.pop(job_id, None)
