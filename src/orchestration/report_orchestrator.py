"""
Report Orchestrator -- drives one generation job from outline to bibliography.

Job lifecycle:
    generating (created) -> processing -> completed | error

Nodes are generated strictly one at a time, depth-first in document order.
A node that fails is reported as an error event and skipped; the job keeps
going with the next node. Only a failure outside the per-node scope (for
example the status update itself) ends the job in ``error``.
"""

import logging
import uuid
from typing import Callable, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from src.ai.llm_client import build_completion_client
from src.ai.outline_tree import OutlineTree, SectionNode
from src.ai.section_writer import SectionWriter
from src.ai.types import JobStatus, Paper, Reference, SectionStatus
from src.engines.citation.reconciler import reconcile
from src.engines.corpus.mentions import parse_mentions
from src.engines.corpus.paper_source import SqlPaperSource
from src.engines.corpus.resolver import CorpusResolver
from src.engines.export.assembler import assemble, deduplicate, render_bibliography
from src.kernel.reports.event_bus import ProgressEvent, ReportEventBus
from src.kernel.reports.report_store import ReportStore
from src.logging_config import report_id_var

logger = logging.getLogger(__name__)

REFERENCES_SECTION = "References"


class ReportOrchestrator:
    """Runs one report job against explicit collaborators."""

    def __init__(
        self,
        store: ReportStore,
        writer: SectionWriter,
        resolver: CorpusResolver,
        bus: ReportEventBus,
    ):
        self.store = store
        self.writer = writer
        self.resolver = resolver
        self.bus = bus

    def _emit(
        self,
        job_id: uuid.UUID,
        status: str,
        section: Optional[str] = None,
        content: Optional[str] = None,
        error: Optional[str] = None,
    ) -> None:
        self.bus.publish(ProgressEvent(
            job_id=str(job_id),
            status=status,
            section=section,
            content=content,
            error=error,
        ))

    async def run(self, job_id: uuid.UUID, tree: OutlineTree, search_query: str) -> JobStatus:
        token = report_id_var.set(str(job_id))
        try:
            await self.store.set_status(job_id, JobStatus.PROCESSING)
            self._emit(job_id, JobStatus.PROCESSING.value)

            corpus = await self.resolver.resolve(parse_mentions(search_query))
            nodes = list(tree.walk())
            logger.info("Generating %d sections from %d papers", len(nodes), len(corpus))

            failed = 0
            for node in nodes:
                if not await self._generate_node(job_id, tree, node, corpus):
                    failed += 1

            await self._generate_bibliography(job_id, tree, corpus)

            await self.store.set_status(job_id, JobStatus.COMPLETED)
            self._emit(job_id, JobStatus.COMPLETED.value)
            logger.info("Report finished, %d of %d sections failed", failed, len(nodes))
            return JobStatus.COMPLETED

        except Exception as exc:
            logger.exception("Report generation failed: %s", exc)
            try:
                await self.store.set_status(job_id, JobStatus.ERROR)
            except Exception as status_exc:
                logger.error("Could not mark report %s as failed: %s", job_id, status_exc)
            self._emit(job_id, JobStatus.ERROR.value, error=str(exc))
            return JobStatus.ERROR
        finally:
            self.bus.release(job_id)
            report_id_var.reset(token)

    async def _generate_node(
        self,
        job_id: uuid.UUID,
        tree: OutlineTree,
        node: SectionNode,
        corpus: List[Paper],
    ) -> bool:
        """Generate, reconcile and persist one node. Returns False on failure."""
        self._emit(job_id, SectionStatus.GENERATING.value, section=node.title)
        try:
            if node.is_expanded:
                # Already expanded on the canvas
                content, references = node.content, node.references
            else:
                parent = tree.parent_of(node.id)
                parent_title = parent.title if parent is not None and not parent.is_root else None
                draft = await self.writer.generate(node, corpus, parent_title=parent_title)
                references = reconcile(draft.content, draft.references_block)
                content = draft.content
                tree.set_content(node.id, content, references)

            await self.store.append_section(
                job_id, node.title, content, node_id=node.id, references=references
            )
        except Exception as exc:
            logger.error("Error generating section '%s': %s", node.title, exc)
            self._emit(job_id, SectionStatus.ERROR.value, section=node.title, error=str(exc))
            return False

        self._emit(job_id, SectionStatus.COMPLETED.value, section=node.title, content=content)
        return True

    async def _generate_bibliography(
        self,
        job_id: uuid.UUID,
        tree: OutlineTree,
        corpus: List[Paper],
    ) -> None:
        self._emit(job_id, SectionStatus.GENERATING.value, section=REFERENCES_SECTION)
        try:
            references = assemble(tree).references
            if not references:
                # Nothing cited anywhere: fall back to the whole corpus
                references, _ = deduplicate([Reference.from_paper(p) for p in corpus])
            content = render_bibliography(references)
            await self.store.append_section(
                job_id, REFERENCES_SECTION, content, references=references
            )
        except Exception as exc:
            logger.error("Error generating bibliography: %s", exc)
            self._emit(job_id, SectionStatus.ERROR.value, section=REFERENCES_SECTION, error=str(exc))
            return

        self._emit(job_id, SectionStatus.COMPLETED.value, section=REFERENCES_SECTION, content=content)


def create_orchestrator(
    settings,
    session_factory: Callable[[], AsyncSession],
    bus: ReportEventBus,
) -> ReportOrchestrator:
    """Wire a job's collaborators from settings; the LLM client is per job."""
    client = build_completion_client(settings.llm_config())
    return ReportOrchestrator(
        store=ReportStore(session_factory),
        writer=SectionWriter(client, settings),
        resolver=CorpusResolver(SqlPaperSource(session_factory)),
        bus=bus,
    )
