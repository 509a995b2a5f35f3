"""
FastAPI dependencies for database sessions, caller identity and the
report generation collaborators.
"""

from typing import Annotated, Callable, Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.ai.canvas import NO_AI_MESSAGE
from src.ai.errors import CompletionError
from src.ai.llm_client import CompletionClient, build_completion_client
from src.config import Settings, get_settings
from src.database import async_session_maker, get_db
from src.engines.corpus.paper_source import SqlPaperSource
from src.engines.corpus.resolver import CorpusResolver
from src.kernel.reports.event_bus import ReportEventBus
from src.kernel.reports.report_store import ReportStore
from src.orchestration.report_orchestrator import ReportOrchestrator, create_orchestrator


DbSession = Annotated[AsyncSession, Depends(get_db)]
AppSettings = Annotated[Settings, Depends(get_settings)]


def get_session_factory() -> Callable[[], AsyncSession]:
    """Session factory for work that outlives the request (report jobs)."""
    return async_session_maker


SessionFactory = Annotated[Callable[[], AsyncSession], Depends(get_session_factory)]


# One bus per process; jobs and SSE subscribers meet here.
_event_bus = ReportEventBus(retain_seconds=get_settings().event_history_seconds)


def get_event_bus() -> ReportEventBus:
    return _event_bus


EventBus = Annotated[ReportEventBus, Depends(get_event_bus)]


def get_current_user_id(
    x_user_id: Annotated[Optional[str], Header(alias="X-User-ID")] = None,
) -> Optional[str]:
    """Caller id from the X-User-ID header; authentication happens upstream."""
    if x_user_id is None:
        return None
    x_user_id = x_user_id.strip()
    return x_user_id[:64] or None


CurrentUserId = Annotated[Optional[str], Depends(get_current_user_id)]


def get_report_store(factory: SessionFactory) -> ReportStore:
    return ReportStore(factory)


Store = Annotated[ReportStore, Depends(get_report_store)]


def get_corpus_resolver(factory: SessionFactory) -> CorpusResolver:
    return CorpusResolver(SqlPaperSource(factory))


Resolver = Annotated[CorpusResolver, Depends(get_corpus_resolver)]


def get_completion_client(settings: AppSettings) -> Optional[CompletionClient]:
    """Per-request LLM client, or None when no model is configured."""
    if not settings.ai_configured:
        return None
    try:
        return build_completion_client(settings.llm_config())
    except CompletionError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


OptionalCompletionClient = Annotated[Optional[CompletionClient], Depends(get_completion_client)]


def get_report_orchestrator(
    settings: AppSettings,
    factory: SessionFactory,
    bus: EventBus,
) -> ReportOrchestrator:
    """A fresh orchestrator per job, with its own LLM client."""
    if not settings.ai_configured:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=NO_AI_MESSAGE)
    try:
        return create_orchestrator(settings, factory, bus)
    except CompletionError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


Orchestrator = Annotated[ReportOrchestrator, Depends(get_report_orchestrator)]
