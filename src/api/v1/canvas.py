"""
Canvas endpoints - outline building and lazy section expansion.
"""

import uuid
from typing import List

from fastapi import APIRouter, HTTPException, status

from src.ai.canvas import (
    CanvasError,
    CanvasNotFoundError,
    CanvasService,
    EmptyCorpusError,
    NoMentionsError,
)
from src.ai.errors import CompletionError
from src.ai.outline_builder import OutlineSection, edit_outline_section
from src.ai.outline_tree import OutlineError
from src.ai.types import Reference
from src.api.deps import AppSettings, CurrentUserId, DbSession, OptionalCompletionClient, Resolver
from src.kernel.models.report import Canvas
from src.schemas.canvas import (
    CanvasCreate,
    CanvasResponse,
    OutlineSectionEdit,
    OutlineSectionSchema,
    OutlineSectionsRequest,
    OutlineSectionsResponse,
)
from src.schemas.common import ReferenceSchema, SectionNodeSchema

router = APIRouter()


def _to_response(canvas: Canvas) -> CanvasResponse:
    return CanvasResponse(
        id=canvas.id,
        search_query=canvas.search_query,
        custom_prompt=canvas.custom_prompt,
        user_id=canvas.user_id,
        structure=SectionNodeSchema.model_validate(canvas.structure),
        created_at=canvas.created_at,
        updated_at=canvas.updated_at,
    )


def _sections_response(sections: List[OutlineSection]) -> OutlineSectionsResponse:
    return OutlineSectionsResponse(
        sections=[
            OutlineSectionSchema(
                id=s.id,
                title=s.title,
                content=s.content,
                references=[ReferenceSchema(**r.to_dict()) for r in s.references],
            )
            for s in sections
        ]
    )


def _raise_for(exc: Exception, client_configured: bool) -> None:
    """Map canvas/service errors onto HTTP errors."""
    if isinstance(exc, NoMentionsError):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    if isinstance(exc, EmptyCorpusError):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, CanvasNotFoundError):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Canvas not found")
    if isinstance(exc, CompletionError):
        code = status.HTTP_502_BAD_GATEWAY if client_configured else status.HTTP_400_BAD_REQUEST
        raise HTTPException(status_code=code, detail=str(exc))
    if isinstance(exc, (CanvasError, OutlineError)):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    raise exc


@router.post("", response_model=CanvasResponse, status_code=status.HTTP_201_CREATED)
async def create_canvas(
    body: CanvasCreate,
    db: DbSession,
    resolver: Resolver,
    client: OptionalCompletionClient,
    settings: AppSettings,
    user_id: CurrentUserId,
):
    """Build an outline from the papers the query @mentions."""
    service = CanvasService(db, resolver, client, settings)
    try:
        canvas = await service.create(
            body.query,
            custom_prompt=body.custom_prompt,
            mode=body.mode.value,
            user_id=user_id,
        )
    except (CanvasError, CompletionError) as exc:
        _raise_for(exc, client is not None)
    return _to_response(canvas)


@router.post("/outline-sections", response_model=OutlineSectionsResponse)
async def outline_sections(
    body: OutlineSectionsRequest,
    db: DbSession,
    resolver: Resolver,
    client: OptionalCompletionClient,
    settings: AppSettings,
):
    """Simple outline mode: a flat list of editable sections."""
    service = CanvasService(db, resolver, client, settings)
    try:
        sections = await service.outline_sections(body.query, body.custom_prompt)
    except (CanvasError, CompletionError) as exc:
        _raise_for(exc, client is not None)
    return _sections_response(sections)


@router.put("/outline-sections/{section_id}", response_model=OutlineSectionsResponse)
async def edit_outline(section_id: str, body: OutlineSectionEdit):
    """Replace one section's text; the outline itself lives on the client."""
    sections = [
        OutlineSection(
            id=s.id,
            title=s.title,
            content=s.content,
            references=[Reference.from_dict(r.model_dump()) for r in s.references],
        )
        for s in body.sections
    ]
    if not any(s.id == section_id for s in sections):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Outline section not found")
    return _sections_response(edit_outline_section(sections, section_id, body.content))


@router.get("/{canvas_id}", response_model=CanvasResponse)
async def get_canvas(canvas_id: uuid.UUID, db: DbSession, resolver: Resolver):
    service = CanvasService(db, resolver)
    try:
        canvas = await service.get(canvas_id)
    except CanvasNotFoundError as exc:
        _raise_for(exc, False)
    return _to_response(canvas)


@router.post("/{canvas_id}/nodes/{node_id}/expand", response_model=SectionNodeSchema)
async def expand_node(
    canvas_id: uuid.UUID,
    node_id: str,
    db: DbSession,
    resolver: Resolver,
    client: OptionalCompletionClient,
    settings: AppSettings,
):
    """Write a node's section on first call; later calls return the stored text."""
    service = CanvasService(db, resolver, client, settings)
    try:
        node = await service.expand(canvas_id, node_id)
    except KeyError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Outline node not found")
    except (CanvasError, CanvasNotFoundError, CompletionError, OutlineError) as exc:
        _raise_for(exc, client is not None)

    return SectionNodeSchema(
        id=node.id,
        title=node.title,
        level=node.level,
        parent_id=node.parent_id,
        content=node.content,
        references=[ReferenceSchema(**r.to_dict()) for r in node.references],
        children=[],
    )
