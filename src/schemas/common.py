"""
Common schema types used across the API.
"""

from typing import List, Optional

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response."""

    detail: str
    request_id: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    version: str
    database: str = "connected"
    ai_configured: bool = False


class ReferenceSchema(BaseModel):
    """A bibliography entry."""

    id: str
    title: str
    authors: List[str]
    year: str
    doi: Optional[str] = None
    journal: Optional[str] = None

    class Config:
        from_attributes = True


class SectionNodeSchema(BaseModel):
    """One outline node in a structure snapshot."""

    id: str
    title: str
    level: int
    parent_id: Optional[str] = None
    content: Optional[str] = None
    references: List[ReferenceSchema] = []
    children: List["SectionNodeSchema"] = []


SectionNodeSchema.model_rebuild()
