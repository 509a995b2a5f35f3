"""
Canvas schemas.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from src.schemas.common import ReferenceSchema, SectionNodeSchema


class OutlineMode(str, Enum):
    """How the canvas outline is built."""
    GENERATED = "generated"
    TEMPLATE = "template"


class CanvasCreate(BaseModel):
    """Canvas creation request."""

    query: str = Field(..., min_length=1, max_length=10000)
    custom_prompt: Optional[str] = Field(None, max_length=10000)
    mode: OutlineMode = OutlineMode.GENERATED


class CanvasResponse(BaseModel):
    """Canvas with its outline tree."""

    id: uuid.UUID
    search_query: str
    custom_prompt: Optional[str] = None
    user_id: Optional[str] = None
    structure: SectionNodeSchema
    created_at: datetime
    updated_at: datetime


class OutlineSectionsRequest(BaseModel):
    """Simple outline mode request."""

    query: str = Field(..., min_length=1, max_length=10000)
    custom_prompt: Optional[str] = Field(None, max_length=10000)


class OutlineSectionSchema(BaseModel):
    """One flat outline section."""

    id: str
    title: str
    content: str
    references: List[ReferenceSchema] = []

    class Config:
        from_attributes = True


class OutlineSectionsResponse(BaseModel):
    sections: List[OutlineSectionSchema]


class OutlineSectionEdit(BaseModel):
    """Replace one section's content in a flat outline held by the client."""

    sections: List[OutlineSectionSchema] = Field(..., min_length=1)
    content: str
