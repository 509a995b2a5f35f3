"""
Report schemas.
"""

import uuid
from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator

from src.schemas.common import ReferenceSchema


class ReportCreate(BaseModel):
    """Start a report generation job.

    ``structure`` is an outline snapshot (or a bare list of top-level nodes);
    omit it to use the fixed report template.
    """

    search_query: str = Field(..., min_length=1, max_length=10000)
    structure: Optional[Any] = None

    @field_validator("structure")
    @classmethod
    def structure_not_empty(cls, value: Any) -> Any:
        if value is None:
            return value
        if isinstance(value, list):
            if not value:
                raise ValueError("Invalid mindMap: must be a non-empty array")
            return value
        if isinstance(value, dict):
            if not value.get("children"):
                raise ValueError("Invalid mindMap: must contain at least one section")
            return value
        raise ValueError("Invalid mindMap: must be an array or an outline object")


class ReportSectionResponse(BaseModel):
    """One persisted section."""

    id: uuid.UUID
    section_name: str
    position: int
    node_id: Optional[str] = None
    content: str
    references: List[ReferenceSchema] = []
    created_at: datetime

    class Config:
        from_attributes = True


class ReportResponse(BaseModel):
    """Report job summary."""

    id: uuid.UUID
    status: str
    search_query: str
    user_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ReportDetailResponse(ReportResponse):
    """Report job with its outline and the sections written so far."""

    structure: Any
    sections: List[ReportSectionResponse] = []


class ReportCreatedResponse(BaseModel):
    """Returned when a job is accepted."""

    id: uuid.UUID
    status: str
