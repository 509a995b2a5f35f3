"""
Pydantic schemas for API request/response validation.
"""

from src.schemas.common import (
    ErrorResponse,
    HealthResponse,
    ReferenceSchema,
    SectionNodeSchema,
)
from src.schemas.canvas import (
    OutlineMode,
    CanvasCreate,
    CanvasResponse,
    OutlineSectionsRequest,
    OutlineSectionSchema,
    OutlineSectionsResponse,
    OutlineSectionEdit,
)
from src.schemas.report import (
    ReportCreate,
    ReportSectionResponse,
    ReportResponse,
    ReportDetailResponse,
    ReportCreatedResponse,
)

__all__ = [
    # Common
    "ErrorResponse",
    "HealthResponse",
    "ReferenceSchema",
    "SectionNodeSchema",
    # Canvas
    "OutlineMode",
    "CanvasCreate",
    "CanvasResponse",
    "OutlineSectionsRequest",
    "OutlineSectionSchema",
    "OutlineSectionsResponse",
    "OutlineSectionEdit",
    # Reports
    "ReportCreate",
    "ReportSectionResponse",
    "ReportResponse",
    "ReportDetailResponse",
    "ReportCreatedResponse",
]
