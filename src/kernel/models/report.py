"""
Report generation models.

A Report is one generation job; its ReportSection rows are appended one at a
time while the job runs so partial results are visible immediately.
"""

import uuid
from datetime import datetime
from typing import Any, List, Optional

from sqlalchemy import DateTime, ForeignKey, JSON, String, Text, func, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.ai.types import JobStatus
from src.kernel.models.base import Base, TimestampMixin, generate_uuid


class Report(Base, TimestampMixin):
    """A report generation job and its outline snapshot."""

    __tablename__ = "reports"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    status: Mapped[str] = mapped_column(
        String(50),
        default=JobStatus.GENERATING.value,
        nullable=False,
    )
    search_query: Mapped[str] = mapped_column(Text, nullable=False, default="")
    structure: Mapped[Any] = mapped_column(JSON, nullable=False)
    user_id: Mapped[Optional[str]] = mapped_column(
        String(64),
        nullable=True,
        index=True,
    )

    sections: Mapped[List["ReportSection"]] = relationship(
        "ReportSection",
        back_populates="report",
        cascade="all, delete-orphan",
        order_by="ReportSection.position",
    )

    def __repr__(self) -> str:
        return f"<Report {self.id} {self.status}>"


class ReportSection(Base):
    """Generated content for one outline node (or the References pseudo-section)."""

    __tablename__ = "report_sections"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    report_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("reports.id"),
        nullable=False,
        index=True,
    )
    section_name: Mapped[str] = mapped_column(String(500), nullable=False)
    position: Mapped[int] = mapped_column(default=0, nullable=False)
    node_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    references: Mapped[List[dict]] = mapped_column(JSON, default=list, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    report: Mapped["Report"] = relationship("Report", back_populates="sections")


class Canvas(Base, TimestampMixin):
    """An outline being expanded node by node in the research canvas."""

    __tablename__ = "canvases"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    user_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    search_query: Mapped[str] = mapped_column(Text, nullable=False)
    custom_prompt: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    structure: Mapped[Any] = mapped_column(JSON, nullable=False)

    def __repr__(self) -> str:
        return f"<Canvas {self.id}>"
